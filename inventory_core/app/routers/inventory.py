"""
Inventory API Router
====================
Inventory items with their taxes and variants.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..deps import get_db, get_current_user, get_company_id, PageParams
from ..models_inventory import InventoryType
from ..responses import success, paginated
from ..schemas import ApiResponse, StatusPatch
from ..services.inventory_service import InventoryService, VariantService

router = APIRouter(prefix="/inventory", tags=["inventory"], dependencies=[Depends(get_current_user)])


# =============================================================================
# PYDANTIC SCHEMAS
# =============================================================================

class VariantIn(BaseModel):
    inv_var_sku: str = Field(..., max_length=100)
    inv_var_status: int = Field(1, ge=0, le=1)
    attr_values: List[int] = Field([], description="Attribute value ids")

    @field_validator('inv_var_sku')
    @classmethod
    def sku_not_blank(cls, v):
        if not v.strip():
            raise ValueError("inv_var_sku cannot be empty")
        return v.strip()


class VariantUpdate(BaseModel):
    inv_var_sku: Optional[str] = Field(None, min_length=1, max_length=100)
    inv_var_status: Optional[int] = Field(None, ge=0, le=1)
    attr_values: Optional[List[int]] = Field(None, description="Attribute value ids to add")


class AttrValueOut(BaseModel):
    inv_attrval_id: int
    inv_attr_id: int
    attr_value: str

    class Config:
        from_attributes = True


class VariantOut(BaseModel):
    inv_var_id: int
    inv_id: int
    inv_var_sku: str
    inv_var_status: int
    attr_values: List[AttrValueOut] = []

    class Config:
        from_attributes = True


class TaxBrief(BaseModel):
    tax_id: int
    tax_code: str
    tax_name: str
    tax_type: int
    tax_value: float

    class Config:
        from_attributes = True


class InventoryIn(BaseModel):
    id_inv_family: int
    inv_code: str = Field(..., min_length=1, max_length=50)
    inv_description: str = Field(..., min_length=1, max_length=150)
    inv_description_detail: Optional[str] = None
    inv_status: int = Field(1, ge=0, le=1)
    inv_type: int = Field(InventoryType.PRODUCT, ge=InventoryType.PRODUCT, le=InventoryType.SERVICE)
    inv_is_exempt: int = Field(0, ge=0, le=1)
    inv_brand: Optional[str] = Field(None, max_length=50)
    inv_model: Optional[str] = Field(None, max_length=50)
    inv_url_image: Optional[str] = Field(None, max_length=255)
    taxes: List[int] = []
    variants: List[VariantIn] = []


class InventoryUpdate(BaseModel):
    id_inv_family: Optional[int] = None
    inv_code: Optional[str] = Field(None, min_length=1, max_length=50)
    inv_description: Optional[str] = Field(None, min_length=1, max_length=150)
    inv_description_detail: Optional[str] = None
    inv_status: Optional[int] = Field(None, ge=0, le=1)
    inv_type: Optional[int] = Field(None, ge=InventoryType.PRODUCT, le=InventoryType.SERVICE)
    inv_is_exempt: Optional[int] = Field(None, ge=0, le=1)
    inv_brand: Optional[str] = Field(None, max_length=50)
    inv_model: Optional[str] = Field(None, max_length=50)
    inv_url_image: Optional[str] = Field(None, max_length=255)
    taxes: Optional[List[int]] = Field(None, description="Replaces the current tax set when given")


class InventoryListOut(BaseModel):
    inv_id: int
    company_id: int
    id_inv_family: int
    inv_code: str
    inv_description: str
    inv_status: int
    inv_type: int
    inv_is_exempt: int
    inv_brand: Optional[str]
    inv_model: Optional[str]
    inv_current_existence: float
    inv_previous_existence: float
    inv_url_image: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class InventoryOut(InventoryListOut):
    inv_description_detail: Optional[str]
    variants: List[VariantOut] = []
    taxes: List[TaxBrief] = []


# =============================================================================
# INVENTORY
# =============================================================================

@router.get("", response_model=ApiResponse[List[InventoryListOut]])
def list_inventory(
    status: Optional[int] = Query(1, ge=0, le=1),
    family_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="Matches code or description"),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    items, total = InventoryService.list(db, company_id, pages.page, pages.limit, status, family_id, search)
    return paginated("Inventory retrieved", items, total, pages.page, pages.limit)


@router.get("/variants/{inv_var_id}", response_model=ApiResponse[VariantOut])
def get_variant(inv_var_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Variant retrieved", VariantService.get(db, company_id, inv_var_id))


@router.put("/variants/{inv_var_id}", response_model=ApiResponse[VariantOut])
def update_variant(inv_var_id: int, data: VariantUpdate, db: Session = Depends(get_db),
                   company_id: int = Depends(get_company_id)):
    variant = VariantService.update(db, company_id, inv_var_id, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(variant)
    return success("Variant updated", variant)


@router.get("/{inv_id}", response_model=ApiResponse[InventoryOut])
def get_inventory(inv_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Inventory retrieved", InventoryService.get(db, company_id, inv_id))


@router.post("", response_model=ApiResponse[InventoryOut], status_code=201)
def create_inventory(data: InventoryIn, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    inventory = InventoryService.create(db, company_id, data.model_dump())
    db.commit()
    return success("Inventory created", InventoryService.get(db, company_id, inventory.inv_id))


@router.put("/{inv_id}", response_model=ApiResponse[InventoryOut])
def update_inventory(inv_id: int, data: InventoryUpdate, db: Session = Depends(get_db),
                     company_id: int = Depends(get_company_id)):
    InventoryService.update(db, company_id, inv_id, data.model_dump(exclude_unset=True))
    db.commit()
    return success("Inventory updated", InventoryService.get(db, company_id, inv_id))


@router.patch("/{inv_id}", response_model=ApiResponse[InventoryListOut])
def patch_inventory_status(inv_id: int, body: StatusPatch, db: Session = Depends(get_db),
                           company_id: int = Depends(get_company_id)):
    inventory = InventoryService.update(db, company_id, inv_id, {"inv_status": body.status})
    db.commit()
    db.refresh(inventory)
    return success("Inventory status updated", inventory)


# =============================================================================
# VARIANTS
# =============================================================================

@router.get("/{inv_id}/variants", response_model=ApiResponse[List[VariantOut]])
def list_variants(
    inv_id: int,
    status: Optional[int] = Query(None, ge=0, le=1),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    return success("Variants retrieved", VariantService.list_by_inventory(db, company_id, inv_id, status))


@router.post("/{inv_id}/variants", response_model=ApiResponse[VariantOut], status_code=201)
def create_variant(inv_id: int, data: VariantIn, db: Session = Depends(get_db),
                   company_id: int = Depends(get_company_id)):
    variant = VariantService.create(db, company_id, inv_id, data.model_dump())
    db.commit()
    db.refresh(variant)
    return success("Variant created", variant)
