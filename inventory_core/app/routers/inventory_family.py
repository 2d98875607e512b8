from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..deps import get_db, get_current_user, get_company_id, PageParams
from ..responses import success, paginated
from ..schemas import ApiResponse, StatusPatch
from ..services.inventory_service import FamilyService

router = APIRouter(prefix="/inventory/family", tags=["inventory families"], dependencies=[Depends(get_current_user)])


class FamilyIn(BaseModel):
    inv_family_code: str = Field(..., min_length=1, max_length=20)
    inv_family_name: str = Field(..., min_length=1, max_length=80)
    inv_family_status: int = Field(1, ge=0, le=1)
    inv_is_stockable: int = Field(1, ge=0, le=1)
    inv_is_lot_managed: int = Field(0, ge=0, le=1)
    tax_id: Optional[int] = None


class FamilyUpdate(BaseModel):
    inv_family_code: Optional[str] = Field(None, min_length=1, max_length=20)
    inv_family_name: Optional[str] = Field(None, min_length=1, max_length=80)
    inv_family_status: Optional[int] = Field(None, ge=0, le=1)
    inv_is_stockable: Optional[int] = Field(None, ge=0, le=1)
    inv_is_lot_managed: Optional[int] = Field(None, ge=0, le=1)
    tax_id: Optional[int] = None


class FamilyOut(BaseModel):
    id_inv_family: int
    company_id: int
    inv_family_code: str
    inv_family_name: str
    inv_family_status: int
    inv_is_stockable: int
    inv_is_lot_managed: int
    tax_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("", response_model=ApiResponse[List[FamilyOut]])
def list_families(
    status: Optional[int] = Query(1, ge=0, le=1),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    families, total = FamilyService.list(db, company_id, pages.page, pages.limit, status)
    return paginated("Inventory families retrieved", families, total, pages.page, pages.limit)


@router.get("/{family_id}", response_model=ApiResponse[FamilyOut])
def get_family(family_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Inventory family retrieved", FamilyService.get(db, company_id, family_id))


@router.post("", response_model=ApiResponse[FamilyOut], status_code=201)
def create_family(data: FamilyIn, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    family = FamilyService.create(db, company_id, data.model_dump())
    db.commit()
    db.refresh(family)
    return success("Inventory family created", family)


@router.put("/{family_id}", response_model=ApiResponse[FamilyOut])
def update_family(family_id: int, data: FamilyUpdate, db: Session = Depends(get_db),
                  company_id: int = Depends(get_company_id)):
    family = FamilyService.update(db, company_id, family_id, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(family)
    return success("Inventory family updated", family)


@router.patch("/{family_id}", response_model=ApiResponse[FamilyOut])
def patch_family_status(family_id: int, body: StatusPatch, db: Session = Depends(get_db),
                        company_id: int = Depends(get_company_id)):
    family = FamilyService.update(db, company_id, family_id, {"inv_family_status": body.status})
    db.commit()
    db.refresh(family)
    return success("Inventory family status updated", family)
