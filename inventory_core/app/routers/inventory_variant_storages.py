from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import models
from ..deps import get_db, get_current_user, get_company_id, PageParams
from ..responses import success, paginated
from ..schemas import ApiResponse
from ..services.stock_service import VariantStorageService

router = APIRouter(prefix="/inventory/variant-storages", tags=["variant storages"])


class VariantStorageIn(BaseModel):
    inv_var_id: int
    id_inv_storage: int
    inv_vs_stock: float = Field(0, ge=0)
    inv_vs_stock_reserved: float = Field(0, ge=0)
    inv_vs_stock_committed: float = Field(0, ge=0)
    inv_vs_stock_min: float = Field(0, ge=0)


class VariantStorageUpdate(BaseModel):
    inv_vs_stock: Optional[float] = Field(None, ge=0)
    inv_vs_stock_reserved: Optional[float] = Field(None, ge=0)
    inv_vs_stock_committed: Optional[float] = Field(None, ge=0)
    inv_vs_stock_min: Optional[float] = Field(None, ge=0)


class VariantStorageOut(BaseModel):
    inv_var_storage_id: int
    inv_var_id: int
    id_inv_storage: int
    inv_vs_stock: float
    inv_vs_stock_reserved: float
    inv_vs_stock_committed: float
    inv_vs_stock_prev: float
    inv_vs_stock_min: float
    user_id: Optional[int]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class StockSummaryOut(BaseModel):
    inv_var_id: int
    storage_locations: int
    total_stock: float
    total_reserved: float
    total_committed: float
    total_available: float
    total_min: float


@router.get("/variant/{inv_var_id}", response_model=ApiResponse[List[VariantStorageOut]])
def list_by_variant(
    inv_var_id: int,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    rows, total = VariantStorageService.list_by_variant(db, company_id, inv_var_id, pages.page, pages.limit)
    return paginated("Variant storages retrieved", rows, total, pages.page, pages.limit)


@router.get("/variant/{inv_var_id}/storage/{storage_id}", response_model=ApiResponse[VariantStorageOut])
def get_by_variant_and_storage(
    inv_var_id: int,
    storage_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    row = VariantStorageService.get_by_variant_and_storage(db, company_id, inv_var_id, storage_id)
    return success("Variant storage retrieved", row)


@router.put("/variant/{inv_var_id}/storage/{storage_id}", response_model=ApiResponse[VariantStorageOut])
def update_stock(
    inv_var_id: int,
    storage_id: int,
    data: VariantStorageUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    row = VariantStorageService.update_stock(
        db, company_id, inv_var_id, storage_id, data.model_dump(exclude_unset=True), current_user.user_id
    )
    db.commit()
    db.refresh(row)
    return success("Stock updated", row)


@router.get("/variant/{inv_var_id}/summary", response_model=ApiResponse[StockSummaryOut])
def stock_summary(inv_var_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Stock summary retrieved", VariantStorageService.summary(db, company_id, inv_var_id))


@router.get("/storage/{storage_id}", response_model=ApiResponse[List[VariantStorageOut]])
def list_by_storage(
    storage_id: int,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    rows, total = VariantStorageService.list_by_storage(db, company_id, storage_id, pages.page, pages.limit)
    return paginated("Variant storages retrieved", rows, total, pages.page, pages.limit)


@router.get("/{inv_var_storage_id}", response_model=ApiResponse[VariantStorageOut])
def get_variant_storage(inv_var_storage_id: int, db: Session = Depends(get_db),
                        company_id: int = Depends(get_company_id)):
    return success("Variant storage retrieved", VariantStorageService.get(db, company_id, inv_var_storage_id))


@router.post("", response_model=ApiResponse[VariantStorageOut], status_code=201)
def create_variant_storage(
    data: VariantStorageIn,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    row = VariantStorageService.create(db, company_id, data.model_dump(), current_user.user_id)
    db.commit()
    db.refresh(row)
    return success("Variant storage created", row)


@router.put("/{inv_var_storage_id}", response_model=ApiResponse[VariantStorageOut])
def update_variant_storage(
    inv_var_storage_id: int,
    data: VariantStorageUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    row = VariantStorageService.update(
        db, company_id, inv_var_storage_id, data.model_dump(exclude_unset=True), current_user.user_id
    )
    db.commit()
    db.refresh(row)
    return success("Variant storage updated", row)


@router.delete("/{inv_var_storage_id}", response_model=ApiResponse[dict])
def delete_variant_storage(inv_var_storage_id: int, db: Session = Depends(get_db),
                           company_id: int = Depends(get_company_id)):
    VariantStorageService.delete(db, company_id, inv_var_storage_id)
    db.commit()
    return success("Variant storage deleted", {"inv_var_storage_id": inv_var_storage_id})
