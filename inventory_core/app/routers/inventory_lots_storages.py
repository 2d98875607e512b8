from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import models
from ..deps import get_db, get_current_user, get_company_id, PageParams
from ..responses import success, paginated
from ..schemas import ApiResponse
from ..services.stock_service import LotStorageService

router = APIRouter(prefix="/inventory/lots-storages", tags=["lot storages"])


class LotStorageIn(BaseModel):
    inv_lot_id: int
    id_inv_storage: int
    inv_var_id: Optional[int] = Field(None, description="Taken from the lot; must match when given")
    inv_ls_stock: float = Field(0, ge=0)
    inv_ls_stock_reserved: float = Field(0, ge=0)
    inv_ls_stock_committed: float = Field(0, ge=0)
    inv_ls_stock_min: float = Field(0, ge=0)


class LotStorageUpdate(BaseModel):
    inv_ls_stock: Optional[float] = Field(None, ge=0)
    inv_ls_stock_reserved: Optional[float] = Field(None, ge=0)
    inv_ls_stock_committed: Optional[float] = Field(None, ge=0)
    inv_ls_stock_min: Optional[float] = Field(None, ge=0)


class LotStorageOut(BaseModel):
    inv_lot_storage_id: int
    inv_var_id: int
    inv_lot_id: int
    id_inv_storage: int
    inv_ls_stock: float
    inv_ls_stock_reserved: float
    inv_ls_stock_committed: float
    inv_ls_stock_prev: float
    inv_ls_stock_min: float
    user_id: Optional[int]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class LotStockSummaryOut(BaseModel):
    inv_lot_id: int
    inv_var_id: int
    lot_number: str
    storage_locations: int
    total_stock: float
    total_reserved: float
    total_committed: float
    total_available: float
    total_min: float


@router.get("/variant/{inv_var_id}", response_model=ApiResponse[List[LotStorageOut]])
def list_by_variant(
    inv_var_id: int,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    rows, total = LotStorageService.list_by_variant(db, company_id, inv_var_id, pages.page, pages.limit)
    return paginated("Lot storages retrieved", rows, total, pages.page, pages.limit)


@router.get("/variant/{inv_var_id}/lot/{lot_id}", response_model=ApiResponse[List[LotStorageOut]])
def list_by_variant_and_lot(
    inv_var_id: int,
    lot_id: int,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    rows, total = LotStorageService.list_by_variant_and_lot(db, company_id, inv_var_id, lot_id, pages.page, pages.limit)
    return paginated("Lot storages retrieved", rows, total, pages.page, pages.limit)


@router.get("/lot/{lot_id}", response_model=ApiResponse[List[LotStorageOut]])
def list_by_lot(
    lot_id: int,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    rows, total = LotStorageService.list_by_lot(db, company_id, lot_id, pages.page, pages.limit)
    return paginated("Lot storages retrieved", rows, total, pages.page, pages.limit)


@router.get("/lot/{lot_id}/summary", response_model=ApiResponse[LotStockSummaryOut])
def lot_stock_summary(lot_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Lot stock summary retrieved", LotStorageService.summary(db, company_id, lot_id))


@router.get("/lot/{lot_id}/storage/{storage_id}", response_model=ApiResponse[LotStorageOut])
def get_by_lot_and_storage(
    lot_id: int,
    storage_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    return success("Lot storage retrieved", LotStorageService.get_by_lot_and_storage(db, company_id, lot_id, storage_id))


@router.put("/lot/{lot_id}/storage/{storage_id}", response_model=ApiResponse[LotStorageOut])
def update_stock(
    lot_id: int,
    storage_id: int,
    data: LotStorageUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    row = LotStorageService.update_stock(
        db, company_id, lot_id, storage_id, data.model_dump(exclude_unset=True), current_user.user_id
    )
    db.commit()
    db.refresh(row)
    return success("Lot stock updated", row)


@router.get("/storage/{storage_id}", response_model=ApiResponse[List[LotStorageOut]])
def list_by_storage(
    storage_id: int,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    rows, total = LotStorageService.list_by_storage(db, company_id, storage_id, pages.page, pages.limit)
    return paginated("Lot storages retrieved", rows, total, pages.page, pages.limit)


@router.get("/{inv_lot_storage_id}", response_model=ApiResponse[LotStorageOut])
def get_lot_storage(inv_lot_storage_id: int, db: Session = Depends(get_db),
                    company_id: int = Depends(get_company_id)):
    return success("Lot storage retrieved", LotStorageService.get(db, company_id, inv_lot_storage_id))


@router.post("", response_model=ApiResponse[LotStorageOut], status_code=201)
def create_lot_storage(
    data: LotStorageIn,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    row = LotStorageService.create(db, company_id, data.model_dump(), current_user.user_id)
    db.commit()
    db.refresh(row)
    return success("Lot storage created", row)


@router.put("/{inv_lot_storage_id}", response_model=ApiResponse[LotStorageOut])
def update_lot_storage(
    inv_lot_storage_id: int,
    data: LotStorageUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    row = LotStorageService.update(
        db, company_id, inv_lot_storage_id, data.model_dump(exclude_unset=True), current_user.user_id
    )
    db.commit()
    db.refresh(row)
    return success("Lot storage updated", row)


@router.delete("/{inv_lot_storage_id}", response_model=ApiResponse[dict])
def delete_lot_storage(inv_lot_storage_id: int, db: Session = Depends(get_db),
                       company_id: int = Depends(get_company_id)):
    LotStorageService.delete(db, company_id, inv_lot_storage_id)
    db.commit()
    return success("Lot storage deleted", {"inv_lot_storage_id": inv_lot_storage_id})
