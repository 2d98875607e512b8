from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..deps import get_db, get_current_user, get_company_id, PageParams
from ..models import STATUS_ACTIVE, STATUS_INACTIVE
from ..responses import success, paginated
from ..schemas import ApiResponse
from ..services.lot_service import LotService

router = APIRouter(prefix="/inventory/lots", tags=["inventory lots"], dependencies=[Depends(get_current_user)])


# =============================================================================
# PYDANTIC SCHEMAS
# =============================================================================

class LotIn(BaseModel):
    inv_var_id: int
    lot_number: str = Field(..., min_length=1, max_length=100)
    lot_origin: Optional[str] = Field(None, max_length=100)
    lot_status: int = Field(1, ge=0, le=1)
    expiration_date: Optional[date] = None
    manufacture_date: Optional[date] = None
    lot_notes: Optional[str] = None
    lot_unit_cost: Optional[float] = None
    lot_unit_currency_id: Optional[int] = None
    lot_unit_cost_ref: Optional[float] = None
    lot_unit_currency_id_ref: Optional[int] = None


class LotUpdate(BaseModel):
    inv_var_id: Optional[int] = None
    lot_number: Optional[str] = Field(None, min_length=1, max_length=100)
    lot_origin: Optional[str] = Field(None, max_length=100)
    lot_status: Optional[int] = Field(None, ge=0, le=1)
    expiration_date: Optional[date] = None
    manufacture_date: Optional[date] = None
    lot_notes: Optional[str] = None
    lot_unit_cost: Optional[float] = None
    lot_unit_currency_id: Optional[int] = None
    lot_unit_cost_ref: Optional[float] = None
    lot_unit_currency_id_ref: Optional[int] = None


class LotOut(BaseModel):
    inv_lot_id: int
    inv_var_id: int
    lot_number: str
    lot_origin: Optional[str]
    lot_status: int
    expiration_date: Optional[date]
    manufacture_date: Optional[date]
    lot_notes: Optional[str]
    lot_unit_cost: Optional[float]
    lot_unit_currency_id: Optional[int]
    lot_unit_cost_ref: Optional[float]
    lot_unit_currency_id_ref: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class LotSummaryOut(BaseModel):
    total_lots: int
    active_lots: int
    inactive_lots: int
    expiring_soon: int
    expired: int
    expiring_window_days: int


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/variant/{inv_var_id}", response_model=ApiResponse[List[LotOut]])
def list_lots_by_variant(
    inv_var_id: int,
    status: Optional[int] = Query(None, ge=0, le=1),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    lots, total = LotService.list_by_variant(db, company_id, inv_var_id, pages.page, pages.limit, status)
    return paginated("Lots retrieved", lots, total, pages.page, pages.limit)


@router.get("/search/{lot_number}", response_model=ApiResponse[List[LotOut]])
def search_lots(
    lot_number: str,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    lots, total = LotService.search(db, company_id, lot_number, pages.page, pages.limit)
    return paginated("Lots retrieved", lots, total, pages.page, pages.limit)


@router.get("/summary/stats", response_model=ApiResponse[LotSummaryOut])
def lot_summary(db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Lot summary retrieved", LotService.summary(db, company_id))


@router.get("/{lot_id}", response_model=ApiResponse[LotOut])
def get_lot(lot_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Lot retrieved", LotService.get(db, company_id, lot_id))


@router.post("", response_model=ApiResponse[LotOut], status_code=201)
def create_lot(data: LotIn, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    lot = LotService.create(db, company_id, data.model_dump())
    db.commit()
    db.refresh(lot)
    return success("Lot created", lot)


@router.put("/{lot_id}", response_model=ApiResponse[LotOut])
def update_lot(lot_id: int, data: LotUpdate, db: Session = Depends(get_db),
               company_id: int = Depends(get_company_id)):
    lot = LotService.update(db, company_id, lot_id, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(lot)
    return success("Lot updated", lot)


@router.delete("/{lot_id}", response_model=ApiResponse[dict])
def delete_lot(lot_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    LotService.delete(db, company_id, lot_id)
    db.commit()
    return success("Lot deleted", {"inv_lot_id": lot_id})


@router.patch("/{lot_id}/activate", response_model=ApiResponse[LotOut])
def activate_lot(lot_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    lot = LotService.set_status(db, company_id, lot_id, STATUS_ACTIVE)
    db.commit()
    db.refresh(lot)
    return success("Lot activated", lot)


@router.patch("/{lot_id}/deactivate", response_model=ApiResponse[LotOut])
def deactivate_lot(lot_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    lot = LotService.set_status(db, company_id, lot_id, STATUS_INACTIVE)
    db.commit()
    db.refresh(lot)
    return success("Lot deactivated", lot)
