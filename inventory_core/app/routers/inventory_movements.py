"""
Inventory Movements API Router
==============================
Stock movements (IN / OUT / TRANSFER). Creating a movement applies it to the
variant and lot storages in the same transaction.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import models
from ..deps import get_db, get_current_user, get_company_id, PageParams
from ..models_inventory import MovementType
from ..responses import success, paginated
from ..schemas import ApiResponse
from ..services.stock_service import MovementService

router = APIRouter(prefix="/inventory/movements", tags=["inventory movements"])


# =============================================================================
# PYDANTIC SCHEMAS
# =============================================================================

class MovementIn(BaseModel):
    inv_var_id: int
    id_inv_storage: int
    id_inv_storage_to: Optional[int] = Field(None, description="Destination storage, transfers only")
    inv_lot_id: Optional[int] = None
    movement_type: int = Field(..., ge=MovementType.IN, le=MovementType.TRANSFER,
                               description="1 = IN, 2 = OUT, 3 = TRANSFER")
    quantity: float = Field(..., gt=0)
    movement_reason: Optional[str] = Field(None, max_length=255)
    related_doc: Optional[str] = Field(None, max_length=100)


class MovementUpdate(BaseModel):
    movement_reason: Optional[str] = Field(None, max_length=255)
    related_doc: Optional[str] = Field(None, max_length=100)


class MovementOut(BaseModel):
    inv_storage_move_id: int
    id_inv_storage: int
    id_inv_storage_to: Optional[int]
    inv_var_id: int
    inv_lot_id: Optional[int]
    movement_type: int
    quantity: float
    movement_reason: Optional[str]
    related_doc: Optional[str]
    user_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class MovementStatisticsOut(BaseModel):
    total_movements: int
    total_in: float
    total_out: float
    total_transfer: float
    unique_variants: int
    unique_storages: int


# =============================================================================
# QUERIES
# =============================================================================

def _page(items_total, pages: PageParams):
    items, total = items_total
    return paginated("Movements retrieved", items, total, pages.page, pages.limit)


@router.get("/variant/{inv_var_id}", response_model=ApiResponse[List[MovementOut]])
def movements_by_variant(inv_var_id: int, pages: PageParams = Depends(), db: Session = Depends(get_db),
                         company_id: int = Depends(get_company_id)):
    return _page(MovementService.list(db, company_id, pages.page, pages.limit, inv_var_id=inv_var_id), pages)


@router.get("/lot/{lot_id}", response_model=ApiResponse[List[MovementOut]])
def movements_by_lot(lot_id: int, pages: PageParams = Depends(), db: Session = Depends(get_db),
                     company_id: int = Depends(get_company_id)):
    return _page(MovementService.list(db, company_id, pages.page, pages.limit, lot_id=lot_id), pages)


@router.get("/storage/{storage_id}", response_model=ApiResponse[List[MovementOut]])
def movements_by_storage(storage_id: int, pages: PageParams = Depends(), db: Session = Depends(get_db),
                         company_id: int = Depends(get_company_id)):
    return _page(MovementService.list(db, company_id, pages.page, pages.limit, storage_id=storage_id), pages)


@router.get("/type/{movement_type}", response_model=ApiResponse[List[MovementOut]])
def movements_by_type(movement_type: int, pages: PageParams = Depends(), db: Session = Depends(get_db),
                      company_id: int = Depends(get_company_id)):
    return _page(MovementService.list(db, company_id, pages.page, pages.limit, movement_type=movement_type), pages)


@router.get("/user/{user_id}", response_model=ApiResponse[List[MovementOut]])
def movements_by_user(user_id: int, pages: PageParams = Depends(), db: Session = Depends(get_db),
                      company_id: int = Depends(get_company_id)):
    return _page(MovementService.list(db, company_id, pages.page, pages.limit, user_id=user_id), pages)


@router.get("/related-doc/{related_doc}", response_model=ApiResponse[List[MovementOut]])
def movements_by_related_doc(related_doc: str, pages: PageParams = Depends(), db: Session = Depends(get_db),
                             company_id: int = Depends(get_company_id)):
    return _page(MovementService.list(db, company_id, pages.page, pages.limit, related_doc=related_doc), pages)


@router.get("/date-range", response_model=ApiResponse[List[MovementOut]])
def movements_by_date_range(
    start: datetime = Query(..., description="Inclusive lower bound"),
    end: datetime = Query(..., description="Inclusive upper bound"),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    return _page(MovementService.list(db, company_id, pages.page, pages.limit, start=start, end=end), pages)


@router.get("/latest", response_model=ApiResponse[List[MovementOut]])
def latest_movements(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    return success("Latest movements retrieved", MovementService.latest(db, company_id, limit))


@router.get("/statistics", response_model=ApiResponse[MovementStatisticsOut])
def movement_statistics(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    movement_type: Optional[int] = Query(None, ge=MovementType.IN, le=MovementType.TRANSFER),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    stats = MovementService.statistics(db, company_id, start, end, movement_type)
    return success("Movement statistics retrieved", stats)


@router.get("/{move_id}", response_model=ApiResponse[MovementOut])
def get_movement(move_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Movement retrieved", MovementService.get(db, company_id, move_id))


# =============================================================================
# WRITES
# =============================================================================

@router.post("", response_model=ApiResponse[MovementOut], status_code=201)
def create_movement(
    data: MovementIn,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    movement = MovementService.create(db, company_id, data.model_dump(), current_user.user_id)
    db.commit()
    db.refresh(movement)
    return success("Movement recorded", movement)


@router.put("/{move_id}", response_model=ApiResponse[MovementOut])
def update_movement(
    move_id: int,
    data: MovementUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    movement = MovementService.update(db, company_id, move_id, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(movement)
    return success("Movement updated", movement)
