"""
Inventory Prices API Router
===========================
Variant prices per type of price, in local, stable and reference currency.

Only one price per (variant, type of price) is current at a time.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import models
from ..deps import get_db, get_current_user, get_company_id, PageParams
from ..responses import success, paginated
from ..schemas import ApiResponse
from ..services.price_service import PriceService

router = APIRouter(prefix="/inventory/prices", tags=["inventory prices"])


# =============================================================================
# PYDANTIC SCHEMAS
# =============================================================================

class PriceAmounts(BaseModel):
    price_local: float = 0
    price_stable: float = 0
    price_ref: float = 0
    price_base_local: float = 0
    price_base_stable: float = 0
    price_base_ref: float = 0
    tax_amount_local: float = 0
    tax_amount_stable: float = 0
    tax_amount_ref: float = 0
    cost_local: float = 0
    cost_stable: float = 0
    cost_ref: float = 0
    cost_avg_local: float = 0
    cost_avg_stable: float = 0
    cost_avg_ref: float = 0
    # Profits may be negative
    profit_local: float = 0
    profit_stable: float = 0
    profit_ref: float = 0


class PriceIn(PriceAmounts):
    inv_var_id: int
    typeprice_id: int
    is_current: int = Field(0, ge=0, le=1)
    currency_id_local: Optional[int] = None
    currency_id_stable: Optional[int] = Field(None, description="Defaults to the reference currency, else the local one")
    currency_id_ref: Optional[int] = None
    valid_from: Optional[datetime] = None


class PriceUpdate(BaseModel):
    typeprice_id: Optional[int] = None
    is_current: Optional[int] = Field(None, ge=0, le=1)
    price_local: Optional[float] = None
    price_stable: Optional[float] = None
    price_ref: Optional[float] = None
    price_base_local: Optional[float] = None
    price_base_stable: Optional[float] = None
    price_base_ref: Optional[float] = None
    tax_amount_local: Optional[float] = None
    tax_amount_stable: Optional[float] = None
    tax_amount_ref: Optional[float] = None
    cost_local: Optional[float] = None
    cost_stable: Optional[float] = None
    cost_ref: Optional[float] = None
    cost_avg_local: Optional[float] = None
    cost_avg_stable: Optional[float] = None
    cost_avg_ref: Optional[float] = None
    profit_local: Optional[float] = None
    profit_stable: Optional[float] = None
    profit_ref: Optional[float] = None
    currency_id_local: Optional[int] = None
    currency_id_stable: Optional[int] = None
    currency_id_ref: Optional[int] = None
    valid_from: Optional[datetime] = None


class PriceOut(PriceAmounts):
    inv_price_id: int
    inv_var_id: int
    typeprice_id: int
    is_current: int
    currency_id_local: Optional[int]
    currency_id_stable: Optional[int]
    currency_id_ref: Optional[int]
    valid_from: datetime
    user_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class PriceHistoryOut(PriceAmounts):
    inv_price_history_id: int
    inv_price_id: int
    inv_var_id: int
    typeprice_id: int
    is_current: int
    currency_id_local: Optional[int]
    currency_id_stable: Optional[int]
    currency_id_ref: Optional[int]
    valid_from: Optional[datetime]
    user_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/variant/{inv_var_id}", response_model=ApiResponse[List[PriceOut]])
def list_prices_by_variant(
    inv_var_id: int,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    prices, total = PriceService.list_by_variant(db, company_id, inv_var_id, pages.page, pages.limit)
    return paginated("Prices retrieved", prices, total, pages.page, pages.limit)


@router.get("/variant/{inv_var_id}/current", response_model=ApiResponse[List[PriceOut]])
def current_prices(inv_var_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Current prices retrieved", PriceService.current_by_variant(db, company_id, inv_var_id))


@router.get("/variant/{inv_var_id}/type/{typeprice_id}", response_model=ApiResponse[List[PriceOut]])
def prices_by_variant_and_type(
    inv_var_id: int,
    typeprice_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    prices = PriceService.by_variant_and_type(db, company_id, inv_var_id, typeprice_id)
    return success("Prices retrieved", prices)


@router.get("/variant/{inv_var_id}/history", response_model=ApiResponse[List[PriceHistoryOut]])
def price_history(
    inv_var_id: int,
    typeprice_id: Optional[int] = Query(None),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    rows, total = PriceService.history_by_variant(db, company_id, inv_var_id, pages.page, pages.limit, typeprice_id)
    return paginated("Price history retrieved", rows, total, pages.page, pages.limit)


@router.get("/{inv_price_id}", response_model=ApiResponse[PriceOut])
def get_price(inv_price_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Price retrieved", PriceService.get(db, company_id, inv_price_id))


@router.post("", response_model=ApiResponse[PriceOut], status_code=201)
def create_price(
    data: PriceIn,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    price = PriceService.create(db, company_id, data.model_dump(), current_user.user_id)
    db.commit()
    db.refresh(price)
    return success("Price created", price)


@router.put("/{inv_price_id}", response_model=ApiResponse[PriceOut])
def update_price(
    inv_price_id: int,
    data: PriceUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    price = PriceService.update(db, company_id, inv_price_id, data.model_dump(exclude_unset=True), current_user.user_id)
    db.commit()
    db.refresh(price)
    return success("Price updated", price)


@router.patch("/{inv_price_id}/set-current", response_model=ApiResponse[PriceOut])
def set_current_price(
    inv_price_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    price = PriceService.set_current(db, company_id, inv_price_id, current_user.user_id)
    db.commit()
    db.refresh(price)
    return success("Price set as current", price)
