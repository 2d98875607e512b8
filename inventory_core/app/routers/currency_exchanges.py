"""
Currency Exchange API Router
============================
Company-scoped exchange rates, conversion and base-currency switching.

Static paths (history, convert, set-base) are declared before /{id}.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import models
from ..deps import get_db, get_current_user, get_company_id, PageParams
from ..models import CurrencyExchangeType, ExchangeMethod
from ..responses import success, paginated
from ..schemas import ApiResponse
from ..services.currency_service import CurrencyExchangeService

router = APIRouter(prefix="/currencies-exchanges", tags=["currency exchanges"])


# =============================================================================
# PYDANTIC SCHEMAS
# =============================================================================

class ExchangeIn(BaseModel):
    currency_id: int
    currency_exc_rate: float = Field(..., gt=0)
    currency_exc_type: int = Field(
        CurrencyExchangeType.REFERENCE, ge=CurrencyExchangeType.LOCAL, le=CurrencyExchangeType.REFERENCE,
        description="1 = local (base), 2 = stable, 3 = reference"
    )
    exchange_method: int = Field(ExchangeMethod.MULTIPLY, ge=ExchangeMethod.DIVIDE, le=ExchangeMethod.MULTIPLY)
    currency_exc_status: int = Field(1, ge=0, le=1)


class ExchangeUpdate(BaseModel):
    currency_id: Optional[int] = None
    currency_exc_rate: Optional[float] = Field(None, gt=0)
    currency_exc_type: Optional[int] = Field(None, ge=CurrencyExchangeType.LOCAL, le=CurrencyExchangeType.REFERENCE)
    exchange_method: Optional[int] = Field(None, ge=ExchangeMethod.DIVIDE, le=ExchangeMethod.MULTIPLY)
    currency_exc_status: Optional[int] = Field(None, ge=0, le=1)


class CurrencyBrief(BaseModel):
    currency_id: int
    currency_iso_code: str
    currency_name: str
    currency_symbol: Optional[str]

    class Config:
        from_attributes = True


class ExchangeOut(BaseModel):
    currency_exc_id: int
    company_id: int
    currency_id: int
    currency_exc_rate: float
    currency_exc_type: int
    exchange_method: int
    currency_exc_status: int
    currency: Optional[CurrencyBrief] = None
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ExchangeHistoryOut(BaseModel):
    history_id: int
    currency_exc_id: Optional[int]
    currency_id: int
    currency_exc_rate: float
    currency_exc_type: int
    exchange_method: int
    currency_exc_status: int
    user_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class ConvertIn(BaseModel):
    from_currency_id: int
    to_currency_id: int
    amount: float = Field(..., gt=0)


class ConvertOut(BaseModel):
    from_currency_id: int
    to_currency_id: int
    amount: float
    converted_amount: float
    exchange_rate: float
    exchange_method: str


class SetBaseIn(BaseModel):
    currency_id: int


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("", response_model=ApiResponse[List[ExchangeOut]])
def list_exchanges(db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Currency exchanges retrieved", CurrencyExchangeService.list(db, company_id))


@router.get("/history", response_model=ApiResponse[List[ExchangeHistoryOut]])
def exchange_history(
    currency_id: Optional[int] = Query(None),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    rows, total = CurrencyExchangeService.history(db, company_id, pages.page, pages.limit, currency_id)
    return paginated("Currency exchange history retrieved", rows, total, pages.page, pages.limit)


@router.post("/convert", response_model=ApiResponse[ConvertOut])
def convert(data: ConvertIn, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    # str() keeps the float's shortest repr instead of its binary expansion
    result = CurrencyExchangeService.convert(
        db, company_id, data.from_currency_id, data.to_currency_id, str(data.amount)
    )
    return success("Conversion completed", result)


@router.post("/set-base", response_model=ApiResponse[ExchangeOut])
def set_base(
    data: SetBaseIn,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    exchange = CurrencyExchangeService.set_base(db, company_id, data.currency_id, current_user.user_id)
    db.commit()
    db.refresh(exchange)
    return success("Base currency updated", exchange)


@router.get("/{currency_exc_id}", response_model=ApiResponse[ExchangeOut])
def get_exchange(currency_exc_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Currency exchange retrieved", CurrencyExchangeService.get(db, company_id, currency_exc_id))


@router.post("", response_model=ApiResponse[ExchangeOut], status_code=201)
def create_exchange(
    data: ExchangeIn,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    exchange = CurrencyExchangeService.create(db, company_id, data.model_dump(), current_user.user_id)
    db.commit()
    db.refresh(exchange)
    return success("Currency exchange created", exchange)


@router.put("/{currency_exc_id}", response_model=ApiResponse[ExchangeOut])
def update_exchange(
    currency_exc_id: int,
    data: ExchangeUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id),
    current_user: models.User = Depends(get_current_user)
):
    exchange = CurrencyExchangeService.update(
        db, company_id, currency_exc_id, data.model_dump(exclude_unset=True), current_user.user_id
    )
    db.commit()
    db.refresh(exchange)
    return success("Currency exchange updated", exchange)
