from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..deps import get_db, get_current_user, require_admin
from ..responses import success
from ..schemas import ApiResponse
from ..services.currency_service import CurrencyService

router = APIRouter(prefix="/currencies", tags=["currencies"], dependencies=[Depends(get_current_user)])


class CurrencyIn(BaseModel):
    currency_iso_code: str = Field(..., min_length=3, max_length=5)
    currency_name: str = Field(..., min_length=1, max_length=40)
    currency_symbol: Optional[str] = Field(None, max_length=10)
    currency_status: int = Field(1, ge=0, le=1)

    @field_validator('currency_iso_code')
    @classmethod
    def upper_code(cls, v):
        return v.strip().upper()


class CurrencyUpdate(BaseModel):
    currency_name: Optional[str] = Field(None, min_length=1, max_length=40)
    currency_symbol: Optional[str] = Field(None, max_length=10)
    currency_status: Optional[int] = Field(None, ge=0, le=1)


class CurrencyOut(BaseModel):
    currency_id: int
    currency_iso_code: str
    currency_name: str
    currency_symbol: Optional[str]
    currency_status: int

    class Config:
        from_attributes = True


@router.get("", response_model=ApiResponse[List[CurrencyOut]])
def list_currencies(status: Optional[int] = Query(1, ge=0, le=1), db: Session = Depends(get_db)):
    return success("Currencies retrieved", CurrencyService.list(db, status))


@router.get("/{currency_id}", response_model=ApiResponse[CurrencyOut])
def get_currency(currency_id: int, db: Session = Depends(get_db)):
    return success("Currency retrieved", CurrencyService.get(db, currency_id))


@router.post("", response_model=ApiResponse[CurrencyOut], status_code=201, dependencies=[Depends(require_admin)])
def create_currency(data: CurrencyIn, db: Session = Depends(get_db)):
    currency = CurrencyService.create(db, data.model_dump())
    db.commit()
    db.refresh(currency)
    return success("Currency created", currency)


@router.put("/{currency_id}", response_model=ApiResponse[CurrencyOut], dependencies=[Depends(require_admin)])
def update_currency(currency_id: int, data: CurrencyUpdate, db: Session = Depends(get_db)):
    currency = CurrencyService.update(db, currency_id, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(currency)
    return success("Currency updated", currency)
