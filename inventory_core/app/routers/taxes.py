from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..deps import get_db, get_current_user, get_company_id, PageParams
from ..models import TaxType
from ..responses import success, paginated
from ..schemas import ApiResponse, StatusPatch
from ..services.tax_service import TaxService

router = APIRouter(prefix="/taxes", tags=["taxes"], dependencies=[Depends(get_current_user)])


# =============================================================================
# PYDANTIC SCHEMAS
# =============================================================================

class TaxIn(BaseModel):
    tax_code: str = Field(..., min_length=1, max_length=20)
    tax_name: str = Field(..., min_length=1, max_length=50)
    tax_description: Optional[str] = Field(None, max_length=150)
    tax_status: int = Field(1, ge=0, le=1)
    tax_type: int = Field(TaxType.PERCENT, ge=TaxType.EXEMPT, le=TaxType.FIXED,
                          description="1 = exempt, 2 = percentage, 3 = fixed amount")
    tax_value: float = Field(0, ge=0)
    currency_id: Optional[int] = None


class TaxUpdate(BaseModel):
    tax_code: Optional[str] = Field(None, min_length=1, max_length=20)
    tax_name: Optional[str] = Field(None, min_length=1, max_length=50)
    tax_description: Optional[str] = Field(None, max_length=150)
    tax_status: Optional[int] = Field(None, ge=0, le=1)
    tax_type: Optional[int] = Field(None, ge=TaxType.EXEMPT, le=TaxType.FIXED)
    tax_value: Optional[float] = Field(None, ge=0)
    currency_id: Optional[int] = None


class TaxOut(BaseModel):
    tax_id: int
    company_id: int
    tax_code: str
    tax_name: str
    tax_description: Optional[str]
    tax_status: int
    tax_type: int
    tax_value: float
    currency_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("", response_model=ApiResponse[List[TaxOut]])
def list_taxes(
    status: Optional[int] = Query(1, ge=0, le=1),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    taxes, total = TaxService.list(db, company_id, pages.page, pages.limit, status)
    return paginated("Taxes retrieved", taxes, total, pages.page, pages.limit)


@router.get("/{tax_id}", response_model=ApiResponse[TaxOut])
def get_tax(tax_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Tax retrieved", TaxService.get(db, company_id, tax_id))


@router.post("", response_model=ApiResponse[TaxOut], status_code=201)
def create_tax(data: TaxIn, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    tax = TaxService.create(db, company_id, data.model_dump())
    db.commit()
    db.refresh(tax)
    return success("Tax created", tax)


@router.put("/{tax_id}", response_model=ApiResponse[TaxOut])
def update_tax(tax_id: int, data: TaxUpdate, db: Session = Depends(get_db),
               company_id: int = Depends(get_company_id)):
    tax = TaxService.update(db, company_id, tax_id, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(tax)
    return success("Tax updated", tax)


@router.patch("/{tax_id}", response_model=ApiResponse[TaxOut])
def patch_tax_status(tax_id: int, body: StatusPatch, db: Session = Depends(get_db),
                     company_id: int = Depends(get_company_id)):
    tax = TaxService.update(db, company_id, tax_id, {"tax_status": body.status})
    db.commit()
    db.refresh(tax)
    return success("Tax status updated", tax)
