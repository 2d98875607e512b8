from typing import List, Optional
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from .deps import get_db, get_current_user, get_company_id, PageParams
from .responses import success, paginated
from .schemas import ApiResponse, StatusPatch
from .services.tenancy_service import CustomerService

router = APIRouter(prefix="/customers", tags=["customers"], dependencies=[Depends(get_current_user)])


class CustomerIn(BaseModel):
    cust_code: str = Field(..., min_length=1, max_length=20)
    cust_id_fiscal: Optional[str] = Field(None, max_length=30)
    cust_description: str = Field(..., min_length=1, max_length=150)
    cust_status: int = Field(1, ge=0, le=1)
    cust_exempt: int = Field(0, ge=0, le=1)
    cust_address: Optional[str] = None
    cust_email: Optional[EmailStr] = None
    cust_phone1: Optional[str] = Field(None, max_length=20)
    cust_phone2: Optional[str] = Field(None, max_length=20)


class CustomerUpdate(BaseModel):
    cust_code: Optional[str] = Field(None, min_length=1, max_length=20)
    cust_id_fiscal: Optional[str] = Field(None, max_length=30)
    cust_description: Optional[str] = Field(None, min_length=1, max_length=150)
    cust_status: Optional[int] = Field(None, ge=0, le=1)
    cust_exempt: Optional[int] = Field(None, ge=0, le=1)
    cust_address: Optional[str] = None
    cust_email: Optional[EmailStr] = None
    cust_phone1: Optional[str] = Field(None, max_length=20)
    cust_phone2: Optional[str] = Field(None, max_length=20)


class CustomerOut(BaseModel):
    cust_id: int
    company_id: int
    cust_code: str
    cust_id_fiscal: Optional[str]
    cust_description: str
    cust_status: int
    cust_exempt: int
    cust_address: Optional[str]
    cust_email: Optional[str]
    cust_phone1: Optional[str]
    cust_phone2: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("", response_model=ApiResponse[List[CustomerOut]])
def list_customers(
    status: Optional[int] = Query(1, ge=0, le=1),
    search: Optional[str] = None,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    items, total = CustomerService.list(db, company_id, pages.page, pages.limit, status, search)
    return paginated("Customers retrieved", items, total, pages.page, pages.limit)


@router.get("/{cust_id}", response_model=ApiResponse[CustomerOut])
def get_customer(cust_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Customer retrieved", CustomerService.get(db, company_id, cust_id))


@router.post("", response_model=ApiResponse[CustomerOut], status_code=201)
def create_customer(data: CustomerIn, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    customer = CustomerService.create(db, company_id, data.model_dump())
    db.commit()
    db.refresh(customer)
    return success("Customer created", customer)


@router.put("/{cust_id}", response_model=ApiResponse[CustomerOut])
def update_customer(
    cust_id: int,
    data: CustomerUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    customer = CustomerService.update(db, company_id, cust_id, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(customer)
    return success("Customer updated", customer)


@router.patch("/{cust_id}", response_model=ApiResponse[CustomerOut])
def patch_customer_status(
    cust_id: int,
    body: StatusPatch,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    customer = CustomerService.update(db, company_id, cust_id, {"cust_status": body.status})
    db.commit()
    db.refresh(customer)
    return success("Customer status updated", customer)
