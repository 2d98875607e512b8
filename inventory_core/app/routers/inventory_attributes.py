from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..deps import get_db, get_current_user, get_company_id, PageParams
from ..responses import success, paginated
from ..schemas import ApiResponse, StatusPatch
from ..services.inventory_service import AttributeService

router = APIRouter(prefix="/inventory/attributes", tags=["inventory attributes"],
                   dependencies=[Depends(get_current_user)])


class AttributeIn(BaseModel):
    attr_name: str = Field(..., min_length=1, max_length=50)
    attr_description: Optional[str] = Field(None, max_length=150)
    attr_status: int = Field(1, ge=0, le=1)
    attr_values: List[str] = []


class AttributeUpdate(BaseModel):
    attr_name: Optional[str] = Field(None, min_length=1, max_length=50)
    attr_description: Optional[str] = Field(None, max_length=150)
    attr_status: Optional[int] = Field(None, ge=0, le=1)
    attr_values: Optional[List[str]] = Field(None, description="Values to add; existing values are kept")


class AttributeValueOut(BaseModel):
    inv_attrval_id: int
    attr_value: str

    class Config:
        from_attributes = True


class AttributeOut(BaseModel):
    inv_attr_id: int
    company_id: int
    attr_name: str
    attr_description: Optional[str]
    attr_status: int
    values: List[AttributeValueOut] = []
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("", response_model=ApiResponse[List[AttributeOut]])
def list_attributes(
    status: Optional[int] = Query(1, ge=0, le=1),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    attributes, total = AttributeService.list(db, company_id, pages.page, pages.limit, status)
    return paginated("Attributes retrieved", attributes, total, pages.page, pages.limit)


@router.get("/{attr_id}", response_model=ApiResponse[AttributeOut])
def get_attribute(attr_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Attribute retrieved", AttributeService.get(db, company_id, attr_id))


@router.post("", response_model=ApiResponse[AttributeOut], status_code=201)
def create_attribute(data: AttributeIn, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    attribute = AttributeService.create(db, company_id, data.model_dump())
    db.commit()
    db.refresh(attribute)
    return success("Attribute created", attribute)


@router.put("/{attr_id}", response_model=ApiResponse[AttributeOut])
def update_attribute(attr_id: int, data: AttributeUpdate, db: Session = Depends(get_db),
                     company_id: int = Depends(get_company_id)):
    attribute = AttributeService.update(db, company_id, attr_id, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(attribute)
    return success("Attribute updated", attribute)


@router.patch("/{attr_id}", response_model=ApiResponse[AttributeOut])
def patch_attribute_status(attr_id: int, body: StatusPatch, db: Session = Depends(get_db),
                           company_id: int = Depends(get_company_id)):
    attribute = AttributeService.update(db, company_id, attr_id, {"attr_status": body.status})
    db.commit()
    db.refresh(attribute)
    return success("Attribute status updated", attribute)
