from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..deps import get_db, get_current_user, get_company_id, PageParams
from ..responses import success, paginated
from ..schemas import ApiResponse, StatusPatch
from ..services.price_service import TypeOfPriceService

router = APIRouter(prefix="/types-of-prices", tags=["types of prices"], dependencies=[Depends(get_current_user)])


class TypeOfPriceIn(BaseModel):
    typeprice_name: str = Field(..., min_length=1, max_length=50)
    typeprice_description: Optional[str] = Field(None, max_length=150)
    typeprice_status: int = Field(1, ge=0, le=1)


class TypeOfPriceUpdate(BaseModel):
    typeprice_name: Optional[str] = Field(None, min_length=1, max_length=50)
    typeprice_description: Optional[str] = Field(None, max_length=150)
    typeprice_status: Optional[int] = Field(None, ge=0, le=1)


class TypeOfPriceOut(BaseModel):
    typeprice_id: int
    company_id: int
    typeprice_name: str
    typeprice_description: Optional[str]
    typeprice_status: int
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("", response_model=ApiResponse[List[TypeOfPriceOut]])
def list_types_of_prices(
    status: Optional[int] = Query(1, ge=0, le=1),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    items, total = TypeOfPriceService.list(db, company_id, pages.page, pages.limit, status)
    return paginated("Types of prices retrieved", items, total, pages.page, pages.limit)


@router.get("/{typeprice_id}", response_model=ApiResponse[TypeOfPriceOut])
def get_type_of_price(typeprice_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Type of price retrieved", TypeOfPriceService.get(db, company_id, typeprice_id))


@router.post("", response_model=ApiResponse[TypeOfPriceOut], status_code=201)
def create_type_of_price(data: TypeOfPriceIn, db: Session = Depends(get_db),
                         company_id: int = Depends(get_company_id)):
    item = TypeOfPriceService.create(db, company_id, data.model_dump())
    db.commit()
    db.refresh(item)
    return success("Type of price created", item)


@router.put("/{typeprice_id}", response_model=ApiResponse[TypeOfPriceOut])
def update_type_of_price(typeprice_id: int, data: TypeOfPriceUpdate, db: Session = Depends(get_db),
                         company_id: int = Depends(get_company_id)):
    item = TypeOfPriceService.update(db, company_id, typeprice_id, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(item)
    return success("Type of price updated", item)


@router.patch("/{typeprice_id}", response_model=ApiResponse[TypeOfPriceOut])
def patch_type_of_price_status(typeprice_id: int, body: StatusPatch, db: Session = Depends(get_db),
                               company_id: int = Depends(get_company_id)):
    item = TypeOfPriceService.update(db, company_id, typeprice_id, {"typeprice_status": body.status})
    db.commit()
    db.refresh(item)
    return success("Type of price status updated", item)


@router.delete("/{typeprice_id}", response_model=ApiResponse[dict])
def delete_type_of_price(typeprice_id: int, db: Session = Depends(get_db),
                         company_id: int = Depends(get_company_id)):
    TypeOfPriceService.delete(db, company_id, typeprice_id)
    db.commit()
    return success("Type of price deleted", {"typeprice_id": typeprice_id})
