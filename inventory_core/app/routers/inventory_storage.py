from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..deps import get_db, get_current_user, get_company_id, PageParams
from ..responses import success, paginated
from ..schemas import ApiResponse, StatusPatch
from ..services.inventory_service import StorageService

router = APIRouter(prefix="/inventory/storages", tags=["inventory storages"], dependencies=[Depends(get_current_user)])


class StorageIn(BaseModel):
    inv_storage_code: str = Field(..., min_length=1, max_length=20)
    inv_storage_name: str = Field(..., min_length=1, max_length=80)
    inv_storage_status: int = Field(1, ge=0, le=1)


class StorageUpdate(BaseModel):
    inv_storage_code: Optional[str] = Field(None, min_length=1, max_length=20)
    inv_storage_name: Optional[str] = Field(None, min_length=1, max_length=80)
    inv_storage_status: Optional[int] = Field(None, ge=0, le=1)


class StorageOut(BaseModel):
    id_inv_storage: int
    company_id: int
    inv_storage_code: str
    inv_storage_name: str
    inv_storage_status: int
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("", response_model=ApiResponse[List[StorageOut]])
def list_storages(
    status: Optional[int] = Query(1, ge=0, le=1),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    company_id: int = Depends(get_company_id)
):
    storages, total = StorageService.list(db, company_id, pages.page, pages.limit, status)
    return paginated("Storages retrieved", storages, total, pages.page, pages.limit)


@router.get("/{storage_id}", response_model=ApiResponse[StorageOut])
def get_storage(storage_id: int, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    return success("Storage retrieved", StorageService.get(db, company_id, storage_id))


@router.post("", response_model=ApiResponse[StorageOut], status_code=201)
def create_storage(data: StorageIn, db: Session = Depends(get_db), company_id: int = Depends(get_company_id)):
    storage = StorageService.create(db, company_id, data.model_dump())
    db.commit()
    db.refresh(storage)
    return success("Storage created", storage)


@router.put("/{storage_id}", response_model=ApiResponse[StorageOut])
def update_storage(storage_id: int, data: StorageUpdate, db: Session = Depends(get_db),
                   company_id: int = Depends(get_company_id)):
    storage = StorageService.update(db, company_id, storage_id, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(storage)
    return success("Storage updated", storage)


@router.patch("/{storage_id}", response_model=ApiResponse[StorageOut])
def patch_storage_status(storage_id: int, body: StatusPatch, db: Session = Depends(get_db),
                         company_id: int = Depends(get_company_id)):
    storage = StorageService.update(db, company_id, storage_id, {"inv_storage_status": body.status})
    db.commit()
    db.refresh(storage)
    return success("Storage status updated", storage)
