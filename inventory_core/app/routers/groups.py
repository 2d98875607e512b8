from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..deps import get_db, require_admin, PageParams
from ..responses import success, paginated
from ..services.tenancy_service import GroupService

router = APIRouter(prefix="/groups", tags=["groups"], dependencies=[Depends(require_admin)])


@router.get("", response_model=schemas.ApiResponse[List[schemas.GroupOut]])
def list_groups(
    status: Optional[int] = Query(None, ge=0, le=1),
    pages: PageParams = Depends(),
    db: Session = Depends(get_db)
):
    groups, total = GroupService.list(db, pages.page, pages.limit, status)
    return paginated("Groups retrieved", groups, total, pages.page, pages.limit)


@router.get("/{group_id}", response_model=schemas.ApiResponse[schemas.GroupOut])
def get_group(group_id: int, db: Session = Depends(get_db)):
    return success("Group retrieved", GroupService.get(db, group_id))


@router.post("", response_model=schemas.ApiResponse[schemas.GroupOut], status_code=201)
def create_group(data: schemas.GroupIn, db: Session = Depends(get_db)):
    group = GroupService.create(db, data.model_dump())
    db.commit()
    db.refresh(group)
    return success("Group created", group)


@router.put("/{group_id}", response_model=schemas.ApiResponse[schemas.GroupOut])
def update_group(group_id: int, data: schemas.GroupUpdate, db: Session = Depends(get_db)):
    group = GroupService.update(db, group_id, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(group)
    return success("Group updated", group)


@router.patch("/{group_id}", response_model=schemas.ApiResponse[schemas.GroupOut])
def patch_group_status(group_id: int, body: schemas.StatusPatch, db: Session = Depends(get_db)):
    group = GroupService.update(db, group_id, {"group_status": body.status})
    db.commit()
    db.refresh(group)
    return success("Group status updated", group)
