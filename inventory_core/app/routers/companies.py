from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..deps import get_db, require_admin, PageParams
from ..responses import success, paginated
from ..security import AuditTrail
from ..services.tenancy_service import CompanyService
from ..services.user_service import UserService

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("", response_model=schemas.ApiResponse[List[schemas.CompanyOut]])
def list_companies(
    status: Optional[int] = Query(None, ge=0, le=1),
    search: Optional[str] = None,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin)
):
    companies, total = CompanyService.list(db, pages.page, pages.limit, status, search)
    return paginated("Companies retrieved", companies, total, pages.page, pages.limit)


@router.get("/{company_id}", response_model=schemas.ApiResponse[schemas.CompanyOut])
def get_company(company_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(require_admin)):
    return success("Company retrieved", CompanyService.get(db, company_id))


@router.post("", response_model=schemas.ApiResponse[schemas.CompanyOut], status_code=201)
def create_company(
    data: schemas.CompanyIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin)
):
    company = CompanyService.create(db, data.model_dump())
    db.commit()
    db.refresh(company)
    AuditTrail.log_sensitive_action(
        db, current_user.user_id, "create", "company", company.company_id,
        {"company_name": company.company_name, "company_id_fiscal": company.company_id_fiscal}
    )
    return success("Company created", company)


@router.post("/register_admin/{company_id}", response_model=schemas.ApiResponse[schemas.UserOut], status_code=201)
def register_company_admin(
    company_id: int,
    data: schemas.CompanyAdminIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin)
):
    """Create a user that manages one company; it gets no global admin rights"""
    CompanyService.get(db, company_id)
    user = UserService.create(db, {**data.model_dump(), "company_ids": [company_id]})
    db.commit()
    db.refresh(user)
    AuditTrail.log_sensitive_action(
        db, current_user.user_id, "register_admin", "company", company_id,
        {"user_id": user.user_id, "username": user.username}
    )
    return success("Company administrator created", user)


@router.put("/{company_id}", response_model=schemas.ApiResponse[schemas.CompanyOut])
def update_company(
    company_id: int,
    data: schemas.CompanyUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin)
):
    changes = data.model_dump(exclude_unset=True)
    company = CompanyService.update(db, company_id, changes)
    db.commit()
    db.refresh(company)
    AuditTrail.log_sensitive_action(
        db, current_user.user_id, "update", "company", company_id, changes
    )
    return success("Company updated", company)


@router.patch("/{company_id}", response_model=schemas.ApiResponse[schemas.CompanyOut])
def patch_company_status(
    company_id: int,
    body: schemas.StatusPatch,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin)
):
    company = CompanyService.update(db, company_id, {"company_status": body.status})
    db.commit()
    db.refresh(company)
    AuditTrail.log_sensitive_action(
        db, current_user.user_id, "set_status", "company", company_id, {"company_status": body.status}
    )
    return success("Company status updated", company)
