from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from . import models, schemas
from .deps import get_db, get_current_user, require_admin, PageParams
from .responses import success, paginated
from .security import AuditTrail
from .services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=schemas.ApiResponse[schemas.UserOut])
def me_user(current_user: models.User = Depends(get_current_user)):
    return success("Current user", current_user)


@router.get("", response_model=schemas.ApiResponse[List[schemas.UserOut]])
def list_users(
    status: Optional[int] = Query(None, ge=0, le=1),
    search: Optional[str] = None,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin)
):
    users, total = UserService.list(db, pages.page, pages.limit, status, search)
    return paginated("Users retrieved", users, total, pages.page, pages.limit)


@router.get("/{user_id}", response_model=schemas.ApiResponse[schemas.UserOut])
def get_user(user_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(require_admin)):
    return success("User retrieved", UserService.get(db, user_id))


@router.post("", response_model=schemas.ApiResponse[schemas.UserOut], status_code=201)
def create_user(
    user_in: schemas.UserCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin)
):
    user = UserService.create(db, user_in.model_dump())
    db.commit()
    db.refresh(user)
    AuditTrail.log_sensitive_action(
        db, current_user.user_id, "create", "user", user.user_id,
        {"username": user.username, "is_admin": user.is_admin, "companies": user.company_ids}
    )
    return success("User created", user)


@router.put("/{user_id}", response_model=schemas.ApiResponse[schemas.UserOut])
def update_user(
    user_id: int,
    user_in: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin)
):
    changes = user_in.model_dump(exclude_unset=True)
    user = UserService.get(db, user_id)
    before = {field: getattr(user, field) for field in changes}
    user = UserService.update(db, user_id, changes)
    db.commit()
    db.refresh(user)
    AuditTrail.log_sensitive_action(
        db, current_user.user_id, "update", "user", user.user_id, changes, old_values=before
    )
    return success("User updated", user)


@router.patch("/{user_id}/activate", response_model=schemas.ApiResponse[schemas.UserOut])
def activate_user(user_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(require_admin)):
    user = UserService.set_status(db, user_id, True, current_user.user_id)
    db.commit()
    db.refresh(user)
    AuditTrail.log_sensitive_action(db, current_user.user_id, "activate", "user", user_id, {"user_status": 1})
    return success("User activated", user)


@router.patch("/{user_id}/deactivate", response_model=schemas.ApiResponse[schemas.UserOut])
def deactivate_user(user_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(require_admin)):
    user = UserService.set_status(db, user_id, False, current_user.user_id)
    db.commit()
    db.refresh(user)
    AuditTrail.log_sensitive_action(db, current_user.user_id, "deactivate", "user", user_id, {"user_status": 0})
    return success("User deactivated", user)


@router.post("/{user_id}/change-password", response_model=schemas.ApiResponse[dict])
def change_password(
    user_id: int,
    pw: schemas.ChangePasswordIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user)
):
    is_self = user_id == current_user.user_id
    if not is_self and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="You can only change your own password")

    user = current_user if is_self else UserService.get(db, user_id)
    UserService.change_password(
        db, user, pw.new_password, current_password=pw.current_password, check_current=is_self
    )
    db.commit()
    AuditTrail.log_sensitive_action(db, current_user.user_id, "change_password", "user", user_id, {"by_admin": not is_self})
    return success("Password updated")


@router.post("/{user_id}/companies", response_model=schemas.ApiResponse[schemas.UserOut])
def assign_companies(
    user_id: int,
    body: schemas.UserCompaniesIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin)
):
    user = UserService.assign_companies(db, user_id, body.company_ids)
    db.commit()
    db.refresh(user)
    AuditTrail.log_sensitive_action(
        db, current_user.user_id, "assign_companies", "user", user_id, {"company_ids": body.company_ids}
    )
    return success("Companies assigned", user)


@router.delete("/{user_id}/companies/{company_id}", response_model=schemas.ApiResponse[schemas.UserOut])
def unassign_company(
    user_id: int,
    company_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin)
):
    user = UserService.unassign_company(db, user_id, company_id)
    db.commit()
    db.refresh(user)
    AuditTrail.log_sensitive_action(
        db, current_user.user_id, "unassign_company", "user", user_id, {"company_id": company_id}
    )
    return success("Company unassigned", user)


@router.get("/{user_id}/audit-history", response_model=schemas.ApiResponse[List[schemas.AuditLogOut]])
def audit_history(
    user_id: int,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_admin)
):
    logs, total = UserService.audit_history(db, user_id, pages.page, pages.limit)
    return paginated("Audit history retrieved", logs, total, pages.page, pages.limit)
