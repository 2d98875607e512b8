import logging
from datetime import datetime
from typing import Optional, List

from sqlalchemy.orm import Session

from ..models import User, Company, AuditLog, STATUS_ACTIVE, STATUS_INACTIVE
from ..security import PasswordPolicy, get_password_hash, verify_password
from .common import (
    NotFoundError, AlreadyExistsError, InvalidOperationError, paginate, apply_changes, drop_required_nulls
)

logger = logging.getLogger(__name__)


class UserService:

    @staticmethod
    def authenticate(db: Session, username: str, password: str) -> User:
        """
        Check credentials and stamp the login time.

        Raises:
            InvalidOperationError: wrong credentials or disabled account
        """
        user = db.query(User).filter(User.username == username.strip().lower()).first()
        if not user or not verify_password(password, user.password_hash):
            raise InvalidOperationError("Incorrect username or password")
        if not user.is_active:
            raise InvalidOperationError("User account is disabled")

        user.last_login = datetime.utcnow()
        db.flush()
        return user

    @staticmethod
    def list(db: Session, page: int, limit: int, status: Optional[int] = None, search: Optional[str] = None):
        query = db.query(User)
        if status is not None:
            query = query.filter(User.user_status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                (User.username.ilike(pattern)) |
                (User.email.ilike(pattern)) |
                (User.first_name.ilike(pattern)) |
                (User.last_name.ilike(pattern))
            )
        return paginate(query.order_by(User.username), page, limit)

    @staticmethod
    def get(db: Session, user_id: int) -> User:
        user = db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def _companies(db: Session, company_ids: List[int]) -> List[Company]:
        companies = db.query(Company).filter(Company.company_id.in_(company_ids)).all()
        missing = set(company_ids) - {c.company_id for c in companies}
        if missing:
            raise NotFoundError(f"Companies not found: {sorted(missing)}")
        return companies

    @staticmethod
    def _check_password(password: str):
        is_valid, errors = PasswordPolicy.validate(password)
        if not is_valid:
            raise InvalidOperationError("Password does not meet the security policy", errors=errors)

    @staticmethod
    def create(db: Session, data: dict) -> User:
        existing = db.query(User).filter(
            (User.username == data["username"]) | (User.email == data["email"])
        ).first()
        if existing:
            raise AlreadyExistsError("User with that username or email already exists")

        UserService._check_password(data["password"])
        company_ids = data.pop("company_ids", None) or []
        password = data.pop("password")

        user = User(password_hash=get_password_hash(password), **data)
        if company_ids:
            user.companies = UserService._companies(db, company_ids)

        db.add(user)
        db.flush()
        logger.info("Created user %s", user.username)
        return user

    @staticmethod
    def update(db: Session, user_id: int, data: dict) -> User:
        user = UserService.get(db, user_id)
        data = drop_required_nulls(User, data)
        email = data.get("email")
        if email and email != user.email:
            if db.query(User).filter(User.email == email, User.user_id != user_id).first():
                raise AlreadyExistsError("Email is already in use")
        apply_changes(user, data)
        db.flush()
        return user

    @staticmethod
    def set_status(db: Session, user_id: int, active: bool, acting_user_id: int) -> User:
        user = UserService.get(db, user_id)
        if not active and user.user_id == acting_user_id:
            raise InvalidOperationError("You cannot deactivate your own account")
        user.user_status = STATUS_ACTIVE if active else STATUS_INACTIVE
        db.flush()
        return user

    @staticmethod
    def change_password(db: Session, user: User, new_password: str,
                        current_password: Optional[str] = None, check_current: bool = True) -> User:
        if check_current:
            if not current_password or not verify_password(current_password, user.password_hash):
                raise InvalidOperationError("Current password is incorrect")
        UserService._check_password(new_password)
        user.password_hash = get_password_hash(new_password)
        db.flush()
        return user

    @staticmethod
    def assign_companies(db: Session, user_id: int, company_ids: List[int]) -> User:
        user = UserService.get(db, user_id)
        current = set(user.company_ids)
        for company in UserService._companies(db, company_ids):
            if company.company_id not in current:
                user.companies.append(company)
        db.flush()
        return user

    @staticmethod
    def unassign_company(db: Session, user_id: int, company_id: int) -> User:
        user = UserService.get(db, user_id)
        company = next((c for c in user.companies if c.company_id == company_id), None)
        if company is None:
            raise NotFoundError("User is not assigned to this company")
        user.companies.remove(company)
        db.flush()
        return user

    @staticmethod
    def audit_history(db: Session, user_id: int, page: int, limit: int):
        UserService.get(db, user_id)
        query = db.query(AuditLog).filter(
            (AuditLog.user_id == user_id) |
            ((AuditLog.entity_type == "user") & (AuditLog.entity_id == user_id))
        ).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        return paginate(query, page, limit)
