"""
Security Module
===============
- JWT access / refresh tokens
- Password hashing and password policy
- Current user and admin dependencies
- Tenant (company) resolution per request
- Audit trail of sensitive actions
"""

import json
import logging
import re
import secrets
from datetime import datetime, timedelta
from typing import Optional, List

import bcrypt
from fastapi import Depends, HTTPException, Header, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from . import models

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

SECRET_KEY = settings.secret_key
REFRESH_SECRET_KEY = settings.refresh_secret_key
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes
REFRESH_TOKEN_EXPIRE_DAYS = settings.refresh_token_expire_days


# =============================================================================
# PASSWORD SECURITY
# =============================================================================

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
COMMON_PASSWORDS = {'password', 'password123', '12345678', 'qwerty123', 'admin123', 'inventory1'}

# (pattern that must match, message when it does not)
PASSWORD_RULES = [
    (r'[a-z]', "a lowercase letter"),
    (r'[A-Z]', "an uppercase letter"),
    (r'\d', "a digit"),
    (r'[@$!%*?&#._-]', "a special character (@$!%*?&#._-)"),
]


class PasswordPolicy:
    """Password rules applied when users are created or change their password"""

    @staticmethod
    def validate(password: str) -> tuple[bool, List[str]]:
        """
        Check ``password`` against every rule.

        Returns:
            (is_valid, list_of_errors), errors in the order the rules are listed
        """
        errors = []
        if not MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH:
            errors.append(
                f"Password length must be between {MIN_PASSWORD_LENGTH} and {MAX_PASSWORD_LENGTH} characters"
            )
        errors.extend(
            f"Password needs {label}" for pattern, label in PASSWORD_RULES
            if not re.search(pattern, password)
        )
        if password.lower() in COMMON_PASSWORDS:
            errors.append("Password is a commonly used one")
        return not errors, errors


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())


def get_password_hash(password: str) -> str:
    """bcrypt hash with the configured work factor"""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode(), salt).decode()


# =============================================================================
# TOKEN MANAGEMENT
# =============================================================================

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

# token type -> (signing key, lifetime)
TOKEN_KINDS = {
    "access": (SECRET_KEY, timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)),
    "refresh": (REFRESH_SECRET_KEY, timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)),
}


def _encode_token(user: models.User, token_type: str, lifetime: Optional[timedelta] = None) -> str:
    key, default_lifetime = TOKEN_KINDS[token_type]
    issued = datetime.utcnow()
    claims = {
        "sub": user.username,
        "user_id": user.user_id,
        "is_admin": bool(user.is_admin),
        "type": token_type,
        "iat": issued,
        "exp": issued + (lifetime or default_lifetime),
        "jti": secrets.token_urlsafe(16),
    }
    return jwt.encode(claims, key, algorithm=ALGORITHM)


def create_access_token(user: models.User, expires_delta: Optional[timedelta] = None) -> str:
    return _encode_token(user, "access", expires_delta)


def create_refresh_token(user: models.User) -> str:
    """Longer-lived token accepted only by /auth/refresh"""
    return _encode_token(user, "refresh")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


def decode_token(token: str, token_type: str = "access") -> dict:
    """
    Claims of ``token`` once its signature, expiry and type are checked.

    Raises:
        HTTPException: 401 for expired, malformed or wrong-type tokens
    """
    key, _ = TOKEN_KINDS[token_type]
    try:
        payload = jwt.decode(token, key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except JWTError:
        raise _unauthorized("Invalid token")

    if payload.get("type") != token_type:
        raise _unauthorized("Invalid token type")
    return payload


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================

def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> models.User:
    """User named by the bearer token; 401 when unknown or disabled"""
    payload = decode_token(token)
    user_id = payload.get("user_id")
    if user_id is None:
        raise _unauthorized("Invalid token payload")

    user = db.get(models.User, user_id)
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise _unauthorized("User account is disabled")
    return user


def require_admin(current_user: models.User = Depends(get_current_user)) -> models.User:
    """Dependency that restricts an endpoint to administrators"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Administrator privileges required"
        )
    return current_user


def get_company_id(
    x_company_id: Optional[str] = Header(None, alias="X-Company-Id"),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> int:
    """
    Resolve the company the request acts on.

    Admins name it with the X-Company-Id header. Other users act on their
    only company, or must pick one of theirs with the header.
    """
    requested = None
    if x_company_id not in (None, ""):
        try:
            requested = int(x_company_id)
        except ValueError:
            raise HTTPException(status_code=400, detail="X-Company-Id header must be an integer")

    if current_user.is_admin:
        if requested is None:
            raise HTTPException(status_code=400, detail="X-Company-Id header is required")
        if db.get(models.Company, requested) is None:
            raise HTTPException(status_code=404, detail="Company not found")
        return requested

    company_ids = current_user.company_ids
    if not company_ids:
        raise HTTPException(status_code=403, detail="User is not assigned to any company")

    if requested is None:
        if len(company_ids) == 1:
            return company_ids[0]
        raise HTTPException(status_code=400, detail="X-Company-Id header is required")

    if requested not in company_ids:
        logger.warning(
            "User %s requested company %s outside its assignments",
            current_user.username, requested
        )
        raise HTTPException(status_code=403, detail="Access to this company is not allowed")
    return requested


# =============================================================================
# AUDIT LOGGING
# =============================================================================

class AuditTrail:
    """
    Writes security-relevant events to ``audit_logs``.

    Each entry is committed on its own so a failed login is kept even when
    the request itself ends in an error.
    """

    @staticmethod
    def _write(db: Session, **fields):
        db.add(models.AuditLog(**fields))
        db.commit()

    @staticmethod
    def log_login_attempt(
        db: Session,
        username: str,
        success: bool,
        user_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        failure_reason: Optional[str] = None
    ):
        AuditTrail._write(
            db,
            entity_type="auth",
            entity_id=user_id or 0,
            action="login" if success else "login_failed",
            new_values=json.dumps({"username": username, "failure_reason": failure_reason}),
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    @staticmethod
    def log_sensitive_action(
        db: Session,
        user_id: int,
        action: str,
        entity_type: str,
        entity_id: int,
        details: dict,
        old_values: Optional[dict] = None,
        ip_address: Optional[str] = None
    ):
        AuditTrail._write(
            db,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            old_values=json.dumps(old_values, default=str) if old_values is not None else None,
            new_values=json.dumps(details, default=str),
            user_id=user_id,
            ip_address=ip_address,
        )
