import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from . import schemas
from .db import get_db
from .models import User
from .responses import success
from .security import (
    AuditTrail, create_access_token, create_refresh_token, decode_token
)
from .services.common import InvalidOperationError
from .services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_pair(user: User) -> dict:
    return {
        "access_token": create_access_token(user),
        "refresh_token": create_refresh_token(user),
        "token_type": "bearer",
        "user": user,
    }


@router.post("/login", response_model=schemas.ApiResponse[schemas.Token])
async def login(request: Request, db: Session = Depends(get_db)):
    """Accept either JSON {username, password} or form-encoded (OAuth2) login."""
    ctype = (request.headers.get("content-type") or "").lower()
    username = None
    password = None

    if "application/json" in ctype:
        try:
            body = await request.json()
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="Malformed JSON body")
        if isinstance(body, dict):
            username = body.get("username")
            password = body.get("password")
    else:
        form = await request.form()
        username = form.get("username")
        password = form.get("password")

    if not username or not password:
        raise HTTPException(status_code=400, detail="Missing username or password")

    ip_address = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    try:
        user = UserService.authenticate(db, username, password)
    except InvalidOperationError as e:
        logger.warning("Failed login for %s: %s", username, e.message)
        AuditTrail.log_login_attempt(
            db, username, False, ip_address=ip_address, user_agent=user_agent, failure_reason=e.message
        )
        raise

    db.commit()
    db.refresh(user)
    AuditTrail.log_login_attempt(
        db, user.username, True, user_id=user.user_id, ip_address=ip_address, user_agent=user_agent
    )
    logger.info("User %s logged in", user.username)
    return success("Login successful", _token_pair(user))


@router.post("/refresh", response_model=schemas.ApiResponse[schemas.Token])
def refresh(body: schemas.RefreshIn, db: Session = Depends(get_db)):
    payload = decode_token(body.refresh_token, token_type="refresh")
    user = db.get(User, payload.get("user_id"))
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or disabled",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return success("Token refreshed", _token_pair(user))
