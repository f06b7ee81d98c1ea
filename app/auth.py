import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, SECRET_KEY
from .database import get_db
from .errors import PermissionDeniedError
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# Roles allowed to mutate the pipeline and the production calendar
PIPELINE_EDITOR_ROLES = {"super_admin", "admin"}
CALENDAR_EDITOR_ROLES = {"super_admin", "admin"}


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token

    Args:
        data: Claims to encode; ``sub`` must hold the user id
        expires_delta: Token lifetime (default ACCESS_TOKEN_EXPIRE_MINUTES)
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict[str, Any]]:
    """Decode a token, returning None if it is invalid or expired"""
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        logger.error(f"❌ Token has a non-numeric subject: {payload.get('sub')!r}")
        raise HTTPException(status_code=401, detail="Invalid token claims") from None

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        logger.warning(f"⚠️ Token for unknown or inactive user {user_id}")
        raise HTTPException(status_code=401, detail="Authentication failed")

    logger.debug(f"✅ User authenticated: {user.email}")
    return user


def can_modify_pipeline(user: Optional[User]) -> bool:
    return bool(user) and user.role in PIPELINE_EDITOR_ROLES


def can_modify_calendar(user: Optional[User]) -> bool:
    return bool(user) and user.role in CALENDAR_EDITOR_ROLES


async def require_pipeline_editor(user: User = Depends(get_current_user)) -> User:
    """Dependency for routes that change a job's stage, flags or notes"""
    if not can_modify_pipeline(user):
        logger.warning(f"⚠️ User {user.email} denied pipeline change (role={user.role})")
        raise PermissionDeniedError("modify the pipeline")
    return user


async def require_calendar_editor(user: User = Depends(get_current_user)) -> User:
    """Dependency for routes that change a job's schedule"""
    if not can_modify_calendar(user):
        logger.warning(f"⚠️ User {user.email} denied calendar change (role={user.role})")
        raise PermissionDeniedError("modify calendar events")
    return user
