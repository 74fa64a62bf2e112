"""API Dependencies"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.rate_limiter import LoginRateLimiter
from app.core.rules import RuleConfig
from app.core.security import decode_token
from app.database import get_db
from app.models.user import User
from app.services.settings_service import RuleConfigStore
from app.services.user_service import UserService

# Security scheme for bearer token
security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_admin(
    db: AsyncSession = Depends(get_db),
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> User:
    """
    Get the authenticated admin from the JWT bearer token.

    Raises:
        HTTPException: If the token is invalid or the account is not an active admin
    """
    payload = decode_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Could not validate credentials")

    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type")

    user_id_str: Optional[str] = payload.get("sub")
    if not user_id_str:
        raise _unauthorized("Could not validate credentials")

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise _unauthorized("Invalid user ID")

    user = await UserService.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    if not user.is_active or not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )

    return user


def get_login_rate_limiter(request: Request) -> LoginRateLimiter:
    """The app-owned limiter created at startup"""
    return request.app.state.login_rate_limiter


def get_rule_store(request: Request) -> RuleConfigStore:
    return request.app.state.rule_store


async def get_rules(
    db: AsyncSession = Depends(get_db),
    store: RuleConfigStore = Depends(get_rule_store),
) -> RuleConfig:
    """Current rule snapshot (cached until the next settings save)"""
    return await store.get(db)
