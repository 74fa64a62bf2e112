from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core import security
from app.core.logging import get_logger
from app.core.rate_limiter import LoginRateLimiter
from app.schemas.auth import LoginBlocked, LoginRequest, Token
from app.schemas.responses import ErrorResponse, SuccessResponse
from app.services.user_service import UserService

router = APIRouter()
logger = get_logger(__name__)


def _blocked_response(blocked_until, retry_after: int) -> JSONResponse:
    body = ErrorResponse.of(
        "LOGIN_BLOCKED",
        f"Too many failed login attempts. Try again after {blocked_until.isoformat()}",
    )
    body["data"] = LoginBlocked(blocked_until=blocked_until, retry_after_seconds=retry_after).model_dump(mode="json")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=body,
        headers={"Retry-After": str(retry_after)},
    )


@router.post("/login", response_model=SuccessResponse[Token])
async def login(
    request: Request,
    login_data: LoginRequest,
    db: AsyncSession = Depends(deps.get_db),
    rate_limiter: LoginRateLimiter = Depends(deps.get_login_rate_limiter),
) -> Any:
    """
    Admin login. Guarded per client address: after too many failures
    the client is blocked and gets 429 until the block expires.
    """
    client = get_remote_address(request)
    check = rate_limiter.check(client)
    if not check.allowed:
        return _blocked_response(check.blocked_until, check.retry_after_seconds(rate_limiter.clock()))

    user = await UserService.authenticate_user(db, email=login_data.email, password=login_data.password)
    outcome = rate_limiter.record_attempt(client, success=user is not None)
    if not user:
        logger.info(
            "Failed login",
            extra={"client": client, "remaining_attempts": outcome.remaining_attempts},
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=ErrorResponse.of(
                "INVALID_CREDENTIALS",
                f"Incorrect email or password ({outcome.remaining_attempts} attempts remaining)",
            ),
        )

    return SuccessResponse(
        data=Token(
            access_token=security.create_access_token(str(user.id)),
            token_type="bearer",
            user_id=str(user.id),
        ),
        message="Login successful"
    )
