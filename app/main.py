"""FastAPI application for the compensation and assignment rule engine"""

import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.api.v1.router import api_router
from app.config import settings
from app.core.exceptions import AutomationError, EngineError
from app.core.logging import get_logger, setup_logging
from app.core.middleware import (
    RequestIDMiddleware,
    RequestTimingMiddleware,
    SecurityHeadersMiddleware,
)
from app.core.rate_limiter import LoginRateLimiter, limiter
from app.database import close_db, init_db
from app.schemas.responses import ErrorResponse
from app.services.settings_service import RuleConfigStore

setup_logging()
logger = get_logger(__name__)


def _correlation_id(request: Request):
    return getattr(request.state, "request_id", None)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting rule engine", extra={"environment": settings.ENVIRONMENT})

    # Alembic owns the schema outside development
    if settings.is_development:
        await init_db()
        logger.info("Database tables ensured")

    sweeper = asyncio.create_task(
        app.state.login_rate_limiter.run_sweeper(settings.LOGIN_SWEEP_INTERVAL_SECONDS)
    )
    try:
        yield
    finally:
        logger.info("Stopping rule engine")
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Compensation and assignment rule engine for school class requests",
    lifespan=lifespan,
)

# Shared state reached through app.api.deps
app.state.limiter = limiter
app.state.login_rate_limiter = LoginRateLimiter.from_settings()
app.state.rule_store = RuleConfigStore()
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=settings.ALLOWED_METHODS,
    allow_headers=[settings.ALLOWED_HEADERS],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health", tags=["Health"])
@limiter.exempt
async def health_check():
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.exception_handler(EngineError)
async def engine_exception_handler(request: Request, exc: EngineError):
    """Rule engine errors keep their own status and machine code"""
    # Automation outcomes are business results, not faults
    log = logger.info if isinstance(exc, AutomationError) else logger.warning
    log(
        exc.message,
        extra={
            "path": request.url.path,
            "error_code": exc.code,
            "correlation_id": _correlation_id(request),
        },
    )
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse.of(exc.code, exc.message))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # ctx may hold exception instances that are not JSON serializable
    detail = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    logger.warning(
        "Request body rejected",
        extra={"path": request.url.path, "errors": detail, "correlation_id": _correlation_id(request)},
    )
    content = ErrorResponse.of("VALIDATION_ERROR", "Request validation failed")
    content["detail"] = detail
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=content)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception: {exc}",
        extra={"path": request.url.path, "correlation_id": _correlation_id(request)},
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse.of("INTERNAL_ERROR", "Internal server error"),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
