"""API V1 Router"""

from fastapi import APIRouter

# Import endpoint routers
from app.api.v1.endpoints import (
    auth, fees, school_requests, instructors, payments, rules
)

# Create API v1 router
api_router = APIRouter()

# Include endpoint routers with prefixes and tags
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(fees.router, prefix="/fees", tags=["Fees"])
api_router.include_router(school_requests.router, prefix="/requests", tags=["Requests & Automation"])
api_router.include_router(instructors.router, prefix="/instructors", tags=["Instructors"])
api_router.include_router(payments.router, tags=["Payments"])
api_router.include_router(rules.router, prefix="/settings", tags=["Settings"])
