"""Response envelopes shared by every endpoint"""

from typing import Generic, TypeVar
from pydantic import BaseModel


T = TypeVar('T')


class SuccessResponse(BaseModel, Generic[T]):
    """
    Example:
        {
            "success": true,
            "data": {"subtotal": 103000, "tax_withholding": 3399, ...},
            "message": "Fee computed"
        }
    """
    success: bool = True
    data: T
    message: str = "Operation successful"


class ErrorDetail(BaseModel):
    """Stable machine-readable code plus a human message"""
    code: str
    message: str


class ErrorResponse(BaseModel):
    """
    Example:
        {
            "success": false,
            "error": {
                "code": "UNKNOWN_SESSION_COUNT",
                "message": "No session fee configured at or below 1 sessions"
            }
        }
    """
    success: bool = False
    error: ErrorDetail

    @classmethod
    def of(cls, code: str, message: str) -> dict:
        """Serialized envelope, ready for a JSONResponse"""
        return cls(error=ErrorDetail(code=code, message=message)).model_dump()
