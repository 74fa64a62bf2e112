from datetime import datetime

from pydantic import BaseModel, EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str


class LoginBlocked(BaseModel):
    """Body of the 429 returned while a client is blocked"""
    blocked_until: datetime
    retry_after_seconds: int
