"""Domain 0: Admin accounts"""

from sqlalchemy import Column, String, Boolean

from app.models.base import BaseModel


class User(BaseModel):
    """
    Back-office account allowed to run pricing, matching and automation.
    """
    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    is_admin = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<User {self.email}>"
