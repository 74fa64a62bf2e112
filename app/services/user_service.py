"""User Service - back-office admin accounts"""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.core.security import get_password_hash, verify_password
from app.models.user import User

logger = get_logger(__name__)


class UserService:
    """Service layer for admin account operations"""

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
        return await db.get(User, user_id)

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_admin(
        db: AsyncSession,
        email: str,
        password: str,
        name: str,
    ) -> User:
        user = User(
            email=email.lower(),
            hashed_password=get_password_hash(password),
            name=name,
            is_admin=True,
            is_active=True,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info("Admin account created", extra={"user_id": str(user.id)})
        return user

    @staticmethod
    async def authenticate_user(
        db: AsyncSession,
        email: str,
        password: str
    ) -> Optional[User]:
        """
        Authenticate an admin with email and password.

        Returns:
            User if authenticated, None otherwise
        """
        user = await UserService.get_user_by_email(db, email)

        if not user:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        if not user.is_active or not user.is_admin:
            return None

        return user
