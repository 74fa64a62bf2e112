"""Generic key/value settings table"""

from sqlalchemy import Column, String, Text

from app.models.base import BaseModel


class Setting(BaseModel):
    """
    Admin-editable setting. Rule keys (``sessionFees.2``, ``transport_0_20``,
    ``grades.LEVEL2.feeMultiplier`` ...) are stored one row per key.
    """
    __tablename__ = "settings"

    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(Text, nullable=False)
    category = Column(String(50), nullable=False, default="RULES", index=True)
    description = Column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Setting {self.key}={self.value}>"
