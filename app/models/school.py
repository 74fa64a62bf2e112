"""Domain 1: Schools & Programs"""

from sqlalchemy import Column, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import ENUM
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.models.enums import ProgramCategory


class School(BaseModel):
    """
    A school that requests classes.
    ``distance_km`` is a preset travel distance from headquarters; without
    it the distance is computed from ``latitude``/``longitude``.
    """
    __tablename__ = "schools"

    name = Column(String(255), nullable=False, index=True)
    region = Column(String(100), nullable=False, index=True)
    address = Column(String(500), nullable=True)
    distance_km = Column(Float, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    contact_name = Column(String(100), nullable=True)
    contact_phone = Column(String(50), nullable=True)

    requests = relationship("SchoolRequest", back_populates="school")

    def __repr__(self) -> str:
        return f"<School {self.name} ({self.region})>"


class Program(BaseModel):
    """Catalogue program a school can request"""
    __tablename__ = "programs"

    name = Column(String(255), nullable=False)
    category = Column(ENUM(ProgramCategory, name="program_category"), nullable=True, index=True)
    description = Column(Text, nullable=True)
    # Per-student material cost; falls back to the configured default
    base_material_cost = Column(Integer, nullable=True)

    requests = relationship("SchoolRequest", back_populates="program")

    def __repr__(self) -> str:
        return f"<Program {self.name}>"
