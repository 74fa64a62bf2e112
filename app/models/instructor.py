"""Domain 2: Instructors"""

from sqlalchemy import Column, DateTime, Float, Integer, String
from sqlalchemy.dialects.postgresql import ARRAY, ENUM
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.models.enums import InstructorGrade, InstructorStatus, InstructorType


class Instructor(BaseModel):
    """
    Instructor who teaches requested classes.
    ``grade`` together with ``instructor_type`` decides the fee multiplier;
    it only changes through an explicit admin regrade.
    """
    __tablename__ = "instructors"

    name = Column(String(100), nullable=False)
    phone = Column(String(50), nullable=True)
    home_region = Column(String(100), nullable=False, index=True)
    travel_radius_km = Column(Integer, nullable=True)
    subjects = Column(ARRAY(String(100)), nullable=False, default=list)
    available_days = Column(ARRAY(String(3)), nullable=False, default=list)

    status = Column(
        ENUM(InstructorStatus, name="instructor_status"),
        default=InstructorStatus.PENDING,
        nullable=False,
        index=True,
    )
    instructor_type = Column(
        ENUM(InstructorType, name="instructor_type"),
        default=InstructorType.INTERNAL,
        nullable=False,
    )
    grade = Column(
        ENUM(InstructorGrade, name="instructor_grade"),
        default=InstructorGrade.LEVEL1,
        nullable=False,
    )
    grade_updated_at = Column(DateTime, nullable=True)

    total_classes = Column(Integer, default=0, nullable=False)
    rating = Column(Float, nullable=True)

    assignments = relationship("InstructorAssignment", back_populates="instructor")
    payments = relationship("Payment", back_populates="instructor")

    def __repr__(self) -> str:
        return f"<Instructor {self.name} ({self.grade})>"
