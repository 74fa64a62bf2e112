"""Domain 3: Instructor assignments"""

from sqlalchemy import Column, Date, Float, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID, ENUM
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.models.enums import AssignmentStatus


class InstructorAssignment(BaseModel):
    """
    Binds one instructor to one school request.
    At most one assignment per request may be outside CANCELLED/DECLINED;
    the partial unique index below enforces it at the database.
    """
    __tablename__ = "instructor_assignments"
    __table_args__ = (
        Index(
            "uq_instructor_assignments_active_request",
            "request_id",
            unique=True,
            postgresql_where=text("status NOT IN ('CANCELLED', 'DECLINED')"),
        ),
    )

    request_id = Column(
        UUID(as_uuid=True),
        ForeignKey("school_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    instructor_id = Column(
        UUID(as_uuid=True),
        ForeignKey("instructors.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status = Column(
        ENUM(AssignmentStatus, name="assignment_status"),
        default=AssignmentStatus.PROPOSED,
        nullable=False,
        index=True,
    )
    scheduled_date = Column(Date, nullable=True, index=True)
    scheduled_time = Column(String(20), nullable=True)
    distance_km = Column(Float, nullable=True)
    transport_fee = Column(Integer, nullable=True)
    actual_sessions = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    request = relationship("SchoolRequest", back_populates="assignments")
    instructor = relationship("Instructor", back_populates="assignments")
    payment = relationship("Payment", back_populates="assignment", uselist=False)

    def __repr__(self) -> str:
        return f"<InstructorAssignment {self.id} ({self.status})>"
