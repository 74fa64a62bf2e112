"""Domain 3: School class requests"""

from sqlalchemy import Column, Date, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID, ENUM
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.models.enums import RequestStatus


class SchoolRequest(BaseModel):
    """
    A school's request for a class.
    Requests are never deleted; they end in COMPLETED or CANCELLED.
    """
    __tablename__ = "school_requests"

    school_id = Column(
        UUID(as_uuid=True),
        ForeignKey("schools.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    program_id = Column(
        UUID(as_uuid=True),
        ForeignKey("programs.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    custom_program = Column(String(255), nullable=True)

    desired_date = Column(Date, nullable=True)
    alternate_date = Column(Date, nullable=True)
    sessions = Column(Integer, nullable=False)
    student_count = Column(Integer, nullable=False)
    target_grade = Column(String(50), nullable=True)
    school_budget = Column(Integer, nullable=True)

    status = Column(
        ENUM(RequestStatus, name="request_status"),
        default=RequestStatus.SUBMITTED,
        nullable=False,
        index=True,
    )
    notes = Column(Text, nullable=True)

    school = relationship("School", back_populates="requests")
    program = relationship("Program", back_populates="requests")
    quote = relationship("Quote", back_populates="request", uselist=False)
    assignments = relationship("InstructorAssignment", back_populates="request")

    def __repr__(self) -> str:
        return f"<SchoolRequest {self.id} ({self.status})>"
