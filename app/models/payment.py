"""Domain 4: Instructor payments"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID, ENUM
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.models.enums import PaymentStatus


class Payment(BaseModel):
    """
    Compensation record for one completed assignment.
    net_amount == subtotal + bonus - deductions - tax_withholding, floored at 0.
    Immutable once PAID.
    """
    __tablename__ = "payments"

    payment_number = Column(String(20), unique=True, nullable=False, index=True)
    assignment_id = Column(
        UUID(as_uuid=True),
        ForeignKey("instructor_assignments.id", ondelete="RESTRICT"),
        unique=True,
        nullable=False,
    )
    instructor_id = Column(
        UUID(as_uuid=True),
        ForeignKey("instructors.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    sessions = Column(Integer, nullable=False)
    session_fee = Column(Integer, nullable=False)
    transport_fee = Column(Integer, nullable=False)
    allowances = Column(Integer, nullable=False, default=0)
    bonus = Column(Integer, nullable=False, default=0)
    subtotal = Column(Integer, nullable=False)
    tax_rate = Column(Numeric(5, 4), nullable=False)
    tax_withholding = Column(Integer, nullable=False)
    deductions = Column(Integer, nullable=False, default=0)
    net_amount = Column(Integer, nullable=False)
    floored_to_zero = Column(Boolean, default=False, nullable=False)

    status = Column(
        ENUM(PaymentStatus, name="payment_status"),
        default=PaymentStatus.CALCULATED,
        nullable=False,
        index=True,
    )
    accounting_month = Column(String(7), nullable=False, index=True)
    approved_by = Column(UUID(as_uuid=True), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    assignment = relationship("InstructorAssignment", back_populates="payment")
    instructor = relationship("Instructor", back_populates="payments")

    def __repr__(self) -> str:
        return f"<Payment {self.payment_number} {self.net_amount} - {self.status}>"
