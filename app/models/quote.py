"""Domain 3: Quotes"""

from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID, ENUM
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.models.enums import QuoteStatus


class Quote(BaseModel):
    """
    Priced proposal sent to a school for one request.
    All amounts are integer won.
    """
    __tablename__ = "quotes"

    quote_number = Column(String(20), unique=True, nullable=False, index=True)
    request_id = Column(
        UUID(as_uuid=True),
        ForeignKey("school_requests.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    instructor_id = Column(
        UUID(as_uuid=True),
        ForeignKey("instructors.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Instructor side, from the fee calculator
    session_fee = Column(Integer, nullable=False)
    transport_fee = Column(Integer, nullable=False)
    allowances = Column(Integer, nullable=False, default=0)
    instructor_fee = Column(Integer, nullable=False)

    # School side
    material_cost = Column(Integer, nullable=False, default=0)
    margin_rate = Column(Numeric(5, 4), nullable=False)
    margin_amount = Column(Integer, nullable=False)
    vat = Column(Integer, nullable=False, default=0)
    final_total = Column(Integer, nullable=False)

    valid_until = Column(Date, nullable=False)
    status = Column(ENUM(QuoteStatus, name="quote_status"), default=QuoteStatus.DRAFT, nullable=False, index=True)
    created_by = Column(UUID(as_uuid=True), nullable=True)
    notes = Column(Text, nullable=True)

    request = relationship("SchoolRequest", back_populates="quote")

    def __repr__(self) -> str:
        return f"<Quote {self.quote_number} {self.final_total}>"
