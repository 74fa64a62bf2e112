from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import PaymentStatus


class PaymentCreate(BaseModel):
    bonus: int = Field(0, ge=0)
    deductions: int = Field(0, ge=0)
    sessions: Optional[int] = Field(None, ge=1, description="Overrides the assignment's session count")
    notes: Optional[str] = None


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    id: UUID
    payment_number: str
    assignment_id: UUID
    instructor_id: UUID
    sessions: int
    session_fee: int
    transport_fee: int
    allowances: int
    bonus: int
    subtotal: int
    tax_rate: Decimal
    tax_withholding: int
    deductions: int
    net_amount: int
    floored_to_zero: bool
    status: PaymentStatus
    accounting_month: str
    approved_by: Optional[UUID] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class InstructorPaymentTotals(BaseModel):
    instructor_id: UUID
    payments: int
    subtotal: int
    tax_withholding: int
    net_amount: int


class PaymentSummary(BaseModel):
    month: str
    payment_count: int
    total_subtotal: int
    total_tax_withholding: int
    total_net_amount: int
    floored_count: int
    by_status: Dict[str, int]
    by_instructor: List[InstructorPaymentTotals]
