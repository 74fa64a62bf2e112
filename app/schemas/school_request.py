from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import AssignmentStatus, InstructorGrade, InstructorType, QuoteStatus


class CandidateResponse(BaseModel):
    rank: int
    instructor_id: UUID
    name: str
    home_region: str
    instructor_type: InstructorType
    grade: InstructorGrade
    region_match: bool
    matched_subjects: List[str]
    available_on_date: Optional[bool] = None
    within_travel_radius: Optional[bool] = None
    reasons: List[str]


class AutomateRequest(BaseModel):
    auto_assign: bool = True
    adjust_to_budget: bool = True


class QuoteResponse(BaseModel):
    id: UUID
    quote_number: str
    request_id: UUID
    instructor_id: Optional[UUID] = None
    session_fee: int
    transport_fee: int
    allowances: int
    instructor_fee: int
    material_cost: int
    margin_rate: Decimal
    margin_amount: int
    vat: int
    final_total: int
    valid_until: date
    status: QuoteStatus
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AssignmentResponse(BaseModel):
    id: UUID
    request_id: UUID
    instructor_id: UUID
    status: AssignmentStatus
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    distance_km: Optional[float] = None
    transport_fee: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AutomationResponse(BaseModel):
    success: bool
    message: str
    error: Optional[str] = None
    quote: Optional[QuoteResponse] = None
    assignment: Optional[AssignmentResponse] = None
    warnings: List[str] = []


class ManualAssignRequest(BaseModel):
    instructor_id: UUID
    distance_km: Optional[float] = Field(None, ge=0, description="Defaults to the school's preset or coordinate distance")
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = None
