from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import InstructorGrade, InstructorType, SpecialAllowance, TransportBand


class FeeComputeRequest(BaseModel):
    sessions: int = Field(..., ge=1)
    instructor_grade: InstructorGrade
    instructor_type: InstructorType
    distance_km: Optional[float] = Field(None, ge=0, description="Unknown distance leaves transport uncomputed")
    fallback_band: Optional[TransportBand] = None
    is_weekend: bool = False
    is_holiday: bool = False
    is_emergency: bool = Field(False, description="Class within the short-notice window")
    daily_class_index: int = Field(1, ge=1, description="1 for the instructor's first class that day")
    bonus: int = Field(0, ge=0)
    deductions: int = Field(0, ge=0)


class FeeStepResponse(BaseModel):
    name: str
    amount: int
    detail: str = ""

    model_config = ConfigDict(from_attributes=True)


class FeeBreakdownResponse(BaseModel):
    sessions: int
    priced_sessions: int
    base_fee: int
    multiplier: float
    grade_adjusted_fee: int
    transport_fee: int
    transport_band: Optional[TransportBand] = None
    transport_computed: bool
    allowances: Dict[SpecialAllowance, int]
    allowance_total: int
    unclamped_subtotal: int
    subtotal: int
    tax_rate: float
    tax_withholding: int
    bonus: int
    deductions: int
    net_amount: int
    floored_to_zero: bool
    steps: List[FeeStepResponse]
    warnings: List[str]

    model_config = ConfigDict(from_attributes=True)
