from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.enums import InstructorGrade, InstructorType


class GradeRuleResponse(BaseModel):
    grade: InstructorGrade
    name: str
    min_classes: int
    min_rating: float
    fee_multiplier: float
    priority: int
    benefits: List[str]

    model_config = ConfigDict(from_attributes=True)


class GradeEligibility(BaseModel):
    grade: InstructorGrade
    eligible: bool


class InstructorGradeResponse(BaseModel):
    instructor_id: UUID
    instructor_type: InstructorType
    total_classes: int
    rating: Optional[float] = None
    current: GradeRuleResponse
    eligibility: List[GradeEligibility]
    recommended_grade: Optional[InstructorGrade] = None
    next_grade: Optional[GradeRuleResponse] = None
    grade_updated_at: Optional[datetime] = None


class GradeUpdate(BaseModel):
    grade: InstructorGrade
