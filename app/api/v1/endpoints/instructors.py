from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.rules import RuleConfig
from app.models.enums import EXTERNAL_GRADES, INTERNAL_GRADES, InstructorType
from app.models.instructor import Instructor
from app.models.user import User
from app.schemas.instructor import (
    GradeEligibility,
    GradeRuleResponse,
    GradeUpdate,
    InstructorGradeResponse,
)
from app.schemas.responses import SuccessResponse
from app.services.grade_service import GradeRuleEngine
from app.services.instructor_service import InstructorService

router = APIRouter()


def _grade_report(instructor: Instructor, engine: GradeRuleEngine) -> InstructorGradeResponse:
    family = INTERNAL_GRADES if instructor.instructor_type == InstructorType.INTERNAL else EXTERNAL_GRADES
    next_rule = engine.next_grade(instructor.grade)
    return InstructorGradeResponse(
        instructor_id=instructor.id,
        instructor_type=instructor.instructor_type,
        total_classes=instructor.total_classes or 0,
        rating=instructor.rating,
        current=GradeRuleResponse.model_validate(engine.resolve(instructor.instructor_type, instructor.grade)),
        eligibility=[
            GradeEligibility(grade=grade, eligible=engine.is_eligible_for(instructor, grade))
            for grade in family
        ],
        recommended_grade=engine.recommend_grade(instructor),
        next_grade=GradeRuleResponse.model_validate(next_rule) if next_rule else None,
        grade_updated_at=instructor.grade_updated_at,
    )


@router.get("/{instructor_id}/grade", response_model=SuccessResponse[InstructorGradeResponse])
async def get_instructor_grade(
    instructor_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    rules: RuleConfig = Depends(deps.get_rules),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """
    Current grade, promotion eligibility and a recommended grade.
    Nothing here changes the instructor.
    """
    instructor = await InstructorService.get_instructor(db, instructor_id)
    return SuccessResponse(data=_grade_report(instructor, GradeRuleEngine.from_rules(rules)))


@router.put("/{instructor_id}/grade", response_model=SuccessResponse[InstructorGradeResponse])
async def update_instructor_grade(
    instructor_id: UUID,
    grade_in: GradeUpdate,
    db: AsyncSession = Depends(deps.get_db),
    rules: RuleConfig = Depends(deps.get_rules),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """Manual regrade by an admin"""
    instructor = await InstructorService.regrade(db, instructor_id, grade_in.grade, changed_by=current_user.id)
    return SuccessResponse(
        data=_grade_report(instructor, GradeRuleEngine.from_rules(rules)),
        message="Grade updated",
    )
