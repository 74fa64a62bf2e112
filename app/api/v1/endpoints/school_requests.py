from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.rules import RuleConfig
from app.models.user import User
from app.schemas.responses import SuccessResponse
from app.schemas.school_request import (
    AssignmentResponse,
    AutomateRequest,
    AutomationResponse,
    CandidateResponse,
    ManualAssignRequest,
    QuoteResponse,
)
from app.services.assignment_service import AssignmentService
from app.services.automation_service import AutomationOptions, AutomationService
from app.services.instructor_matcher import InstructorMatcher
from app.services.instructor_service import InstructorService
from app.services.request_service import RequestService

router = APIRouter()


@router.get("/{request_id}/candidates", response_model=SuccessResponse[List[CandidateResponse]])
async def list_candidates(
    request_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    rules: RuleConfig = Depends(deps.get_rules),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """Ranked ACTIVE instructors for the manual assignment screen"""
    request = await RequestService.get_request(db, request_id)
    pool = await InstructorService.list_active(db)
    ranked = InstructorMatcher.from_rules(rules).rank(request, pool)
    return SuccessResponse(
        data=[
            CandidateResponse(
                rank=c.rank,
                instructor_id=c.instructor.id,
                name=c.instructor.name,
                home_region=c.instructor.home_region,
                instructor_type=c.instructor.instructor_type,
                grade=c.instructor.grade,
                region_match=c.region_match,
                matched_subjects=list(c.matched_subjects),
                available_on_date=c.available_on_date,
                within_travel_radius=c.within_travel_radius,
                reasons=list(c.reasons),
            )
            for c in ranked
        ],
        message=f"{len(ranked)} candidates",
    )


@router.post("/{request_id}/automate", response_model=SuccessResponse[AutomationResponse])
async def automate_request(
    request_id: UUID,
    options_in: AutomateRequest,
    db: AsyncSession = Depends(deps.get_db),
    rules: RuleConfig = Depends(deps.get_rules),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """
    Quote and optionally assign in one step.
    Business failures come back with success=false and an error code.
    """
    outcome = await AutomationService.process(
        db,
        rules,
        request_id,
        AutomationOptions(auto_assign=options_in.auto_assign, adjust_to_budget=options_in.adjust_to_budget),
        actor_id=current_user.id,
    )
    return SuccessResponse(
        data=AutomationResponse(
            success=outcome.success,
            message=outcome.message,
            error=outcome.error,
            quote=QuoteResponse.model_validate(outcome.quote) if outcome.quote else None,
            assignment=AssignmentResponse.model_validate(outcome.assignment) if outcome.assignment else None,
            warnings=outcome.warnings,
        ),
        message=outcome.message,
    )


@router.post("/{request_id}/assign", response_model=SuccessResponse[AssignmentResponse])
async def assign_instructor(
    request_id: UUID,
    assign_in: ManualAssignRequest,
    db: AsyncSession = Depends(deps.get_db),
    rules: RuleConfig = Depends(deps.get_rules),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """Assign a human-picked instructor"""
    assignment = await AssignmentService.assign_manually(
        db,
        rules,
        request_id,
        assign_in.instructor_id,
        distance_km=assign_in.distance_km,
        scheduled_date=assign_in.scheduled_date,
        scheduled_time=assign_in.scheduled_time,
        notes=assign_in.notes,
    )
    return SuccessResponse(
        data=AssignmentResponse.model_validate(assignment),
        message="Instructor assigned",
    )
