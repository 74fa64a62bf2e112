"""Assignment Service - scheduling context and manual instructor assignment"""

from datetime import date, datetime
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.core.exceptions import (
    InvalidStatusTransition,
    RequestAlreadyAssigned,
    RequestNotFound,
    ValidationError,
)
from app.core.logging import get_logger
from app.core.rules import RuleConfig
from app.models.assignment import InstructorAssignment
from app.models.enums import AssignmentStatus, InstructorStatus, RequestStatus, TransportBand
from app.models.instructor import Instructor
from app.models.request import SchoolRequest
from app.services.fee_calculator import FeeInput
from app.services.fee_tables import TransportFeeTable
from app.services.instructor_service import InstructorService
from app.services.request_service import ASSIGNABLE_STATUSES, RequestService
from app.utils.geo import distance_km_for_school
from app.utils.time import get_utc_today, is_weekend

logger = get_logger(__name__)

ACTIVE_ASSIGNMENT_INDEX = "uq_instructor_assignments_active_request"


def schedule_flags(
    rules: RuleConfig,
    class_date: Optional[date],
    today: date,
    emergency_notice_days: int = settings.EMERGENCY_NOTICE_DAYS,
) -> Tuple[bool, bool, bool]:
    """(is_weekend, is_holiday, is_emergency) for a class date; all False when undated"""
    if class_date is None:
        return False, False, False
    return (
        is_weekend(class_date),
        class_date in rules.holidays,
        (class_date - today).days <= emergency_notice_days,
    )


class AssignmentService:
    @staticmethod
    async def get_assignment(db: AsyncSession, assignment_id: UUID) -> InstructorAssignment:
        result = await db.execute(
            select(InstructorAssignment)
            .where(InstructorAssignment.id == assignment_id)
            .options(
                selectinload(InstructorAssignment.request).selectinload(SchoolRequest.school),
                selectinload(InstructorAssignment.instructor),
                selectinload(InstructorAssignment.payment),
            )
        )
        assignment = result.scalar_one_or_none()
        if assignment is None:
            raise RequestNotFound(f"Assignment {assignment_id} not found")
        return assignment

    @staticmethod
    async def build_fee_input(
        db: AsyncSession,
        rules: RuleConfig,
        instructor: Instructor,
        sessions: int,
        class_date: Optional[date],
        distance_km: Optional[float],
        fallback_band: Optional[TransportBand] = None,
        bonus: int = 0,
        deductions: int = 0,
        created_before: Optional[datetime] = None,
        today: Optional[date] = None,
    ) -> FeeInput:
        """
        Derive allowance flags from the class date: weekend, configured
        holiday, short notice, and how many classes the instructor already
        has that day.
        """
        weekend, holiday, emergency = schedule_flags(rules, class_date, today or get_utc_today())
        daily_index = 1
        if class_date is not None:
            daily_index += await InstructorService.count_classes_on(
                db, instructor.id, class_date, created_before=created_before
            )
        return FeeInput(
            sessions=sessions,
            instructor_grade=instructor.grade,
            instructor_type=instructor.instructor_type,
            distance_km=distance_km,
            fallback_band=fallback_band,
            is_weekend=weekend,
            is_holiday=holiday,
            is_emergency=emergency,
            daily_class_index=daily_index,
            bonus=bonus,
            deductions=deductions,
        )

    @staticmethod
    async def insert_assignment(
        db: AsyncSession,
        request_id: UUID,
        assignment: InstructorAssignment,
    ) -> InstructorAssignment:
        """
        Flush a new assignment. The partial unique index on request_id
        rejects a second live assignment for the same request.
        """
        db.add(assignment)
        try:
            await db.flush()
        except IntegrityError as exc:
            if ACTIVE_ASSIGNMENT_INDEX not in str(exc.orig):
                raise
            logger.warning(
                "Active assignment already exists",
                extra={"request_id": str(request_id)},
            )
            raise RequestAlreadyAssigned(f"Request {request_id} already has an active assignment") from exc
        return assignment

    @staticmethod
    async def assign_manually(
        db: AsyncSession,
        rules: RuleConfig,
        request_id: UUID,
        instructor_id: UUID,
        distance_km: Optional[float] = None,
        scheduled_date: Optional[date] = None,
        scheduled_time: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> InstructorAssignment:
        """
        Assign a human-picked instructor. Uses the same status swap and
        unique index guard as automation.

        Raises:
            InvalidStatusTransition: the request is past the assignable stage
            RequestAlreadyAssigned / ConcurrencyConflict: lost a race
            ValidationError: the instructor is not ACTIVE or the distance is invalid
        """
        request = await RequestService.get_request(db, request_id)
        if request.status not in ASSIGNABLE_STATUSES:
            if await RequestService.has_active_assignment(db, request_id):
                raise RequestAlreadyAssigned(f"Request {request_id} already has an active assignment")
            raise InvalidStatusTransition(f"Request {request_id} is {request.status.value} and cannot be assigned")

        instructor = await InstructorService.get_instructor(db, instructor_id)
        if instructor.status != InstructorStatus.ACTIVE:
            raise ValidationError(f"Instructor {instructor_id} is not active")

        if distance_km is None:
            distance_km = distance_km_for_school(request.school)
        transport = TransportFeeTable.from_rules(rules).lookup(distance_km)

        expected = request.status
        try:
            if not await RequestService.compare_and_set_status(db, request_id, expected, RequestStatus.ASSIGNED):
                await RequestService.raise_lost_race(db, request_id)
            assignment = await AssignmentService.insert_assignment(
                db,
                request_id,
                InstructorAssignment(
                    request_id=request_id,
                    instructor_id=instructor_id,
                    status=AssignmentStatus.PROPOSED,
                    scheduled_date=scheduled_date or request.desired_date,
                    scheduled_time=scheduled_time,
                    distance_km=distance_km,
                    transport_fee=transport.fee if transport.computed else None,
                    notes=notes,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            logger.warning("Manual assignment rolled back", extra={"request_id": str(request_id)})
            raise

        logger.info(
            "Instructor assigned manually",
            extra={"request_id": str(request_id), "instructor_id": str(instructor_id)},
        )
        await db.refresh(assignment)
        return assignment
