"""Instructor Service - instructor pool and manual regrading"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import RequestNotFound, UnknownGrade
from app.core.logging import get_logger
from app.models.assignment import InstructorAssignment
from app.models.enums import INACTIVE_ASSIGNMENT_STATUSES, InstructorGrade, InstructorStatus
from app.models.instructor import Instructor
from app.utils.time import get_utc_now

logger = get_logger(__name__)


class InstructorService:
    @staticmethod
    async def get_instructor(db: AsyncSession, instructor_id: UUID) -> Instructor:
        instructor = await db.get(Instructor, instructor_id)
        if instructor is None:
            raise RequestNotFound(f"Instructor {instructor_id} not found")
        return instructor

    @staticmethod
    async def list_active(db: AsyncSession) -> List[Instructor]:
        """ACTIVE instructors in a stable order (oldest first)"""
        result = await db.execute(
            select(Instructor)
            .where(Instructor.status == InstructorStatus.ACTIVE)
            .order_by(Instructor.created_at, Instructor.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def count_classes_on(
        db: AsyncSession,
        instructor_id: UUID,
        day: date,
        created_before: Optional[datetime] = None,
    ) -> int:
        """Live assignments the instructor has on ``day``, optionally only those created earlier"""
        query = (
            select(func.count())
            .select_from(InstructorAssignment)
            .where(
                InstructorAssignment.instructor_id == instructor_id,
                InstructorAssignment.scheduled_date == day,
                InstructorAssignment.status.notin_(INACTIVE_ASSIGNMENT_STATUSES),
            )
        )
        if created_before is not None:
            query = query.where(InstructorAssignment.created_at < created_before)
        return (await db.scalar(query)) or 0

    @staticmethod
    async def regrade(
        db: AsyncSession,
        instructor_id: UUID,
        grade: InstructorGrade,
        changed_by: Optional[UUID] = None,
    ) -> Instructor:
        """
        Admin regrade. The grade must belong to the instructor's type;
        eligibility is advisory and not enforced here.
        """
        instructor = await InstructorService.get_instructor(db, instructor_id)
        grade = InstructorGrade(grade)
        if grade.instructor_type != instructor.instructor_type:
            raise UnknownGrade(instructor.instructor_type.value, grade.value)
        previous = instructor.grade
        instructor.grade = grade
        instructor.grade_updated_at = get_utc_now()
        await db.commit()
        await db.refresh(instructor)
        logger.info(
            "Instructor regraded",
            extra={
                "instructor_id": str(instructor_id),
                "from_grade": getattr(previous, "value", previous),
                "to_grade": grade.value,
                "changed_by": str(changed_by) if changed_by else None,
            },
        )
        return instructor
