"""Request Service - school requests and their status transitions"""

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConcurrencyConflict, RequestAlreadyAssigned, RequestNotFound
from app.core.logging import get_logger
from app.models.assignment import InstructorAssignment
from app.models.enums import INACTIVE_ASSIGNMENT_STATUSES, RequestStatus
from app.models.request import SchoolRequest
from app.utils.time import get_utc_now

logger = get_logger(__name__)

# Statuses from which a human may still assign an instructor
ASSIGNABLE_STATUSES = (
    RequestStatus.SUBMITTED,
    RequestStatus.REVIEWING,
    RequestStatus.APPROVED,
    RequestStatus.QUOTED,
)


class RequestService:
    @staticmethod
    async def get_request(db: AsyncSession, request_id: UUID) -> SchoolRequest:
        """Load a request with its school, program and quote; raises RequestNotFound"""
        result = await db.execute(
            select(SchoolRequest)
            .where(SchoolRequest.id == request_id)
            .options(
                selectinload(SchoolRequest.school),
                selectinload(SchoolRequest.program),
                selectinload(SchoolRequest.quote),
            )
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise RequestNotFound(f"School request {request_id} not found")
        return request

    @staticmethod
    async def has_active_assignment(db: AsyncSession, request_id: UUID) -> bool:
        count = await db.scalar(
            select(func.count())
            .select_from(InstructorAssignment)
            .where(
                InstructorAssignment.request_id == request_id,
                InstructorAssignment.status.notin_(INACTIVE_ASSIGNMENT_STATUSES),
            )
        )
        return bool(count)

    @staticmethod
    async def compare_and_set_status(
        db: AsyncSession,
        request_id: UUID,
        expected: RequestStatus,
        new: RequestStatus,
    ) -> bool:
        """
        Move the request from ``expected`` to ``new`` in one UPDATE.
        Returns False when another transaction changed the status first.
        """
        result = await db.execute(
            update(SchoolRequest)
            .where(SchoolRequest.id == request_id, SchoolRequest.status == expected)
            .values(status=new, updated_at=get_utc_now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    async def raise_lost_race(db: AsyncSession, request_id: UUID) -> None:
        """
        Explain why a status swap or assignment insert lost.

        Raises:
            RequestAlreadyAssigned: another writer already holds an active assignment
            ConcurrencyConflict: the status changed for some other reason
        """
        if await RequestService.has_active_assignment(db, request_id):
            logger.warning("Request already assigned", extra={"request_id": str(request_id)})
            raise RequestAlreadyAssigned(f"Request {request_id} already has an active assignment")
        logger.warning("Request status changed concurrently", extra={"request_id": str(request_id)})
        raise ConcurrencyConflict(f"Request {request_id} was modified concurrently; re-fetch and retry")
