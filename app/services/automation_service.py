"""
Automation Service - turn a submitted school request into a quote and,
optionally, an instructor assignment in one transaction.

Sequence:
    1. request must be SUBMITTED
    2. rank ACTIVE instructors; none -> NoEligibleInstructor
    3. price with the top candidate (school distance, else default band)
    4. optionally fit the price to the school budget -> BudgetInfeasible
    5. move the request out of SUBMITTED; a lost swap means another run won
    6. write the quote
    7. optionally write the assignment

Steps 5 to 7 commit together or not at all. A unique key hit by a
concurrent run is reported like a lost status swap.
"""

from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import AutomationError, InvalidStatusTransition, NoEligibleInstructor, RequestAlreadyAssigned
from app.core.logging import get_logger
from app.core.rules import RuleConfig
from app.models.assignment import InstructorAssignment
from app.models.enums import AssignmentStatus, RequestStatus
from app.models.quote import Quote
from app.services.assignment_service import ACTIVE_ASSIGNMENT_INDEX, AssignmentService
from app.services.fee_calculator import FeeCalculator
from app.services.instructor_matcher import InstructorMatcher, RankedCandidate
from app.services.instructor_service import InstructorService
from app.services.quote_service import QUOTE_NUMBER_INDEX, QUOTE_REQUEST_KEY, QuotePricer, QuoteService
from app.services.request_service import RequestService
from app.utils.geo import distance_km_for_school

logger = get_logger(__name__)

# Unique keys two concurrent runs can collide on
RACE_CONSTRAINTS = (ACTIVE_ASSIGNMENT_INDEX, QUOTE_REQUEST_KEY, QUOTE_NUMBER_INDEX)


@dataclass
class AutomationOptions:
    auto_assign: bool = True
    adjust_to_budget: bool = True


@dataclass
class AutomationOutcome:
    success: bool
    message: str
    error: Optional[str] = None
    quote: Optional[Quote] = None
    assignment: Optional[InstructorAssignment] = None
    candidate: Optional[RankedCandidate] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def failure(cls, exc: AutomationError) -> "AutomationOutcome":
        return cls(success=False, message=exc.message, error=exc.code)


class AutomationService:
    @staticmethod
    async def process(
        db: AsyncSession,
        rules: RuleConfig,
        request_id: UUID,
        options: Optional[AutomationOptions] = None,
        actor_id: Optional[UUID] = None,
    ) -> AutomationOutcome:
        """
        Run the automation for one request.

        Expected business failures (no candidate, budget, lost race) come
        back as an unsuccessful outcome after rolling back. Input and
        configuration errors propagate.
        """
        options = options or AutomationOptions()
        try:
            outcome = await AutomationService._run(db, rules, request_id, options, actor_id)
            await db.commit()
        except AutomationError as exc:
            await db.rollback()
            return AutomationService._failed(request_id, exc)
        except IntegrityError as exc:
            await db.rollback()
            if not any(name in str(exc.orig) for name in RACE_CONSTRAINTS):
                logger.warning("Automation rolled back", extra={"request_id": str(request_id)}, exc_info=True)
                raise
            # Rolled back, so the winner's committed rows are visible now
            try:
                await RequestService.raise_lost_race(db, request_id)
            except AutomationError as lost:
                return AutomationService._failed(request_id, lost)
        except Exception:
            await db.rollback()
            logger.warning("Automation rolled back", extra={"request_id": str(request_id)}, exc_info=True)
            raise

        logger.info(
            "Automation completed",
            extra={
                "request_id": str(request_id),
                "quote_number": outcome.quote.quote_number if outcome.quote else None,
                "assigned": outcome.assignment is not None,
            },
        )
        return outcome

    @staticmethod
    def _failed(request_id: UUID, exc: AutomationError) -> AutomationOutcome:
        logger.info(
            "Automation did not complete",
            extra={"request_id": str(request_id), "error": exc.code, "detail": exc.message},
        )
        return AutomationOutcome.failure(exc)

    @staticmethod
    async def _run(
        db: AsyncSession,
        rules: RuleConfig,
        request_id: UUID,
        options: AutomationOptions,
        actor_id: Optional[UUID],
    ) -> AutomationOutcome:
        request = await RequestService.get_request(db, request_id)
        if request.status != RequestStatus.SUBMITTED:
            if await RequestService.has_active_assignment(db, request_id):
                raise RequestAlreadyAssigned(f"Request {request_id} already has an active assignment")
            raise InvalidStatusTransition(
                f"Only SUBMITTED requests can be automated; request {request_id} is {request.status.value}"
            )

        pool = await InstructorService.list_active(db)
        ranked = InstructorMatcher.from_rules(rules).rank(request, pool)
        if not ranked:
            raise NoEligibleInstructor(f"No active instructor matches request {request_id}")
        top = ranked[0]

        distance_km = distance_km_for_school(request.school)
        fee_input = await AssignmentService.build_fee_input(
            db,
            rules,
            top.instructor,
            sessions=request.sessions,
            class_date=request.desired_date,
            distance_km=distance_km,
            fallback_band=rules.default_transport_band,
        )
        pricer = QuotePricer(rules, FeeCalculator(rules, settings.MULTIPLE_CLASS_THRESHOLD))
        material_override = request.program.base_material_cost if request.program is not None else None
        if options.adjust_to_budget:
            calculation = pricer.fit_to_budget(
                fee_input, request.student_count, request.school_budget, material_override
            )
        else:
            calculation = pricer.price(fee_input, request.student_count, material_override)

        # The UPDATE takes the row lock; a concurrent run waits here and then misses
        new_status = RequestStatus.ASSIGNED if options.auto_assign else RequestStatus.QUOTED
        if not await RequestService.compare_and_set_status(db, request_id, RequestStatus.SUBMITTED, new_status):
            await RequestService.raise_lost_race(db, request_id)

        quote = await QuoteService.create_quote(
            db,
            request_id,
            top.instructor.id,
            calculation,
            rules.quote.valid_days,
            created_by=actor_id,
        )

        assignment = None
        if options.auto_assign:
            assignment = await AssignmentService.insert_assignment(
                db,
                request_id,
                InstructorAssignment(
                    request_id=request_id,
                    instructor_id=top.instructor.id,
                    status=AssignmentStatus.PROPOSED,
                    scheduled_date=request.desired_date,
                    distance_km=distance_km,
                    transport_fee=calculation.fee.transport_fee,
                    notes="Assigned by automation",
                ),
            )

        message = (
            f"Quote {quote.quote_number} created and instructor {top.instructor.name} assigned"
            if assignment is not None
            else f"Quote {quote.quote_number} created"
        )
        return AutomationOutcome(
            success=True,
            message=message,
            quote=quote,
            assignment=assignment,
            candidate=top,
            warnings=list(calculation.adjustments + calculation.fee.warnings),
        )
