"""Payment Service - instructor payments for completed assignments"""

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConcurrencyConflict, InvalidStatusTransition, RequestNotFound, ValidationError
from app.core.logging import get_logger
from app.core.rules import RuleConfig
from app.models.enums import AssignmentStatus, PaymentStatus
from app.models.payment import Payment
from app.services.assignment_service import AssignmentService
from app.services.fee_calculator import FeeCalculator
from app.utils.geo import distance_km_for_school
from app.utils.money import to_decimal
from app.utils.numbering import next_number
from app.utils.time import accounting_month, get_utc_now

logger = get_logger(__name__)

PAYMENT_NUMBER_PREFIX = "PAY"

# Postgres names for the unique keys on payments
PAYMENT_ASSIGNMENT_KEY = "payments_assignment_id_key"
PAYMENT_NUMBER_INDEX = "ix_payments_payment_number"

# Forward path plus cancellation from any state before PAID
ALLOWED_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.CALCULATED, PaymentStatus.CANCELLED},
    PaymentStatus.CALCULATED: {PaymentStatus.APPROVED, PaymentStatus.CANCELLED},
    PaymentStatus.APPROVED: {PaymentStatus.PROCESSING, PaymentStatus.CANCELLED},
    PaymentStatus.PROCESSING: {PaymentStatus.PAID, PaymentStatus.CANCELLED},
    PaymentStatus.PAID: set(),
    PaymentStatus.CANCELLED: set(),
}


def can_transition(current: PaymentStatus, new: PaymentStatus) -> bool:
    return PaymentStatus(new) in ALLOWED_TRANSITIONS[PaymentStatus(current)]


class PaymentService:
    @staticmethod
    async def get_payment(db: AsyncSession, payment_id: UUID) -> Payment:
        payment = await db.get(Payment, payment_id)
        if payment is None:
            raise RequestNotFound(f"Payment {payment_id} not found")
        return payment

    @staticmethod
    async def generate_payment(
        db: AsyncSession,
        rules: RuleConfig,
        assignment_id: UUID,
        bonus: int = 0,
        deductions: int = 0,
        sessions: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        """
        Price a COMPLETED assignment and store the payment as CALCULATED.

        Sessions default to the assignment's actual sessions, then to the
        requested count. Allowance flags come from the scheduled date as it
        stood when the assignment was made.
        """
        assignment = await AssignmentService.get_assignment(db, assignment_id)
        if assignment.status != AssignmentStatus.COMPLETED:
            raise InvalidStatusTransition(
                f"Payments are generated for COMPLETED assignments; assignment {assignment_id} is "
                f"{assignment.status.value}"
            )
        if assignment.payment is not None:
            raise InvalidStatusTransition(
                f"Assignment {assignment_id} already has payment {assignment.payment.payment_number}"
            )

        request = assignment.request
        distance_km = assignment.distance_km
        if distance_km is None:
            distance_km = distance_km_for_school(request.school)

        fee_input = await AssignmentService.build_fee_input(
            db,
            rules,
            assignment.instructor,
            sessions=sessions or assignment.actual_sessions or request.sessions,
            class_date=assignment.scheduled_date,
            distance_km=distance_km,
            bonus=bonus,
            deductions=deductions,
            created_before=assignment.created_at,
            today=assignment.created_at.date() if assignment.created_at else None,
        )
        breakdown = FeeCalculator(rules, settings.MULTIPLE_CLASS_THRESHOLD).compute(fee_input)

        now = get_utc_now()
        payment = Payment(
            payment_number=await next_number(db, Payment.payment_number, PAYMENT_NUMBER_PREFIX, now),
            assignment_id=assignment.id,
            instructor_id=assignment.instructor_id,
            sessions=breakdown.sessions,
            session_fee=breakdown.session_fee,
            transport_fee=breakdown.transport_fee,
            allowances=breakdown.allowance_total,
            bonus=breakdown.bonus,
            subtotal=breakdown.subtotal,
            tax_rate=to_decimal(breakdown.tax_rate),
            tax_withholding=breakdown.tax_withholding,
            deductions=breakdown.deductions,
            net_amount=breakdown.net_amount,
            floored_to_zero=breakdown.floored_to_zero,
            status=PaymentStatus.CALCULATED,
            accounting_month=accounting_month(assignment.scheduled_date or now),
            notes="\n".join(filter(None, [notes, *breakdown.warnings])) or None,
        )
        db.add(payment)
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            PaymentService._raise_duplicate(exc, assignment_id)
        await db.refresh(payment)

        log = logger.warning if breakdown.floored_to_zero else logger.info
        log(
            "Payment calculated",
            extra={
                "payment_number": payment.payment_number,
                "assignment_id": str(assignment_id),
                "net_amount": payment.net_amount,
                "floored_to_zero": payment.floored_to_zero,
            },
        )
        return payment

    @staticmethod
    def _raise_duplicate(exc: IntegrityError, assignment_id: UUID) -> None:
        """Translate a unique key hit by a concurrent generator; anything else re-raises"""
        detail = str(exc.orig)
        if PAYMENT_ASSIGNMENT_KEY in detail:
            logger.warning("Payment generated concurrently", extra={"assignment_id": str(assignment_id)})
            raise InvalidStatusTransition(f"Assignment {assignment_id} already has a payment") from exc
        if PAYMENT_NUMBER_INDEX in detail:
            logger.warning("Payment number taken concurrently", extra={"assignment_id": str(assignment_id)})
            raise ConcurrencyConflict(
                f"Payment number for assignment {assignment_id} was taken concurrently; retry"
            ) from exc
        raise exc

    @staticmethod
    async def update_status(
        db: AsyncSession,
        payment_id: UUID,
        new_status: PaymentStatus,
        actor_id: Optional[UUID] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        """
        Raises:
            InvalidStatusTransition: the move is not allowed (PAID is final)
        """
        payment = await PaymentService.get_payment(db, payment_id)
        new_status = PaymentStatus(new_status)
        if not can_transition(payment.status, new_status):
            raise InvalidStatusTransition(
                f"Payment {payment.payment_number} cannot move from {payment.status.value} to {new_status.value}"
            )
        payment.status = new_status
        if new_status == PaymentStatus.APPROVED:
            payment.approved_by = actor_id
        elif new_status == PaymentStatus.PAID:
            payment.paid_at = get_utc_now()
        if notes:
            payment.notes = f"{payment.notes}\n{notes}" if payment.notes else notes
        await db.commit()
        await db.refresh(payment)
        return payment

    @staticmethod
    async def monthly_summary(db: AsyncSession, month: str) -> Dict[str, Any]:
        """Totals for one accounting month (YYYY-MM), cancelled payments excluded"""
        if len(month) != 7 or month[4] != "-" or not (month[:4] + month[5:]).isdigit():
            raise ValidationError(f"month must look like YYYY-MM, got {month!r}")
        result = await db.execute(
            select(Payment)
            .where(
                Payment.accounting_month == month,
                Payment.status != PaymentStatus.CANCELLED,
            )
            .order_by(Payment.payment_number)
        )
        payments = result.scalars().all()

        by_status: Dict[str, int] = {}
        by_instructor: Dict[UUID, Dict[str, Any]] = {}
        for p in payments:
            status_key = p.status.value if hasattr(p.status, "value") else str(p.status)
            by_status[status_key] = by_status.get(status_key, 0) + 1
            row = by_instructor.setdefault(
                p.instructor_id,
                {"instructor_id": p.instructor_id, "payments": 0, "subtotal": 0, "tax_withholding": 0, "net_amount": 0},
            )
            row["payments"] += 1
            row["subtotal"] += p.subtotal
            row["tax_withholding"] += p.tax_withholding
            row["net_amount"] += p.net_amount

        return {
            "month": month,
            "payment_count": len(payments),
            "total_subtotal": sum(p.subtotal for p in payments),
            "total_tax_withholding": sum(p.tax_withholding for p in payments),
            "total_net_amount": sum(p.net_amount for p in payments),
            "floored_count": sum(1 for p in payments if p.floored_to_zero),
            "by_status": by_status,
            "by_instructor": list(by_instructor.values()),
        }
