"""Quote Service - school-facing pricing and budget fitting"""

from dataclasses import dataclass, replace
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BudgetInfeasible, ValidationError
from app.core.logging import get_logger
from app.core.rules import RuleConfig
from app.models.enums import QuoteStatus, SpecialAllowance
from app.models.quote import Quote
from app.services.fee_calculator import FeeBreakdown, FeeCalculator, FeeInput
from app.utils.money import apply_rate, to_decimal
from app.utils.numbering import next_number
from app.utils.time import get_utc_now

logger = get_logger(__name__)

QUOTE_NUMBER_PREFIX = "QT"

# Postgres names for the unique keys on quotes
QUOTE_REQUEST_KEY = "quotes_request_id_key"
QUOTE_NUMBER_INDEX = "ix_quotes_quote_number"

# Allowances the school can be spared when the budget is tight
NON_MANDATORY_ALLOWANCES = (SpecialAllowance.EMERGENCY, SpecialAllowance.MULTIPLE_CLASSES)


@dataclass(frozen=True)
class QuoteCalculation:
    fee: FeeBreakdown
    material_cost: int
    margin_rate: Decimal
    margin_amount: int
    vat: int
    final_total: int
    adjustments: Tuple[str, ...] = ()

    @property
    def instructor_fee(self) -> int:
        """Pre-tax instructor subtotal, already clamped"""
        return self.fee.subtotal

    @property
    def cost_base(self) -> int:
        return self.instructor_fee + self.material_cost


class QuotePricer:
    """
    instructor fee + material cost -> margin -> VAT -> final total.
    Margin and VAT are each rounded half-up to whole won.
    """

    def __init__(self, rules: RuleConfig, calculator: Optional[FeeCalculator] = None):
        self.rules = rules
        self.calculator = calculator or FeeCalculator(rules)

    def material_cost(self, student_count: int, per_student: Optional[int] = None) -> int:
        if student_count is None or student_count < 0:
            raise ValidationError(f"student_count must be non-negative, got {student_count!r}")
        unit = self.rules.quote.material_cost_per_student if per_student is None else per_student
        return unit * student_count

    def _total(self, cost_base: int, margin_amount: int) -> Tuple[int, int]:
        vat = apply_rate(cost_base + margin_amount, self.rules.quote.vat_rate)
        return vat, cost_base + margin_amount + vat

    def price(
        self,
        fee_input: FeeInput,
        student_count: int,
        material_cost_per_student: Optional[int] = None,
        margin_rate: Optional[float] = None,
    ) -> QuoteCalculation:
        fee = self.calculator.compute(fee_input)
        material = self.material_cost(student_count, material_cost_per_student)
        rate = to_decimal(self.rules.quote.margin_rate if margin_rate is None else margin_rate)
        cost_base = fee.subtotal + material
        margin = apply_rate(cost_base, rate)
        vat, total = self._total(cost_base, margin)
        return QuoteCalculation(
            fee=fee,
            material_cost=material,
            margin_rate=rate,
            margin_amount=margin,
            vat=vat,
            final_total=total,
        )

    def fit_to_budget(
        self,
        fee_input: FeeInput,
        student_count: int,
        budget: Optional[int],
        material_cost_per_student: Optional[int] = None,
    ) -> QuoteCalculation:
        """
        Bring the quote within ``budget``.

        Reductions, in order: drop non-mandatory allowances, then lower the
        margin towards quote.minMarginRate. Nothing is discounted and the
        instructor fee never goes below minSessionFee.

        Raises:
            BudgetInfeasible: the lowest achievable total still exceeds the budget
        """
        quote = self.price(fee_input, student_count, material_cost_per_student)
        if budget is None or quote.final_total <= budget:
            return quote
        adjustments = []

        waivable = [
            kind for kind in NON_MANDATORY_ALLOWANCES
            if kind in quote.fee.allowances
        ]
        if waivable:
            quote = self.price(fee_input.without(waivable), student_count, material_cost_per_student)
            adjustments.append("Waived allowances: " + ", ".join(k.value for k in waivable))
            if quote.final_total <= budget:
                return replace(quote, adjustments=tuple(adjustments))

        floor_rate = to_decimal(self.rules.quote.min_margin_rate)
        floor_margin = apply_rate(quote.cost_base, floor_rate)
        _, lowest_total = self._total(quote.cost_base, floor_margin)
        if lowest_total > budget:
            logger.info(
                "Budget cannot be met",
                extra={"budget": budget, "lowest_total": lowest_total},
            )
            raise BudgetInfeasible(budget, lowest_total)

        margin = self._largest_margin_within(quote.cost_base, floor_margin, quote.margin_amount, budget)
        vat, total = self._total(quote.cost_base, margin)
        rate = (
            (Decimal(margin) / Decimal(quote.cost_base)).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
            if quote.cost_base
            else floor_rate
        )
        adjustments.append(f"Margin lowered from {quote.margin_rate} to {rate}")
        return replace(
            quote,
            margin_rate=rate,
            margin_amount=margin,
            vat=vat,
            final_total=total,
            adjustments=tuple(adjustments),
        )

    def _largest_margin_within(self, cost_base: int, low: int, high: int, budget: int) -> int:
        """Binary search; the total grows monotonically with the margin"""
        while low < high:
            mid = (low + high + 1) // 2
            if self._total(cost_base, mid)[1] <= budget:
                low = mid
            else:
                high = mid - 1
        return low


class QuoteService:
    @staticmethod
    async def next_quote_number(db: AsyncSession) -> str:
        return await next_number(db, Quote.quote_number, QUOTE_NUMBER_PREFIX, get_utc_now())

    @staticmethod
    async def create_quote(
        db: AsyncSession,
        request_id: UUID,
        instructor_id: Optional[UUID],
        calculation: QuoteCalculation,
        valid_days: int,
        created_by: Optional[UUID] = None,
    ) -> Quote:
        """
        Add a DRAFT quote to the session and flush; the caller owns the
        transaction. A second quote for the request, or a number taken by a
        concurrent writer, fails the flush with IntegrityError.
        """
        quote = Quote(
            quote_number=await QuoteService.next_quote_number(db),
            request_id=request_id,
            instructor_id=instructor_id,
            session_fee=calculation.fee.session_fee,
            transport_fee=calculation.fee.transport_fee,
            allowances=calculation.fee.allowance_total,
            instructor_fee=calculation.instructor_fee,
            material_cost=calculation.material_cost,
            margin_rate=calculation.margin_rate,
            margin_amount=calculation.margin_amount,
            vat=calculation.vat,
            final_total=calculation.final_total,
            valid_until=get_utc_now().date() + timedelta(days=valid_days),
            status=QuoteStatus.DRAFT,
            created_by=created_by,
            notes="\n".join(calculation.adjustments + calculation.fee.warnings) or None,
        )
        db.add(quote)
        await db.flush()
        return quote
