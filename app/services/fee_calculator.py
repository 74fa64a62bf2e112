"""
Fee Calculator - instructor compensation for one assignment

The pipeline is an explicit ordered sequence; every step appends to an audit
trail so the exact order of application is part of the result:

    1. base          SessionFeeTable(sessions)
    2. grade         base x multiplier, rounded half-up immediately
    3. transport     TransportFeeTable(distance)
    4. allowances    weekend / holiday / emergency / multiple classes
    5. subtotal      grade-adjusted + transport + allowances
    6. clamp         subtotal into [minSessionFee, maxSessionFee]
    7. withholding   round-half-up(subtotal x taxWithholdingRate)
    8. net           subtotal - withholding - deductions + bonus, floored at 0
"""

import math
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Tuple

from app.core.exceptions import ValidationError
from app.core.rules import RuleConfig
from app.models.enums import (
    InstructorGrade,
    InstructorType,
    SpecialAllowance,
    TransportBand,
)
from app.services.fee_tables import SessionFeeTable, TransportFeeTable
from app.services.grade_service import GradeRuleEngine
from app.utils.money import apply_rate, clamp


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class FeeInput:
    """Everything the calculator needs; validated before any computation"""
    sessions: int
    instructor_grade: InstructorGrade
    instructor_type: InstructorType
    distance_km: Optional[float] = None
    fallback_band: Optional[TransportBand] = None
    is_weekend: bool = False
    is_holiday: bool = False
    is_emergency: bool = False
    daily_class_index: int = 1
    bonus: int = 0
    deductions: int = 0
    # Allowances that apply but were given up (budget fitting)
    waived_allowances: Tuple[SpecialAllowance, ...] = ()

    def __post_init__(self):
        if not _is_int(self.sessions) or self.sessions < 1:
            raise ValidationError(f"sessions must be a positive integer, got {self.sessions!r}")
        if self.distance_km is not None:
            if isinstance(self.distance_km, bool) or not isinstance(self.distance_km, (int, float)):
                raise ValidationError(f"distance_km must be a number, got {self.distance_km!r}")
            if math.isnan(self.distance_km) or self.distance_km < 0:
                raise ValidationError(f"distance_km must be non-negative, got {self.distance_km!r}")
        if not _is_int(self.daily_class_index) or self.daily_class_index < 1:
            raise ValidationError(
                f"daily_class_index must be a positive integer, got {self.daily_class_index!r}"
            )
        for name in ("bonus", "deductions"):
            value = getattr(self, name)
            if not _is_int(value) or value < 0:
                raise ValidationError(f"{name} must be a non-negative integer, got {value!r}")

    def without(self, allowances: Iterable[SpecialAllowance]) -> "FeeInput":
        """Copy of this input with the given allowances waived"""
        waived = tuple(dict.fromkeys(tuple(self.waived_allowances) + tuple(allowances)))
        return replace(self, waived_allowances=waived)


@dataclass(frozen=True)
class FeeStep:
    name: str
    amount: int
    detail: str = ""


@dataclass(frozen=True)
class FeeBreakdown:
    """Result of one fee computation, including the audit trail"""
    sessions: int
    priced_sessions: int
    base_fee: int
    multiplier: float
    grade_adjusted_fee: int
    transport_fee: int
    transport_band: Optional[TransportBand]
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
    steps: Tuple[FeeStep, ...] = ()
    warnings: Tuple[str, ...] = ()
    waived_allowances: Tuple[SpecialAllowance, ...] = ()

    @property
    def was_clamped(self) -> bool:
        return self.subtotal != self.unclamped_subtotal

    @property
    def session_fee(self) -> int:
        """Session component as persisted on quotes and payments"""
        return self.grade_adjusted_fee


@dataclass
class _Trail:
    steps: List[FeeStep] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add(self, name: str, amount: int, detail: str = "") -> int:
        self.steps.append(FeeStep(name=name, amount=amount, detail=detail))
        return amount


class FeeCalculator:
    """Computes a payment breakdown from an immutable rule snapshot"""

    def __init__(self, rules: RuleConfig, multiple_class_threshold: int = 3):
        self.rules = rules
        self.multiple_class_threshold = multiple_class_threshold
        self.session_fees = SessionFeeTable.from_rules(rules)
        self.transport_fees = TransportFeeTable.from_rules(rules)
        self.grades = GradeRuleEngine.from_rules(rules)

    def applicable_allowances(self, fee_input: FeeInput) -> List[SpecialAllowance]:
        applicable = []
        if fee_input.is_weekend:
            applicable.append(SpecialAllowance.WEEKEND)
        if fee_input.is_holiday:
            applicable.append(SpecialAllowance.HOLIDAY)
        if fee_input.is_emergency:
            applicable.append(SpecialAllowance.EMERGENCY)
        if fee_input.daily_class_index >= self.multiple_class_threshold:
            applicable.append(SpecialAllowance.MULTIPLE_CLASSES)
        return applicable

    def compute(self, fee_input: FeeInput) -> FeeBreakdown:
        """
        Run the eight pricing steps in order.

        Raises:
            ValidationError: malformed input
            UnknownSessionCount: no session fee at or below the session count
            UnknownGrade: grade not configured for the instructor type
        """
        rules = self.rules
        trail = _Trail()

        # 1. base
        priced_sessions = self.session_fees.resolve_count(fee_input.sessions)
        base = trail.add(
            "base",
            self.session_fees.lookup(fee_input.sessions),
            f"{fee_input.sessions} sessions priced at the {priced_sessions}-session rate",
        )

        # 2. grade multiplier
        grade_rule = self.grades.resolve(fee_input.instructor_type, fee_input.instructor_grade)
        grade_adjusted = trail.add(
            "grade_multiplier",
            apply_rate(base, grade_rule.fee_multiplier),
            f"{grade_rule.grade.value} x{grade_rule.fee_multiplier}",
        )

        # 3. transport
        transport = self.transport_fees.lookup(fee_input.distance_km, fee_input.fallback_band)
        if transport.computed:
            detail = f"{transport.distance_km}km in band {transport.band.value}"
        elif transport.band is not None:
            detail = f"distance unknown, default band {transport.band.value}"
            trail.warnings.append(
                f"Transport fee not computed from distance; default band {transport.band.value} used"
            )
        else:
            detail = "distance unknown"
            trail.warnings.append("Transport fee not computed: distance unknown")
        trail.add("transport", transport.fee, detail)

        # 4. allowances
        applied: Dict[SpecialAllowance, int] = {}
        waived = []
        for kind in self.applicable_allowances(fee_input):
            if kind in fee_input.waived_allowances:
                waived.append(kind)
                continue
            applied[kind] = rules.allowance(kind)
        allowance_total = sum(applied.values())
        detail = ", ".join(f"{k.value}={v}" for k, v in applied.items()) or "none"
        if waived:
            detail += "; waived: " + ", ".join(k.value for k in waived)
        trail.add("allowances", allowance_total, detail)

        # 5. subtotal
        unclamped = trail.add("subtotal", grade_adjusted + transport.fee + allowance_total)

        # 6. clamp
        subtotal = clamp(unclamped, rules.min_session_fee, rules.max_session_fee)
        trail.add(
            "clamp",
            subtotal,
            f"[{rules.min_session_fee}, {rules.max_session_fee}]",
        )
        if subtotal != unclamped:
            bound = "minimum" if subtotal > unclamped else "maximum"
            trail.warnings.append(f"Subtotal {unclamped:,} clamped to {bound} {subtotal:,}")

        # 7. withholding
        tax = trail.add(
            "tax_withholding",
            apply_rate(subtotal, rules.tax_withholding_rate),
            f"{rules.tax_withholding_rate}",
        )

        # 8. net
        net = subtotal - tax - fee_input.deductions + fee_input.bonus
        floored = net < 0
        if floored:
            trail.warnings.append(f"Net amount {net:,} floored to 0")
            net = 0
        trail.add(
            "net",
            net,
            f"bonus={fee_input.bonus}, deductions={fee_input.deductions}",
        )

        return FeeBreakdown(
            sessions=fee_input.sessions,
            priced_sessions=priced_sessions,
            base_fee=base,
            multiplier=grade_rule.fee_multiplier,
            grade_adjusted_fee=grade_adjusted,
            transport_fee=transport.fee,
            transport_band=transport.band,
            transport_computed=transport.computed,
            allowances=applied,
            allowance_total=allowance_total,
            unclamped_subtotal=unclamped,
            subtotal=subtotal,
            tax_rate=rules.tax_withholding_rate,
            tax_withholding=tax,
            bonus=fee_input.bonus,
            deductions=fee_input.deductions,
            net_amount=net,
            floored_to_zero=floored,
            steps=tuple(trail.steps),
            warnings=tuple(trail.warnings),
            waived_allowances=tuple(waived),
        )
