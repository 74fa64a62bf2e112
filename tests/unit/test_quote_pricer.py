"""Unit tests for QuotePricer and budget fitting."""

from decimal import Decimal

import pytest

from app.core.exceptions import BudgetInfeasible, ValidationError
from app.models.enums import InstructorGrade, InstructorType, SpecialAllowance
from app.services.fee_calculator import FeeInput
from app.services.quote_service import QuotePricer


def _input(**kwargs) -> FeeInput:
    params = {
        "sessions": 2,
        "instructor_grade": InstructorGrade.LEVEL1,
        "instructor_type": InstructorType.INTERNAL,
        "distance_km": 10,
    }
    params.update(kwargs)
    return FeeInput(**params)


def test_price_breakdown(rules):
    quote = QuotePricer(rules).price(_input(), student_count=20)

    assert quote.instructor_fee == 70000
    assert quote.material_cost == 140000
    assert quote.margin_rate == Decimal("0.15")
    assert quote.margin_amount == 31500
    assert quote.vat == 24150
    assert quote.final_total == 265650
    assert quote.adjustments == ()


def test_material_cost_override(rules):
    quote = QuotePricer(rules).price(_input(), student_count=20, material_cost_per_student=0)
    assert quote.material_cost == 0
    assert quote.final_total == 70000 + 10500 + 8050


def test_negative_student_count_rejected(rules):
    with pytest.raises(ValidationError):
        QuotePricer(rules).price(_input(), student_count=-1)


def test_budget_already_met(rules):
    quote = QuotePricer(rules).fit_to_budget(_input(), 20, budget=300000)
    assert quote.final_total == 265650
    assert quote.adjustments == ()


def test_no_budget_means_list_price(rules):
    assert QuotePricer(rules).fit_to_budget(_input(), 20, budget=None).final_total == 265650


def test_non_mandatory_allowances_waived_first(rules):
    pricer = QuotePricer(rules)
    full = pricer.price(_input(is_emergency=True, is_weekend=True), 20)
    assert full.final_total > 280000

    quote = pricer.fit_to_budget(_input(is_emergency=True, is_weekend=True), 20, budget=280000)
    assert SpecialAllowance.EMERGENCY not in quote.fee.allowances
    # Weekend pay is owed to the instructor regardless of budget
    assert SpecialAllowance.WEEKEND in quote.fee.allowances
    assert quote.margin_rate == Decimal("0.15")
    assert quote.final_total <= 280000
    assert quote.adjustments[0].startswith("Waived allowances")


def test_margin_lowered_to_fit(rules):
    quote = QuotePricer(rules).fit_to_budget(_input(), 20, budget=260000)

    assert quote.final_total <= 260000
    assert quote.margin_amount == 26364
    assert quote.final_total == 260000
    assert Decimal("0.10") <= quote.margin_rate < Decimal("0.15")
    assert quote.instructor_fee == 70000
    assert any("Margin lowered" in a for a in quote.adjustments)


def test_budget_below_floor_margin_is_infeasible(rules):
    with pytest.raises(BudgetInfeasible) as exc_info:
        QuotePricer(rules).fit_to_budget(_input(), 20, budget=250000)
    # (210000 + 21000) * 1.1
    assert exc_info.value.lowest_total == 254100
    assert exc_info.value.budget == 250000


def test_budget_below_minimum_session_fee_is_infeasible(rules):
    with pytest.raises(BudgetInfeasible):
        QuotePricer(rules).fit_to_budget(_input(), 0, budget=rules.min_session_fee - 1)
