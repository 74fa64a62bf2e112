"""Unit tests for the eight-step FeeCalculator pipeline."""

import pytest

from app.core.exceptions import UnknownGrade, UnknownSessionCount, ValidationError
from app.core.rules import DEFAULT_RULE_SETTINGS, RuleConfig
from app.models.enums import InstructorGrade, InstructorType, SpecialAllowance, TransportBand
from app.services.fee_calculator import FeeCalculator, FeeInput
from app.utils.money import clamp

STEP_ORDER = [
    "base",
    "grade_multiplier",
    "transport",
    "allowances",
    "subtotal",
    "clamp",
    "tax_withholding",
    "net",
]


def _rules(**overrides) -> RuleConfig:
    values = {k: v for k, v in DEFAULT_RULE_SETTINGS.items() if not k.startswith("sessionFees.")}
    values.update(
        {
            "sessionFees.2": "80000",
            "grades.LEVEL3.feeMultiplier": "1.1",
            "minSessionFee": "70000",
            "maxSessionFee": "150000",
        }
    )
    values.update({k: str(v) for k, v in overrides.items()})
    return RuleConfig.from_settings(values)


def _input(**kwargs) -> FeeInput:
    params = {
        "sessions": 2,
        "instructor_grade": InstructorGrade.LEVEL3,
        "instructor_type": InstructorType.INTERNAL,
        "distance_km": 35,
    }
    params.update(kwargs)
    return FeeInput(**params)


def test_level3_two_sessions_thirty_five_km():
    result = FeeCalculator(_rules()).compute(_input())

    assert result.base_fee == 80000
    assert result.grade_adjusted_fee == 88000
    assert result.transport_fee == 15000
    assert result.transport_band == TransportBand.KM_20_40
    assert result.allowance_total == 0
    assert result.subtotal == 103000
    assert result.tax_withholding == 3399
    assert result.net_amount == 99601
    assert result.floored_to_zero is False
    assert [s.name for s in result.steps] == STEP_ORDER


def test_subtotal_clamped_up_to_minimum():
    result = FeeCalculator(_rules(minSessionFee=110000)).compute(_input())

    assert result.unclamped_subtotal == 103000
    assert result.subtotal == 110000
    assert result.was_clamped is True
    assert result.tax_withholding == 3630
    assert result.net_amount == 106370
    assert any("clamped" in w for w in result.warnings)


def test_subtotal_clamped_down_to_maximum():
    rules = _rules(maxSessionFee=100000)
    result = FeeCalculator(rules).compute(_input(is_weekend=True))
    assert result.unclamped_subtotal == 113000
    assert result.subtotal == 100000
    assert result.tax_withholding == 3300


def test_multiplier_rounds_half_up_before_anything_else():
    # 70010 x 1.05 = 73510.5 -> 73511
    rules = _rules(**{"sessionFees.2": 70010, "grades.LEVEL2.feeMultiplier": "1.05"})
    result = FeeCalculator(rules).compute(_input(instructor_grade=InstructorGrade.LEVEL2, distance_km=0))
    assert result.grade_adjusted_fee == 73511


def test_allowances_are_added_before_clamp():
    result = FeeCalculator(_rules()).compute(
        _input(is_weekend=True, is_holiday=True, is_emergency=True, daily_class_index=3)
    )
    assert result.allowances == {
        SpecialAllowance.WEEKEND: 10000,
        SpecialAllowance.HOLIDAY: 20000,
        SpecialAllowance.EMERGENCY: 20000,
        SpecialAllowance.MULTIPLE_CLASSES: 10000,
    }
    assert result.unclamped_subtotal == 103000 + 60000
    assert result.subtotal == 150000


@pytest.mark.parametrize("index, expected", [(1, False), (2, False), (3, True), (4, True)])
def test_multiple_classes_from_third_class(index, expected):
    result = FeeCalculator(_rules()).compute(_input(daily_class_index=index))
    assert (SpecialAllowance.MULTIPLE_CLASSES in result.allowances) is expected


def test_waived_allowances_are_skipped():
    fee_input = _input(is_emergency=True, is_weekend=True).without([SpecialAllowance.EMERGENCY])
    result = FeeCalculator(_rules()).compute(fee_input)
    assert SpecialAllowance.EMERGENCY not in result.allowances
    assert result.allowances[SpecialAllowance.WEEKEND] == 10000
    assert result.waived_allowances == (SpecialAllowance.EMERGENCY,)


def test_unknown_distance_leaves_transport_uncomputed():
    result = FeeCalculator(_rules()).compute(_input(distance_km=None))
    assert result.transport_fee == 0
    assert result.transport_computed is False
    assert result.warnings


def test_fallback_band_used_when_distance_unknown():
    result = FeeCalculator(_rules()).compute(
        _input(distance_km=None, fallback_band=TransportBand.KM_20_40)
    )
    assert result.transport_fee == 15000
    assert result.transport_computed is False


def test_net_floored_to_zero():
    result = FeeCalculator(_rules()).compute(_input(deductions=200000))
    assert result.net_amount == 0
    assert result.floored_to_zero is True
    assert result.tax_withholding == 3399


def test_bonus_is_not_taxed():
    result = FeeCalculator(_rules()).compute(_input(bonus=5000, deductions=1000))
    assert result.tax_withholding == 3399
    assert result.net_amount == 103000 - 3399 - 1000 + 5000


def test_compute_is_deterministic():
    calculator = FeeCalculator(_rules())
    fee_input = _input(is_weekend=True, daily_class_index=3, bonus=1234)
    assert calculator.compute(fee_input) == calculator.compute(fee_input)


def test_clamp_is_idempotent():
    for value in (0, 69999, 70000, 103000, 150000, 999999):
        once = clamp(value, 70000, 150000)
        assert clamp(once, 70000, 150000) == once


def test_session_count_below_table_fails():
    with pytest.raises(UnknownSessionCount):
        FeeCalculator(_rules()).compute(_input(sessions=1))


def test_grade_family_mismatch_fails():
    with pytest.raises(UnknownGrade):
        FeeCalculator(_rules()).compute(_input(instructor_type=InstructorType.EXTERNAL))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"sessions": 0},
        {"distance_km": -5},
        {"daily_class_index": 0},
        {"bonus": -1},
        {"deductions": 1.5},
    ],
)
def test_invalid_input_rejected(kwargs):
    with pytest.raises(ValidationError):
        _input(**kwargs)
