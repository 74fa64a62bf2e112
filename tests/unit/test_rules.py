"""Unit tests for RuleConfig parsing and validation."""

from datetime import date

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import RuleConfigError
from app.core.rules import DEFAULT_RULE_SETTINGS, RuleConfig
from app.models.enums import InstructorGrade, SpecialAllowance, TransportBand


def test_defaults_parse(rules):
    assert rules.session_fees[2] == 70000
    assert rules.transport_fees[TransportBand.KM_80_PLUS] == 45000
    assert rules.grades[InstructorGrade.LEVEL3].benefits == ("강사비 +10%", "우선 배정")
    assert rules.special_allowances[SpecialAllowance.MULTIPLE_CLASSES] == 10000
    assert rules.tax_withholding_rate == 0.033
    assert rules.default_transport_band == TransportBand.KM_20_40
    assert rules.category_keywords["AI_CODING"] == ("AI", "코딩")
    assert rules.holidays == frozenset()


def test_round_trip_through_settings(rules):
    assert RuleConfig.from_settings(rules.to_settings()) == rules


def test_missing_key_names_the_key():
    values = dict(DEFAULT_RULE_SETTINGS)
    del values["taxWithholdingRate"]
    with pytest.raises(RuleConfigError, match="taxWithholdingRate"):
        RuleConfig.from_settings(values)


def test_malformed_number_names_the_key(rules_factory):
    with pytest.raises(RuleConfigError, match="transport_20_40"):
        rules_factory(transport_20_40="fifteen thousand")


@pytest.mark.parametrize(
    "overrides",
    [
        {"minSessionFee": "250000"},
        {"taxWithholdingRate": "0.9"},
        {"grades.LEVEL2.feeMultiplier": "4"},
        {"grades.LEVEL3.minClasses": "5"},
        {"quote.minMarginRate": "0.5"},
        {"automation.defaultTransportBand": "somewhere"},
        {"sessionFees.0": "1000"},
        {"holidays": "2026-13-01"},
    ],
)
def test_inconsistent_rules_rejected(rules_factory, overrides):
    with pytest.raises(RuleConfigError):
        rules_factory(**overrides)


def test_sparse_session_fees():
    values = {k: v for k, v in DEFAULT_RULE_SETTINGS.items() if not k.startswith("sessionFees.")}
    values["sessionFees.3"] = "90000"
    rules = RuleConfig.from_settings(values)
    assert rules.session_fees == {3: 90000}


def test_holidays_are_parsed(rules_factory):
    rules = rules_factory(holidays="2026-10-03, 2026-10-09")
    assert rules.holidays == {date(2026, 10, 3), date(2026, 10, 9)}


def test_rules_are_immutable(rules):
    with pytest.raises(PydanticValidationError):
        rules.min_session_fee = 1
