"""Typed rule configuration.

Pricing and matching rules are edited by admins and stored one key per row
in the ``settings`` table as strings. ``RuleConfig.from_settings`` parses
that flat map once per load and fails fast on missing or malformed keys so
nothing deep inside the fee calculator ever has to guess a default.

Key layout::

    sessionFees.<n>                         int
    transport_{0_20,20_40,40_60,60_80,80_plus}  int
    grades.<GRADE>.{name,minClasses,minRating,feeMultiplier,priority,benefits}
    specialAllowances.{weekend,holiday,emergency,multipleClasses}  int
    taxWithholdingRate                      float 0..0.5
    minSessionFee / maxSessionFee           int
    quote.{materialCostPerStudent,marginRate,minMarginRate,vatRate,validDays}
    automation.defaultTransportBand         band id
    matcher.categoryKeywords.<CATEGORY>     comma separated keywords
    holidays                                comma separated ISO dates
"""

from datetime import date
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import RuleConfigError
from app.models.enums import (
    INTERNAL_GRADES,
    InstructorGrade,
    SpecialAllowance,
    TransportBand,
)

BENEFIT_SEPARATOR = "|"

DEFAULT_RULE_SETTINGS: Dict[str, str] = {
    # Session fees (total per class, by session count)
    "sessionFees.2": "70000",
    "sessionFees.3": "100000",
    "sessionFees.4": "120000",
    "sessionFees.5": "135000",
    "sessionFees.6": "150000",
    # Transport fees by distance band
    "transport_0_20": "0",
    "transport_20_40": "15000",
    "transport_40_60": "25000",
    "transport_60_80": "35000",
    "transport_80_plus": "45000",
    # Special allowances
    "specialAllowances.weekend": "10000",
    "specialAllowances.holiday": "20000",
    "specialAllowances.emergency": "20000",
    "specialAllowances.multipleClasses": "10000",
    # Withholding and clamps
    "taxWithholdingRate": "0.033",
    "minSessionFee": "30000",
    "maxSessionFee": "200000",
    # Internal grades
    "grades.LEVEL1.name": "신입강사",
    "grades.LEVEL1.minClasses": "0",
    "grades.LEVEL1.minRating": "0",
    "grades.LEVEL1.feeMultiplier": "1.00",
    "grades.LEVEL1.priority": "1",
    "grades.LEVEL1.benefits": "기본 강사비",
    "grades.LEVEL2.name": "일반강사",
    "grades.LEVEL2.minClasses": "10",
    "grades.LEVEL2.minRating": "4.0",
    "grades.LEVEL2.feeMultiplier": "1.05",
    "grades.LEVEL2.priority": "2",
    "grades.LEVEL2.benefits": "강사비 +5%",
    "grades.LEVEL3.name": "우수강사",
    "grades.LEVEL3.minClasses": "50",
    "grades.LEVEL3.minRating": "4.5",
    "grades.LEVEL3.feeMultiplier": "1.10",
    "grades.LEVEL3.priority": "3",
    "grades.LEVEL3.benefits": "강사비 +10%|우선 배정",
    "grades.LEVEL4.name": "수석강사",
    "grades.LEVEL4.minClasses": "100",
    "grades.LEVEL4.minRating": "4.8",
    "grades.LEVEL4.feeMultiplier": "1.15",
    "grades.LEVEL4.priority": "4",
    "grades.LEVEL4.benefits": "강사비 +15%|최우선 배정|멘토링",
    # External grades
    "grades.EXTERNAL_BASIC.name": "외부 기본",
    "grades.EXTERNAL_BASIC.minClasses": "0",
    "grades.EXTERNAL_BASIC.minRating": "0",
    "grades.EXTERNAL_BASIC.feeMultiplier": "1.00",
    "grades.EXTERNAL_BASIC.priority": "1",
    "grades.EXTERNAL_BASIC.benefits": "기본 외부 강사비",
    "grades.EXTERNAL_PREMIUM.name": "외부 프리미엄",
    "grades.EXTERNAL_PREMIUM.minClasses": "0",
    "grades.EXTERNAL_PREMIUM.minRating": "0",
    "grades.EXTERNAL_PREMIUM.feeMultiplier": "1.20",
    "grades.EXTERNAL_PREMIUM.priority": "2",
    "grades.EXTERNAL_PREMIUM.benefits": "강사비 +20%|전문가 대우",
    "grades.EXTERNAL_VIP.name": "외부 VIP",
    "grades.EXTERNAL_VIP.minClasses": "0",
    "grades.EXTERNAL_VIP.minRating": "0",
    "grades.EXTERNAL_VIP.feeMultiplier": "1.50",
    "grades.EXTERNAL_VIP.priority": "3",
    "grades.EXTERNAL_VIP.benefits": "강사비 +50%|VIP 대우",
    # Quotes
    "quote.materialCostPerStudent": "7000",
    "quote.marginRate": "0.15",
    "quote.minMarginRate": "0.10",
    "quote.vatRate": "0.10",
    "quote.validDays": "30",
    # Automation
    "automation.defaultTransportBand": "20_40",
    # Subject matching
    "matcher.categoryKeywords.AI_CODING": "AI,코딩",
    "matcher.categoryKeywords.MAKER": "메이커,3D",
    "matcher.categoryKeywords.SCIENCE": "과학",
    "matcher.categoryKeywords.CAREER": "진로",
    "holidays": "",
}


class GradeRule(BaseModel):
    """Fee multiplier and promotion thresholds for one grade"""

    model_config = ConfigDict(frozen=True)

    grade: InstructorGrade
    name: str
    min_classes: int = Field(ge=0)
    min_rating: float = Field(ge=0, le=5)
    fee_multiplier: float = Field(ge=0.5, le=3.0)
    priority: int = Field(default=0, ge=0)
    benefits: Tuple[str, ...] = ()


class QuoteRules(BaseModel):
    """School-facing pricing parameters"""

    model_config = ConfigDict(frozen=True)

    material_cost_per_student: int = Field(ge=0)
    margin_rate: float = Field(ge=0, le=1)
    min_margin_rate: float = Field(ge=0, le=1)
    vat_rate: float = Field(ge=0, le=0.5)
    valid_days: int = Field(ge=1)

    @model_validator(mode="after")
    def check_margin_floor(self) -> "QuoteRules":
        if self.min_margin_rate > self.margin_rate:
            raise ValueError("quote.minMarginRate must not exceed quote.marginRate")
        return self


class RuleConfig(BaseModel):
    """Immutable snapshot of all pricing and matching rules"""

    model_config = ConfigDict(frozen=True)

    session_fees: Dict[int, int]
    transport_fees: Dict[TransportBand, int]
    grades: Dict[InstructorGrade, GradeRule]
    special_allowances: Dict[SpecialAllowance, int]
    tax_withholding_rate: float = Field(ge=0, le=0.5)
    min_session_fee: int = Field(ge=0)
    max_session_fee: int = Field(ge=0)
    quote: QuoteRules
    default_transport_band: TransportBand
    category_keywords: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    holidays: FrozenSet[date] = frozenset()

    @model_validator(mode="after")
    def check_consistency(self) -> "RuleConfig":
        if not self.session_fees:
            raise ValueError("at least one sessionFees.<n> entry is required")
        for count, fee in self.session_fees.items():
            if count < 1:
                raise ValueError(f"sessionFees.{count}: session count must be >= 1")
            if fee < 0:
                raise ValueError(f"sessionFees.{count}: fee must be >= 0")

        missing_bands = [b.value for b in TransportBand if b not in self.transport_fees]
        if missing_bands:
            raise ValueError(f"missing transport bands: {', '.join(missing_bands)}")
        for band, fee in self.transport_fees.items():
            if fee < 0:
                raise ValueError(f"transport_{band.value}: fee must be >= 0")

        missing_grades = [g.value for g in InstructorGrade if g not in self.grades]
        if missing_grades:
            raise ValueError(f"missing grade definitions: {', '.join(missing_grades)}")
        for previous, current in zip(INTERNAL_GRADES, INTERNAL_GRADES[1:]):
            if self.grades[current].min_classes < self.grades[previous].min_classes:
                raise ValueError(
                    f"grades.{current.value}.minClasses must be >= grades.{previous.value}.minClasses"
                )

        missing_allowances = [a.value for a in SpecialAllowance if a not in self.special_allowances]
        if missing_allowances:
            raise ValueError(f"missing special allowances: {', '.join(missing_allowances)}")
        for allowance, amount in self.special_allowances.items():
            if amount < 0:
                raise ValueError(f"specialAllowances.{allowance.value}: amount must be >= 0")

        if self.min_session_fee > self.max_session_fee:
            raise ValueError("minSessionFee must not exceed maxSessionFee")
        return self

    @classmethod
    def from_settings(cls, values: Mapping[str, str]) -> "RuleConfig":
        """
        Parse the flat settings map.

        Raises:
            RuleConfigError: a required key is missing, a value does not
                parse, or the parsed rules are inconsistent
        """
        reader = _SettingsReader(values)
        data = {
            "session_fees": {
                reader.key_int("sessionFees.", suffix): reader.get_int(f"sessionFees.{suffix}")
                for suffix in reader.suffixes("sessionFees.")
            },
            "transport_fees": {
                band: reader.get_int(f"transport_{band.value}") for band in TransportBand
            },
            "grades": {grade: reader.get_grade(grade) for grade in InstructorGrade},
            "special_allowances": {
                allowance: reader.get_int(f"specialAllowances.{allowance.value}")
                for allowance in SpecialAllowance
            },
            "tax_withholding_rate": reader.get_float("taxWithholdingRate"),
            "min_session_fee": reader.get_int("minSessionFee"),
            "max_session_fee": reader.get_int("maxSessionFee"),
            "quote": {
                "material_cost_per_student": reader.get_int("quote.materialCostPerStudent"),
                "margin_rate": reader.get_float("quote.marginRate"),
                "min_margin_rate": reader.get_float("quote.minMarginRate"),
                "vat_rate": reader.get_float("quote.vatRate"),
                "valid_days": reader.get_int("quote.validDays"),
            },
            "default_transport_band": reader.get_str("automation.defaultTransportBand"),
            "category_keywords": {
                suffix: reader.get_list(f"matcher.categoryKeywords.{suffix}")
                for suffix in reader.suffixes("matcher.categoryKeywords.")
            },
            "holidays": reader.get_dates("holidays"),
        }
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            raise RuleConfigError(_describe(exc)) from exc

    def to_settings(self) -> Dict[str, str]:
        """Flatten back into the key/value layout stored in ``settings``"""
        out: Dict[str, str] = {}
        for count, fee in sorted(self.session_fees.items()):
            out[f"sessionFees.{count}"] = str(fee)
        for band in TransportBand:
            out[f"transport_{band.value}"] = str(self.transport_fees[band])
        for allowance in SpecialAllowance:
            out[f"specialAllowances.{allowance.value}"] = str(self.special_allowances[allowance])
        out["taxWithholdingRate"] = str(self.tax_withholding_rate)
        out["minSessionFee"] = str(self.min_session_fee)
        out["maxSessionFee"] = str(self.max_session_fee)
        for grade in InstructorGrade:
            rule = self.grades[grade]
            prefix = f"grades.{grade.value}."
            out[prefix + "name"] = rule.name
            out[prefix + "minClasses"] = str(rule.min_classes)
            out[prefix + "minRating"] = str(rule.min_rating)
            out[prefix + "feeMultiplier"] = str(rule.fee_multiplier)
            out[prefix + "priority"] = str(rule.priority)
            out[prefix + "benefits"] = BENEFIT_SEPARATOR.join(rule.benefits)
        out["quote.materialCostPerStudent"] = str(self.quote.material_cost_per_student)
        out["quote.marginRate"] = str(self.quote.margin_rate)
        out["quote.minMarginRate"] = str(self.quote.min_margin_rate)
        out["quote.vatRate"] = str(self.quote.vat_rate)
        out["quote.validDays"] = str(self.quote.valid_days)
        out["automation.defaultTransportBand"] = self.default_transport_band.value
        for category, keywords in sorted(self.category_keywords.items()):
            out[f"matcher.categoryKeywords.{category}"] = ",".join(keywords)
        out["holidays"] = ",".join(d.isoformat() for d in sorted(self.holidays))
        return out

    def allowance(self, kind: SpecialAllowance) -> int:
        return self.special_allowances[kind]


class _SettingsReader:
    """Typed accessors over the raw string map; every failure names its key"""

    def __init__(self, values: Mapping[str, str]):
        self._values = values

    def raw(self, key: str) -> str:
        value = self._values.get(key)
        if value is None:
            raise RuleConfigError(f"Missing rule key: {key}")
        return str(value).strip()

    def optional(self, key: str) -> Optional[str]:
        value = self._values.get(key)
        return None if value is None else str(value).strip()

    def get_int(self, key: str) -> int:
        raw = self.raw(key)
        try:
            return int(raw)
        except ValueError:
            raise RuleConfigError(f"Rule key {key} must be an integer, got {raw!r}")

    def get_float(self, key: str) -> float:
        raw = self.raw(key)
        try:
            return float(raw)
        except ValueError:
            raise RuleConfigError(f"Rule key {key} must be a number, got {raw!r}")

    def get_str(self, key: str) -> str:
        return self.raw(key)

    def get_list(self, key: str) -> Tuple[str, ...]:
        raw = self.optional(key) or ""
        return tuple(part.strip() for part in raw.split(",") if part.strip())

    def get_dates(self, key: str) -> FrozenSet[date]:
        days = set()
        for part in self.get_list(key):
            try:
                days.add(date.fromisoformat(part))
            except ValueError:
                raise RuleConfigError(f"Rule key {key} has an invalid date: {part!r}")
        return frozenset(days)

    def suffixes(self, prefix: str) -> List[str]:
        return sorted(k[len(prefix):] for k in self._values if k.startswith(prefix))

    def key_int(self, prefix: str, suffix: str) -> int:
        try:
            return int(suffix)
        except ValueError:
            raise RuleConfigError(f"Rule key {prefix}{suffix} must end with a session count")

    def get_grade(self, grade: InstructorGrade) -> dict:
        prefix = f"grades.{grade.value}."
        benefits = self.optional(prefix + "benefits") or ""
        return {
            "grade": grade,
            "name": self.optional(prefix + "name") or grade.value,
            "min_classes": self.get_int(prefix + "minClasses"),
            "min_rating": self.get_float(prefix + "minRating"),
            "fee_multiplier": self.get_float(prefix + "feeMultiplier"),
            "priority": self.get_int(prefix + "priority") if prefix + "priority" in self._values else 0,
            "benefits": tuple(b.strip() for b in benefits.split(BENEFIT_SEPARATOR) if b.strip()),
        }


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "Invalid rule configuration: " + "; ".join(parts)
