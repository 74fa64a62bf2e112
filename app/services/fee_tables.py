"""Session and transport fee lookup tables"""

import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from app.core.exceptions import UnknownSessionCount, ValidationError
from app.core.rules import RuleConfig
from app.models.enums import TransportBand

# Right-closed upper bounds: [0,20], (20,40], (40,60], (60,80], (80,inf)
_BAND_UPPER_BOUNDS: Tuple[Tuple[TransportBand, float], ...] = (
    (TransportBand.KM_0_20, 20),
    (TransportBand.KM_20_40, 40),
    (TransportBand.KM_40_60, 60),
    (TransportBand.KM_60_80, 80),
    (TransportBand.KM_80_PLUS, math.inf),
)


@dataclass(frozen=True)
class TransportFee:
    """Result of a transport fee lookup.

    ``computed`` is False when the distance was unknown; ``fee`` is then 0
    (or the fee of an explicitly requested fallback band).
    """
    fee: int
    band: Optional[TransportBand]
    computed: bool
    distance_km: Optional[float] = None


class TransportFeeTable:
    """Flat fee per distance band. Bands are looked up, never assumed monotonic."""

    def __init__(self, fees: Mapping[TransportBand, int]):
        missing = [band.value for band in TransportBand if band not in fees]
        if missing:
            raise ValidationError(f"Transport fee table is missing bands: {', '.join(missing)}")
        self._fees = dict(fees)

    @classmethod
    def from_rules(cls, rules: RuleConfig) -> "TransportFeeTable":
        return cls(rules.transport_fees)

    @staticmethod
    def band_for(distance_km: float) -> TransportBand:
        if distance_km is None or math.isnan(distance_km) or distance_km < 0:
            raise ValidationError(f"Distance must be a non-negative number of km, got {distance_km!r}")
        for band, upper in _BAND_UPPER_BOUNDS:
            if distance_km <= upper:
                return band
        return TransportBand.KM_80_PLUS

    def fee_for_band(self, band: TransportBand) -> int:
        return self._fees[TransportBand(band)]

    def lookup(
        self,
        distance_km: Optional[float],
        fallback_band: Optional[TransportBand] = None,
    ) -> TransportFee:
        if distance_km is None:
            if fallback_band is not None:
                return TransportFee(fee=self.fee_for_band(fallback_band), band=TransportBand(fallback_band), computed=False)
            return TransportFee(fee=0, band=None, computed=False)
        band = self.band_for(distance_km)
        return TransportFee(fee=self._fees[band], band=band, computed=True, distance_km=distance_km)

    def is_non_decreasing(self) -> bool:
        """True when farther bands never cost less than nearer ones"""
        fees = [self._fees[band] for band, _ in _BAND_UPPER_BOUNDS]
        return all(a <= b for a, b in zip(fees, fees[1:]))


class SessionFeeTable:
    """
    Base fee by session count from a sparse table.
    Missing counts fall back to the nearest configured count below;
    nothing is extrapolated.
    """

    def __init__(self, fees: Mapping[int, int]):
        self._fees = dict(fees)
        self._counts = sorted(self._fees)

    @classmethod
    def from_rules(cls, rules: RuleConfig) -> "SessionFeeTable":
        return cls(rules.session_fees)

    def resolve_count(self, sessions: int) -> int:
        """Configured session count that prices ``sessions``"""
        if isinstance(sessions, bool) or not isinstance(sessions, int) or sessions < 1:
            raise ValidationError(f"Session count must be a positive integer, got {sessions!r}")
        index = bisect_right(self._counts, sessions)
        if index == 0:
            raise UnknownSessionCount(sessions)
        return self._counts[index - 1]

    def lookup(self, sessions: int) -> int:
        return self._fees[self.resolve_count(sessions)]
