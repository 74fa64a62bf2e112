"""Instructor Matcher - rank active instructors for a school request

Pure: no I/O, no mutation of the request or the pool.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional, Sequence, Tuple

from app.core.rules import RuleConfig
from app.models.enums import DayOfWeek, InstructorStatus
from app.utils.geo import distance_km_for_school


@dataclass(frozen=True)
class MatchRequest:
    """The parts of a school request the matcher looks at"""
    region: Optional[str]
    category: Optional[str]
    desired_date: Optional[date] = None
    distance_km: Optional[float] = None

    @classmethod
    def from_request(cls, request: Any) -> "MatchRequest":
        school = getattr(request, "school", None)
        program = getattr(request, "program", None)
        category = getattr(program, "category", None) if program is not None else None
        return cls(
            region=getattr(school, "region", None),
            category=getattr(category, "value", category),
            desired_date=getattr(request, "desired_date", None),
            distance_km=distance_km_for_school(school),
        )


@dataclass(frozen=True)
class RankedCandidate:
    instructor: Any
    rank: int
    region_match: bool
    subject_match: bool
    matched_subjects: Tuple[str, ...]
    available_on_date: Optional[bool]
    within_travel_radius: Optional[bool]
    reasons: Tuple[str, ...]


class InstructorMatcher:
    """
    Filter: ACTIVE status and subject-category keyword match.
    Order: home region equal to the school region first; otherwise pool order.
    Availability and travel radius are reported, never used to filter or sort.
    """

    def __init__(self, category_keywords: Mapping[str, Sequence[str]]):
        self.category_keywords = {k: tuple(v) for k, v in category_keywords.items()}

    @classmethod
    def from_rules(cls, rules: RuleConfig) -> "InstructorMatcher":
        return cls(rules.category_keywords)

    def keywords_for(self, category: Optional[str]) -> Tuple[str, ...]:
        if not category:
            return ()
        return self.category_keywords.get(category, ())

    def subject_matches(self, instructor: Any, keywords: Sequence[str]) -> Tuple[str, ...]:
        """Subjects containing at least one keyword (case-sensitive substring)"""
        subjects = instructor.subjects or []
        return tuple(s for s in subjects if any(k in s for k in keywords))

    def rank(self, request: Any, pool: Sequence[Any]):
        """
        Rank candidates for a request.

        Args:
            request: a MatchRequest or a SchoolRequest with school/program loaded
            pool: instructors in the order they should keep on ties

        Returns:
            List of RankedCandidate, region matches first
        """
        criteria = request if isinstance(request, MatchRequest) else MatchRequest.from_request(request)
        keywords = self.keywords_for(criteria.category)
        weekday = (
            DayOfWeek.from_weekday(criteria.desired_date.weekday()).value
            if criteria.desired_date is not None
            else None
        )

        candidates = []
        for instructor in pool:
            if instructor.status != InstructorStatus.ACTIVE:
                continue
            matched: Tuple[str, ...] = ()
            if keywords:
                matched = self.subject_matches(instructor, keywords)
                if not matched:
                    continue
            candidates.append(self._annotate(instructor, criteria, keywords, matched, weekday))

        # sorted() is stable, so ties keep pool order
        ordered = sorted(candidates, key=lambda c: 0 if c["region_match"] else 1)
        return [RankedCandidate(rank=i + 1, **c) for i, c in enumerate(ordered)]

    @staticmethod
    def _annotate(instructor, criteria, keywords, matched, weekday) -> dict:
        reasons = []
        region_match = bool(criteria.region) and instructor.home_region == criteria.region
        if region_match:
            reasons.append(f"Same region ({criteria.region})")
        if matched:
            reasons.append("Subjects: " + ", ".join(matched))
        elif not keywords:
            reasons.append("No subject requirement for this program")

        available = None
        if weekday is not None:
            available = weekday in (instructor.available_days or [])
            reasons.append(f"Available on {weekday}" if available else f"Not listed as available on {weekday}")

        within_radius = None
        if criteria.distance_km is not None and instructor.travel_radius_km is not None:
            within_radius = criteria.distance_km <= instructor.travel_radius_km
            if not within_radius:
                reasons.append(
                    f"School is {criteria.distance_km}km away, beyond travel radius {instructor.travel_radius_km}km"
                )

        return {
            "instructor": instructor,
            "region_match": region_match,
            "subject_match": bool(matched) or not keywords,
            "matched_subjects": matched,
            "available_on_date": available,
            "within_travel_radius": within_radius,
            "reasons": tuple(reasons),
        }
