"""Unit tests for InstructorMatcher ranking."""

from datetime import date

from app.models.enums import InstructorStatus, ProgramCategory
from app.models.instructor import Instructor
from app.models.request import SchoolRequest
from app.models.school import Program, School
from app.services.instructor_matcher import InstructorMatcher, MatchRequest


def _instructor(name, region, subjects, status=InstructorStatus.ACTIVE, days=None, radius=None):
    return Instructor(
        name=name,
        home_region=region,
        subjects=subjects,
        status=status,
        available_days=days or [],
        travel_radius_km=radius,
    )


def _matcher():
    return InstructorMatcher({"AI_CODING": ("AI", "코딩"), "SCIENCE": ("과학",)})


def test_region_match_first_then_pool_order():
    pool = [
        _instructor("A", "Busan", ["AI 교육"]),
        _instructor("B", "Seoul", ["코딩"]),
        _instructor("C", "Incheon", ["AI"]),
        _instructor("D", "Seoul", ["AI 로봇"]),
    ]
    ranked = _matcher().rank(MatchRequest(region="Seoul", category="AI_CODING"), pool)

    assert [c.instructor.name for c in ranked] == ["B", "D", "A", "C"]
    assert [c.rank for c in ranked] == [1, 2, 3, 4]
    assert [c.region_match for c in ranked] == [True, True, False, False]


def test_only_active_instructors():
    pool = [
        _instructor("A", "Seoul", ["AI"], status=InstructorStatus.ON_LEAVE),
        _instructor("B", "Seoul", ["AI"], status=InstructorStatus.PENDING),
        _instructor("C", "Busan", ["AI"]),
    ]
    ranked = _matcher().rank(MatchRequest(region="Seoul", category="AI_CODING"), pool)
    assert [c.instructor.name for c in ranked] == ["C"]


def test_subject_keywords_filter_by_substring():
    pool = [
        _instructor("A", "Seoul", ["생활과학"]),
        _instructor("B", "Seoul", ["음악"]),
        _instructor("C", "Seoul", []),
    ]
    ranked = _matcher().rank(MatchRequest(region="Seoul", category="SCIENCE"), pool)
    assert [c.instructor.name for c in ranked] == ["A"]
    assert ranked[0].matched_subjects == ("생활과학",)


def test_category_without_keywords_accepts_everyone():
    pool = [_instructor("A", "Busan", ["음악"]), _instructor("B", "Seoul", [])]
    ranked = _matcher().rank(MatchRequest(region="Seoul", category="CULTURE"), pool)
    assert [c.instructor.name for c in ranked] == ["B", "A"]
    assert all(c.subject_match for c in ranked)

    no_category = _matcher().rank(MatchRequest(region=None, category=None), pool)
    assert [c.instructor.name for c in no_category] == ["A", "B"]
    assert not any(c.region_match for c in no_category)


def test_empty_pool():
    assert _matcher().rank(MatchRequest(region="Seoul", category="AI_CODING"), []) == []


def test_availability_and_radius_are_reported_not_filtered():
    pool = [
        _instructor("A", "Seoul", ["AI"], days=["Tue"], radius=10),
        _instructor("B", "Seoul", ["AI"], days=["Mon"], radius=50),
    ]
    # 2026-10-19 is a Monday
    criteria = MatchRequest(region="Seoul", category="AI_CODING", desired_date=date(2026, 10, 19), distance_km=30)
    ranked = _matcher().rank(criteria, pool)

    assert [c.instructor.name for c in ranked] == ["A", "B"]
    assert ranked[0].available_on_date is False
    assert ranked[0].within_travel_radius is False
    assert ranked[1].available_on_date is True
    assert ranked[1].within_travel_radius is True


def test_rank_from_school_request():
    request = SchoolRequest(
        sessions=2,
        student_count=20,
        school=School(name="Hanbit Elementary", region="Daegu", distance_km=12.0),
        program=Program(name="AI Basics", category=ProgramCategory.AI_CODING),
    )
    pool = [_instructor("A", "Seoul", ["코딩"]), _instructor("B", "Daegu", ["AI"])]
    ranked = _matcher().rank(request, pool)
    assert [c.instructor.name for c in ranked] == ["B", "A"]


def test_rank_does_not_mutate_pool():
    pool = [_instructor("A", "Busan", ["AI"]), _instructor("B", "Seoul", ["AI"])]
    before = list(pool)
    _matcher().rank(MatchRequest(region="Seoul", category="AI_CODING"), pool)
    assert pool == before
