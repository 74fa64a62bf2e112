"""Unit tests for AutomationService."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidStatusTransition
from app.models.enums import (
    InstructorGrade,
    InstructorStatus,
    InstructorType,
    ProgramCategory,
    RequestStatus,
)
from app.models.instructor import Instructor
from app.models.quote import Quote
from app.models.request import SchoolRequest
from app.models.school import Program, School
from app.services.automation_service import AutomationOptions, AutomationService

SERVICE = "app.services.automation_service"


def _request(status=RequestStatus.SUBMITTED, budget=None, school=None):
    return SchoolRequest(
        id=uuid4(),
        status=status,
        sessions=2,
        student_count=20,
        school_budget=budget,
        desired_date=None,
        school=school or School(name="Hanbit Elementary", region="Seoul", distance_km=10.0),
        program=Program(name="AI Basics", category=ProgramCategory.AI_CODING),
    )


def _instructor():
    return Instructor(
        id=uuid4(),
        name="Kim",
        home_region="Seoul",
        subjects=["AI 코딩"],
        status=InstructorStatus.ACTIVE,
        instructor_type=InstructorType.INTERNAL,
        grade=InstructorGrade.LEVEL1,
    )


def _quote(request_id, instructor_id, calculation, valid_days, created_by=None):
    return Quote(
        quote_number="QT-202610-001",
        request_id=request_id,
        instructor_id=instructor_id,
        final_total=calculation.final_total,
    )


@pytest.fixture
def db():
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def services():
    """Patch the persistence seams; pricing and matching run for real"""
    with patch(f"{SERVICE}.RequestService.get_request", new_callable=AsyncMock) as get_request, \
            patch(f"{SERVICE}.RequestService.has_active_assignment", new_callable=AsyncMock) as has_active, \
            patch(f"{SERVICE}.RequestService.compare_and_set_status", new_callable=AsyncMock) as swap, \
            patch(f"{SERVICE}.InstructorService.list_active", new_callable=AsyncMock) as list_active, \
            patch(f"{SERVICE}.QuoteService.create_quote", new_callable=AsyncMock) as create_quote:
        has_active.return_value = False
        swap.return_value = True
        list_active.return_value = [_instructor()]
        create_quote.side_effect = lambda db, *args, **kwargs: _quote(*args, **kwargs)
        yield {
            "get_request": get_request,
            "has_active": has_active,
            "swap": swap,
            "list_active": list_active,
            "create_quote": create_quote,
        }


async def test_success_writes_quote_and_assignment(db, rules, services):
    request = _request()
    services["get_request"].return_value = request

    outcome = await AutomationService.process(db, rules, request.id)

    assert outcome.success is True
    assert outcome.quote.quote_number == "QT-202610-001"
    assert outcome.quote.final_total == 265650
    assert outcome.assignment is not None
    assert outcome.assignment.instructor_id == outcome.candidate.instructor.id
    services["swap"].assert_awaited_once_with(db, request.id, RequestStatus.SUBMITTED, RequestStatus.ASSIGNED)
    db.add.assert_called_once()
    db.commit.assert_awaited_once()
    db.rollback.assert_not_awaited()


async def test_quote_only_moves_request_to_quoted(db, rules, services):
    request = _request()
    services["get_request"].return_value = request

    outcome = await AutomationService.process(db, rules, request.id, AutomationOptions(auto_assign=False))

    assert outcome.success is True
    assert outcome.assignment is None
    services["swap"].assert_awaited_once_with(db, request.id, RequestStatus.SUBMITTED, RequestStatus.QUOTED)
    db.add.assert_not_called()
    db.commit.assert_awaited_once()


async def test_no_eligible_instructor_rolls_back(db, rules, services):
    request = _request()
    services["get_request"].return_value = request
    services["list_active"].return_value = []

    outcome = await AutomationService.process(db, rules, request.id)

    assert outcome.success is False
    assert outcome.error == "NO_ELIGIBLE_INSTRUCTOR"
    services["create_quote"].assert_not_awaited()
    db.rollback.assert_awaited_once()
    db.commit.assert_not_awaited()


async def test_budget_infeasible_writes_nothing(db, rules, services):
    request = _request(budget=100000)
    services["get_request"].return_value = request

    outcome = await AutomationService.process(db, rules, request.id)

    assert outcome.success is False
    assert outcome.error == "BUDGET_INFEASIBLE"
    services["create_quote"].assert_not_awaited()
    services["swap"].assert_not_awaited()
    db.rollback.assert_awaited_once()


async def test_budget_ignored_when_adjustment_disabled(db, rules, services):
    request = _request(budget=100000)
    services["get_request"].return_value = request

    outcome = await AutomationService.process(
        db, rules, request.id, AutomationOptions(adjust_to_budget=False)
    )

    assert outcome.success is True
    assert outcome.quote.final_total == 265650


async def test_lost_status_race_to_another_assignment(db, rules, services):
    request = _request()
    services["get_request"].return_value = request
    services["swap"].return_value = False
    services["has_active"].return_value = True

    outcome = await AutomationService.process(db, rules, request.id)

    assert outcome.success is False
    assert outcome.error == "REQUEST_ALREADY_ASSIGNED"
    db.add.assert_not_called()
    db.rollback.assert_awaited_once()
    db.commit.assert_not_awaited()


async def test_lost_status_race_without_assignment_is_conflict(db, rules, services):
    request = _request()
    services["get_request"].return_value = request
    services["swap"].return_value = False

    outcome = await AutomationService.process(db, rules, request.id)

    assert outcome.error == "CONCURRENCY_CONFLICT"
    db.rollback.assert_awaited_once()


async def test_lost_status_race_writes_no_quote(db, rules, services):
    request = _request()
    services["get_request"].return_value = request
    services["swap"].return_value = False
    services["has_active"].return_value = True

    outcome = await AutomationService.process(db, rules, request.id)

    assert outcome.error == "REQUEST_ALREADY_ASSIGNED"
    services["create_quote"].assert_not_awaited()


def _unique_violation(constraint):
    return IntegrityError(
        "INSERT INTO quotes ...",
        {},
        Exception(f'duplicate key value violates unique constraint "{constraint}"'),
    )


@pytest.mark.parametrize(
    "constraint, has_active, expected",
    [
        ("quotes_request_id_key", True, "REQUEST_ALREADY_ASSIGNED"),
        ("quotes_request_id_key", False, "CONCURRENCY_CONFLICT"),
        ("ix_quotes_quote_number", False, "CONCURRENCY_CONFLICT"),
    ],
)
async def test_quote_unique_violation_reports_lost_race(db, rules, services, constraint, has_active, expected):
    request = _request()
    services["get_request"].return_value = request
    services["has_active"].return_value = has_active
    services["create_quote"].side_effect = _unique_violation(constraint)

    outcome = await AutomationService.process(db, rules, request.id)

    assert outcome.success is False
    assert outcome.error == expected
    db.rollback.assert_awaited_once()
    db.commit.assert_not_awaited()
    # Checked again after the rollback
    services["has_active"].assert_awaited_once_with(db, request.id)


async def test_unique_violation_on_commit_reports_lost_race(db, rules, services):
    request = _request()
    services["get_request"].return_value = request
    services["has_active"].return_value = True
    db.commit.side_effect = _unique_violation("uq_instructor_assignments_active_request")

    outcome = await AutomationService.process(db, rules, request.id)

    assert outcome.error == "REQUEST_ALREADY_ASSIGNED"
    db.rollback.assert_awaited_once()


@pytest.mark.parametrize(
    "school, distance_km, transport_fee",
    [
        # Preset distance, 0_20 band
        (School(name="Hanbit Elementary", region="Seoul", distance_km=10.0), 10.0, 0),
        # 0.45 degrees north of headquarters, 40_60 band
        (School(name="Andong High", region="Seoul", latitude=36.8056 + 0.45, longitude=128.6239), 50.0, 25000),
        # Nothing known, default 20_40 band
        (School(name="Unknown", region="Seoul"), None, 15000),
    ],
)
async def test_school_distance_resolution(db, rules, services, school, distance_km, transport_fee):
    request = _request(school=school)
    services["get_request"].return_value = request

    outcome = await AutomationService.process(db, rules, request.id)

    assert outcome.success is True
    assert outcome.assignment.distance_km == distance_km
    assert outcome.assignment.transport_fee == transport_fee


async def test_unique_index_violation_is_already_assigned(db, rules, services):
    request = _request()
    services["get_request"].return_value = request
    db.flush.side_effect = IntegrityError(
        "INSERT INTO instructor_assignments ...",
        {},
        Exception('duplicate key value violates unique constraint "uq_instructor_assignments_active_request"'),
    )

    outcome = await AutomationService.process(db, rules, request.id)

    assert outcome.success is False
    assert outcome.error == "REQUEST_ALREADY_ASSIGNED"
    db.rollback.assert_awaited_once()
    db.commit.assert_not_awaited()


async def test_other_integrity_errors_propagate(db, rules, services):
    request = _request()
    services["get_request"].return_value = request
    db.flush.side_effect = IntegrityError("INSERT ...", {}, Exception("violates foreign key constraint"))

    with pytest.raises(IntegrityError):
        await AutomationService.process(db, rules, request.id)
    db.rollback.assert_awaited_once()


async def test_already_assigned_request(db, rules, services):
    request = _request(status=RequestStatus.ASSIGNED)
    services["get_request"].return_value = request
    services["has_active"].return_value = True

    outcome = await AutomationService.process(db, rules, request.id)

    assert outcome.error == "REQUEST_ALREADY_ASSIGNED"
    services["list_active"].assert_not_awaited()


async def test_request_past_submitted_is_invalid(db, rules, services):
    request = _request(status=RequestStatus.COMPLETED)
    services["get_request"].return_value = request

    with pytest.raises(InvalidStatusTransition):
        await AutomationService.process(db, rules, request.id)
    db.rollback.assert_awaited_once()
    db.commit.assert_not_awaited()
