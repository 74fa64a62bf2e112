"""Integration tests: candidates, automation and manual assignment endpoints."""

from datetime import datetime
from unittest.mock import AsyncMock, patch
from uuid import uuid4

from httpx import AsyncClient

from app.core.exceptions import NoEligibleInstructor, RequestAlreadyAssigned, RequestNotFound
from app.models.assignment import InstructorAssignment
from app.models.enums import (
    AssignmentStatus,
    InstructorGrade,
    InstructorStatus,
    InstructorType,
    ProgramCategory,
    RequestStatus,
)
from app.models.instructor import Instructor
from app.models.request import SchoolRequest
from app.models.school import Program, School
from app.services.automation_service import AutomationOutcome

ENDPOINT = "app.api.v1.endpoints.school_requests"


def _instructor(name, region, subjects):
    return Instructor(
        id=uuid4(),
        name=name,
        home_region=region,
        subjects=subjects,
        status=InstructorStatus.ACTIVE,
        instructor_type=InstructorType.INTERNAL,
        grade=InstructorGrade.LEVEL2,
        available_days=[],
    )


async def test_candidates_ranked(async_client: AsyncClient, api_base: str, override_admin, override_rules, override_db):
    request = SchoolRequest(
        id=uuid4(),
        status=RequestStatus.SUBMITTED,
        sessions=2,
        student_count=20,
        school=School(name="Hanbit Elementary", region="Gwangju"),
        program=Program(name="Science Lab", category=ProgramCategory.SCIENCE),
    )
    pool = [
        _instructor("A", "Seoul", ["과학 실험"]),
        _instructor("B", "Gwangju", ["미술"]),
        _instructor("C", "Gwangju", ["생명과학"]),
    ]
    with patch(f"{ENDPOINT}.RequestService.get_request", new_callable=AsyncMock, return_value=request), \
            patch(f"{ENDPOINT}.InstructorService.list_active", new_callable=AsyncMock, return_value=pool):
        resp = await async_client.get(f"{api_base}/requests/{request.id}/candidates")

    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert [c["name"] for c in data] == ["C", "A"]
    assert data[0]["region_match"] is True
    assert data[0]["matched_subjects"] == ["생명과학"]


async def test_candidates_for_missing_request(
    async_client: AsyncClient, api_base: str, override_admin, override_rules, override_db
):
    request_id = uuid4()
    with patch(
        f"{ENDPOINT}.RequestService.get_request",
        new_callable=AsyncMock,
        side_effect=RequestNotFound(f"School request {request_id} not found"),
    ):
        resp = await async_client.get(f"{api_base}/requests/{request_id}/candidates")

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"


async def test_automation_failure_is_reported_in_body(
    async_client: AsyncClient, api_base: str, override_admin, override_rules, override_db
):
    outcome = AutomationOutcome.failure(NoEligibleInstructor("No active instructor matches request"))
    with patch(f"{ENDPOINT}.AutomationService.process", new_callable=AsyncMock, return_value=outcome) as process:
        resp = await async_client.post(f"{api_base}/requests/{uuid4()}/automate", json={"auto_assign": False})

    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["success"] is False
    assert data["error"] == "NO_ELIGIBLE_INSTRUCTOR"
    assert data["quote"] is None
    options = process.await_args.args[3]
    assert options.auto_assign is False
    assert options.adjust_to_budget is True
    assert process.await_args.kwargs["actor_id"] == override_admin.id


async def test_manual_assignment(async_client: AsyncClient, api_base: str, override_admin, override_rules, override_db):
    request_id, instructor_id = uuid4(), uuid4()
    assignment = InstructorAssignment(
        id=uuid4(),
        request_id=request_id,
        instructor_id=instructor_id,
        status=AssignmentStatus.PROPOSED,
        distance_km=12.5,
        transport_fee=0,
        created_at=datetime(2026, 10, 19, 9, 30),
    )
    with patch(f"{ENDPOINT}.AssignmentService.assign_manually", new_callable=AsyncMock, return_value=assignment):
        resp = await async_client.post(
            f"{api_base}/requests/{request_id}/assign",
            json={"instructor_id": str(instructor_id), "scheduled_time": "10:00-12:00"},
        )

    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["instructor_id"] == str(instructor_id)
    assert data["status"] == "PROPOSED"


async def test_manual_assignment_conflict(
    async_client: AsyncClient, api_base: str, override_admin, override_rules, override_db
):
    request_id = uuid4()
    with patch(
        f"{ENDPOINT}.AssignmentService.assign_manually",
        new_callable=AsyncMock,
        side_effect=RequestAlreadyAssigned(f"Request {request_id} already has an active assignment"),
    ):
        resp = await async_client.post(
            f"{api_base}/requests/{request_id}/assign",
            json={"instructor_id": str(uuid4())},
        )

    assert resp.status_code == 409
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "REQUEST_ALREADY_ASSIGNED"
