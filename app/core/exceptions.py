"""Domain exceptions for the compensation and assignment rule engine.

Every error carries a stable ``code`` so API clients and the automation
outcome can report it without parsing messages.
"""

from typing import Optional


class EngineError(Exception):
    """Base exception for rule engine failures"""

    code = "ENGINE_ERROR"
    status_code = 400

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


# Input errors
class ValidationError(EngineError):
    """Input data is malformed or missing"""

    code = "VALIDATION_ERROR"
    status_code = 400


class RequestNotFound(ValidationError):
    """The referenced record does not exist"""

    code = "NOT_FOUND"
    status_code = 404


class InvalidStatusTransition(ValidationError):
    """The record is not in a state that allows this action"""

    code = "INVALID_STATUS"
    status_code = 409


# Configuration gaps
class RuleConfigError(EngineError):
    """Rule configuration is missing or malformed"""

    code = "RULE_CONFIG_ERROR"
    status_code = 422


class UnknownSessionCount(EngineError):
    """No session fee is configured at or below the requested session count"""

    code = "UNKNOWN_SESSION_COUNT"
    status_code = 422

    def __init__(self, sessions: int):
        super().__init__(f"No session fee configured at or below {sessions} sessions")
        self.sessions = sessions


class UnknownGrade(EngineError):
    """Grade is not configured for the instructor type"""

    code = "UNKNOWN_GRADE"
    status_code = 422

    def __init__(self, instructor_type, grade):
        super().__init__(f"Grade {grade!s} is not defined for {instructor_type!s} instructors")
        self.instructor_type = instructor_type
        self.grade = grade


# Expected business outcomes of automation
class AutomationError(EngineError):
    """Automation could not complete"""

    code = "AUTOMATION_ERROR"
    status_code = 409


class NoEligibleInstructor(AutomationError):
    """No active instructor matches the request"""

    code = "NO_ELIGIBLE_INSTRUCTOR"


class BudgetInfeasible(AutomationError):
    """The school budget cannot cover the lowest permitted price"""

    code = "BUDGET_INFEASIBLE"

    def __init__(self, budget: int, lowest_total: int):
        super().__init__(
            f"Budget {budget:,} is below the lowest achievable total {lowest_total:,}"
        )
        self.budget = budget
        self.lowest_total = lowest_total


class RequestAlreadyAssigned(AutomationError):
    """The request already has an active instructor assignment"""

    code = "REQUEST_ALREADY_ASSIGNED"


class ConcurrencyConflict(AutomationError):
    """The request changed concurrently; re-fetch before retrying"""

    code = "CONCURRENCY_CONFLICT"
