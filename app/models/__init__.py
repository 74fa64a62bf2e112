"""Models Package - Export all models for easy imports"""

from app.models.base import BaseModel
from app.models.enums import *
from app.models.user import User
from app.models.school import School, Program
from app.models.instructor import Instructor
from app.models.request import SchoolRequest
from app.models.quote import Quote
from app.models.assignment import InstructorAssignment
from app.models.payment import Payment
from app.models.setting import Setting


__all__ = [
    # Base classes
    "BaseModel",

    # Accounts
    "User",

    # Schools & Programs
    "School",
    "Program",

    # Instructors
    "Instructor",

    # Requests, Quotes & Assignments
    "SchoolRequest",
    "Quote",
    "InstructorAssignment",

    # Payments
    "Payment",

    # Settings
    "Setting",
]
