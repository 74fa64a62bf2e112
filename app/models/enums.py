"""Centralized Enum Definitions"""

import enum


# Domain 1: Schools & Programs
class ProgramCategory(str, enum.Enum):
    """Program categories used for instructor subject matching"""
    AI_CODING = "AI_CODING"
    MAKER = "MAKER"
    SCIENCE = "SCIENCE"
    CAREER = "CAREER"
    FOURTHIND = "FOURTHIND"
    CULTURE = "CULTURE"
    STEAM = "STEAM"
    EXPERIENCE = "EXPERIENCE"
    OTHER = "OTHER"


class RequestStatus(str, enum.Enum):
    """School class request lifecycle"""
    SUBMITTED = "SUBMITTED"
    REVIEWING = "REVIEWING"
    APPROVED = "APPROVED"
    QUOTED = "QUOTED"
    ASSIGNED = "ASSIGNED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Domain 2: Instructors
class InstructorStatus(str, enum.Enum):
    """Instructor account status"""
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ON_LEAVE = "ON_LEAVE"
    TERMINATED = "TERMINATED"
    REJECTED = "REJECTED"


class InstructorType(str, enum.Enum):
    """Employment type; decides which grade family applies"""
    INTERNAL = "INTERNAL"
    EXTERNAL = "EXTERNAL"


class InstructorGrade(str, enum.Enum):
    """Instructor tiers: four internal levels and three external tiers"""
    LEVEL1 = "LEVEL1"
    LEVEL2 = "LEVEL2"
    LEVEL3 = "LEVEL3"
    LEVEL4 = "LEVEL4"
    EXTERNAL_BASIC = "EXTERNAL_BASIC"
    EXTERNAL_PREMIUM = "EXTERNAL_PREMIUM"
    EXTERNAL_VIP = "EXTERNAL_VIP"

    @property
    def instructor_type(self) -> "InstructorType":
        if self.name.startswith("EXTERNAL_"):
            return InstructorType.EXTERNAL
        return InstructorType.INTERNAL


INTERNAL_GRADES = (
    InstructorGrade.LEVEL1,
    InstructorGrade.LEVEL2,
    InstructorGrade.LEVEL3,
    InstructorGrade.LEVEL4,
)
EXTERNAL_GRADES = (
    InstructorGrade.EXTERNAL_BASIC,
    InstructorGrade.EXTERNAL_PREMIUM,
    InstructorGrade.EXTERNAL_VIP,
)


class DayOfWeek(str, enum.Enum):
    """Days of the week for instructor availability"""
    MONDAY = "Mon"
    TUESDAY = "Tue"
    WEDNESDAY = "Wed"
    THURSDAY = "Thu"
    FRIDAY = "Fri"
    SATURDAY = "Sat"
    SUNDAY = "Sun"

    @classmethod
    def from_weekday(cls, weekday: int) -> "DayOfWeek":
        """Map date.weekday() (Monday == 0) to a DayOfWeek"""
        return list(cls)[weekday]


# Domain 3: Quotes & Assignments
class QuoteStatus(str, enum.Enum):
    """Quote status"""
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class AssignmentStatus(str, enum.Enum):
    """Instructor assignment status"""
    PROPOSED = "PROPOSED"
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    DECLINED = "DECLINED"


# Assignments in these states no longer hold the request
INACTIVE_ASSIGNMENT_STATUSES = (AssignmentStatus.CANCELLED, AssignmentStatus.DECLINED)


# Domain 4: Payments
class PaymentStatus(str, enum.Enum):
    """Instructor payment status"""
    PENDING = "PENDING"
    CALCULATED = "CALCULATED"
    APPROVED = "APPROVED"
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class TransportBand(str, enum.Enum):
    """Distance bands for the transport fee table"""
    KM_0_20 = "0_20"
    KM_20_40 = "20_40"
    KM_40_60 = "40_60"
    KM_60_80 = "60_80"
    KM_80_PLUS = "80_plus"


class SpecialAllowance(str, enum.Enum):
    """Flat add-on fees for special class situations"""
    WEEKEND = "weekend"
    HOLIDAY = "holiday"
    EMERGENCY = "emergency"
    MULTIPLE_CLASSES = "multipleClasses"
