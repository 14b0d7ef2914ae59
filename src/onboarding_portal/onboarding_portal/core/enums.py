from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    HR = "hr"
    EMPLOYEE = "employee"


class EmployeeType(str, Enum):
    INTERN = "intern"
    CONTRACT = "contract"
    FULLTIME = "fulltime"


class LifecycleState(str, Enum):
    """Single authoritative onboarding state stored on the user row.

    The boolean flags (form_submitted, hr_approved, onboarded) and the legacy
    coarse status are read-only projections of this value.
    """

    NEW_ACCOUNT = "new_account"
    FORM_SUBMITTED = "form_submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    DELETED = "deleted"


class ReviewStatus(str, Enum):
    """Projected review status of an onboarding form."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DELETED = "deleted"


class RosterStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    WFH = "wfh"
    LEAVE = "leave"


class CalendarStatus(str, Enum):
    """Per-day status shown on the attendance calendar (computed, never stored)."""

    WEEKEND = "weekend"
    NOT_MARKED = "not_marked"
    PRESENT = "present"
    WFH = "wfh"
    LEAVE = "leave"


class DocumentType(str, Enum):
    AADHAR = "aadhar"
    PAN = "pan"
    TENTH_MARKSHEET = "tenth_marksheet"
    TWELFTH_MARKSHEET = "twelfth_marksheet"
    DEGREE_CERTIFICATE = "degree_certificate"
    PROFILE_PHOTO = "profile_photo"


class NotifyFailurePolicy(str, Enum):
    """What to do when an outbound email cannot be delivered."""

    LOG = "log"
    RAISE = "raise"


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"
    XLSX = "xlsx"
