class DomainError(Exception):
    """Base exception for business rule violations.

    `code` is a stable tag callers can branch on; `http_status` is what the
    Flask layer answers with.
    """

    code = "domain_error"
    http_status = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"


class AuthenticationError(DomainError):
    """Raised when login credentials or the session token are invalid."""

    code = "authentication_failed"
    http_status = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "forbidden"
    http_status = 403


class NotFoundError(DomainError):
    code = "not_found"
    http_status = 404


class GuardViolation(DomainError):
    """A lifecycle or uniqueness guard refused the operation."""

    code = "guard_violation"
    http_status = 409


class InvalidTransitionError(GuardViolation):
    code = "invalid_transition"


class AlreadyOnboardedError(GuardViolation):
    code = "already_onboarded"


class NotOnboardedError(GuardViolation):
    code = "not_onboarded"


class DuplicateAttendanceError(GuardViolation):
    code = "attendance_already_marked"


class EmailTakenError(GuardViolation):
    code = "email_taken"


class EmployeeIdTakenError(GuardViolation):
    code = "employee_id_taken"


class AlreadyInRosterError(GuardViolation):
    code = "already_in_roster"


class ManagerNotInRosterError(GuardViolation):
    code = "manager_not_in_roster"


class ManagerInUseError(GuardViolation):
    code = "manager_in_use"


class NotificationError(DomainError):
    """Raised when an outbound email could not be delivered."""

    code = "notification_failed"
    http_status = 502
