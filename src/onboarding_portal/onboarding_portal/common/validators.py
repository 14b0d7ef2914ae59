from __future__ import annotations

import re
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from ..core.constants import EMPLOYEE_ID_PATTERN
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError

E = TypeVar("E", bound=Enum)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_EMPLOYEE_ID_RE = re.compile(EMPLOYEE_ID_PATTERN)


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_email(value: Optional[str], field_name: str = "Email") -> str:
    email = require_non_empty(value, field_name).lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError(f"{field_name} is not a valid email address")
    return email


def optional_email(value: Optional[str], field_name: str = "Email") -> Optional[str]:
    if value is None or not str(value).strip():
        return None
    return require_email(value, field_name)


def require_employee_id(value: Any) -> str:
    employee_id = str(value or "").strip()
    if not _EMPLOYEE_ID_RE.match(employee_id):
        raise ValidationError("Employee ID must be exactly 6 digits")
    return employee_id


def is_valid_employee_id(value: Any) -> bool:
    return bool(_EMPLOYEE_ID_RE.match(str(value or "").strip()))


def require_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    try:
        return enum_cls(str(value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")


def optional_enum(enum_cls: Type[E], value: Any, field_name: str) -> Optional[E]:
    if value is None or not str(value).strip():
        return None
    return require_enum(enum_cls, value, field_name)


def is_blank(value: Any) -> bool:
    """True for None, whitespace-only strings and empty containers."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (dict, list, tuple)):
        return len(value) == 0
    return False


def require_hr(current_role: Role) -> None:
    if current_role != Role.HR:
        raise AuthorizationError("HR access required")
