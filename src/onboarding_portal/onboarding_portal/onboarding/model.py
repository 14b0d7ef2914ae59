from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..core.enums import DocumentType, EmployeeType, LifecycleState, ReviewStatus
from ..lifecycle.transitions import review_status

JSON_FIELDS = (
    "personal_info",
    "bank_info",
    "education_info",
    "tech_certificates",
    "work_experience",
    "contract_period",
)
SCALAR_FIELDS = ("aadhar_number", "pan_number", "passport_number", "photo_url", "join_date")
FORM_FIELDS = JSON_FIELDS + SCALAR_FIELDS

BASE_REQUIRED_FIELDS = ("personal_info", "bank_info", "aadhar_number", "pan_number", "education_info")
REQUIRED_FIELDS_BY_TYPE = {
    EmployeeType.INTERN: BASE_REQUIRED_FIELDS,
    EmployeeType.CONTRACT: BASE_REQUIRED_FIELDS + ("work_experience", "contract_period"),
    EmployeeType.FULLTIME: BASE_REQUIRED_FIELDS + ("join_date", "passport_number"),
}
OPTIONAL_FIELDS = ("tech_certificates", "photo_url")

REQUIRED_DOCUMENTS = (DocumentType.AADHAR, DocumentType.PAN)

DESCRIPTIONS = {
    EmployeeType.INTERN: (
        "Intern employees need to provide basic personal, bank, and identity information "
        "along with education details."
    ),
    EmployeeType.CONTRACT: (
        "Contract employees need to provide all basic information plus work experience "
        "and contract period details."
    ),
    EmployeeType.FULLTIME: (
        "Full-time employees need to provide all basic information plus join date and passport details."
    ),
}


@dataclass(frozen=True)
class OnboardingForm:
    """Domain entity: an employee's onboarding form (one per user)."""

    user_id: int
    personal_info: Any = None
    bank_info: Any = None
    education_info: Any = None
    tech_certificates: Any = None
    work_experience: Any = None
    contract_period: Any = None
    aadhar_number: Optional[str] = None
    pan_number: Optional[str] = None
    passport_number: Optional[str] = None
    photo_url: Optional[str] = None
    join_date: Optional[date] = None
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def values(self) -> dict:
        return {name: getattr(self, name) for name in FORM_FIELDS}

    def to_dict(self) -> dict:
        out = self.values()
        out["user_id"] = self.user_id
        out["join_date"] = self.join_date.isoformat() if self.join_date else None
        out["submitted_at"] = self.submitted_at.isoformat() if self.submitted_at else None
        out["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return out


@dataclass(frozen=True)
class Document:
    document_id: int
    user_id: int
    document_type: DocumentType
    original_name: str
    file_path: str
    file_size: int
    mime_type: str
    is_required: bool
    uploaded_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.document_id,
            "document_type": self.document_type.value,
            "original_name": self.original_name,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "is_required": self.is_required,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }


@dataclass(frozen=True)
class UploadedFile:
    """An incoming upload, detached from the web framework."""

    document_type: str
    filename: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class NewDocument:
    document_type: DocumentType
    original_name: str
    file_path: str
    file_size: int
    mime_type: str
    is_required: bool


@dataclass(frozen=True)
class FormRequirements:
    employee_type: EmployeeType
    required: Sequence[str]
    optional: Sequence[str]
    documents: Sequence[str]
    required_documents: Sequence[str]
    description: str

    def to_dict(self) -> dict:
        return {
            "employee_type": self.employee_type.value,
            "required": list(self.required),
            "optional": list(self.optional),
            "documents": list(self.documents),
            "required_documents": list(self.required_documents),
            "description": self.description,
        }


@dataclass(frozen=True)
class FormStatus:
    submitted: bool
    review_status: ReviewStatus
    completed: bool
    progress: int
    missing_fields: Sequence[str] = field(default_factory=tuple)
    missing_documents: Sequence[str] = field(default_factory=tuple)
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "submitted": self.submitted,
            "review_status": self.review_status.value,
            "completed": self.completed,
            "progress": self.progress,
            "missing_fields": list(self.missing_fields),
            "missing_documents": list(self.missing_documents),
            "message": self.message,
        }


@dataclass(frozen=True)
class FormSummary:
    """Read-model row for the HR forms list."""

    user_id: int
    name: str
    email: str
    employee_type: Optional[EmployeeType]
    department: Optional[str]
    lifecycle_state: LifecycleState
    submitted_at: Optional[datetime]
    updated_at: Optional[datetime]
    document_count: int = 0

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "employee_type": self.employee_type.value if self.employee_type else None,
            "department": self.department,
            "lifecycle_state": self.lifecycle_state.value,
            "review_status": review_status(self.lifecycle_state).value,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "document_count": self.document_count,
        }
