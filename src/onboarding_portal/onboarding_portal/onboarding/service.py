from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import parse_optional_date
from ..common.validators import is_blank, optional_enum, require_enum, require_hr
from ..core.enums import DocumentType, EmployeeType, LifecycleState, Role
from ..core.exceptions import NotFoundError, ValidationError
from ..lifecycle import transitions
from ..users.model import User
from ..users.repository import UserRepository
from .model import (
    DESCRIPTIONS,
    FORM_FIELDS,
    OPTIONAL_FIELDS,
    REQUIRED_DOCUMENTS,
    REQUIRED_FIELDS_BY_TYPE,
    Document,
    FormRequirements,
    FormStatus,
    FormSummary,
    NewDocument,
    OnboardingForm,
    UploadedFile,
)
from .repository import OnboardingRepository
from .storage import DocumentStorage

logger = logging.getLogger(__name__)

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def normalize_form_keys(payload: Mapping[str, Any]) -> dict:
    """Accept both snake_case and camelCase field names (`personalInfo` -> `personal_info`)."""
    out: dict = {}
    for key, value in (payload or {}).items():
        snake = _CAMEL_RE.sub("_", str(key)).lower()
        if snake in FORM_FIELDS:
            out[snake] = value
    return out


def _humanize(field_name: str) -> str:
    return field_name.replace("_", " ")


@dataclass(frozen=True)
class FormDetail:
    user: User
    form: OnboardingForm
    documents: Sequence[Document]

    def to_dict(self) -> dict:
        return {
            "employee": self.user.to_public_dict(),
            "form": self.form.to_dict(),
            "review_status": transitions.review_status(self.user.lifecycle_state).value,
            "documents": [d.to_dict() for d in self.documents],
        }


class OnboardingService:
    """Use case: employee onboarding form and documents."""

    def __init__(self, users: UserRepository, forms: OnboardingRepository, storage: DocumentStorage):
        self._users = users
        self._forms = forms
        self._storage = storage

    def requirements(self, employee_type: Any) -> FormRequirements:
        emp_type = require_enum(EmployeeType, employee_type, "Employee type")
        return FormRequirements(
            employee_type=emp_type,
            required=REQUIRED_FIELDS_BY_TYPE[emp_type],
            optional=OPTIONAL_FIELDS,
            documents=tuple(d.value for d in DocumentType),
            required_documents=tuple(d.value for d in REQUIRED_DOCUMENTS),
            description=DESCRIPTIONS[emp_type],
        )

    def requirements_for_user(self, user_id: int) -> FormRequirements:
        user = self._require_employee(user_id)
        return self.requirements(user.employee_type.value if user.employee_type else None)

    def submit_form(
        self,
        *,
        user_id: int,
        payload: Mapping[str, Any],
        uploads: Sequence[UploadedFile] = (),
    ) -> OnboardingForm:
        user = self._require_employee(user_id)
        transitions.ensure_can_submit(user.lifecycle_state)

        values = self._clean_values(normalize_form_keys(payload))
        required = REQUIRED_FIELDS_BY_TYPE[user.employee_type]
        for name in required:
            if is_blank(values.get(name)):
                raise ValidationError(f"{_humanize(name)} is required for {user.employee_type.value} employees")

        for upload in uploads:
            self._storage.validate(upload)

        stored: list[NewDocument] = []
        try:
            for upload in uploads:
                stored.append(self._storage.save(user.user_id, upload))

            blocked_state = self._forms.save_submission(
                user.user_id,
                values=values,
                documents=stored,
                allowed_states=transitions.SUBMITTABLE_FROM,
                to_state=LifecycleState.FORM_SUBMITTED,
            )
        except Exception:
            for doc in stored:
                self._storage.discard(doc.file_path)
            raise

        if blocked_state is not None:
            for doc in stored:
                self._storage.discard(doc.file_path)
            transitions.ensure_can_submit(blocked_state)

        logger.info("onboarding form submitted by user %s (%d document(s))", user.user_id, len(stored))
        form = self._forms.get_form(user.user_id)
        if not form:
            raise NotFoundError("Onboarding form not found")
        return form

    def get_form(self, user_id: int) -> Optional[OnboardingForm]:
        return self._forms.get_form(int(user_id))

    def patch_form(self, *, user_id: int, changes: Mapping[str, Any]) -> OnboardingForm:
        """Employee partial update of an already submitted form."""
        user = self._require_employee(user_id)
        transitions.ensure_can_edit(user.lifecycle_state)
        return self._apply_changes(user, changes)

    def form_status(self, user_id: int) -> FormStatus:
        user = self._require_employee(user_id)
        review = transitions.review_status(user.lifecycle_state)
        form = self._forms.get_form(user.user_id)
        if not form:
            return FormStatus(
                submitted=False,
                review_status=review,
                completed=False,
                progress=0,
                message="Form not started",
            )

        required = REQUIRED_FIELDS_BY_TYPE[user.employee_type]
        values = form.values()
        missing = [_humanize(n) for n in required if is_blank(values.get(n))]
        done = len(required) - len(missing)
        progress = round(done / len(required) * 100) if required else 100

        uploaded = {d.document_type for d in self._forms.list_documents(user.user_id)}
        missing_docs = [d.value for d in REQUIRED_DOCUMENTS if d not in uploaded]

        completed = not missing
        return FormStatus(
            submitted=user.form_submitted,
            review_status=review,
            completed=completed,
            progress=progress,
            missing_fields=tuple(missing),
            missing_documents=tuple(missing_docs),
            message="Form completed" if completed else f"{done}/{len(required)} sections completed",
        )

    def list_documents(self, user_id: int) -> Sequence[Document]:
        return self._forms.list_documents(int(user_id))

    def employee_manager(self, user_id: int) -> Optional[User]:
        user = self._require_employee(user_id)
        if user.manager_id is None:
            return None
        return self._users.get_by_id(user.manager_id)

    def list_forms(
        self,
        *,
        current_role: Role,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[FormSummary]:
        require_hr(current_role)
        return self._forms.list_forms(
            state=optional_enum(LifecycleState, status, "Status"),
            search=(search or "").strip() or None,
        )

    def get_form_for_hr(self, *, current_role: Role, user_id: int) -> FormDetail:
        require_hr(current_role)
        user = self._require_employee(user_id)
        form = self._forms.get_form(user.user_id)
        if not form:
            raise NotFoundError("Onboarding form not found")
        return FormDetail(user=user, form=form, documents=tuple(self._forms.list_documents(user.user_id)))

    def hr_update_form(self, *, current_role: Role, user_id: int, changes: Mapping[str, Any]) -> OnboardingForm:
        """HR correction; does not move the employee's lifecycle state."""
        require_hr(current_role)
        return self._apply_changes(self._require_employee(user_id), changes)

    def delete_form(self, *, current_role: Role, user_id: int) -> None:
        require_hr(current_role)
        if not self._forms.delete_form(int(user_id)):
            raise NotFoundError("Onboarding form not found")

    def _apply_changes(self, user: User, changes: Mapping[str, Any]) -> OnboardingForm:
        values = self._clean_values(normalize_form_keys(changes))
        if not values:
            raise ValidationError("No form fields to update")

        required = REQUIRED_FIELDS_BY_TYPE[user.employee_type]
        for name, value in values.items():
            if name in required and is_blank(value):
                raise ValidationError(f"{_humanize(name)} cannot be empty for {user.employee_type.value} employees")

        form = self._forms.update_form(user.user_id, values)
        if not form:
            raise NotFoundError("Onboarding form not found. Please submit the form first.")
        return form

    @staticmethod
    def _clean_values(values: Mapping[str, Any]) -> dict:
        out = dict(values)
        if "join_date" in out:
            out["join_date"] = parse_optional_date(out["join_date"], "Join date")
        for name in ("aadhar_number", "pan_number", "passport_number", "photo_url"):
            if name in out:
                out[name] = str(out[name]).strip() if out[name] is not None else None
                out[name] = out[name] or None
        return out

    def _require_employee(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        if user.role != Role.EMPLOYEE or user.employee_type is None:
            raise ValidationError("Onboarding forms are only available to employees")
        return user
