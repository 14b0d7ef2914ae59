from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from ..core.enums import LifecycleState
from .model import Document, FormSummary, NewDocument, OnboardingForm


class OnboardingRepository(Protocol):
    def get_form(self, user_id: int) -> Optional[OnboardingForm]:
        raise NotImplementedError

    def save_submission(
        self,
        user_id: int,
        *,
        values: Mapping[str, Any],
        documents: Sequence[NewDocument],
        allowed_states: Iterable[LifecycleState],
        to_state: LifecycleState,
    ) -> Optional[LifecycleState]:
        """Upsert the form, add documents and move the user to `to_state` atomically.

        Returns None on success, or the user's current state when it was not
        one of `allowed_states` (nothing is written in that case).
        """

        raise NotImplementedError

    def update_form(self, user_id: int, changes: Mapping[str, Any]) -> Optional[OnboardingForm]:
        raise NotImplementedError

    def delete_form(self, user_id: int) -> bool:
        raise NotImplementedError

    def list_forms(
        self,
        *,
        state: Optional[LifecycleState] = None,
        search: Optional[str] = None,
    ) -> Sequence[FormSummary]:
        raise NotImplementedError

    def list_documents(self, user_id: int) -> Sequence[Document]:
        raise NotImplementedError
