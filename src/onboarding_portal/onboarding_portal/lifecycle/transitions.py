"""Employee lifecycle state machine.

Pure functions over `LifecycleState`; no storage access. Repositories apply
transitions with conditional updates keyed on the states listed here, so the
same table decides both the guard and the SQL `WHERE` clause.

    new_account --submit--> form_submitted --approve--> approved --promote--> (roster)
                            form_submitted --reject---> rejected
    any ----------------------------------delete-----> deleted
"""

from __future__ import annotations

from ..core.enums import LifecycleState, ReviewStatus
from ..core.exceptions import AlreadyOnboardedError, InvalidTransitionError

SUBMITTABLE_FROM = frozenset({LifecycleState.NEW_ACCOUNT, LifecycleState.FORM_SUBMITTED})
REVIEWABLE_FROM = frozenset({LifecycleState.FORM_SUBMITTED})
EDITABLE_BY_EMPLOYEE = SUBMITTABLE_FROM
DELETABLE_FROM = frozenset(s for s in LifecycleState if s != LifecycleState.DELETED)

_FORM_SUBMITTED_STATES = frozenset(
    {LifecycleState.FORM_SUBMITTED, LifecycleState.APPROVED, LifecycleState.REJECTED}
)

_LEGACY_STATUS = {
    LifecycleState.NEW_ACCOUNT: "pending",
    LifecycleState.FORM_SUBMITTED: "pending",
    LifecycleState.APPROVED: "approved",
    LifecycleState.REJECTED: "rejected",
    LifecycleState.DELETED: "deleted",
}

_REVIEW_STATUS = {
    LifecycleState.NEW_ACCOUNT: ReviewStatus.PENDING,
    LifecycleState.FORM_SUBMITTED: ReviewStatus.PENDING,
    LifecycleState.APPROVED: ReviewStatus.APPROVED,
    LifecycleState.REJECTED: ReviewStatus.REJECTED,
    LifecycleState.DELETED: ReviewStatus.DELETED,
}


def is_form_submitted(state: LifecycleState) -> bool:
    return state in _FORM_SUBMITTED_STATES


def is_onboarded(state: LifecycleState) -> bool:
    return state == LifecycleState.APPROVED


def legacy_status(state: LifecycleState) -> str:
    return _LEGACY_STATUS[state]


def review_status(state: LifecycleState) -> ReviewStatus:
    return _REVIEW_STATUS[state]


def can_submit(state: LifecycleState) -> bool:
    return state in SUBMITTABLE_FROM


def can_edit(state: LifecycleState) -> bool:
    return state in EDITABLE_BY_EMPLOYEE


def can_review(state: LifecycleState) -> bool:
    return state in REVIEWABLE_FROM


def can_promote(state: LifecycleState) -> bool:
    return is_onboarded(state)


def can_delete(state: LifecycleState) -> bool:
    return state in DELETABLE_FROM


def ensure_can_submit(state: LifecycleState) -> None:
    if can_submit(state):
        return
    if state == LifecycleState.APPROVED:
        raise AlreadyOnboardedError("Onboarding already approved; the form can no longer be changed")
    raise InvalidTransitionError(f"Onboarding form cannot be submitted while {legacy_status(state)}")


def ensure_can_edit(state: LifecycleState) -> None:
    if can_edit(state):
        return
    if state == LifecycleState.APPROVED:
        raise AlreadyOnboardedError("Onboarding already approved; the form can no longer be changed")
    raise InvalidTransitionError(f"Onboarding form cannot be edited while {legacy_status(state)}")


def ensure_can_review(state: LifecycleState) -> None:
    """Guard shared by approve and reject."""
    if can_review(state):
        return
    if state == LifecycleState.APPROVED:
        raise AlreadyOnboardedError("Employee is already onboarded")
    if state == LifecycleState.NEW_ACCOUNT:
        raise InvalidTransitionError("Employee has not submitted the onboarding form yet")
    raise InvalidTransitionError(f"Employee cannot be reviewed while {legacy_status(state)}")


def ensure_can_promote(state: LifecycleState) -> None:
    if not can_promote(state):
        raise InvalidTransitionError("Only onboarded employees can be added to the master roster")


def ensure_can_delete(state: LifecycleState) -> None:
    if not can_delete(state):
        raise InvalidTransitionError("Employee is already deleted")
