"""Consultation-request sub-workflow.

Workflow::

    null/SUBMITTED -> PENDING_REVIEW -> APPROVED -> SCHEDULED -> CONFIRMED
    PENDING_REVIEW -> NEEDS_MORE_INFO -> PENDING_REVIEW (or SUBMITTED)
    null -> APPROVED                  (frontdesk direct-create)
    any non-final -> REJECTED         (reviewer turned the request down)

``None`` stands for an appointment that has never been a consultation request.
``CONFIRMED`` and ``REJECTED`` are final.
"""

from app.core.exceptions import InvalidTransitionException, ValidationException
from app.domain.enums import ConsultationRequestStatus, ReviewAction

S = ConsultationRequestStatus

TRANSITIONS: dict[S | None, frozenset[S]] = {
    None: frozenset({S.SUBMITTED, S.PENDING_REVIEW, S.APPROVED}),
    S.SUBMITTED: frozenset({S.PENDING_REVIEW, S.REJECTED}),
    S.PENDING_REVIEW: frozenset({S.APPROVED, S.NEEDS_MORE_INFO, S.REJECTED}),
    S.NEEDS_MORE_INFO: frozenset({S.SUBMITTED, S.PENDING_REVIEW, S.REJECTED}),
    S.APPROVED: frozenset({S.SCHEDULED, S.REJECTED}),
    S.SCHEDULED: frozenset({S.CONFIRMED, S.REJECTED}),
    S.CONFIRMED: frozenset(),
    S.REJECTED: frozenset(),
}

# Statuses a reviewer has to take under review before deciding
_AWAITING_REVIEW = frozenset({S.SUBMITTED, S.NEEDS_MORE_INFO})

# Statuses counted as pending triage on the doctor dashboard
PENDING_REVIEW_STATUSES = frozenset({S.PENDING_REVIEW, S.APPROVED})

# Statuses a doctor may accept from
ACCEPTABLE_STATUSES = frozenset({S.PENDING_REVIEW, S.APPROVED})


def _label(status: S | None) -> str | None:
    return status.value if status is not None else None


def can_transition(current: S | None, target: S) -> bool:
    """Return True if ``current -> target`` is an edge of the workflow graph."""
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: S | None, target: S) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionException(
            axis="consultation_request",
            from_status=_label(current),
            to_status=target.value,
        )


def ensure_path(current: S | None, path: list[S]) -> None:
    """Validate every edge of ``current -> path[0] -> ... -> path[-1]``."""
    if not path:
        raise ValueError("Transition path must not be empty")
    previous = current
    for target in path:
        ensure_transition(previous, target)
        previous = target


def review_path(current: S | None, action: ReviewAction, with_slot: bool) -> list[S]:
    """
    Statuses a reviewer's decision walks through, in order.

    A request still awaiting review (``SUBMITTED`` or ``NEEDS_MORE_INFO``) is
    taken under review first. Approving with a slot continues to ``SCHEDULED``.
    The path is not validated here; see ``ensure_path``.
    """
    if action == ReviewAction.REJECT:
        return [S.REJECTED]

    path: list[S] = []
    if current in _AWAITING_REVIEW:
        path.append(S.PENDING_REVIEW)

    if action == ReviewAction.APPROVE:
        path.append(S.APPROVED)
        if with_slot:
            path.append(S.SCHEDULED)
    elif action == ReviewAction.NEEDS_MORE_INFO:
        if current is None:
            path.append(S.PENDING_REVIEW)
        path.append(S.NEEDS_MORE_INFO)
    else:
        raise ValidationException(f"Invalid review action: {action}")
    return path


def accept_path(current: S | None, with_slot: bool) -> list[S]:
    """Statuses a doctor's acceptance walks through."""
    if current not in ACCEPTABLE_STATUSES:
        raise InvalidTransitionException(
            axis="consultation_request",
            from_status=_label(current),
            to_status=(S.SCHEDULED if with_slot else S.APPROVED).value,
            message=(
                "Consultation request must be in PENDING_REVIEW or APPROVED state to be "
                f"accepted. Current status: {_label(current)}"
            ),
        )
    path: list[S] = []
    if current == S.PENDING_REVIEW:
        path.append(S.APPROVED)
    if with_slot:
        path.append(S.SCHEDULED)
    if not path:
        # Already approved and no slot proposed: nothing to record
        raise InvalidTransitionException(
            axis="consultation_request",
            from_status=_label(current),
            to_status=S.APPROVED.value,
            message="Consultation request is already approved; propose a date and time",
        )
    return path
