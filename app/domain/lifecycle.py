"""Coarse appointment lifecycle state machine."""

from app.core.exceptions import InvalidTransitionException
from app.domain.enums import AppointmentStatus

INITIAL_STATUSES = frozenset(
    {AppointmentStatus.PENDING, AppointmentStatus.PENDING_DOCTOR_CONFIRMATION}
)

TERMINAL_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED})

# Statuses a no-show sweep may pick up
NO_SHOW_ELIGIBLE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.SCHEDULED})

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {
            AppointmentStatus.SCHEDULED,
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.PENDING_DOCTOR_CONFIRMATION: frozenset(
        {AppointmentStatus.SCHEDULED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.SCHEDULED: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.NO_SHOW: frozenset({AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


def is_terminal(status: AppointmentStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    """Return True if ``current -> target`` is an edge of the lifecycle."""
    return target in TRANSITIONS[current]


def ensure_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """Raise ``InvalidTransitionException`` unless ``current -> target`` is legal."""
    if can_transition(current, target):
        return
    if is_terminal(current):
        message = f"Appointment is {current.value} and cannot change status"
    else:
        message = f"Appointment cannot move from {current.value} to {target.value}"
    raise InvalidTransitionException(
        axis="appointment",
        from_status=current.value,
        to_status=target.value,
        message=message,
    )


def ensure_slot_status(current: AppointmentStatus) -> AppointmentStatus:
    """
    Resolve the status an appointment takes when a concrete slot is set.

    Pending appointments become ``SCHEDULED``; an already scheduled appointment
    keeps its status (the slot moves). Anything else is an illegal edge.
    """
    if current == AppointmentStatus.SCHEDULED:
        return current
    ensure_transition(current, AppointmentStatus.SCHEDULED)
    return AppointmentStatus.SCHEDULED
