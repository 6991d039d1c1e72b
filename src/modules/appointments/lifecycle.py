"""Appointment status state machine and per-role mutable field table."""

from __future__ import annotations

from enum import StrEnum
from typing import Iterable

from src.core.exceptions import ForbiddenError, InvalidStateError
from src.shared.enums import AppointmentStatus, UserRole

DEFAULT_CANCELLATION_REASON = "Cancelled by user"

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in ALLOWED_TRANSITIONS.items() if not targets)

CLINICAL_FIELDS = frozenset({"diagnosis", "prescription", "notes"})


class AppointmentOperation(StrEnum):
    UPDATE = "update"
    UPDATE_STATUS = "update_status"


EDITABLE_FIELDS: dict[tuple[UserRole, AppointmentOperation], frozenset[str]] = {
    (UserRole.PATIENT, AppointmentOperation.UPDATE): frozenset({"symptoms", "type"}),
    (UserRole.DOCTOR, AppointmentOperation.UPDATE): frozenset(
        {"notes", "diagnosis", "prescription", "payment_status"}
    ),
    (UserRole.ADMIN, AppointmentOperation.UPDATE): frozenset(
        {"symptoms", "type", "notes", "diagnosis", "prescription", "payment_status"}
    ),
    (UserRole.PATIENT, AppointmentOperation.UPDATE_STATUS): frozenset({"cancellation_reason"}),
    (UserRole.DOCTOR, AppointmentOperation.UPDATE_STATUS): CLINICAL_FIELDS | {"cancellation_reason"},
    (UserRole.ADMIN, AppointmentOperation.UPDATE_STATUS): CLINICAL_FIELDS | {"cancellation_reason"},
}


def is_terminal(status: AppointmentStatus) -> bool:
    return AppointmentStatus(status) in TERMINAL_STATUSES


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return AppointmentStatus(target) in ALLOWED_TRANSITIONS[AppointmentStatus(current)]


def ensure_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """Raise InvalidStateError unless ``current -> target`` is in the transition table."""
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Cannot change appointment status from '{AppointmentStatus(current).value}' "
            f"to '{AppointmentStatus(target).value}'"
        )


def ensure_cancellable(current: AppointmentStatus) -> None:
    if not can_transition(current, AppointmentStatus.CANCELLED):
        raise InvalidStateError("Cannot cancel this appointment")


def allowed_fields(role: UserRole, operation: AppointmentOperation) -> frozenset[str]:
    return EDITABLE_FIELDS.get((UserRole(role), operation), frozenset())


def ensure_fields_allowed(role: UserRole, operation: AppointmentOperation, fields: Iterable[str]) -> None:
    """Reject a write that touches fields outside the role's projection for this operation."""
    rejected = sorted(set(fields) - allowed_fields(role, operation))
    if rejected:
        raise ForbiddenError(f"Not allowed to modify: {', '.join(rejected)}")
