import pytest

from src.core.exceptions import ForbiddenError, InvalidStateError
from src.modules.appointments.lifecycle import (
    TERMINAL_STATUSES,
    AppointmentOperation,
    allowed_fields,
    can_transition,
    ensure_cancellable,
    ensure_fields_allowed,
    ensure_transition,
    is_terminal,
)
from src.shared.enums import AppointmentStatus, UserRole


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED),
        (AppointmentStatus.PENDING, AppointmentStatus.CANCELLED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.NO_SHOW),
    ],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)
    ensure_transition(current, target)


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (AppointmentStatus.PENDING, AppointmentStatus.COMPLETED),
        (AppointmentStatus.PENDING, AppointmentStatus.NO_SHOW),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.PENDING),
        (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED),
        (AppointmentStatus.CANCELLED, AppointmentStatus.CONFIRMED),
        (AppointmentStatus.NO_SHOW, AppointmentStatus.COMPLETED),
    ],
)
def test_disallowed_transitions_raise(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidStateError):
        ensure_transition(current, target)


def test_terminal_statuses():
    assert TERMINAL_STATUSES == {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }
    assert is_terminal("no-show")
    assert not is_terminal(AppointmentStatus.CONFIRMED)


def test_cannot_cancel_finished_appointment():
    ensure_cancellable(AppointmentStatus.PENDING)
    with pytest.raises(InvalidStateError, match="Cannot cancel this appointment"):
        ensure_cancellable(AppointmentStatus.COMPLETED)


def test_patient_cannot_touch_clinical_fields():
    assert "diagnosis" not in allowed_fields(UserRole.PATIENT, AppointmentOperation.UPDATE)
    with pytest.raises(ForbiddenError, match="diagnosis"):
        ensure_fields_allowed(UserRole.PATIENT, AppointmentOperation.UPDATE, ["symptoms", "diagnosis"])


def test_doctor_may_record_clinical_fields_on_status_change():
    ensure_fields_allowed(
        UserRole.DOCTOR,
        AppointmentOperation.UPDATE_STATUS,
        ["diagnosis", "prescription", "notes"],
    )
    with pytest.raises(ForbiddenError):
        ensure_fields_allowed(UserRole.DOCTOR, AppointmentOperation.UPDATE, ["symptoms"])
