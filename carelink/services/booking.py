"""
Slot availability and booking validation.

Everything here is a pure function of its arguments: no database access and
no clock reads ("today" is passed in). The conflict check is advisory; the
UNIQUE ``appointments.active_slot`` column is what actually keeps two active
bookings off the same slot.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from carelink.core.errors import (
    InvalidDoctor, InvalidSchedule, SlotTaken, Unauthenticated, ValidationError, first_field_error,
)
from carelink.models.appointment import ApptStatus
from carelink.schemas.appointment import BookingIn
from carelink.services.identity import Identity

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


@dataclass(frozen=True)
class NewAppointment:
    patient_id: str
    doctor_id: str
    scheduled_at: datetime
    notes: str
    status: ApptStatus = ApptStatus.confirmed

    @property
    def active_slot(self) -> str:
        return slot_key(self.doctor_id, self.scheduled_at)


def time_key(moment: datetime) -> str:
    return moment.strftime(TIME_FORMAT)


def slot_key(doctor_id: str, moment: datetime) -> str:
    """Storage key of an occupied slot, at minute granularity."""
    return f"{doctor_id}@{moment.strftime('%Y-%m-%dT%H:%M')}"


def slot_menu(first_hour: int = 10, last_hour: int = 19) -> List[str]:
    return [f"{hour:02d}:00" for hour in range(first_hour, last_hour + 1)]


def registration_redirect(doctor_id: Optional[str]) -> str:
    if doctor_id:
        return f"/signup?upgrade=true&next=/book/{doctor_id}"
    return "/signup?upgrade=true"


def parse_schedule(date_str: str, time_str: str) -> datetime:
    """Combine ``YYYY-MM-DD`` and ``HH:MM`` into one naive reference-time datetime."""
    try:
        day = datetime.strptime(date_str, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise InvalidSchedule("date", "Invalid appointment date. Use YYYY-MM-DD.")
    try:
        at = datetime.strptime(time_str, TIME_FORMAT).time()
    except (TypeError, ValueError):
        raise InvalidSchedule("time", "Invalid appointment time. Use HH:MM.")
    return datetime.combine(day, at)


def parse_booking(payload: Union[BookingIn, Mapping[str, Any]]) -> BookingIn:
    if isinstance(payload, BookingIn):
        return payload
    try:
        return BookingIn.model_validate(payload)
    except PydanticValidationError as exc:
        raise first_field_error(exc.errors())


def _status_value(status) -> str:
    return getattr(status, "value", status)


def find_conflicts(existing: Iterable[Any], scheduled_at: datetime) -> List[Any]:
    """
    Non-cancelled entries of ``existing`` that sit on the same slot as
    ``scheduled_at``. Entries only need ``scheduled_at`` and ``status``.
    """
    wanted = scheduled_at.replace(second=0, microsecond=0)
    return [
        appt for appt in existing
        if _status_value(appt.status) != ApptStatus.cancelled.value
        and appt.scheduled_at.replace(second=0, microsecond=0) == wanted
    ]


def _raw_doctor_id(payload) -> Optional[str]:
    if isinstance(payload, BookingIn):
        return payload.doctor_id
    if isinstance(payload, Mapping):
        return payload.get("doctorId") or payload.get("doctor_id")
    return None


def require_booking_identity(identity: Optional[Identity], payload=None) -> Identity:
    # los invitados (anónimos) tienen que registrarse antes de reservar
    if identity is None or identity.is_anonymous:
        raise Unauthenticated(
            "You must be logged in to book an appointment",
            requires_registration=True,
            redirect_to=registration_redirect(_raw_doctor_id(payload)),
        )
    return identity


def validate_and_build_booking(
    payload: Union[BookingIn, Mapping[str, Any]],
    existing: Iterable[Any],
    *,
    identity: Optional[Identity],
    today: date,
    doctor_exists: bool = True,
    enforce_slot_menu: bool = False,
    first_hour: int = 10,
    last_hour: int = 19,
) -> NewAppointment:
    """
    Decide whether the requested slot can be booked and build the record to insert.

    ``existing`` is the doctor's appointments on the requested day. Raises
    Unauthenticated, ValidationError / InvalidSchedule, InvalidDoctor or SlotTaken.
    """
    identity = require_booking_identity(identity, payload)

    booking = parse_booking(payload)
    scheduled_at = parse_schedule(booking.date, booking.time)

    if scheduled_at.date() < today:
        raise ValidationError("date", "Appointment date cannot be in the past")

    if enforce_slot_menu and time_key(scheduled_at) not in slot_menu(first_hour, last_hour):
        raise ValidationError(
            "time", f"Choose a slot between {first_hour:02d}:00 and {last_hour:02d}:00."
        )

    if not doctor_exists:
        raise InvalidDoctor()

    if find_conflicts(existing, scheduled_at):
        raise SlotTaken()

    if booking.patient_id and booking.patient_id != identity.id:
        logger.warning("ignoring client-supplied patient_id on booking by user %s", identity.id)

    return NewAppointment(
        patient_id=identity.id,
        doctor_id=booking.doctor_id,
        scheduled_at=scheduled_at,
        notes=booking.notes,
    )
