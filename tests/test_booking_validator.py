from dataclasses import dataclass
from datetime import date, datetime

import pytest

from carelink.core.errors import (
    InvalidDoctor, InvalidSchedule, SlotTaken, Unauthenticated, ValidationError,
)
from carelink.models.appointment import ApptStatus
from carelink.models.user import RoleEnum
from carelink.services.booking import (
    find_conflicts, parse_schedule, slot_menu, validate_and_build_booking,
)
from carelink.services.identity import Identity

D1 = "5b0f5e0e-3c1f-4a55-9a53-1c2d6c0f8a11"
TODAY = date(2025, 6, 1)
ALICE = Identity(id="user-alice", role=RoleEnum.patient, email="alice@example.com", full_name="Alice")


@dataclass
class Existing:
    scheduled_at: datetime
    status: ApptStatus = ApptStatus.confirmed


def booking(**over):
    body = {"doctorId": D1, "date": "2025-06-10", "time": "15:00", "notes": "Follow-up for rash"}
    body.update(over)
    return body


def build(payload, existing=(), **kw):
    kw.setdefault("identity", ALICE)
    kw.setdefault("today", TODAY)
    return validate_and_build_booking(payload, list(existing), **kw)


def test_taken_slot_rejected_and_free_slot_booked():
    existing = [Existing(datetime(2025, 6, 10, 14, 0))]

    with pytest.raises(SlotTaken):
        build(booking(time="14:00"), existing)

    new = build(booking(time="15:00"), existing)
    assert new.status == ApptStatus.confirmed
    assert new.scheduled_at == datetime(2025, 6, 10, 15, 0)
    assert new.doctor_id == D1
    assert new.patient_id == ALICE.id
    assert new.notes == "Follow-up for rash"
    assert new.active_slot == f"{D1}@2025-06-10T15:00"


def test_cancelled_appointment_does_not_block_slot():
    existing = [Existing(datetime(2025, 6, 10, 14, 0), ApptStatus.cancelled)]
    new = build(booking(time="14:00"), existing)
    assert new.scheduled_at.hour == 14


def test_completed_appointment_still_blocks_slot():
    existing = [Existing(datetime(2025, 6, 10, 14, 0), ApptStatus.completed)]
    with pytest.raises(SlotTaken):
        build(booking(time="14:00"), existing)


def test_conflicts_compare_hour_and_minute():
    existing = [Existing(datetime(2025, 6, 10, 14, 0)), Existing(datetime(2025, 6, 10, 14, 30, 45))]
    assert len(find_conflicts(existing, datetime(2025, 6, 10, 14, 30))) == 1
    assert find_conflicts(existing, datetime(2025, 6, 10, 14, 15)) == []


def test_status_may_be_plain_string():
    existing = [Existing(datetime(2025, 6, 10, 14, 0), "cancelled")]
    assert find_conflicts(existing, datetime(2025, 6, 10, 14, 0)) == []


@pytest.mark.parametrize("notes", ["", "abcd", "   ab   "])
def test_short_notes_rejected(notes):
    with pytest.raises(ValidationError) as exc:
        build(booking(notes=notes))
    assert exc.value.field == "notes"


def test_notes_of_exactly_five_characters_accepted():
    assert build(booking(notes="Rash!")).notes == "Rash!"


def test_date_before_today_rejected():
    with pytest.raises(ValidationError) as exc:
        build(booking(date="2025-05-31"))
    assert exc.value.field == "date"
    assert not isinstance(exc.value, InvalidSchedule)


def test_same_day_booking_allowed_even_for_an_earlier_hour():
    new = build(booking(date="2025-06-01", time="10:00"))
    assert new.scheduled_at == datetime(2025, 6, 1, 10, 0)


@pytest.mark.parametrize("date_str,time_str,field", [
    ("2025-02-30", "10:00", "date"),
    ("2025-xx-10", "10:00", "date"),
    ("10/06/2025", "10:00", "date"),
    ("2025-06-10", "25:00", "time"),
    ("2025-06-10", "ab:cd", "time"),
    ("2025-06-10", "1000", "time"),
])
def test_unparseable_schedule(date_str, time_str, field):
    with pytest.raises(InvalidSchedule) as exc:
        build(booking(date=date_str, time=time_str))
    assert exc.value.field == field


def test_parse_schedule_combines_date_and_time():
    assert parse_schedule("2025-06-10", "09:30") == datetime(2025, 6, 10, 9, 30)


def test_empty_time_is_a_validation_error():
    with pytest.raises(ValidationError) as exc:
        build(booking(time=""))
    assert exc.value.field == "time"


def test_malformed_doctor_id_rejected():
    with pytest.raises(ValidationError) as exc:
        build(booking(doctorId="not-a-uuid"))
    assert exc.value.field in ("doctorId", "doctor_id")


def test_snake_case_payload_accepted():
    new = build({"doctor_id": D1, "date": "2025-06-10", "time": "11:00", "notes": "Check-up please"})
    assert new.doctor_id == D1


def test_unknown_doctor():
    with pytest.raises(InvalidDoctor):
        build(booking(), doctor_exists=False)


def test_missing_identity_requires_registration():
    with pytest.raises(Unauthenticated) as exc:
        build(booking(), identity=None)
    assert exc.value.requires_registration
    assert exc.value.redirect_to == f"/signup?upgrade=true&next=/book/{D1}"


def test_anonymous_identity_requires_registration():
    guest = Identity(id="guest-1", role=RoleEnum.patient, is_anonymous=True)
    with pytest.raises(Unauthenticated):
        build(booking(), identity=guest)


def test_client_supplied_patient_id_is_replaced_by_caller():
    new = build(booking(patientId="user-mallory"))
    assert new.patient_id == ALICE.id


def test_slot_menu_has_ten_hourly_slots():
    menu = slot_menu(10, 19)
    assert len(menu) == 10
    assert menu[0] == "10:00" and menu[-1] == "19:00"


def test_off_menu_times_accepted_unless_enforced():
    assert build(booking(time="22:15")).scheduled_at.minute == 15

    with pytest.raises(ValidationError) as exc:
        build(booking(time="09:00"), enforce_slot_menu=True)
    assert exc.value.field == "time"
    with pytest.raises(ValidationError):
        build(booking(time="10:30"), enforce_slot_menu=True)
    assert build(booking(time="19:00"), enforce_slot_menu=True).scheduled_at.hour == 19


def test_successful_bookings_never_share_a_slot():
    booked = []
    for t in ["10:00", "11:00", "10:00", "12:30", "11:00", "12:30", "13:00"]:
        try:
            booked.append(build(booking(time=t), booked))
        except SlotTaken:
            pass
    times = [b.scheduled_at for b in booked]
    assert len(times) == len(set(times)) == 4


def test_last_representable_day_accepted():
    new = build(booking(date="9999-12-31", time="23:59"))
    assert new.scheduled_at == datetime(9999, 12, 31, 23, 59)
    assert new.active_slot == f"{D1}@9999-12-31T23:59"


def test_day_after_today_accepted():
    assert build(booking(date="2025-06-02", time="09:00")).scheduled_at.date() == date(2025, 6, 2)
