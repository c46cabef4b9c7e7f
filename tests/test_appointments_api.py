from datetime import date, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from carelink.models.appointment import Appointment
from carelink.models.doctor import Doctor
from carelink.services import appointments as appointments_service

from conftest import auth


def booking(doctor, day, time="14:00", notes="Itchy rash on left arm", **extra):
    body = {"doctorId": doctor["doctor_id"], "date": day, "time": time, "notes": notes}
    body.update(extra)
    return body


async def count_appointments(session) -> int:
    return (await session.execute(select(func.count(Appointment.id)))).scalar_one()


async def test_taken_slot_conflicts_and_next_slot_books(client, patient, other_patient, doctor, next_week):
    r = await client.post("/appointments", json=booking(doctor, next_week, "14:00"), headers=patient["headers"])
    assert r.status_code == 201, r.text
    first = r.json()
    assert first["status"] == "confirmed"
    assert first["scheduled_at"].startswith(f"{next_week}T14:00")

    r = await client.post("/appointments", json=booking(doctor, next_week, "14:00"),
                          headers=other_patient["headers"])
    assert r.status_code == 409
    assert "error" in r.json()

    r = await client.post("/appointments", json=booking(doctor, next_week, "15:00", notes="Follow-up for rash"),
                          headers=other_patient["headers"])
    assert r.status_code == 201
    assert r.json()["status"] == "confirmed"
    assert r.json()["notes"] == "Follow-up for rash"


async def test_anonymous_caller_cannot_book(client, session, doctor, next_week):
    r = await client.post("/appointments", json=booking(doctor, next_week))
    assert r.status_code == 401
    body = r.json()
    assert body["requires_registration"] is True
    assert body["redirect_to"].endswith(f"/book/{doctor['doctor_id']}")
    assert await count_appointments(session) == 0


async def test_guest_session_must_register_before_booking(client, session, doctor, next_week):
    token = (await client.post("/auth/anonymous")).json()["access_token"]
    r = await client.post("/appointments", json=booking(doctor, next_week), headers=auth(token))
    assert r.status_code == 401
    assert r.json()["requires_registration"] is True
    assert await count_appointments(session) == 0


async def test_patient_id_comes_from_caller(client, session, patient, other_patient, doctor, next_week):
    r = await client.post(
        "/appointments",
        json=booking(doctor, next_week, patientId=other_patient["id"]),
        headers=patient["headers"],
    )
    assert r.status_code == 201
    assert r.json()["patient_id"] == patient["id"]

    stored = await session.get(Appointment, r.json()["id"])
    assert stored.patient_id == patient["id"]


async def test_validation_failures_write_nothing(client, session, patient, doctor, next_week):
    r = await client.post("/appointments", json=booking(doctor, next_week, notes="ow"), headers=patient["headers"])
    assert r.status_code == 422
    assert r.json()["field"] == "notes"

    r = await client.post("/appointments", json=booking(doctor, "2020-01-01"), headers=patient["headers"])
    assert r.status_code == 422
    assert r.json()["field"] == "date"

    r = await client.post("/appointments", json=booking(doctor, "2030-02-30"), headers=patient["headers"])
    assert r.status_code == 422
    assert r.json()["field"] == "date"

    assert await count_appointments(session) == 0


async def test_unknown_or_unavailable_doctor(client, session, patient, doctor, next_week):
    ghost = {"doctor_id": "00000000-0000-4000-8000-000000000000"}
    r = await client.post("/appointments", json=booking(ghost, next_week), headers=patient["headers"])
    assert r.status_code == 404

    d = await session.get(Doctor, doctor["doctor_id"])
    d.is_available = False
    await session.commit()

    r = await client.post("/appointments", json=booking(doctor, next_week), headers=patient["headers"])
    assert r.status_code == 404
    assert await count_appointments(session) == 0


async def test_same_day_booking_allowed(client, patient, doctor, today_str):
    r = await client.post("/appointments", json=booking(doctor, today_str, "00:00"), headers=patient["headers"])
    assert r.status_code == 201


async def test_cancel_frees_slot_and_is_idempotent(client, patient, other_patient, doctor, next_week):
    appt = (await client.post("/appointments", json=booking(doctor, next_week), headers=patient["headers"])).json()

    for _ in range(2):
        r = await client.post(f"/appointments/{appt['id']}/cancel", headers=patient["headers"])
        assert r.status_code == 200
        assert r.json()["status"] == "cancelled"

    r = await client.post("/appointments", json=booking(doctor, next_week), headers=other_patient["headers"])
    assert r.status_code == 201


async def test_doctor_can_cancel_but_stranger_cannot(client, patient, other_patient, doctor, next_week):
    appt = (await client.post("/appointments", json=booking(doctor, next_week), headers=patient["headers"])).json()

    r = await client.post(f"/appointments/{appt['id']}/cancel", headers=other_patient["headers"])
    assert r.status_code == 403

    r = await client.post(f"/appointments/{appt['id']}/cancel", headers=doctor["headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"


async def test_complete_requires_assigned_doctor(client, patient, doctor, other_doctor, next_week):
    appt = (await client.post("/appointments", json=booking(doctor, next_week), headers=patient["headers"])).json()
    url = f"/appointments/{appt['id']}/complete"

    r = await client.post(url, json={"notes": "Sneaky"}, headers=other_doctor["headers"])
    assert r.status_code == 403
    r = await client.post(url, json={"notes": "Self-discharge"}, headers=patient["headers"])
    assert r.status_code == 403

    r = await client.get(f"/appointments/{appt['id']}", headers=patient["headers"])
    assert r.json()["status"] == "confirmed"

    r = await client.post(url, json={"notes": "Prescribed hydrocortisone"}, headers=doctor["headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "completed"
    assert r.json()["notes"] == "Prescribed hydrocortisone"

    # terminal: no-op
    r = await client.post(url, json={"notes": "Overwritten?"}, headers=doctor["headers"])
    assert r.status_code == 200
    assert r.json()["notes"] == "Prescribed hydrocortisone"

    r = await client.post(f"/appointments/{appt['id']}/cancel", headers=patient["headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "completed"


async def test_unknown_appointment(client, doctor):
    r = await client.post("/appointments/nope/complete", json={"notes": "x"}, headers=doctor["headers"])
    assert r.status_code == 404
    r = await client.post("/appointments/nope/cancel", headers=doctor["headers"])
    assert r.status_code == 404


async def test_store_uniqueness_wins_a_race(client, patient, other_patient, doctor, next_week, monkeypatch):
    r = await client.post("/appointments", json=booking(doctor, next_week), headers=patient["headers"])
    assert r.status_code == 201

    # simula una segunda reserva que leyó la agenda antes de la primera escritura
    async def stale_read(db, doctor_id, day):
        return []
    monkeypatch.setattr(appointments_service, "doctor_appointments_on", stale_read)

    r = await client.post("/appointments", json=booking(doctor, next_week), headers=other_patient["headers"])
    assert r.status_code == 409


async def test_store_failure_is_reported_generically(client, patient, doctor, next_week, monkeypatch):
    async def broken(db, doctor_id, day):
        raise OperationalError("SELECT 1", {}, Exception("connection lost"))
    monkeypatch.setattr(appointments_service, "doctor_appointments_on", broken)

    r = await client.post("/appointments", json=booking(doctor, next_week), headers=patient["headers"])
    assert r.status_code == 503
    assert "connection lost" not in r.json()["error"]


async def test_reads_are_scoped_to_participants(client, patient, other_patient, doctor, other_doctor, next_week):
    appt = (await client.post("/appointments", json=booking(doctor, next_week), headers=patient["headers"])).json()

    r = await client.get(f"/appointments/{appt['id']}", headers=patient["headers"])
    assert r.status_code == 200
    assert r.json()["doctor"]["name"] == "Dr. Greg House"

    assert (await client.get(f"/appointments/{appt['id']}", headers=doctor["headers"])).status_code == 200
    assert (await client.get(f"/appointments/{appt['id']}", headers=other_patient["headers"])).status_code == 403
    assert (await client.get(f"/appointments/{appt['id']}", headers=other_doctor["headers"])).status_code == 403

    mine = (await client.get("/appointments/me", headers=patient["headers"])).json()
    assert [a["id"] for a in mine] == [appt["id"]]
    assert (await client.get("/appointments/me", headers=other_patient["headers"])).json() == []

    queue = (await client.get("/appointments/doctor/me", headers=doctor["headers"])).json()
    assert queue[0]["patient"]["full_name"] == "Pat Patient"
    assert (await client.get("/appointments/doctor/me", headers=patient["headers"])).status_code == 403


def test_day_bounds_on_the_last_representable_day():
    start, end = appointments_service.day_bounds(date.max)
    assert start == datetime(9999, 12, 31)
    assert end == datetime.max
    assert appointments_service.day_bounds(date(2025, 6, 1)) == (datetime(2025, 6, 1), datetime(2025, 6, 2))


async def test_far_future_booking_and_availability(client, patient, other_patient, doctor):
    far = "9999-12-31"
    r = await client.post("/appointments", json=booking(doctor, far, "14:00"), headers=patient["headers"])
    assert r.status_code == 201, r.text

    r = await client.post("/appointments", json=booking(doctor, far, "14:00"), headers=other_patient["headers"])
    assert r.status_code == 409

    r = await client.get(f"/doctors/{doctor['doctor_id']}/availability", params={"date": far})
    assert r.status_code == 200
    assert r.json()["taken"] == ["14:00"]


async def test_booking_tomorrow(client, patient, doctor, today_str):
    tomorrow = (date.fromisoformat(today_str) + timedelta(days=1)).isoformat()
    r = await client.post("/appointments", json=booking(doctor, tomorrow, "09:15"), headers=patient["headers"])
    assert r.status_code == 201
    assert r.json()["scheduled_at"].startswith(f"{tomorrow}T09:15")


def test_only_active_slot_violations_count_as_slot_conflicts():
    slot = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: appointments.active_slot"))
    fk = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
    assert appointments_service.is_slot_conflict(slot)
    assert not appointments_service.is_slot_conflict(fk)


async def test_other_integrity_errors_are_not_reported_as_taken(client, patient, other_patient, doctor,
                                                               next_week, monkeypatch):
    r = await client.post("/appointments", json=booking(doctor, next_week), headers=patient["headers"])
    assert r.status_code == 201

    async def stale_read(db, doctor_id, day):
        return []
    monkeypatch.setattr(appointments_service, "doctor_appointments_on", stale_read)
    monkeypatch.setattr(appointments_service, "is_slot_conflict", lambda exc: False)

    r = await client.post("/appointments", json=booking(doctor, next_week), headers=other_patient["headers"])
    assert r.status_code == 503
