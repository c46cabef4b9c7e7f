import logging
import uuid
from datetime import date, datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from carelink.core.config import settings
from carelink.core.errors import Forbidden, NotFound, SlotTaken, Unauthenticated
from carelink.models.appointment import Appointment, ApptStatus
from carelink.models.doctor import Doctor
from carelink.schemas.appointment import BookingIn
from carelink.services.booking import (
    parse_booking, parse_schedule, require_booking_identity, time_key, validate_and_build_booking,
)
from carelink.services.identity import Identity

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (ApptStatus.completed, ApptStatus.cancelled)


def reference_now() -> datetime:
    """Hora actual en la zona de referencia, sin tzinfo (como se guarda en la base)."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)

def reference_today() -> date:
    return reference_now().date()

def day_bounds(day: date) -> tuple[datetime, datetime]:
    """[start, end) del día; el último día representable termina en datetime.max."""
    start = datetime.combine(day, datetime.min.time())
    if day == date.max:
        return start, datetime.max
    return start, start + timedelta(days=1)

def is_slot_conflict(exc: IntegrityError) -> bool:
    # sqlite: "UNIQUE constraint failed: appointments.active_slot"
    # mysql:  "Duplicate entry '...' for key 'active_slot'"
    return "active_slot" in str(exc.orig)

def require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None or identity.is_anonymous:
        raise Unauthenticated()
    return identity

# ---------- helpers ----------
async def doctor_appointments_on(db: AsyncSession, doctor_id: str, day: date) -> List[Appointment]:
    start, end = day_bounds(day)
    res = await db.execute(
        select(Appointment)
        .where(
            Appointment.doctor_id == doctor_id,
            Appointment.scheduled_at >= start,
            Appointment.scheduled_at < end,
        )
        .order_by(Appointment.scheduled_at)
    )
    return list(res.scalars().all())

async def taken_times(db: AsyncSession, doctor_id: str, day: date) -> List[str]:
    rows = await doctor_appointments_on(db, doctor_id, day)
    return sorted({time_key(a.scheduled_at) for a in rows if a.status != ApptStatus.cancelled})

async def get_appt_or_404(db: AsyncSession, appointment_id: str) -> Appointment:
    q = select(Appointment).options(
        selectinload(Appointment.doctor),
        selectinload(Appointment.patient),
    ).where(Appointment.id == appointment_id)
    ap = (await db.execute(q)).scalar_one_or_none()
    if not ap:
        raise NotFound("Appointment not found")
    return ap

def is_participant(identity: Identity, ap: Appointment) -> bool:
    if identity.is_admin:
        return True
    if ap.patient_id == identity.id:
        return True
    return bool(identity.doctor_id) and ap.doctor_id == identity.doctor_id

def is_assigned_doctor(identity: Identity, ap: Appointment) -> bool:
    # admin actúa con privilegios de doctor
    return identity.is_admin or (bool(identity.doctor_id) and ap.doctor_id == identity.doctor_id)

async def ensure_participant(db: AsyncSession, identity: Optional[Identity], appointment_id: str) -> Appointment:
    identity = require_identity(identity)
    ap = await get_appt_or_404(db, appointment_id)
    if not is_participant(identity, ap):
        raise Forbidden()
    return ap

# ---------- booking ----------
async def book_appointment(
    db: AsyncSession,
    identity: Optional[Identity],
    payload: BookingIn,
    today: Optional[date] = None,
) -> Appointment:
    identity = require_booking_identity(identity, payload)
    booking = parse_booking(payload)
    scheduled_at = parse_schedule(booking.date, booking.time)

    doctor = await db.get(Doctor, booking.doctor_id)
    existing = await doctor_appointments_on(db, booking.doctor_id, scheduled_at.date())

    new = validate_and_build_booking(
        booking,
        existing,
        identity=identity,
        today=today or reference_today(),
        doctor_exists=doctor is not None and doctor.is_available,
        enforce_slot_menu=settings.ENFORCE_SLOT_MENU,
        first_hour=settings.SLOT_FIRST_HOUR,
        last_hour=settings.SLOT_LAST_HOUR,
    )

    ap = Appointment(
        id=str(uuid.uuid4()),
        patient_id=new.patient_id,
        doctor_id=new.doctor_id,
        scheduled_at=new.scheduled_at,
        notes=new.notes,
        status=new.status,
        active_slot=new.active_slot,
    )
    db.add(ap)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if not is_slot_conflict(exc):
            # FK u otra restricción: no es un choque de horario
            logger.warning("booking insert rejected by the store: %s", exc.orig)
            raise
        # otra reserva concurrente ganó el slot (UNIQUE active_slot)
        logger.info("slot %s lost to a concurrent booking", new.active_slot)
        raise SlotTaken()

    logger.info("appointment %s booked: doctor=%s patient=%s at=%s",
                ap.id, ap.doctor_id, ap.patient_id, ap.scheduled_at.isoformat())
    return ap

# ---------- transitions ----------
async def complete_appointment(
    db: AsyncSession, identity: Optional[Identity], appointment_id: str, notes: str
) -> Appointment:
    identity = require_identity(identity)
    ap = await get_appt_or_404(db, appointment_id)
    if not is_assigned_doctor(identity, ap):
        raise Forbidden("Only the assigned doctor can complete this appointment")

    if ap.status in TERMINAL_STATUSES:
        logger.debug("complete on %s appointment %s is a no-op", ap.status.value, ap.id)
        return ap

    ap.status = ApptStatus.completed
    ap.notes = notes
    await db.commit()
    logger.info("appointment %s completed by user %s", ap.id, identity.id)
    return ap

async def cancel_appointment(
    db: AsyncSession, identity: Optional[Identity], appointment_id: str
) -> Appointment:
    identity = require_identity(identity)
    ap = await get_appt_or_404(db, appointment_id)
    if not is_participant(identity, ap):
        raise Forbidden()

    if ap.status in TERMINAL_STATUSES:
        logger.debug("cancel on %s appointment %s is a no-op", ap.status.value, ap.id)
        return ap

    ap.status = ApptStatus.cancelled
    ap.active_slot = None  # libera el slot
    await db.commit()
    logger.info("appointment %s cancelled by user %s", ap.id, identity.id)
    return ap

# ---------- reads ----------
async def get_appointment(db: AsyncSession, identity: Optional[Identity], appointment_id: str) -> Appointment:
    return await ensure_participant(db, identity, appointment_id)

async def list_patient_appointments(db: AsyncSession, identity: Identity) -> List[Appointment]:
    res = await db.execute(
        select(Appointment)
        .options(selectinload(Appointment.doctor))
        .where(Appointment.patient_id == identity.id)
        .order_by(Appointment.scheduled_at)
    )
    return list(res.scalars().all())

async def list_doctor_appointments(db: AsyncSession, identity: Identity) -> List[Appointment]:
    if not identity.doctor_id:
        return []
    res = await db.execute(
        select(Appointment)
        .options(selectinload(Appointment.patient))
        .where(Appointment.doctor_id == identity.doctor_id)
        .order_by(Appointment.scheduled_at)
    )
    return list(res.scalars().all())
