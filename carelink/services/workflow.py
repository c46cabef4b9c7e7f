import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carelink.core.config import settings
from carelink.core.errors import Forbidden, NotFound
from carelink.models.prescription import Prescription
from carelink.models.workflow import Consultation, Document, Message, RefillRequest, Reminder
from carelink.schemas.workflow import ConsultationJoinIn, DocumentIn, MessageIn, RefillIn, ReminderIn
from carelink.services.appointments import ensure_participant, require_identity
from carelink.services.identity import Identity

logger = logging.getLogger(__name__)


def new_session_url(appointment_id: str) -> str:
    return f"{settings.CONSULTATION_BASE_URL.rstrip('/')}/{appointment_id}-{uuid.uuid4()}"


async def join_consultation(db: AsyncSession, identity: Optional[Identity], payload: ConsultationJoinIn) -> Consultation:
    """Una sola consulta por turno: si ya existe se devuelve el mismo link."""
    await ensure_participant(db, identity, payload.appointment_id)

    q = select(Consultation).where(Consultation.appointment_id == payload.appointment_id)
    existing = (await db.execute(q)).scalar_one_or_none()
    if existing:
        return existing

    c = Consultation(appointment_id=payload.appointment_id, session_url=new_session_url(payload.appointment_id))
    db.add(c)
    try:
        await db.commit()
    except IntegrityError:
        # el otro participante la creó en paralelo
        await db.rollback()
        return (await db.execute(q)).scalar_one()
    logger.info("consultation opened for appointment %s", payload.appointment_id)
    return c


async def post_message(db: AsyncSession, identity: Optional[Identity], payload: MessageIn) -> Message:
    await ensure_participant(db, identity, payload.appointment_id)
    m = Message(appointment_id=payload.appointment_id, sender_id=identity.id, content=payload.content)
    db.add(m)
    await db.commit()
    return m


async def list_messages(db: AsyncSession, identity: Optional[Identity], appointment_id: str) -> List[Message]:
    await ensure_participant(db, identity, appointment_id)
    res = await db.execute(
        select(Message)
        .where(Message.appointment_id == appointment_id)
        .order_by(Message.created_at)
    )
    return list(res.scalars().all())


async def upload_document(db: AsyncSession, identity: Optional[Identity], payload: DocumentIn) -> Document:
    identity = require_identity(identity)
    if payload.appointment_id:
        await ensure_participant(db, identity, payload.appointment_id)
    d = Document(
        owner_id=identity.id,
        appointment_id=payload.appointment_id,
        title=payload.title,
        file_url=payload.file_url,
    )
    db.add(d)
    await db.commit()
    return d


async def request_refill(db: AsyncSession, identity: Optional[Identity], payload: RefillIn) -> RefillRequest:
    identity = require_identity(identity)
    rx = await db.get(Prescription, payload.prescription_id)
    if not rx:
        raise NotFound("Prescription not found")
    if rx.patient_id != identity.id:
        raise Forbidden("Only the patient can request a refill")

    r = RefillRequest(prescription_id=rx.id, patient_id=identity.id, note=payload.note)
    db.add(r)
    await db.commit()
    logger.info("refill requested for prescription %s", rx.id)
    return r


def _reminder_query(appointment_id: str, reminder_type: str):
    return select(Reminder).where(
        Reminder.appointment_id == appointment_id,
        Reminder.reminder_type == reminder_type,
    )


async def find_reminder(db: AsyncSession, appointment_id: str, reminder_type: str) -> Optional[Reminder]:
    return (await db.execute(_reminder_query(appointment_id, reminder_type))).scalar_one_or_none()


async def mark_reminder_sent(db: AsyncSession, identity: Optional[Identity], payload: ReminderIn) -> Reminder:
    """Upsert sobre (appointment_id, reminder_type): siempre estampa sent_at."""
    await ensure_participant(db, identity, payload.appointment_id)

    reminder = await find_reminder(db, payload.appointment_id, payload.reminder_type)
    if reminder:
        reminder.sent_at = datetime.utcnow()
        await db.commit()
        return reminder

    reminder = Reminder(
        appointment_id=payload.appointment_id,
        reminder_type=payload.reminder_type,
        sent_at=datetime.utcnow(),
    )
    db.add(reminder)
    try:
        await db.commit()
    except IntegrityError:
        # el otro participante lo marcó en paralelo
        await db.rollback()
        q = _reminder_query(payload.appointment_id, payload.reminder_type)
        reminder = (await db.execute(q)).scalar_one()
        reminder.sent_at = datetime.utcnow()
        await db.commit()
    return reminder
