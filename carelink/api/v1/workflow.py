from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from carelink.core.db import get_db
from carelink.api.deps import require_identity
from carelink.schemas.workflow import (
    ConsultationJoinIn, ConsultationOut,
    MessageIn, MessageOut,
    DocumentIn, DocumentOut,
    RefillIn, RefillOut,
    ReminderIn, ReminderOut,
)
from carelink.services import workflow as svc
from carelink.services.identity import Identity

router = APIRouter(prefix="/workflow", tags=["workflow"])

@router.post("/consultations", response_model=ConsultationOut)
async def join_consultation(
    payload: ConsultationJoinIn,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    c = await svc.join_consultation(db, identity, payload)
    return ConsultationOut(session_url=c.session_url)

@router.post("/messages", response_model=MessageOut, status_code=201)
async def post_message(
    payload: MessageIn,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    return await svc.post_message(db, identity, payload)

@router.get("/messages", response_model=list[MessageOut])
async def list_messages(
    appointment_id: str = Query(...),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    return await svc.list_messages(db, identity, appointment_id)

@router.post("/documents", response_model=DocumentOut, status_code=201)
async def upload_document(
    payload: DocumentIn,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    return await svc.upload_document(db, identity, payload)

@router.post("/refills", response_model=RefillOut, status_code=201)
async def request_refill(
    payload: RefillIn,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    return await svc.request_refill(db, identity, payload)

@router.post("/reminders", response_model=ReminderOut)
async def mark_reminder_sent(
    payload: ReminderIn,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    return await svc.mark_reminder_sent(db, identity, payload)
