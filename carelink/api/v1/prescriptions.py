import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from carelink.core.config import settings
from carelink.core.db import get_db
from carelink.core.errors import Forbidden
from carelink.api.deps import require_identity
from carelink.schemas.prescription import PrescriptionCreate, PrescriptionOut
from carelink.models.prescription import Prescription, RxStatus
from carelink.services.appointments import ensure_participant, get_appt_or_404, is_assigned_doctor
from carelink.services.identity import Identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/prescriptions", tags=["prescriptions"])

@router.post("", response_model=PrescriptionOut, status_code=201)
async def create_prescription(
    payload: PrescriptionCreate,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    ap = await get_appt_or_404(db, payload.appointment_id)
    if not is_assigned_doctor(identity, ap):
        raise Forbidden("Only the assigned doctor can prescribe for this appointment")

    rx = Prescription(
        appointment_id=ap.id,
        patient_id=ap.patient_id,
        doctor_id=ap.doctor_id,
        medication_name=payload.medication_name,
        dosage=payload.dosage,
        instructions=payload.instructions,
        status=RxStatus.active,
        refills_remaining=settings.PRESCRIPTION_DEFAULT_REFILLS,
    )
    db.add(rx)
    await db.commit()
    await db.refresh(rx)
    logger.info("prescription %s issued for appointment %s", rx.id, ap.id)
    return rx

@router.get("/me", response_model=List[PrescriptionOut])
async def my_prescriptions(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    res = await db.execute(
        select(Prescription)
        .where(Prescription.patient_id == identity.id)
        .order_by(Prescription.created_at.desc())
    )
    return res.scalars().all()

@router.get("/by-appointment/{appointment_id}", response_model=List[PrescriptionOut])
async def prescriptions_by_appointment(
    appointment_id: str,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    await ensure_participant(db, identity, appointment_id)
    res = await db.execute(
        select(Prescription)
        .where(Prescription.appointment_id == appointment_id)
        .order_by(Prescription.created_at.desc())
    )
    return res.scalars().all()
