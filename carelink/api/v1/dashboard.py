from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from carelink.core.db import get_db
from carelink.api.deps import require_identity
from carelink.models.appointment import ApptStatus
from carelink.models.doctor import Doctor
from carelink.models.prescription import Prescription, RxStatus
from carelink.models.user import RoleEnum
from carelink.schemas.appointment import AppointmentWithDoctorOut, AppointmentWithPatientOut
from carelink.schemas.dashboard import PatientDashboardOut, DoctorDashboardOut
from carelink.schemas.prescription import PrescriptionOut
from carelink.services.appointments import (
    TERMINAL_STATUSES, day_bounds, list_doctor_appointments, list_patient_appointments, reference_today,
)
from carelink.services.identity import Identity

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

UPCOMING_LIMIT = 4
REFILL_REMINDERS_LIMIT = 3

async def _patient_dashboard(db: AsyncSession, identity: Identity) -> PatientDashboardOut:
    start, _ = day_bounds(reference_today())
    appts = await list_patient_appointments(db, identity)
    upcoming = [a for a in appts if a.scheduled_at >= start and a.status != ApptStatus.cancelled]

    res = await db.execute(
        select(Prescription)
        .where(Prescription.patient_id == identity.id)
        .order_by(Prescription.created_at.desc())
    )
    prescriptions = list(res.scalars().all())
    active = [rx for rx in prescriptions if rx.status == RxStatus.active]

    return PatientDashboardOut(
        upcoming=[AppointmentWithDoctorOut.model_validate(a) for a in upcoming[:UPCOMING_LIMIT]],
        prescriptions=[PrescriptionOut.model_validate(rx) for rx in prescriptions],
        refill_reminders=[PrescriptionOut.model_validate(rx) for rx in active[:REFILL_REMINDERS_LIMIT]],
    )

async def _doctor_dashboard(db: AsyncSession, identity: Identity) -> DoctorDashboardOut:
    doctor = await db.get(Doctor, identity.doctor_id) if identity.doctor_id else None
    appts = await list_doctor_appointments(db, identity)
    start, end = day_bounds(reference_today())
    return DoctorDashboardOut(
        specialty=doctor.specialty if doctor else None,
        today=[AppointmentWithPatientOut.model_validate(a) for a in appts if start <= a.scheduled_at < end],
        queue=[AppointmentWithPatientOut.model_validate(a) for a in appts if a.status not in TERMINAL_STATUSES],
    )

@router.get("", response_model=PatientDashboardOut | DoctorDashboardOut)
async def dashboard(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    if identity.role == RoleEnum.doctor:
        return await _doctor_dashboard(db, identity)
    return await _patient_dashboard(db, identity)
