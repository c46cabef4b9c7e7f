from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from carelink.core.db import get_db
from carelink.api.deps import get_identity, require_identity, require_roles
from carelink.models.user import RoleEnum
from carelink.schemas.appointment import (
    AppointmentOut, AppointmentWithDoctorOut, AppointmentWithPatientOut, BookingIn, CompleteIn,
)
from carelink.services import appointments as svc
from carelink.services.identity import Identity


router = APIRouter(prefix="/appointments", tags=["appointments"])

# ---------- create ----------
@router.post("", response_model=AppointmentOut, status_code=201)
async def book_appointment(
    payload: BookingIn,
    identity: Identity | None = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    # el patient_id del payload se ignora: siempre es el usuario autenticado
    return await svc.book_appointment(db, identity, payload)

# atajos cómodos
@router.get("/me", response_model=list[AppointmentWithDoctorOut])
async def my_patient_appointments(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    return await svc.list_patient_appointments(db, identity)

@router.get("/doctor/me", response_model=list[AppointmentWithPatientOut])
async def my_doctor_appointments(
    identity: Identity = Depends(require_roles(RoleEnum.doctor)),
    db: AsyncSession = Depends(get_db),
):
    return await svc.list_doctor_appointments(db, identity)

# ---------- get ----------
@router.get("/{id}", response_model=AppointmentWithDoctorOut)
async def get_appointment(
    id: str,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    return await svc.get_appointment(db, identity, id)

# ---------- transitions ----------
@router.post("/{id}/complete", response_model=AppointmentOut)
async def complete_appointment(
    id: str,
    body: CompleteIn,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    return await svc.complete_appointment(db, identity, id, body.notes)

@router.post("/{id}/cancel", response_model=AppointmentOut)
async def cancel_appointment(
    id: str,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    return await svc.cancel_appointment(db, identity, id)
