import datetime as dt

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from carelink.core.config import settings
from carelink.core.db import get_db
from carelink.core.errors import NotFound
from carelink.models.doctor import Doctor
from carelink.schemas.doctor import DoctorOut, AvailabilityOut
from carelink.services.appointments import taken_times
from carelink.services.booking import slot_menu

router = APIRouter(prefix="/doctors", tags=["doctors"])

async def _get_doctor_or_404(id: str, db: AsyncSession) -> Doctor:
    d = await db.get(Doctor, id)
    if not d:
        raise NotFound("Doctor not found")
    return d

# --------- list ----------
@router.get("", response_model=list[DoctorOut])
async def list_doctors(
    specialty: str | None = Query(None),
    q: str | None = Query(None, description="busca en nombre, especialidad o bio"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Doctor)
    if specialty and specialty != "all":
        stmt = stmt.where(Doctor.specialty == specialty)
    term = (q or "").strip().lower()
    if term:
        like = f"%{term}%"
        stmt = stmt.where(or_(
            func.lower(Doctor.name).like(like),
            func.lower(Doctor.specialty).like(like),
            func.lower(func.coalesce(Doctor.bio, "")).like(like),
        ))
    res = await db.execute(stmt.order_by(Doctor.name).offset(offset).limit(limit))
    return res.scalars().all()

# ---------- read ----------
@router.get("/{id}", response_model=DoctorOut)
async def get_doctor(id: str, db: AsyncSession = Depends(get_db)):
    return await _get_doctor_or_404(id, db)

# ---------- availability (advisory) ----------
@router.get("/{id}/availability", response_model=AvailabilityOut)
async def doctor_availability(
    id: str,
    date: dt.date = Query(..., description="YYYY-MM-DD"),
    db: AsyncSession = Depends(get_db),
):
    await _get_doctor_or_404(id, db)
    return AvailabilityOut(
        date=date,
        slots=slot_menu(settings.SLOT_FIRST_HOUR, settings.SLOT_LAST_HOUR),
        taken=await taken_times(db, id, date),
    )
