import uuid
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime

from carelink.models.appointment import ApptStatus
from carelink.schemas.doctor import DoctorBrief

NOTES_MIN_LENGTH = 5

class BookingIn(BaseModel):
    """
    Payload de reserva. Acepta camelCase (doctorId) o snake_case (doctor_id).
    patient_id se acepta pero nunca se usa: el paciente es siempre el usuario autenticado.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    doctor_id: str
    date: str = Field(..., description="YYYY-MM-DD")
    time: str = Field(..., description="HH:MM")
    notes: str
    patient_id: Optional[str] = None

    @field_validator("doctor_id")
    @classmethod
    def _doctor_id_is_uuid(cls, v: str) -> str:
        try:
            uuid.UUID(v)
        except ValueError:
            raise ValueError("Please choose a doctor before booking.")
        return v

    @field_validator("date")
    @classmethod
    def _date_required(cls, v: str) -> str:
        if not v:
            raise ValueError("Please choose a date.")
        return v

    @field_validator("time")
    @classmethod
    def _time_required(cls, v: str) -> str:
        if not v:
            raise ValueError("Please choose a time slot.")
        return v

    @field_validator("notes")
    @classmethod
    def _notes_min_length(cls, v: str) -> str:
        if len(v) < NOTES_MIN_LENGTH:
            raise ValueError(f"Please describe the reason for your visit (at least {NOTES_MIN_LENGTH} characters).")
        return v

class CompleteIn(BaseModel):
    notes: str = Field(..., min_length=1)

class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    doctor_id: str
    patient_id: str
    scheduled_at: datetime
    status: ApptStatus
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

class AppointmentWithDoctorOut(AppointmentOut):
    doctor: Optional[DoctorBrief] = None

class PatientBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: str
    email: Optional[str] = None

class AppointmentWithPatientOut(AppointmentOut):
    patient: Optional[PatientBrief] = None
