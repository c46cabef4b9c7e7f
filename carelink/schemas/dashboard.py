from pydantic import BaseModel, Field
from typing import List, Literal

from carelink.schemas.appointment import AppointmentWithDoctorOut, AppointmentWithPatientOut
from carelink.schemas.prescription import PrescriptionOut

class PatientDashboardOut(BaseModel):
    role: Literal["patient"] = "patient"
    upcoming: List[AppointmentWithDoctorOut] = Field(default_factory=list)
    prescriptions: List[PrescriptionOut] = Field(default_factory=list)
    refill_reminders: List[PrescriptionOut] = Field(default_factory=list)

class DoctorDashboardOut(BaseModel):
    role: Literal["doctor"] = "doctor"
    specialty: str | None = None
    today: List[AppointmentWithPatientOut] = Field(default_factory=list)
    queue: List[AppointmentWithPatientOut] = Field(default_factory=list)
