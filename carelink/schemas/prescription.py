from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime

from carelink.models.prescription import RxStatus

class PrescriptionCreate(BaseModel):
    # patient_id / doctor_id salen del turno, nunca del cliente
    appointment_id: str
    medication_name: str = Field(..., min_length=1, max_length=255)
    dosage: str = Field(..., min_length=1, max_length=255)
    instructions: Optional[str] = None

class PrescriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    appointment_id: Optional[str] = None
    patient_id: str
    doctor_id: str
    medication_name: str
    dosage: str
    instructions: Optional[str] = None
    status: RxStatus
    refills_remaining: int
    created_at: datetime
