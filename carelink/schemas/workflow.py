from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError
from typing import Optional
from datetime import datetime

# --- Consultations ---
class ConsultationJoinIn(BaseModel):
    appointment_id: str = Field(..., min_length=1)

class ConsultationOut(BaseModel):
    session_url: str

# --- Messages ---
class MessageIn(BaseModel):
    appointment_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=2000)

class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    appointment_id: str
    sender_id: str
    content: str
    created_at: datetime

# --- Documents ---
_http_url = TypeAdapter(HttpUrl)

class DocumentIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=120)
    # se valida como HttpUrl pero se guarda tal cual la envió el cliente
    file_url: str = Field(..., max_length=1024)
    appointment_id: Optional[str] = None

    @field_validator("file_url")
    @classmethod
    def _file_url_is_http(cls, v: str) -> str:
        try:
            _http_url.validate_python(v)
        except PydanticValidationError:
            raise ValueError("Enter a valid http(s) URL.")
        return v

class DocumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    owner_id: str
    appointment_id: Optional[str] = None
    title: str
    file_url: str
    created_at: datetime

# --- Refills ---
class RefillIn(BaseModel):
    prescription_id: str = Field(..., min_length=1)
    note: Optional[str] = Field(None, max_length=500)

class RefillOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    prescription_id: str
    patient_id: str
    note: Optional[str] = None
    created_at: datetime

# --- Reminders ---
class ReminderIn(BaseModel):
    appointment_id: str = Field(..., min_length=1)
    reminder_type: str = Field(..., min_length=1, max_length=120)

class ReminderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    appointment_id: str
    reminder_type: str
    sent_at: datetime
