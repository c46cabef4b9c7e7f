from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Literal, Optional
from enum import Enum

class Role(str, Enum):
    patient = "patient"
    doctor = "doctor"
    admin = "admin"

class RegisterIn(BaseModel):
    full_name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=6)
    # admin no se auto-registra
    role: Literal["patient", "doctor"] = "patient"
    specialty: Optional[str] = Field(None, max_length=100)  # solo para doctores

class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: str
    email: Optional[EmailStr] = None
    role: Role
    is_active: bool
    is_anonymous: bool
