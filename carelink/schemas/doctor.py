from pydantic import BaseModel, ConfigDict
from typing import Optional, List
import datetime as dt

class DoctorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)  # permite pasarle un modelo ORM

    id: str
    user_id: Optional[str] = None
    name: str
    specialty: str
    bio: Optional[str] = None
    image_url: Optional[str] = None
    is_available: bool = True

class DoctorBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    specialty: str
    image_url: Optional[str] = None

class AvailabilityOut(BaseModel):
    date: dt.date
    slots: List[str]   # menú de horas ("10:00" .. "19:00")
    taken: List[str]   # horas ya ocupadas (no canceladas)
