import uuid
import enum
from datetime import datetime
from sqlalchemy import String, Text, Enum, ForeignKey, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from carelink.core.db import Base

class ApptStatus(str, enum.Enum):
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"

class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    patient_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    doctor_id: Mapped[str] = mapped_column(String(36), ForeignKey("doctors.id"), index=True)

    # hora local de referencia (settings.TIMEZONE), sin tz
    scheduled_at: Mapped[datetime] = mapped_column("date", DateTime(timezone=False), index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ApptStatus] = mapped_column(Enum(ApptStatus), default=ApptStatus.confirmed, index=True)

    # "<doctor_id>@<YYYY-MM-DDTHH:MM>" mientras no esté cancelado, NULL si lo está.
    # UNIQUE: dos turnos activos del mismo doctor no pueden compartir slot.
    active_slot: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    doctor = relationship("Doctor")
    patient = relationship("User")

    __table_args__ = (
        Index("ix_appt_doctor_date", "doctor_id", "date"),
    )
