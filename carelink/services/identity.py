from dataclasses import dataclass
from typing import Optional

from carelink.models.user import RoleEnum


@dataclass(frozen=True)
class Identity:
    """Caller identity passed explicitly into every service call."""
    id: str
    role: RoleEnum
    email: Optional[str] = None
    full_name: str = ""
    is_anonymous: bool = False
    doctor_id: Optional[str] = None  # linked doctor profile, if any

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.admin

    @classmethod
    def from_user(cls, user, doctor_id: Optional[str] = None) -> "Identity":
        return cls(
            id=user.id,
            role=user.role,
            email=user.email,
            full_name=user.full_name,
            is_anonymous=bool(user.is_anonymous),
            doctor_id=doctor_id,
        )
