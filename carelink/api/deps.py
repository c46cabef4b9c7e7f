from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from carelink.core.db import get_db
from carelink.core.errors import Forbidden, Unauthenticated
from carelink.core.security import decode_subject
from carelink.models.user import User, RoleEnum
from carelink.models.doctor import Doctor
from carelink.services.identity import Identity


# auto_error=False: sin token el llamador es anónimo (None), no un 403
bearer = HTTPBearer(auto_error=False)

async def _load_user(token: str, db: AsyncSession) -> User:
    sub = decode_subject(token)
    user = (await db.execute(select(User).where(User.id == sub))).scalar_one_or_none()
    if not user:
        raise Unauthenticated("User not found")
    if not user.is_active:
        raise Forbidden("Inactive user")
    return user

async def get_optional_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    if creds is None:
        return None
    return await _load_user(creds.credentials, db)

async def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    if user is None:
        raise Unauthenticated()
    return user

# --- Obtener IDs vinculados ---
async def get_linked_doctor_id(user: User, db: AsyncSession) -> str | None:
    if user.role != RoleEnum.doctor:
        return None
    res = await db.execute(select(Doctor.id).where(Doctor.user_id == user.id))
    return res.scalar_one_or_none()

async def get_identity(
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> Identity | None:
    """Identidad explícita que se pasa a los servicios (None = anónimo sin token)."""
    if user is None:
        return None
    return Identity.from_user(user, doctor_id=await get_linked_doctor_id(user, db))

async def require_identity(identity: Identity | None = Depends(get_identity)) -> Identity:
    if identity is None or identity.is_anonymous:
        raise Unauthenticated()
    return identity

# --- Role-based dependency ---
def require_roles(*roles: RoleEnum):
    async def _guard(identity: Identity = Depends(require_identity)) -> Identity:
        if identity.role not in roles:
            raise Forbidden()
        return identity
    return _guard
