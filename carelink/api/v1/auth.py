import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carelink.core.db import get_db
from carelink.core.errors import Forbidden, Unauthenticated, ValidationError
from carelink.core.security import hash_password, verify_password, create_access_token
from carelink.models.user import User, RoleEnum
from carelink.models.doctor import Doctor
from carelink.schemas.auth import RegisterIn, LoginIn, TokenOut, UserOut
from carelink.api.deps import get_current_user, get_optional_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

DEFAULT_SPECIALTY = "General Medicine"
EMAIL_TAKEN = "This email is already registered."

def _doctor_profile(user: User, specialty: str | None) -> Doctor:
    specialty = specialty or DEFAULT_SPECIALTY
    return Doctor(
        user_id=user.id,
        name=f"Dr. {user.full_name}",
        specialty=specialty,
        bio=f"{specialty} specialist dedicated to providing quality healthcare.",
        is_available=True,
    )

async def email_taken(db: AsyncSession, email: str) -> bool:
    res = await db.execute(select(User.id).where(User.email == email))
    return res.scalar_one_or_none() is not None

@router.post("/register", response_model=UserOut, status_code=201)
async def register(
    payload: RegisterIn,
    current: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    email = payload.email.lower()
    if await email_taken(db, email):
        raise ValidationError("email", EMAIL_TAKEN)

    # un invitado que se registra conserva su id (y lo que haya cargado como invitado)
    if current is not None and current.is_anonymous:
        user = current
        user.is_anonymous = False
    else:
        user = User()
        db.add(user)

    user.email = email
    user.full_name = payload.full_name
    user.role = RoleEnum(payload.role)
    user.hashed_password = hash_password(payload.password)
    try:
        await db.flush()
        if user.role == RoleEnum.doctor:
            db.add(_doctor_profile(user, payload.specialty))
        await db.commit()
    except IntegrityError:
        # otro registro con el mismo email llegó primero (UNIQUE users.email)
        await db.rollback()
        raise ValidationError("email", EMAIL_TAKEN)
    await db.refresh(user)
    logger.info("user %s registered as %s", user.id, user.role.value)
    return user

@router.post("/login", response_model=TokenOut)
async def login(payload: LoginIn, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == payload.email.lower()))
    user = result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise Unauthenticated("Invalid credentials")

    if not user.is_active:
        raise Forbidden("Inactive user")

    token = create_access_token(subject=user.id, extra={"role": user.role.value})
    return TokenOut(access_token=token)

@router.post("/anonymous", response_model=TokenOut, status_code=201)
async def anonymous_sign_in(db: AsyncSession = Depends(get_db)):
    """Sesión de invitado: puede navegar pero no reservar hasta registrarse."""
    user = User(full_name="Guest", role=RoleEnum.patient, is_anonymous=True)
    db.add(user)
    await db.commit()
    token = create_access_token(subject=user.id, extra={"role": user.role.value, "anon": True})
    return TokenOut(access_token=token)

@router.get("/me", response_model=UserOut)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
