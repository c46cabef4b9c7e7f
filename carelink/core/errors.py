# carelink/core/errors.py
import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class CareLinkError(Exception):
    """Base de los errores de dominio. Se traducen a {"error": message} en el borde HTTP."""
    status_code: int = 400
    message: str = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)

    def payload(self) -> dict:
        return {"error": self.message}


class ValidationError(CareLinkError):
    status_code = 422
    message = "Invalid input"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)

    def payload(self) -> dict:
        return {"error": self.message, "field": self.field}


class InvalidSchedule(ValidationError):
    pass


class SlotTaken(CareLinkError):
    status_code = 409
    message = "That time slot just became unavailable. Please choose another."


class InvalidDoctor(CareLinkError):
    status_code = 404
    message = "Doctor not found or not available for booking"


class NotFound(CareLinkError):
    status_code = 404
    message = "Not found"


class Unauthenticated(CareLinkError):
    status_code = 401
    message = "You must be signed in to perform this action."

    def __init__(self, message: str | None = None, *, requires_registration: bool = False,
                 redirect_to: str | None = None):
        self.requires_registration = requires_registration
        self.redirect_to = redirect_to
        super().__init__(message)

    def payload(self) -> dict:
        body = {"error": self.message}
        if self.requires_registration:
            body["requires_registration"] = True
            body["redirect_to"] = self.redirect_to
        return body


class Forbidden(CareLinkError):
    status_code = 403
    message = "Permission denied"


class StoreError(CareLinkError):
    status_code = 503
    message = "We could not save your changes right now. Please try again."


# --- handlers (se registran en main.py) ---

async def carelink_error_handler(request: Request, exc: CareLinkError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


def first_field_error(errors) -> ValidationError:
    """Toma el primer error de pydantic y lo convierte en ValidationError(field, message)."""
    if not errors:
        return ValidationError("body", "Invalid input")
    err = errors[0]
    loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
    field = ".".join(loc) or "body"
    msg = err.get("msg", "Invalid input")
    ctx = err.get("ctx") or {}
    # los validadores propios levantan ValueError("...") -> "Value error, ..."
    if "error" in ctx and msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return ValidationError(field, msg)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    err = first_field_error(exc.errors())
    return JSONResponse(status_code=err.status_code, content=err.payload())


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # fallas del backend: mensaje genérico, sin reintentos
    logger.error("store failure on %s %s", request.method, request.url.path, exc_info=exc)
    err = StoreError()
    return JSONResponse(status_code=err.status_code, content=err.payload())
