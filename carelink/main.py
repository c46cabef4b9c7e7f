from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from carelink.core.config import settings
from carelink.core.errors import (
    CareLinkError, carelink_error_handler, request_validation_handler, store_error_handler,
)
from carelink.core.log import setup_logging
from carelink.api.v1.auth import router as auth_router
from carelink.api.v1.doctors import router as doctors_router
from carelink.api.v1.appointments import router as appointments_router
from carelink.api.v1.prescriptions import router as prescriptions_router
from carelink.api.v1.workflow import router as workflow_router
from carelink.api.v1.dashboard import router as dashboard_router


setup_logging()

app = FastAPI(title=settings.APP_NAME, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# errores de dominio -> {"error": ...}
app.add_exception_handler(CareLinkError, carelink_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(SQLAlchemyError, store_error_handler)

app.include_router(auth_router)
app.include_router(doctors_router)
app.include_router(appointments_router)
app.include_router(prescriptions_router)
app.include_router(workflow_router)
app.include_router(dashboard_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
