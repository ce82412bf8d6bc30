# agenda/main.py
import os
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import settings
from .database import init_db
from .errors import SchedulingError, ValidationError
from .schemas import ErrorDetail, ErrorResponse
from .jobs.scheduler import start_scheduler, shutdown_scheduler

# Routers
from .routers.appointments import router as appointments_router

# ──────────────────────────────────────────────────────────────────────────────
# LOGGING
# Controla niveles con variables de entorno:
#   LOG_LEVEL, SQLA_LOG_LEVEL, UVICORN_LOG_LEVEL
# ──────────────────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logging.getLogger("sqlalchemy.engine").setLevel(
    getattr(logging, os.getenv("SQLA_LOG_LEVEL", "WARNING"), logging.WARNING)
)
logging.getLogger("uvicorn.error").setLevel(
    getattr(logging, os.getenv("UVICORN_LOG_LEVEL", "INFO"), logging.INFO)
)
logging.getLogger("apscheduler").setLevel(
    getattr(logging, os.getenv("APSCHEDULER_LOG_LEVEL", "WARNING"), logging.WARNING)
)

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# FastAPI App
# ──────────────────────────────────────────────────────────────────────────────
app = FastAPI(title=settings.APP_NAME)

app.include_router(appointments_router)


# ──────────────────────────────────────────────────────────────────────────────
# Errores de negocio → {"error": {"code", "message"}}
# ──────────────────────────────────────────────────────────────────────────────
def _error_body(exc: SchedulingError) -> dict:
    return ErrorResponse(error=ErrorDetail(**exc.to_dict())).model_dump()


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.debug("Body inválido en %s: %s", request.url.path, exc.errors())
    err = ValidationError()
    return JSONResponse(status_code=err.status_code, content=_error_body(err))


# ──────────────────────────────────────────────────────────────────────────────
# Ciclo de vida
# ──────────────────────────────────────────────────────────────────────────────
@app.on_event("startup")
def on_startup():
    init_db()
    if settings.MAIL_DISPATCH == "queue":
        start_scheduler()
    logger.info("Startup completo: %s (%s) mail=%s", settings.APP_NAME, settings.ENV, settings.MAIL_DISPATCH)


@app.on_event("shutdown")
def on_shutdown():
    shutdown_scheduler()


@app.get("/")
def root():
    return {"ok": True, "app": settings.APP_NAME, "env": settings.ENV}
