from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..jobs.scheduler import enqueue
from ..repository import SqlAlchemyRepository, SqlNotificationSink
from ..services.appointments import AppointmentService
from ..services.mailer import SmtpMailSink
from ..services.notifications import MailSink, Notifier
from .. import schemas

router = APIRouter(prefix="", tags=["appointments"])

# Forma de los errores de negocio, para la documentación OpenAPI
ERROR_RESPONSES = {
    status: {"model": schemas.ErrorResponse} for status in (400, 403, 404, 409)
}


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> int:
    # La autenticación ocurre antes (gateway/middleware); aquí solo se lee la identidad
    if not x_user_id or not x_user_id.strip().isdigit():
        raise HTTPException(status_code=401, detail="Usuario no autenticado")
    return int(x_user_id.strip())


def get_now() -> datetime:
    return datetime.now(timezone.utc)


def get_mailer() -> MailSink:
    return SmtpMailSink(settings)


def get_service(db: Session = Depends(get_db), mailer: MailSink = Depends(get_mailer)) -> AppointmentService:
    notifier = Notifier(
        SqlNotificationSink(db),
        mailer,
        locale=settings.NOTIFICATION_LOCALE,
        tz_name=settings.TIMEZONE,
        enqueue=enqueue if settings.MAIL_DISPATCH == "queue" else None,
    )
    return AppointmentService(SqlAlchemyRepository(db), notifier, settings)


@router.get("/appointments", response_model=list[schemas.AppointmentListItem])
def list_appointments(
    page: int = Query(default=1, ge=1),
    user_id: int = Depends(get_current_user_id),
    service: AppointmentService = Depends(get_service),
):
    return service.list_appointments(user_id, page)


@router.post("/appointments", response_model=schemas.AppointmentOut, responses=ERROR_RESPONSES)
def create_appointment(
    req: schemas.AppointmentCreate,
    user_id: int = Depends(get_current_user_id),
    service: AppointmentService = Depends(get_service),
    now: datetime = Depends(get_now),
):
    return service.schedule(user_id, req.provider_id, req.date, now)


@router.delete("/appointments/{appointment_id}", response_model=schemas.AppointmentOut, responses=ERROR_RESPONSES)
def cancel_appointment(
    appointment_id: int,
    user_id: int = Depends(get_current_user_id),
    service: AppointmentService = Depends(get_service),
    now: datetime = Depends(get_now),
):
    return service.cancel(appointment_id, user_id, now)


@router.get("/providers", response_model=list[schemas.ProviderOut])
def list_providers(
    _: int = Depends(get_current_user_id),
    service: AppointmentService = Depends(get_service),
):
    return service.list_providers()
