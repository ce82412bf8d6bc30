# agenda/services/appointments.py
from __future__ import annotations
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from dateutil import parser as dtparser

from .. import models
from ..config import Settings, settings as default_settings
from ..errors import (
    REASON_ERRORS,
    AlreadyCanceled,
    Forbidden,
    NotFound,
    TooLate,
    ValidationError,
)
from ..repository import Repository
from .availability import is_bookable
from .notifications import Notifier

logger = logging.getLogger(__name__)


def _aware(dt: datetime) -> datetime:
    """`now` sin tzinfo se toma como UTC."""
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def _parse_date(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            return dtparser.isoparse(raw.strip())
        except (ValueError, OverflowError):
            raise ValidationError("Formato de fecha inválido. Use ISO-8601.")
    raise ValidationError("El campo date es obligatorio")


def _parse_provider_id(raw: Any) -> int:
    if raw is None or isinstance(raw, bool):
        raise ValidationError("El campo provider_id es obligatorio")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    raise ValidationError("provider_id debe ser un entero")


class AppointmentService:
    """
    Ciclo de vida de una cita: Activa → Cancelada, una sola vez.
    Es el único que escribe citas; el repositorio solo persiste.
    """

    def __init__(self, repo: Repository, notifier: Notifier, settings: Optional[Settings] = None):
        self.repo = repo
        self.notifier = notifier
        self.settings = settings or default_settings

    def schedule(self, requester_id: int, provider_id: Any, raw_date: Any, now: datetime) -> models.Appointment:
        provider_id = _parse_provider_id(provider_id)
        requested_at = _parse_date(raw_date)
        now = _aware(now)

        availability = is_bookable(self.repo, provider_id, requested_at, now, self.settings.TIMEZONE)
        if not availability.ok:
            logger.info("Reserva rechazada (%s): requester_id=%s provider_id=%s date=%s",
                        availability.reason, requester_id, provider_id, requested_at.isoformat())
            raise REASON_ERRORS[availability.reason]()

        # SlotTaken también puede salir de aquí si otra petición ganó la carrera
        appt = self.repo.create_appointment(requester_id, provider_id, availability.slot)
        logger.info("Cita creada: id=%s requester_id=%s provider_id=%s date=%s",
                    appt.id, requester_id, provider_id, appt.date.isoformat())

        requester_name = f"usuario {requester_id}"
        try:
            requester = self.repo.find_user(requester_id)
            if requester is not None:
                requester_name = requester.name
        except Exception:
            # La cita ya está confirmada; solo se pierde el nombre en la notificación
            logger.exception("No se pudo leer al solicitante %s", requester_id)
        self.notifier.appointment_created(appt, requester_name)
        return appt

    def cancel(self, appointment_id: int, caller_id: int, now: datetime) -> models.Appointment:
        now = _aware(now)
        appt = self.repo.find_appointment(appointment_id)
        if appt is None:
            raise NotFound()

        if appt.user_id != caller_id:
            raise Forbidden()

        lead = timedelta(hours=self.settings.CANCEL_LEAD_HOURS)
        if not now < appt.date - lead:
            raise TooLate(f"Solo puede cancelar citas con {self.settings.CANCEL_LEAD_HOURS} horas de anticipación")

        if appt.canceled_at is not None:
            raise AlreadyCanceled()

        appt.canceled_at = now
        if not self.repo.save_appointment(appt):
            logger.info("Cancelación concurrente perdida: appointment_id=%s", appointment_id)
            raise AlreadyCanceled()
        logger.info("Cita cancelada: id=%s by=%s", appt.id, caller_id)

        self.notifier.appointment_canceled(appt)
        return appt

    def list_appointments(self, requester_id: int, page: int = 1) -> list[models.Appointment]:
        page = max(int(page or 1), 1)
        return self.repo.list_appointments(requester_id, page, self.settings.PAGE_SIZE)

    def list_providers(self) -> list[models.User]:
        return self.repo.find_provider_users()
