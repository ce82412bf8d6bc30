# agenda/services/notifications.py
from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable, Optional, Protocol

import pytz

from .. import models

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def record_notification(self, recipient_user_id: int, content: str): ...


class MailSink(Protocol):
    def send_mail(self, to_name: str, to_email: str, subject: str, body: str) -> None: ...


# ------------------ textos por locale ------------------

_MONTHS = {
    "es": ["enero", "febrero", "marzo", "abril", "mayo", "junio",
           "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre"],
    "pt": ["janeiro", "fevereiro", "março", "abril", "maio", "junho",
           "julho", "agosto", "setembro", "outubro", "novembro", "dezembro"],
    "en": ["January", "February", "March", "April", "May", "June",
           "July", "August", "September", "October", "November", "December"],
}

_DATE_PATTERNS = {
    "es": "día {day:02d} de {month}, a las {hour}:{minute:02d} hrs",
    "pt": "dia {day:02d} de {month}, às {hour}:{minute:02d}hrs",
    "en": "{month} {day:02d}, at {hour}:{minute:02d}",
}

_CREATED_TEMPLATES = {
    "es": "Nueva cita de {name} para el {date}",
    "pt": "Novo agendamento para {name} no {date}",
    "en": "New appointment from {name} on {date}",
}

# Asunto y cuerpo fijos; no llevan datos de la cita
_CANCEL_MAIL = {
    "es": ("Cita cancelada", "Tiene una nueva cancelación"),
    "pt": ("Agendamento cancelado", "Você tem um novo cancelamento"),
    "en": ("Appointment canceled", "You have a new cancellation"),
}


def _locale_key(locale: str) -> str:
    key = (locale or "").split("_")[0].split("-")[0].lower()
    if key not in _MONTHS:
        raise ValueError(f"Locale no soportado: {locale!r}")
    return key


def format_slot(instant: datetime, locale: str = "es", tz_name: str = "UTC") -> str:
    """
    Fecha legible para notificaciones: día, nombre del mes y H:mm (24h)
    en la TZ indicada.
    """
    key = _locale_key(locale)
    local = instant.astimezone(pytz.timezone(tz_name))
    return _DATE_PATTERNS[key].format(
        day=local.day,
        month=_MONTHS[key][local.month - 1],
        hour=local.hour,
        minute=local.minute,
    )


def created_content(requester_name: str, slot: datetime, locale: str = "es", tz_name: str = "UTC") -> str:
    key = _locale_key(locale)
    return _CREATED_TEMPLATES[key].format(name=requester_name, date=format_slot(slot, key, tz_name))


def cancel_mail_texts(locale: str = "es") -> tuple[str, str]:
    return _CANCEL_MAIL[_locale_key(locale)]


# ------------------ notifier ------------------

class Notifier:
    """
    Efectos posteriores a una transición ya confirmada.
    Ningún fallo aquí se reporta como fallo de la operación.

    - creación: registro interno (barato, confiable)
    - cancelación: correo externo; `enqueue` lo manda a un job en segundo
      plano, sin `enqueue` se intenta dentro del request
    """

    def __init__(
        self,
        notifications: NotificationSink,
        mailer: MailSink,
        locale: str = "es",
        tz_name: str = "UTC",
        enqueue: Optional[Callable[..., None]] = None,
    ):
        self.notifications = notifications
        self.mailer = mailer
        self.locale = locale
        self.tz_name = tz_name
        self.enqueue = enqueue

    def appointment_created(self, appointment: models.Appointment, requester_name: str) -> bool:
        try:
            content = created_content(requester_name, appointment.date, self.locale, self.tz_name)
            self.notifications.record_notification(appointment.provider_id, content)
        except Exception:
            logger.exception("No se pudo registrar la notificación de la cita %s", appointment.id)
            return False
        logger.info("Notificación registrada: appointment_id=%s provider_id=%s",
                    appointment.id, appointment.provider_id)
        return True

    def appointment_canceled(self, appointment: models.Appointment) -> bool:
        try:
            provider = appointment.provider
            subject, body = cancel_mail_texts(self.locale)
        except Exception:
            logger.exception("No se pudo preparar el correo de cancelación (cita %s)", appointment.id)
            return False

        if self.enqueue is not None:
            try:
                self.enqueue(self.mailer.send_mail, provider.name, provider.email, subject, body)
            except Exception:
                logger.exception("No se pudo encolar el correo de cancelación (cita %s)", appointment.id)
                return False
            logger.info("Correo de cancelación encolado: appointment_id=%s", appointment.id)
            return True

        try:
            self.mailer.send_mail(provider.name, provider.email, subject, body)
        except Exception:
            logger.exception("Falló el correo de cancelación (cita %s)", appointment.id)
            return False
        logger.info("Correo de cancelación enviado: appointment_id=%s to=%s", appointment.id, provider.email)
        return True
