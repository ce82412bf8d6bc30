# agenda/repository.py
from __future__ import annotations
import logging
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from . import models
from .errors import SlotTaken

logger = logging.getLogger(__name__)


class Repository(Protocol):
    """Lo único que la agenda necesita del almacenamiento."""

    def find_user(self, user_id: int) -> Optional[models.User]: ...

    def find_provider_users(self) -> list[models.User]: ...

    def find_appointment(self, appointment_id: int) -> Optional[models.Appointment]: ...

    def find_active_appointment(self, provider_id: int, instant: datetime) -> Optional[models.Appointment]: ...

    def create_appointment(self, user_id: int, provider_id: int, date: datetime) -> models.Appointment: ...

    def save_appointment(self, appointment: models.Appointment) -> bool: ...

    def list_appointments(self, user_id: int, page: int, page_size: int) -> list[models.Appointment]: ...


class SqlAlchemyRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_user(self, user_id: int) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.id == user_id).first()

    def find_provider_users(self) -> list[models.User]:
        return (
            self.db.query(models.User)
            .options(joinedload(models.User.avatar))
            .filter(models.User.provider.is_(True))
            .order_by(models.User.name)
            .all()
        )

    def find_appointment(self, appointment_id: int) -> Optional[models.Appointment]:
        return (
            self.db.query(models.Appointment)
            .options(joinedload(models.Appointment.provider))
            .filter(models.Appointment.id == appointment_id)
            .first()
        )

    def find_active_appointment(self, provider_id: int, instant: datetime) -> Optional[models.Appointment]:
        return (
            self.db.query(models.Appointment)
            .filter(
                models.Appointment.provider_id == provider_id,
                models.Appointment.date == instant,
                models.Appointment.canceled_at.is_(None),
            )
            .first()
        )

    def create_appointment(self, user_id: int, provider_id: int, date: datetime) -> models.Appointment:
        """
        Inserta y confirma. El índice único parcial cierra la carrera
        entre la verificación de disponibilidad y el insert.
        """
        appt = models.Appointment(user_id=user_id, provider_id=provider_id, date=date, canceled_at=None)
        self.db.add(appt)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            # Solo el índice de slot activo se traduce; otras violaciones suben tal cual
            if self.find_active_appointment(provider_id, date) is None:
                raise
            logger.info("Slot ocupado al insertar: provider_id=%s date=%s", provider_id, date.isoformat())
            raise SlotTaken()
        self.db.refresh(appt)
        return appt

    def save_appointment(self, appointment: models.Appointment) -> bool:
        """
        Persiste la cancelación. canceled_at es el único campo mutable y solo
        se escribe si seguía en NULL; False = otra petición canceló primero.
        """
        updated = (
            self.db.query(models.Appointment)
            .filter(
                models.Appointment.id == appointment.id,
                models.Appointment.canceled_at.is_(None),
            )
            .update({models.Appointment.canceled_at: appointment.canceled_at}, synchronize_session=False)
        )
        if updated != 1:
            self.db.rollback()
            return False
        self.db.commit()
        return True

    def list_appointments(self, user_id: int, page: int, page_size: int) -> list[models.Appointment]:
        return (
            self.db.query(models.Appointment)
            .options(joinedload(models.Appointment.provider).joinedload(models.User.avatar))
            .filter(
                models.Appointment.user_id == user_id,
                models.Appointment.canceled_at.is_(None),
            )
            .order_by(models.Appointment.date)
            .limit(page_size)
            .offset((page - 1) * page_size)
            .all()
        )


class SqlNotificationSink:
    """Notificaciones internas: un insert durable en la misma BD."""

    def __init__(self, db: Session):
        self.db = db

    def record_notification(self, recipient_user_id: int, content: str) -> models.Notification:
        notif = models.Notification(user_id=recipient_user_id, content=content)
        self.db.add(notif)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return notif
