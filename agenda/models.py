# agenda/models.py
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, ForeignKey, Boolean, Text, Index, text
from datetime import datetime, timedelta, timezone
from .config import settings
from .database import Base, UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class File(Base):
    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    path: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)

    @property
    def url(self) -> str:
        return f"{settings.FILES_BASE_URL.rstrip('/')}/{self.path}"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    # Un proveedor es un usuario con la bandera activa, no otro tipo
    provider: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    avatar_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("files.id", ondelete="SET NULL"),
        nullable=True,
    )

    avatar = relationship("File")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # Un solo slot activo por proveedor y hora
        Index(
            "uq_appointments_provider_slot_active",
            "provider_id",
            "date",
            unique=True,
            sqlite_where=text("canceled_at IS NULL"),
            postgresql_where=text("canceled_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    # Siempre truncada al inicio de la hora
    date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)

    user = relationship("User", foreign_keys=[user_id])
    provider = relationship("User", foreign_keys=[provider_id])

    @property
    def past(self) -> bool:
        return self.date <= _utcnow()

    @property
    def cancelable(self) -> bool:
        return _utcnow() < self.date - timedelta(hours=settings.CANCEL_LEAD_HOURS)


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
