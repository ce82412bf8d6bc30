# agenda/database.py
from __future__ import annotations
from datetime import datetime, timezone

from sqlalchemy import create_engine, DateTime
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator
from .config import settings

# Usa siempre la URL desde settings (que a su vez lee .env)
DATABASE_URL: str | None = settings.DATABASE_URL
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL no está configurada (revisa tu .env).")


def make_engine(url: str):
    if url.startswith("sqlite"):
        kwargs = {
            "connect_args": {"check_same_thread": False},  # requerido por SQLite en hilos
            "future": True,
        }
        # SQLite en memoria: una sola conexión compartida o cada sesión vería otra BD
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True
        return create_engine(url, **kwargs)

    # Postgres u otros (producción)
    return create_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        future=True,
    )


engine = make_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
    future=True,
)

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """
    Guarda datetimes como UTC naive y los devuelve aware en UTC.
    SQLite no conserva tzinfo; así las comparaciones y el índice único
    funcionan igual en SQLite y Postgres.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Se esperaba un datetime con zona horaria")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """
    Crea las tablas si no existen. Importa modelos antes para que SQLAlchemy
    conozca todos los metadatos.
    """
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
