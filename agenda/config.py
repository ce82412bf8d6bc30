# agenda/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


SUPPORTED_LOCALES = ("es", "pt", "en")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ===== App =====
    APP_NAME: str = "agenda"
    ENV: str = "dev"
    # TZ con la que se truncan los slots y se formatean las notificaciones
    TIMEZONE: str = "America/Mexico_City"

    # ===== DB =====
    # En producción define DATABASE_URL con tu Postgres. Local puede caer a SQLite.
    DATABASE_URL: str = "sqlite:///./agenda.db"

    DB_POOL_SIZE: int = 2
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 min

    # ===== Reglas de agenda =====
    CANCEL_LEAD_HOURS: int = 2
    PAGE_SIZE: int = 20
    # es | pt | en
    NOTIFICATION_LOCALE: str = "es"

    # ===== Archivos (avatars) =====
    FILES_BASE_URL: str = "http://localhost:8000/files"

    # ===== Correo (SMTP) =====
    MAIL_HOST: Optional[str] = None
    MAIL_PORT: int = 587
    MAIL_USER: Optional[str] = None
    MAIL_PASSWORD: Optional[str] = None
    MAIL_USE_TLS: bool = True
    MAIL_FROM: str = "Equipo Agenda <noreply@agenda.local>"
    # sync = se intenta dentro del request; queue = job en segundo plano
    MAIL_DISPATCH: str = "sync"

    # Simulación (True = no envía correos reales, solo log)
    DRY_RUN: bool = False

    def model_post_init(self, __context) -> None:
        """
        Normaliza valores que llegan del entorno con mayúsculas o espacios.
        """
        self.NOTIFICATION_LOCALE = (self.NOTIFICATION_LOCALE or "es").strip().lower()
        if self.NOTIFICATION_LOCALE.replace("-", "_").split("_")[0] not in SUPPORTED_LOCALES:
            raise ValueError(f"NOTIFICATION_LOCALE no soportado: {self.NOTIFICATION_LOCALE!r} (use es, pt o en)")
        self.MAIL_DISPATCH = (self.MAIL_DISPATCH or "sync").strip().lower()
        if self.MAIL_DISPATCH not in ("sync", "queue"):
            raise ValueError(f"MAIL_DISPATCH inválido: {self.MAIL_DISPATCH!r} (use sync o queue)")
        if self.CANCEL_LEAD_HOURS < 0:
            raise ValueError("CANCEL_LEAD_HOURS no puede ser negativo")
        if self.PAGE_SIZE < 1:
            raise ValueError("PAGE_SIZE debe ser al menos 1")


settings = Settings()
