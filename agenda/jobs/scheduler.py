import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from ..config import settings

logger = logging.getLogger(__name__)

_scheduler: Optional[BackgroundScheduler] = None


def get_scheduler() -> BackgroundScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = BackgroundScheduler(timezone=settings.TIMEZONE)
    return _scheduler


def start_scheduler() -> BackgroundScheduler:
    scheduler = get_scheduler()
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler de correo iniciado (TZ=%s)", settings.TIMEZONE)
    return scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None


def enqueue(func: Callable, *args) -> None:
    """Corre `func(*args)` una vez, en segundo plano y lo antes posible."""
    scheduler = start_scheduler()
    scheduler.add_job(
        func,
        trigger="date",
        run_date=datetime.now(timezone.utc),
        args=list(args),
        misfire_grace_time=300,
    )
