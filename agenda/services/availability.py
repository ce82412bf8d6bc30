# agenda/services/availability.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytz

from ..errors import PastDate, ProviderNotFound, SlotTaken, ValidationError
from ..repository import Repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Availability:
    ok: bool
    slot: Optional[datetime] = None
    reason: Optional[str] = None


def truncate_to_hour(instant: datetime, tz_name: str) -> datetime:
    """
    Inicio de la hora de `instant` en la TZ indicada, devuelto en UTC.
    Un datetime naive se interpreta como hora local de esa TZ.
    """
    tz = pytz.timezone(tz_name)
    if instant.tzinfo is None:
        local = tz.localize(instant)
    else:
        local = instant.astimezone(tz)
    start = local.replace(minute=0, second=0, microsecond=0, tzinfo=None)
    # Re-localiza para respetar el offset correcto de esa hora (DST)
    return tz.localize(start).astimezone(pytz.UTC)


def is_bookable(repo: Repository, provider_id: int, requested_at: datetime, now: datetime,
                tz_name: str = "UTC") -> Availability:
    """Solo lectura: no reserva nada."""
    provider = repo.find_user(provider_id)
    if provider is None or not provider.provider:
        return Availability(ok=False, reason=ProviderNotFound.code)

    try:
        slot = truncate_to_hour(requested_at, tz_name)
    except OverflowError:
        # Fechas en los extremos del calendario; naive para comparar sin desbordar
        if requested_at.replace(tzinfo=None) < now.replace(tzinfo=None):
            return Availability(ok=False, reason=PastDate.code)
        return Availability(ok=False, reason=ValidationError.code)

    if not slot > now:
        return Availability(ok=False, slot=slot, reason=PastDate.code)

    if repo.find_active_appointment(provider_id, slot) is not None:
        logger.debug("Slot ocupado: provider_id=%s slot=%s", provider_id, slot.isoformat())
        return Availability(ok=False, slot=slot, reason=SlotTaken.code)

    return Availability(ok=True, slot=slot)
