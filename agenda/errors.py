# agenda/errors.py
from __future__ import annotations


class SchedulingError(Exception):
    """
    Error de negocio reportado al cliente. Nunca tumba el proceso.
    - code: identificador estable para máquinas (no depender del mensaje)
    - status_code: lo que la capa HTTP devuelve
    """

    code = "scheduling_error"
    status_code = 400
    default_message = "No se pudo procesar la solicitud"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(SchedulingError):
    code = "validation_error"
    default_message = "Validación fallida"


class ProviderNotFound(SchedulingError):
    code = "provider_not_found"
    default_message = "Solo puede agendar citas con un proveedor"


class PastDate(SchedulingError):
    code = "past_date"
    default_message = "No se permiten fechas pasadas"


class SlotTaken(SchedulingError):
    code = "slot_taken"
    status_code = 409
    default_message = "El horario no está disponible"


class NotFound(SchedulingError):
    code = "not_found"
    status_code = 404
    default_message = "Cita no encontrada"


class Forbidden(SchedulingError):
    code = "forbidden"
    status_code = 403
    default_message = "No puede cancelar esta cita"


class TooLate(SchedulingError):
    code = "too_late"
    default_message = "Solo puede cancelar citas con 2 horas de anticipación"


class AlreadyCanceled(SchedulingError):
    code = "already_canceled"
    status_code = 409
    default_message = "Esta cita ya fue cancelada"


# Razones del verificador de disponibilidad → excepción que se propaga tal cual
REASON_ERRORS: dict[str, type[SchedulingError]] = {
    ProviderNotFound.code: ProviderNotFound,
    PastDate.code: PastDate,
    SlotTaken.code: SlotTaken,
    ValidationError.code: ValidationError,
}
