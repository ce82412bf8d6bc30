from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Any, Optional


class AppointmentCreate(BaseModel):
    # Tipos sueltos: la validación de negocio vive en el servicio
    provider_id: Optional[Any] = None
    date: Optional[Any] = None


class FileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    path: str
    url: str


class ProviderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    avatar: Optional[FileOut] = None


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    provider_id: int
    date: datetime
    canceled_at: Optional[datetime] = None
    past: bool
    cancelable: bool


class AppointmentListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: datetime
    past: bool
    cancelable: bool
    provider: ProviderOut


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail
