"""
Modelos de Visitas

Estados de una visita, pedidos de slot y preferencias de
disponibilidad del landlord.
"""

import re
import datetime as dt
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from aceprops.config import SLOT_INTERVAL_MINUTES
from aceprops.errors import InvalidTransitionError

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2}(?:\.\d+)?)?$")


class ViewingStatus(str, Enum):
    """
    Estados de una visita.

    pending -> approved | rejected | cancelled
    approved -> rejected | cancelled | completed
    rejected, cancelled y completed son terminales.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return not _VIEWING_TRANSITIONS[self]

    @property
    def occupies_slot(self) -> bool:
        """Solo pending y approved bloquean el slot."""
        return self in (ViewingStatus.PENDING, ViewingStatus.APPROVED)

    def can_transition_to(self, target: "ViewingStatus") -> bool:
        return target in _VIEWING_TRANSITIONS[self]

    def transition_to(self, target: "ViewingStatus") -> "ViewingStatus":
        if not self.can_transition_to(target):
            raise InvalidTransitionError(self.value, target.value)
        return target


_VIEWING_TRANSITIONS = {
    ViewingStatus.PENDING: {
        ViewingStatus.APPROVED,
        ViewingStatus.REJECTED,
        ViewingStatus.CANCELLED,
    },
    ViewingStatus.APPROVED: {
        ViewingStatus.REJECTED,
        ViewingStatus.CANCELLED,
        ViewingStatus.COMPLETED,
    },
    ViewingStatus.REJECTED: set(),
    ViewingStatus.CANCELLED: set(),
    ViewingStatus.COMPLETED: set(),
}

# Valores de status que ocupan un slot, para filtrar en la DB
OCCUPYING_STATUSES = [status.value for status in ViewingStatus if status.occupies_slot]


def normalize_time(value: Any) -> str:
    """
    Normaliza una hora a HH:MM.

    Postgres devuelve las columnas 'time' como HH:MM:SS.

    Raises:
        ValueError: si no es una hora válida
    """
    match = _TIME_RE.match(str(value).strip())
    if not match:
        raise ValueError(f"invalid time: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"invalid time: {value!r}")
    return f"{hours:02d}:{minutes:02d}"


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


class ViewingSlotRequest(BaseModel):
    """Pedido de un slot de visita: HH:MM en incrementos de 30 minutos."""

    property_id: str
    date: dt.date
    time: str

    @field_validator("time", mode="before")
    @classmethod
    def _check_time(cls, value: Any) -> str:
        normalized = normalize_time(value)
        if time_to_minutes(normalized) % SLOT_INTERVAL_MINUTES != 0:
            raise ValueError(
                f"time must be on a {SLOT_INTERVAL_MINUTES}-minute boundary"
            )
        return normalized


class ViewingBooking(BaseModel):
    """Visita pedida por un investor (tabla 'property_viewings')."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    property_id: str
    investor_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("investor_id", "user_id")
    )
    landlord_id: Optional[str] = None
    date: dt.date = Field(..., validation_alias=AliasChoices("date", "viewing_date"))
    time: str = Field(..., validation_alias=AliasChoices("time", "viewing_time"))
    status: ViewingStatus = ViewingStatus.PENDING

    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_phone: Optional[str] = None
    message: Optional[str] = None
    rejection_reason: Optional[str] = None
    cancellation_reason: Optional[str] = None

    @field_validator("time", mode="before")
    @classmethod
    def _normalize_time(cls, value: Any) -> str:
        return normalize_time(value)

    @classmethod
    def from_db_row(cls, row: dict) -> "ViewingBooking":
        return cls.model_validate(row)

    def to_db_dict(self) -> dict:
        """Convierte a diccionario para inserción en Supabase."""
        return {
            "property_id": self.property_id,
            "user_id": self.investor_id,
            "landlord_id": self.landlord_id,
            "viewing_date": self.date.isoformat(),
            "viewing_time": self.time,
            "status": self.status.value,
            "user_name": self.user_name,
            "user_email": self.user_email,
            "user_phone": self.user_phone,
            "message": self.message,
        }


class LandlordAvailabilityPreference(BaseModel):
    """
    Días y franjas en las que el landlord acepta visitas.

    Listas vacías significan "todos los días hábiles / horario comercial".
    """

    model_config = ConfigDict(populate_by_name=True)

    preferred_days: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("preferred_days", "preferredDays"),
    )
    preferred_time_windows: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "preferred_time_windows", "preferred_times", "preferredTimes"
        ),
    )

    @field_validator("preferred_days", "preferred_time_windows", mode="before")
    @classmethod
    def _list_or_empty(cls, value: Any) -> list[str]:
        if not value:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(v).strip() for v in value if v and str(v).strip()]

    @classmethod
    def from_profile_row(cls, row: Optional[dict]) -> "LandlordAvailabilityPreference":
        """Lee preferred_days / preferred_times de 'user_profiles'."""
        if not row:
            return cls()
        return cls(
            preferred_days=row.get("preferred_days"),
            preferred_time_windows=row.get("preferred_times"),
        )
