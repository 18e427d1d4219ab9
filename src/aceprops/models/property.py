"""
Modelo de Propiedad

Mapea la tabla 'properties'. La renta se guarda en peniques
(monthly_rent) para evitar redondeos de float.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from aceprops.errors import InvalidTransitionError


class PropertyStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    REJECTED = "rejected"
    ARCHIVED = "archived"

    @classmethod
    def parse(cls, value: Any) -> "PropertyStatus":
        """Status desde la DB; valores legacy ('pending') cuentan como draft."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.DRAFT

    def can_transition_to(self, target: "PropertyStatus") -> bool:
        return target in _PROPERTY_TRANSITIONS[self]

    def transition_to(self, target: "PropertyStatus") -> "PropertyStatus":
        if not self.can_transition_to(target):
            raise InvalidTransitionError(self.value, target.value)
        return target


_PROPERTY_TRANSITIONS = {
    PropertyStatus.DRAFT: {PropertyStatus.ACTIVE, PropertyStatus.REJECTED},
    PropertyStatus.ACTIVE: {PropertyStatus.REJECTED, PropertyStatus.ARCHIVED},
    PropertyStatus.REJECTED: set(),
    PropertyStatus.ARCHIVED: set(),
}


class PropertyRecord(BaseModel):
    """Propiedad publicada por un landlord."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = Field(None, description="UUID generado por Supabase")
    landlord_id: Optional[str] = None

    property_type: Optional[str] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    monthly_rent_minor_units: Optional[int] = Field(
        None, ge=0, description="Renta mensual en peniques"
    )

    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = None
    local_authority: Optional[str] = None

    amenities: list[str] = Field(default_factory=list)
    photos: list[str] = Field(default_factory=list)
    status: PropertyStatus = PropertyStatus.DRAFT
    available_date: Optional[date] = None
    licence: Optional[str] = Field(None, description="none, hmo, selective, ...")
    condition: Optional[str] = Field(None, description="excellent, good, needs_work, ...")

    created_at: Optional[datetime] = None

    @field_validator("amenities", "photos", mode="before")
    @classmethod
    def _list_or_empty(cls, value: Any) -> list:
        if not value:
            return []
        if isinstance(value, str):
            return [value]
        return list(value)

    @property
    def monthly_rent(self) -> Optional[Decimal]:
        """Renta en libras."""
        if self.monthly_rent_minor_units is None:
            return None
        return Decimal(self.monthly_rent_minor_units) / 100

    @property
    def title(self) -> str:
        """Título corto para cards y asuntos de email."""
        kind = (self.property_type or "property").replace("_", " ")
        parts = []
        if self.bedrooms:
            parts.append(f"{self.bedrooms} bed {kind}")
        else:
            parts.append(kind.capitalize())
        if self.city:
            parts.append(f"in {self.city}")
        return " ".join(parts)

    @classmethod
    def from_db_row(cls, row: dict) -> "PropertyRecord":
        """
        Construye la propiedad desde un row de 'properties'.

        Los numéricos que no parsean quedan en None para que el
        matcher los reporte como datos faltantes.
        """
        return cls(
            id=row.get("id"),
            landlord_id=row.get("landlord_id"),
            property_type=row.get("property_type"),
            bedrooms=_to_int(row.get("bedrooms")),
            bathrooms=_to_int(row.get("bathrooms")),
            monthly_rent_minor_units=_to_int(row.get("monthly_rent")),
            description=row.get("description"),
            address=row.get("address"),
            city=row.get("city"),
            postcode=row.get("postcode"),
            local_authority=row.get("local_authority"),
            amenities=row.get("amenities"),
            photos=row.get("photos"),
            status=PropertyStatus.parse(row.get("status")),
            available_date=_to_date(row.get("available_date")),
            licence=row.get("property_licence"),
            condition=row.get("property_condition"),
            created_at=row.get("created_at"),
        )

    def to_card(self) -> dict:
        """Datos mínimos para renderizar una card de propiedad."""
        return {
            "id": self.id,
            "title": self.title,
            "property_type": self.property_type,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "price": float(self.monthly_rent) if self.monthly_rent is not None else None,
            "city": self.city,
            "postcode": self.postcode,
            "image": self.photos[0] if self.photos else None,
            "status": self.status.value,
            "available_date": self.available_date.isoformat() if self.available_date else None,
        }


def _to_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        result = int(Decimal(str(value).strip()))
    except (ArithmeticError, ValueError, TypeError):
        return None
    return result if result >= 0 else None


def _to_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None
