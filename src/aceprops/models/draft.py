"""
Modelos del alta de propiedad en varios pasos.

Cada paso del formulario se guarda tal cual (camelCase) en
'property_drafts.step_N_data'; al publicar se combinan en una fila
de 'properties' con status draft, a la espera de revisión.
"""

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from aceprops.config import EMAIL_PATTERN
from aceprops.errors import DraftValidationError

_EMAIL_RE = re.compile(EMAIL_PATTERN)

# Campos sin los cuales no se puede crear la propiedad
REQUIRED_PUBLISH_FIELDS = (
    "propertyType",
    "bedrooms",
    "bathrooms",
    "monthlyRent",
    "address",
    "city",
)


class DraftStep(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PropertyDetailsStep(DraftStep):
    """Paso 1: tipo, habitaciones y renta."""

    property_type: str = Field(..., min_length=1, alias="propertyType")
    bedrooms: str = Field(..., min_length=1)
    bathrooms: str = Field(..., min_length=1)
    monthly_rent: str = Field(..., min_length=1, alias="monthlyRent")
    security_deposit: str = Field(..., min_length=1, alias="securityDeposit")
    available_date: str = Field(
        ..., min_length=1, alias="availableDate", description="YYYY-MM-DD o 'immediate'"
    )
    description: str = Field(..., min_length=1)
    amenities: list[str] = Field(default_factory=list)

    @field_validator("bedrooms", "bathrooms", "monthly_rent", "security_deposit", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        # El formulario manda strings, otros clientes mandan números
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return str(value)
        return value


class PropertyLocationStep(DraftStep):
    """Paso 2: dirección."""

    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: Optional[str] = None
    postcode: str = Field(..., min_length=1)


class PropertyPhotosStep(DraftStep):
    """Paso 3: URLs de fotos ya subidas."""

    photos: list[str] = Field(..., min_length=1)


class PropertyContactStep(DraftStep):
    """Paso 4: contacto, opcional."""

    contact_name: Optional[str] = Field(None, alias="contactName")
    contact_email: Optional[str] = Field(None, alias="contactEmail")
    contact_phone: Optional[str] = Field(None, alias="contactPhone")

    @field_validator("contact_email")
    @classmethod
    def _check_email(cls, value: Optional[str]) -> Optional[str]:
        if value and not _EMAIL_RE.match(value):
            raise ValueError("invalid email")
        return value


DRAFT_STEPS: dict[int, type[DraftStep]] = {
    1: PropertyDetailsStep,
    2: PropertyLocationStep,
    3: PropertyPhotosStep,
    4: PropertyContactStep,
}


def validate_step(step: int, data: Any) -> dict:
    """
    Valida los datos de un paso.

    Returns:
        Los datos normalizados, con las claves camelCase del formulario

    Raises:
        DraftValidationError: paso desconocido o datos inválidos
    """
    schema = DRAFT_STEPS.get(step)
    if schema is None:
        raise DraftValidationError(f"Invalid step: {step}")
    if not isinstance(data, dict):
        raise DraftValidationError("Step data must be an object")
    try:
        model = schema.model_validate(data)
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise DraftValidationError("Validation failed", errors) from e
    return model.model_dump(by_alias=True, exclude_none=True)


class PropertyDraft(BaseModel):
    """Borrador de alta de una propiedad (tabla 'property_drafts')."""

    id: Optional[str] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = Field(None, description="Para usuarios anónimos")
    current_step: int = Field(1, ge=1)
    steps: dict[int, dict] = Field(default_factory=dict)

    @classmethod
    def from_db_row(cls, row: dict) -> "PropertyDraft":
        return cls(
            id=row.get("id"),
            user_id=row.get("user_id"),
            session_id=row.get("session_id"),
            current_step=row.get("current_step") or 1,
            steps={
                step: row[f"step_{step}_data"]
                for step in DRAFT_STEPS
                if row.get(f"step_{step}_data")
            },
        )

    def merged_data(self) -> dict:
        """Datos de todos los pasos en un solo dict, en orden de paso."""
        data: dict = {}
        for step in sorted(self.steps):
            data.update(self.steps[step])
        return data

    def missing_fields(self) -> list[str]:
        data = self.merged_data()
        return [key for key in REQUIRED_PUBLISH_FIELDS if not data.get(key)]

    def to_property_row(
        self, landlord_id: str, today: date, contact_defaults: Optional[dict] = None
    ) -> dict:
        """
        Fila de 'properties' para insertar.

        La renta y el depósito pasan a peniques; 'immediate' como
        fecha disponible es hoy.
        """
        data = self.merged_data()
        defaults = contact_defaults or {}

        available = data.get("availableDate")
        if available == "immediate":
            available_date = today.isoformat()
        else:
            available_date = _iso_date_or_none(available)

        return {
            "landlord_id": landlord_id,
            "property_type": data.get("propertyType"),
            "bedrooms": _int_or(data.get("bedrooms"), 1),
            "bathrooms": _int_or(data.get("bathrooms"), 1),
            "monthly_rent": to_pence(data.get("monthlyRent")),
            "security_deposit": to_pence(data.get("securityDeposit")),
            "available_date": available_date,
            "description": data.get("description"),
            "amenities": data.get("amenities") or [],
            "address": data.get("address"),
            "city": data.get("city"),
            "county": data.get("state") or data.get("county"),
            "postcode": data.get("postcode"),
            "photos": data.get("photos") or [],
            "contact_name": data.get("contactName") or defaults.get("name"),
            "contact_email": data.get("contactEmail") or defaults.get("email"),
            "contact_phone": data.get("contactPhone") or defaults.get("phone"),
            "status": "draft",
        }


def to_pence(value: Any) -> Optional[int]:
    """Libras (string o número) a peniques, redondeando al penique."""
    if value is None or value == "":
        return None
    try:
        pounds = Decimal(str(value).strip().replace(",", ""))
    except InvalidOperation:
        return None
    if not pounds.is_finite() or pounds < 0:
        return None
    return int((pounds * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _int_or(value: Any, default: int) -> int:
    try:
        result = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return result if result >= 0 else default


def _iso_date_or_none(value: Any) -> Optional[str]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10]).isoformat()
    except ValueError:
        return None
