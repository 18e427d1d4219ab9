"""
Modelo de Preferencias del Investor

Define el perfil de preferencias que usa el PreferenceMatcher.
Los rows de 'investor_preferences' guardan las preferencias como JSONB
(preference_data); from_db_row es el único punto de validación
entre ese JSON sin tipar y el core de matching.
"""

import json
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from aceprops.config import PROPERTY_TYPE_SYNONYMS
from aceprops.errors import ProfileValidationError


class OperatorType(str, Enum):
    SA_OPERATOR = "sa_operator"
    SUPPORTED_LIVING = "supported_living"
    SOCIAL_HOUSING = "social_housing"
    OTHER = "other"


class BudgetType(str, Enum):
    PER_PROPERTY = "per_property"
    TOTAL_PORTFOLIO = "total_portfolio"


def normalize_property_type(value: Optional[str]) -> Optional[str]:
    """
    Normaliza un tipo de propiedad al vocabulario de tags del formulario.

    'Flat', 'apartment' -> 'flats'; 'Semi-Detached' -> 'houses'.
    Los valores desconocidos quedan en minúsculas tal cual.
    """
    if not value:
        return None
    key = str(value).strip().lower()
    if not key:
        return None
    return PROPERTY_TYPE_SYNONYMS.get(key, key)


class BedroomRange(BaseModel):
    """Rango de dormitorios. max=None significa sin tope."""

    min: int = Field(1, ge=1)
    max: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def _check_order(self) -> "BedroomRange":
        if self.max is not None and self.min > self.max:
            raise ValueError("bedrooms.min must be <= bedrooms.max")
        return self


class BudgetRange(BaseModel):
    """Rango de presupuesto en libras (major units)."""

    model_config = ConfigDict(populate_by_name=True)

    min: Decimal = Field(Decimal("0"), ge=0)
    max: Optional[Decimal] = Field(None, ge=0)
    budget_type: BudgetType = Field(
        BudgetType.PER_PROPERTY,
        validation_alias=AliasChoices("budget_type", "type"),
    )

    @model_validator(mode="after")
    def _check_order(self) -> "BudgetRange":
        if self.max is not None and self.min > self.max:
            raise ValueError("budget.min must be <= budget.max")
        return self


class LocationPreference(BaseModel):
    """
    Ubicación buscada por el investor.

    Solo 'city' participa del matching; areas y radius se guardan
    para mostrarlos en el dashboard.
    """

    model_config = ConfigDict(populate_by_name=True)

    city: str = Field(..., min_length=1)
    areas: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("areas", "localAuthorities"),
    )
    radius_miles: Optional[float] = Field(
        None,
        ge=0,
        validation_alias=AliasChoices("radius_miles", "radiusMiles"),
    )

    @field_validator("areas", mode="before")
    @classmethod
    def _clean_areas(cls, value: Any) -> list[str]:
        if not value:
            return []
        return [str(a).strip() for a in value if a and str(a).strip()]


class AvailabilityPreference(BaseModel):
    """Cuándo puede tomar la propiedad. immediate=True tiene prioridad."""

    model_config = ConfigDict(populate_by_name=True)

    immediate: bool = True
    available_from: Optional[date] = Field(
        None,
        validation_alias=AliasChoices("available_from", "availableFrom"),
    )

    @property
    def effective_from(self) -> Optional[date]:
        if self.immediate:
            return None
        return self.available_from


class PreferenceProfile(BaseModel):
    """Perfil de preferencias activo de un investor."""

    id: Optional[str] = Field(None, description="UUID generado por Supabase")
    investor_id: Optional[str] = Field(None, description="FK al user_profile")

    operator_type: OperatorType = Field(OperatorType.OTHER)
    property_types: list[str] = Field(
        default_factory=list,
        description="Tags de tipo: houses, flats, hmo, studios, commercial",
    )
    bedroom_range: Optional[BedroomRange] = None
    budget_range: Optional[BudgetRange] = None
    locations: list[LocationPreference] = Field(default_factory=list)
    availability: AvailabilityPreference = Field(
        default_factory=AvailabilityPreference
    )
    additional_preferences: list[str] = Field(default_factory=list)

    active: bool = Field(True, description="Los perfiles inactivos no entran al batch")
    notification_enabled: bool = Field(True)

    @field_validator("property_types", mode="before")
    @classmethod
    def _normalize_types(cls, value: Any) -> list[str]:
        if not value:
            return []
        normalized = []
        for item in value:
            tag = normalize_property_type(item)
            if tag and tag not in normalized:
                normalized.append(tag)
        return normalized

    @property
    def cities(self) -> list[str]:
        """Ciudades buscadas, en minúsculas y sin duplicados."""
        seen = []
        for loc in self.locations:
            city = loc.city.strip().lower()
            if city and city not in seen:
                seen.append(city)
        return seen

    @classmethod
    def from_db_row(cls, row: dict) -> "PreferenceProfile":
        """
        Construye el perfil desde un row de 'investor_preferences'.

        Raises:
            ProfileValidationError: si falta preference_data o no valida
        """
        if not row:
            raise ProfileValidationError("preference row is empty")

        data = row.get("preference_data")
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise ProfileValidationError("preference_data is not valid JSON") from e

        if not data or not isinstance(data, dict):
            raise ProfileValidationError("preference_data is missing")

        bedrooms = data.get("bedrooms") or {}
        budget = data.get("budget") or {}

        try:
            return cls(
                id=row.get("id"),
                investor_id=row.get("investor_id"),
                operator_type=row.get("operator_type") or OperatorType.OTHER,
                property_types=data.get("property_types") or [],
                bedroom_range=_range_or_none(bedrooms, default_min=1),
                budget_range=_range_or_none(budget, default_min=0),
                locations=[
                    loc
                    for loc in (data.get("locations") or [])
                    if isinstance(loc, dict) and loc.get("city")
                ],
                availability=data.get("availability") or {},
                additional_preferences=data.get("additional_preferences") or [],
                active=row.get("is_active") is not False,
                notification_enabled=row.get("notification_enabled") is not False,
            )
        except ValidationError as e:
            raise ProfileValidationError(str(e)) from e

    def to_preference_data(self) -> dict:
        """Convierte al JSON que se guarda en 'preference_data'."""
        data: dict = {
            "property_types": self.property_types,
            "locations": [
                {
                    "city": loc.city,
                    "localAuthorities": loc.areas,
                    "radiusMiles": loc.radius_miles,
                }
                for loc in self.locations
            ],
            "availability": {
                "immediate": self.availability.immediate,
                "availableFrom": (
                    self.availability.available_from.isoformat()
                    if self.availability.available_from
                    else None
                ),
            },
            "additional_preferences": self.additional_preferences,
        }
        if self.bedroom_range:
            data["bedrooms"] = self.bedroom_range.model_dump()
        if self.budget_range:
            data["budget"] = {
                "min": float(self.budget_range.min),
                "max": float(self.budget_range.max) if self.budget_range.max is not None else None,
                "type": self.budget_range.budget_type.value,
            }
        return data


def _range_or_none(raw: dict, default_min: int) -> Optional[dict]:
    if not isinstance(raw, dict):
        raise ProfileValidationError(f"expected an object with min/max, got {raw!r}")
    # {min: null, max: null} es "sin preferencia"
    if raw.get("min") is None and raw.get("max") is None:
        return None
    result = dict(raw)
    if result.get("min") is None:
        result["min"] = default_min
    return result
