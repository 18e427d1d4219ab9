"""
Modelos de datos del sistema.

- Investor: PreferenceProfile
- Landlord: PropertyRecord, PropertyDraft, LandlordAvailabilityPreference
- Visitas: ViewingBooking, ViewingSlotRequest, ViewingStatus
"""

from aceprops.models.draft import (
    DRAFT_STEPS,
    PropertyDraft,
    to_pence,
    validate_step,
)
from aceprops.models.preferences import (
    AvailabilityPreference,
    BedroomRange,
    BudgetRange,
    BudgetType,
    LocationPreference,
    OperatorType,
    PreferenceProfile,
    normalize_property_type,
)
from aceprops.models.property import PropertyRecord, PropertyStatus
from aceprops.models.user import UserProfile, UserType
from aceprops.models.viewing import (
    OCCUPYING_STATUSES,
    LandlordAvailabilityPreference,
    ViewingBooking,
    ViewingSlotRequest,
    ViewingStatus,
)

__all__ = [
    # Investor
    "AvailabilityPreference",
    "BedroomRange",
    "BudgetRange",
    "BudgetType",
    "LocationPreference",
    "OperatorType",
    "PreferenceProfile",
    "normalize_property_type",
    # Landlord
    "PropertyRecord",
    "PropertyStatus",
    "LandlordAvailabilityPreference",
    "DRAFT_STEPS",
    "PropertyDraft",
    "to_pence",
    "validate_step",
    # Usuarios
    "UserProfile",
    "UserType",
    # Visitas
    "OCCUPYING_STATUSES",
    "ViewingBooking",
    "ViewingSlotRequest",
    "ViewingStatus",
]
