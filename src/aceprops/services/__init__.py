"""
Casos de uso de la API: visitas, preferencias, alta y revisión de
propiedades, guardadas y rate limiting.
"""

from aceprops.services.drafts import PropertyDraftService
from aceprops.services.preferences import PreferenceService
from aceprops.services.properties import PropertyReviewService
from aceprops.services.rate_limit import (
    CounterStore,
    InMemoryCounterStore,
    RateLimiter,
    SupabaseCounterStore,
)
from aceprops.services.saved import SavedPropertyService
from aceprops.services.viewings import ViewingService

__all__ = [
    "PropertyDraftService",
    "PreferenceService",
    "PropertyReviewService",
    "CounterStore",
    "InMemoryCounterStore",
    "RateLimiter",
    "SupabaseCounterStore",
    "SavedPropertyService",
    "ViewingService",
]
