"""
Módulo de base de datos.

Provee acceso a Supabase y operaciones CRUD.
"""

from aceprops.database.supabase_client import get_supabase_client, SupabaseClient
from aceprops.database.repositories import (
    PropertyRepository,
    PreferenceRepository,
    ViewingRepository,
    UserProfileRepository,
    PropertyDraftRepository,
    SavedPropertyRepository,
)

__all__ = [
    "get_supabase_client",
    "SupabaseClient",
    "PropertyRepository",
    "PreferenceRepository",
    "ViewingRepository",
    "UserProfileRepository",
    "PropertyDraftRepository",
    "SavedPropertyRepository",
]
