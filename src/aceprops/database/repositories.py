"""
Repositorios para operaciones CRUD en Supabase.

Cada repositorio maneja una tabla/entidad específica.
"""

from datetime import date, datetime, timezone
from typing import Optional

import structlog
from postgrest.exceptions import APIError

from aceprops.database.supabase_client import get_supabase_client, SupabaseClient
from aceprops.errors import ConflictError, ServiceUnavailableError
from aceprops.models import OCCUPYING_STATUSES, ViewingBooking, ViewingStatus

logger = structlog.get_logger()

# Códigos de error de Postgres
UNIQUE_VIOLATION = "23505"
UNDEFINED_TABLE = "42P01"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class BaseRepository:
    """Clase base para repositorios."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or get_supabase_client()

    @property
    def client(self) -> SupabaseClient:
        return self._client


class PropertyRepository(BaseRepository):
    """Repositorio para propiedades."""

    TABLE = "properties"

    def get_by_id(self, property_id: str) -> Optional[dict]:
        """Obtiene una propiedad por su UUID."""
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("id", property_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    def get_active(self) -> list[dict]:
        """Obtiene todas las propiedades activas, más nuevas primero."""
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("status", "active")
            .order("created_at", desc=True)
            .execute()
        )
        return response.data

    def get_active_since(self, since: datetime) -> list[dict]:
        """Propiedades activas creadas desde 'since'."""
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("status", "active")
            .gte("created_at", since.isoformat())
            .order("created_at", desc=True)
            .execute()
        )
        return response.data

    def update_status(
        self, property_id: str, status: str, extra: Optional[dict] = None
    ) -> dict:
        """Cambia el status de una propiedad."""
        data = {"status": status, "updated_at": _utcnow()}
        if extra:
            data.update(extra)
        response = (
            self.client.table(self.TABLE)
            .update(data)
            .eq("id", property_id)
            .execute()
        )
        logger.info("Status de propiedad actualizado", property_id=property_id, status=status)
        return response.data[0] if response.data else {}

    def create(self, data: dict) -> dict:
        """Inserta una propiedad nueva."""
        response = self.client.table(self.TABLE).insert(data).execute()
        row = response.data[0] if response.data else {}
        logger.info(
            "Propiedad creada",
            property_id=row.get("id"),
            landlord_id=data.get("landlord_id"),
            status=data.get("status"),
        )
        return row


class PreferenceRepository(BaseRepository):
    """Repositorio para preferencias de investors."""

    TABLE = "investor_preferences"

    PROFILE_JOIN = (
        "id, investor_id, operator_type, preference_data, is_active, "
        "notification_enabled, updated_at, "
        "user_profiles!inner (id, full_name, email, phone, company_name, "
        "user_type, notification_enabled)"
    )

    def get_by_investor(self, investor_id: str) -> Optional[dict]:
        """Obtiene las preferencias de un investor (activas o no)."""
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("investor_id", investor_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    def get_active_for_investor(self, investor_id: str) -> Optional[dict]:
        """Obtiene las preferencias activas de un investor."""
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("investor_id", investor_id)
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    def get_active_with_profiles(self) -> list[dict]:
        """Todas las preferencias activas con el user_profile del investor."""
        response = (
            self.client.table(self.TABLE)
            .select(self.PROFILE_JOIN)
            .eq("is_active", True)
            .execute()
        )
        return response.data

    def upsert(self, investor_id: str, data: dict) -> dict:
        """Crea o actualiza las preferencias de un investor."""
        payload = {**data, "investor_id": investor_id, "updated_at": _utcnow()}
        response = (
            self.client.table(self.TABLE)
            .upsert(payload, on_conflict="investor_id")
            .execute()
        )
        logger.info("Preferencias guardadas", investor_id=investor_id)
        return response.data[0] if response.data else {}


class ViewingRepository(BaseRepository):
    """
    Repositorio para visitas.

    La tabla tiene un índice único parcial sobre
    (property_id, viewing_date, viewing_time) para status pending/approved;
    es la validación autoritativa contra dos reservas simultáneas.
    """

    TABLE = "property_viewings"

    def get_by_id(self, viewing_id: str) -> Optional[dict]:
        """Obtiene una visita por su UUID."""
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("id", viewing_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    def get_for_property(
        self,
        property_id: str,
        start_date: date,
        end_date: date,
        statuses: Optional[list[str]] = None,
    ) -> list[dict]:
        """Visitas de una propiedad en un rango de fechas."""
        query = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("property_id", property_id)
            .gte("viewing_date", start_date.isoformat())
            .lte("viewing_date", end_date.isoformat())
        )
        if statuses:
            query = query.in_("status", statuses)

        response = (
            query.order("viewing_date", desc=False)
            .order("viewing_time", desc=False)
            .execute()
        )
        return response.data

    def find_user_request(
        self, user_id: str, property_id: str, viewing_date: date, viewing_time: str
    ) -> Optional[dict]:
        """Busca un pedido previo del mismo usuario para el mismo slot."""
        response = (
            self.client.table(self.TABLE)
            .select("id, status")
            .eq("user_id", user_id)
            .eq("property_id", property_id)
            .eq("viewing_date", viewing_date.isoformat())
            .eq("viewing_time", viewing_time)
            .in_("status", OCCUPYING_STATUSES)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    def create(self, booking: ViewingBooking) -> dict:
        """
        Inserta una visita.

        Raises:
            ConflictError: si el slot ya fue tomado (índice único)
            ServiceUnavailableError: si la tabla no existe
        """
        try:
            response = (
                self.client.table(self.TABLE)
                .insert(booking.to_db_dict())
                .execute()
            )
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.info(
                    "Slot tomado al insertar",
                    property_id=booking.property_id,
                    date=booking.date.isoformat(),
                    time=booking.time,
                )
                raise ConflictError("This time slot is already booked") from e
            if e.code == UNDEFINED_TABLE:
                raise ServiceUnavailableError(
                    "Viewing system is not yet set up. Please contact support."
                ) from e
            raise

        logger.info(
            "Visita creada",
            property_id=booking.property_id,
            date=booking.date.isoformat(),
            time=booking.time,
        )
        return response.data[0] if response.data else {}

    def update_status(
        self, viewing_id: str, status: str, extra: Optional[dict] = None
    ) -> dict:
        """Cambia el status de una visita."""
        data = {"status": status, "updated_at": _utcnow()}
        if extra:
            data.update(extra)
        response = (
            self.client.table(self.TABLE)
            .update(data)
            .eq("id", viewing_id)
            .execute()
        )
        logger.info("Status de visita actualizado", viewing_id=viewing_id, status=status)
        return response.data[0] if response.data else {}

    def list_viewings(
        self,
        investor_id: Optional[str] = None,
        landlord_id: Optional[str] = None,
        status: Optional[str] = None,
        ascending: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict]:
        """
        Visitas filtradas por investor, landlord y/o status.

        Ordenadas por fecha y hora (descendente por defecto).
        """
        query = self.client.table(self.TABLE).select("*")
        if investor_id:
            query = query.eq("user_id", investor_id)
        if landlord_id:
            query = query.eq("landlord_id", landlord_id)
        if status:
            query = query.eq("status", status)

        response = (
            query.order("viewing_date", desc=not ascending)
            .order("viewing_time", desc=not ascending)
            .range(offset, offset + limit - 1)
            .execute()
        )
        return response.data

    def count_by_status(self, landlord_id: Optional[str] = None) -> dict[str, int]:
        """Cantidad de visitas por status, de un landlord o de todos."""
        query = self.client.table(self.TABLE).select("status")
        if landlord_id:
            query = query.eq("landlord_id", landlord_id)
        response = query.execute()

        counts = {status.value: 0 for status in ViewingStatus}
        for row in response.data:
            if row.get("status") in counts:
                counts[row["status"]] += 1
        return counts

    def mark_viewed(self, viewing_ids: list[str], column: str) -> None:
        """Marca visitas como vistas ('viewed_by_user' o 'viewed_by_landlord')."""
        if not viewing_ids:
            return
        (
            self.client.table(self.TABLE)
            .update({column: True})
            .in_("id", viewing_ids)
            .execute()
        )


class UserProfileRepository(BaseRepository):
    """Repositorio para perfiles de usuario."""

    TABLE = "user_profiles"

    def get_by_id(self, user_id: str) -> Optional[dict]:
        """Obtiene un perfil por su UUID."""
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    def update_user_type(self, user_id: str, user_type: str) -> dict:
        """Cambia el rol de un usuario."""
        response = (
            self.client.table(self.TABLE)
            .update({"user_type": user_type, "updated_at": _utcnow()})
            .eq("id", user_id)
            .execute()
        )
        logger.info("Rol de usuario actualizado", user_id=user_id, user_type=user_type)
        return response.data[0] if response.data else {}


class PropertyDraftRepository(BaseRepository):
    """
    Repositorio para borradores de alta de propiedad.

    Hay a lo sumo un borrador por usuario (o por sesión anónima).
    """

    TABLE = "property_drafts"

    def get_for_owner(
        self, user_id: Optional[str] = None, session_id: Optional[str] = None
    ) -> Optional[dict]:
        """Borrador del usuario logueado o, si no hay usuario, de la sesión."""
        query = self.client.table(self.TABLE).select("*")
        if user_id:
            query = query.eq("user_id", user_id)
        elif session_id:
            query = query.eq("session_id", session_id)
        else:
            return None
        response = query.limit(1).execute()
        return response.data[0] if response.data else None

    def create(self, data: dict) -> dict:
        response = (
            self.client.table(self.TABLE)
            .insert({**data, "updated_at": _utcnow()})
            .execute()
        )
        row = response.data[0] if response.data else {}
        logger.info("Borrador creado", draft_id=row.get("id"))
        return row

    def update(self, draft_id: str, data: dict) -> dict:
        response = (
            self.client.table(self.TABLE)
            .update({**data, "updated_at": _utcnow()})
            .eq("id", draft_id)
            .execute()
        )
        return response.data[0] if response.data else {}

    def delete(self, draft_id: str) -> None:
        self.client.table(self.TABLE).delete().eq("id", draft_id).execute()
        logger.info("Borrador eliminado", draft_id=draft_id)


class SavedPropertyRepository(BaseRepository):
    """Repositorio para propiedades guardadas por investors."""

    TABLE = "saved_properties"

    PROPERTY_JOIN = "id, investor_id, property_id, saved_at, notes, properties (*)"

    def list_for_investor(self, investor_id: str) -> list[dict]:
        """Guardadas de un investor con la propiedad, más recientes primero."""
        response = (
            self.client.table(self.TABLE)
            .select(self.PROPERTY_JOIN)
            .eq("investor_id", investor_id)
            .order("saved_at", desc=True)
            .execute()
        )
        return response.data

    def get(self, investor_id: str, property_id: str) -> Optional[dict]:
        response = (
            self.client.table(self.TABLE)
            .select("id, saved_at, notes")
            .eq("investor_id", investor_id)
            .eq("property_id", property_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    def create(self, investor_id: str, property_id: str) -> dict:
        """
        Raises:
            ConflictError: si ya estaba guardada (índice único)
        """
        try:
            response = (
                self.client.table(self.TABLE)
                .insert({"investor_id": investor_id, "property_id": property_id})
                .execute()
            )
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise ConflictError("Property already saved") from e
            raise
        logger.info("Propiedad guardada", investor_id=investor_id, property_id=property_id)
        return response.data[0] if response.data else {}

    def update_notes(
        self, saved_id: str, investor_id: str, notes: Optional[str]
    ) -> Optional[dict]:
        """Actualiza las notas; None si no existe o es de otro investor."""
        response = (
            self.client.table(self.TABLE)
            .update({"notes": notes})
            .eq("id", saved_id)
            .eq("investor_id", investor_id)
            .execute()
        )
        return response.data[0] if response.data else None
