"""
Cliente de Supabase.

Singleton para conexión a la base de datos y a Supabase Auth.
"""

from functools import lru_cache
from typing import Optional

import structlog
from supabase import create_client, Client

from aceprops.config import get_settings

logger = structlog.get_logger()


class SupabaseClient:
    """Wrapper del cliente de Supabase con métodos de utilidad."""

    def __init__(self, client: Client):
        self._client = client

    @property
    def client(self) -> Client:
        """Acceso directo al cliente de Supabase."""
        return self._client

    def table(self, name: str):
        """Acceso a una tabla específica."""
        return self._client.table(name)

    def execute_rpc(self, function_name: str, params: Optional[dict] = None):
        """
        Ejecuta una función RPC de PostgreSQL.

        Args:
            function_name: Nombre de la función en Supabase
            params: Parámetros de la función

        Returns:
            Resultado de la función
        """
        try:
            response = self._client.rpc(function_name, params or {}).execute()
            return response.data
        except Exception as e:
            logger.error(
                "Error ejecutando RPC",
                function=function_name,
                error=str(e),
            )
            raise

    def get_user(self, token: str) -> Optional[dict]:
        """
        Resuelve un bearer token de Supabase Auth.

        Returns:
            {"id", "email"} o None si el token no es válido
        """
        try:
            response = self._client.auth.get_user(token)
        except Exception as e:
            logger.warning("Token inválido", error=str(e))
            return None

        user = getattr(response, "user", None)
        if not user:
            return None
        return {"id": user.id, "email": user.email}


@lru_cache
def get_supabase_client() -> SupabaseClient:
    """
    Obtiene el cliente de Supabase (singleton cacheado).

    Returns:
        SupabaseClient configurado

    Raises:
        ValueError: Si las credenciales no están configuradas
    """
    settings = get_settings()

    if not settings.supabase_url or not settings.supabase_key:
        raise ValueError(
            "SUPABASE_URL y SUPABASE_KEY son requeridos. "
            "Configura las variables de entorno."
        )

    # Usar service key si está disponible para operaciones admin
    key = settings.supabase_service_key or settings.supabase_key

    client = create_client(settings.supabase_url, key)
    logger.info("Cliente de Supabase inicializado", url=settings.supabase_url)

    return SupabaseClient(client)
