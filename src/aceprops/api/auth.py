"""
Autenticación por bearer token de Supabase Auth.
"""

import hmac
from typing import Optional

import structlog
from aiohttp import web

from aceprops.database import SupabaseClient, UserProfileRepository, get_supabase_client
from aceprops.errors import AuthenticationError, NotFoundError
from aceprops.models import UserProfile

logger = structlog.get_logger()


def bearer_token(request: web.Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


def check_cron_secret(request: web.Request, secret: Optional[str]) -> None:
    """
    Raises:
        AuthenticationError: si no hay secret configurado o no coincide
    """
    token = bearer_token(request)
    if not secret or not token or not hmac.compare_digest(token, secret):
        raise AuthenticationError("Unauthorized")


class Authenticator:
    """Resuelve el usuario del request a su perfil en 'user_profiles'."""

    def __init__(
        self,
        supabase: Optional[SupabaseClient] = None,
        user_repo: Optional[UserProfileRepository] = None,
    ):
        self.supabase = supabase or get_supabase_client()
        self.user_repo = user_repo or UserProfileRepository(self.supabase)

    def authenticate(self, request: web.Request) -> UserProfile:
        """
        Raises:
            AuthenticationError: sin token o con token inválido
            NotFoundError: si el usuario no tiene perfil
        """
        token = bearer_token(request)
        if token is None:
            raise AuthenticationError("Authentication required")

        user = self.supabase.get_user(token)
        if user is None:
            raise AuthenticationError("Invalid or expired token")

        row = self.user_repo.get_by_id(user["id"])
        if not row:
            logger.warning("Usuario sin perfil", user_id=user["id"])
            raise NotFoundError("User profile not found")

        return UserProfile.from_db_row({**row, "email": row.get("email") or user.get("email")})

    def authenticate_optional(self, request: web.Request) -> Optional[UserProfile]:
        """Como authenticate, pero sin token devuelve None."""
        if bearer_token(request) is None:
            return None
        return self.authenticate(request)
