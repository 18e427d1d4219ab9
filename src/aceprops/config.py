"""
Configuración centralizada del sistema.
Carga variables de entorno y define settings globales.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Encontrar la raíz del proyecto (donde está el .env)
# config.py -> aceprops/ -> src/ -> project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Configuración principal de la aplicación."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Supabase
    supabase_url: str = Field(..., description="URL del proyecto Supabase")
    supabase_key: str = Field(..., description="Anon key de Supabase")
    supabase_service_key: Optional[str] = Field(
        None, description="Service role key para operaciones admin"
    )

    # Email (Resend)
    resend_api_key: Optional[str] = Field(None, description="API key de Resend")
    email_from: str = Field(
        "Ace Properties <noreply@aceinvestmentproperties.co.uk>",
        description="Remitente de los emails transaccionales",
    )
    site_url: str = Field(
        "https://aceinvestmentproperties.co.uk",
        description="URL pública del sitio para links en emails",
    )

    # Cron
    cron_secret: Optional[str] = Field(
        None, description="Bearer secret para los endpoints de cron"
    )

    # Matching
    approval_match_threshold: int = Field(
        60, ge=0, le=100, description="Score mínimo para avisar al aprobar una propiedad"
    )
    digest_match_threshold: int = Field(
        85, ge=0, le=100, description="Score mínimo para el digest diario"
    )
    recommended_match_threshold: int = Field(
        60, ge=0, le=100, description="Score mínimo para 'recommended properties'"
    )
    digest_window_hours: int = Field(
        24, ge=1, description="Ventana de propiedades nuevas para el digest"
    )

    # Visitas
    timezone: str = Field("Europe/London", description="Zona horaria de las visitas")
    viewing_lookahead_days: int = Field(
        60, ge=1, description="Días hacia adelante en los que se puede pedir visita"
    )

    # Rate limiting
    rate_limit_window_seconds: int = Field(60, ge=1)
    rate_limit_max_requests: int = Field(10, ge=1)

    # API
    api_host: str = Field("0.0.0.0", description="Host de escucha de la API")
    api_port: int = Field(8080, description="Puerto de la API")

    # Logging
    log_level: str = Field("INFO", description="Nivel de logging")


@lru_cache
def get_settings() -> Settings:
    """Obtiene la configuración cacheada."""
    return Settings()


# Constantes del sistema

# Vocabulario de tipos de propiedad del formulario de preferencias
PROPERTY_TYPE_TAGS = ["houses", "flats", "hmo", "studios", "commercial"]

# Sinónimos que usan los landlords al cargar una propiedad
PROPERTY_TYPE_SYNONYMS = {
    "house": "houses",
    "houses": "houses",
    "terraced": "houses",
    "semi-detached": "houses",
    "semi detached": "houses",
    "detached": "houses",
    "bungalow": "houses",
    "flat": "flats",
    "flats": "flats",
    "apartment": "flats",
    "apartments": "flats",
    "maisonette": "flats",
    "hmo": "hmo",
    "studio": "studios",
    "studios": "studios",
    "commercial": "commercial",
}

OPERATOR_TYPES = ["sa_operator", "supported_living", "social_housing", "other"]

# Numeración de días estilo JS: domingo = 0
WEEKDAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]
WEEKDAY_ABBREVIATIONS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

# Lunes a sábado
DEFAULT_VIEWING_WEEKDAYS = [1, 2, 3, 4, 5, 6]

VIEWING_TIME_WINDOWS = {
    "morning": ("09:00", "12:00"),
    "afternoon": ("12:00", "17:00"),
    "evening": ("17:00", "20:00"),
}

DEFAULT_BUSINESS_HOURS = ("09:00", "18:00")

SLOT_INTERVAL_MINUTES = 30

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

# Pasos del formulario de alta de propiedad: detalles, ubicación, fotos, contacto
PROPERTY_DRAFT_STEPS = 4
