"""
Rate limiting por ventana fija.

El contador vive en un CounterStore: en memoria para un solo proceso,
o en Supabase (RPC 'rate_limit_hit') cuando hay varias instancias.
"""

import threading
import time
from typing import Callable, Optional, Protocol

import structlog

from aceprops.config import Settings, get_settings
from aceprops.database import SupabaseClient, get_supabase_client
from aceprops.errors import RateLimitedError

logger = structlog.get_logger()


class CounterStore(Protocol):
    def hit(self, key: str, window_seconds: int) -> int:
        """Suma un hit a la ventana actual de 'key' y devuelve el total."""
        ...


class InMemoryCounterStore:
    """Contadores por clave que expiran al cerrar la ventana."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._counters: dict[str, tuple[float, int]] = {}

    def hit(self, key: str, window_seconds: int) -> int:
        now = self._clock()
        with self._lock:
            reset_at, count = self._counters.get(key, (0.0, 0))
            if now >= reset_at:
                reset_at, count = now + window_seconds, 0
            count += 1
            self._counters[key] = (reset_at, count)
            self._purge(now)
            return count

    def _purge(self, now: float) -> None:
        expired = [k for k, (reset_at, _) in self._counters.items() if now >= reset_at]
        for key in expired:
            del self._counters[key]


class SupabaseCounterStore:
    """Contador compartido entre instancias, vía función de Postgres."""

    FUNCTION = "rate_limit_hit"

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or get_supabase_client()

    def hit(self, key: str, window_seconds: int) -> int:
        result = self._client.execute_rpc(
            self.FUNCTION, {"p_key": key, "p_window_seconds": window_seconds}
        )
        if isinstance(result, list):
            result = result[0] if result else 0
        if isinstance(result, dict):
            result = result.get("count", 0)
        return int(result or 0)


class RateLimiter:
    """Corta los requests de una clave que superan el máximo por ventana."""

    def __init__(
        self,
        store: Optional[CounterStore] = None,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        settings: Optional[Settings] = None,
    ):
        if max_requests is None or window_seconds is None:
            settings = settings or get_settings()
        self.store = store or InMemoryCounterStore()
        self.max_requests = max_requests or settings.rate_limit_max_requests
        self.window_seconds = window_seconds or settings.rate_limit_window_seconds

    @staticmethod
    def key_for(client_ip: Optional[str], path: str) -> str:
        return f"{client_ip or 'unknown'}:{path}"

    def check(self, key: str) -> int:
        """
        Registra un request.

        Raises:
            RateLimitedError: si la clave superó el máximo de la ventana
        """
        count = self.store.hit(key, self.window_seconds)
        if count > self.max_requests:
            logger.warning("Rate limit excedido", key=key, count=count)
            raise RateLimitedError("Too many requests")
        return count
