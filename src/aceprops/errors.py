"""
Jerarquía de excepciones del sistema.

Los ServiceError llevan el status HTTP con el que se responden
desde la API.
"""


class AcePropsError(Exception):
    """Excepción base de aceprops."""


class ProfileValidationError(AcePropsError):
    """El payload de preferencias de un investor no es válido."""


class DraftValidationError(AcePropsError):
    """Un paso del formulario de alta de propiedad no valida."""

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []


class InvalidTransitionError(AcePropsError):
    """Cambio de estado no permitido (visita o propiedad)."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change status from {current} to {target}")


class ServiceError(AcePropsError):
    """Error de un flujo de request, con status HTTP asociado."""

    status = 500

    def __init__(
        self, message: str, status: int | None = None, details: list | None = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        if status is not None:
            self.status = status

    def to_payload(self) -> dict:
        payload = {"success": False, "error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class BadRequestError(ServiceError):
    status = 400


class AuthenticationError(ServiceError):
    status = 401


class PermissionDeniedError(ServiceError):
    status = 403


class NotFoundError(ServiceError):
    status = 404


class ConflictError(ServiceError):
    status = 409


class RateLimitedError(ServiceError):
    status = 429


class ServiceUnavailableError(ServiceError):
    status = 503
