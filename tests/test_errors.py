"""Tests for the error hierarchy."""

import pytest

from aceprops.errors import (
    AcePropsError,
    AuthenticationError,
    BadRequestError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
    ServiceError,
    ServiceUnavailableError,
)


@pytest.mark.parametrize(
    "error_class, status",
    [
        (BadRequestError, 400),
        (AuthenticationError, 401),
        (PermissionDeniedError, 403),
        (NotFoundError, 404),
        (ConflictError, 409),
        (RateLimitedError, 429),
        (ServiceUnavailableError, 503),
    ],
)
def test_http_status(error_class, status) -> None:
    error = error_class("nope")
    assert error.status == status
    assert isinstance(error, AcePropsError)


def test_payload() -> None:
    error = NotFoundError("Property not found")
    assert error.to_payload() == {"success": False, "error": "Property not found"}
    assert str(error) == "Property not found"


def test_status_override() -> None:
    assert ServiceError("slow down", status=418).status == 418
    assert ServiceError("boom").status == 500


def test_invalid_transition_message() -> None:
    error = InvalidTransitionError("completed", "pending")
    assert str(error) == "Cannot change status from completed to pending"
    assert (error.current, error.target) == ("completed", "pending")
