"""Webhook exception hierarchy.

All errors raised by the registry, log store and orchestration inherit from
WebhookError so the API layer can map them with a single handler. Delivery
failures are never raised; see DeliveryResult.
"""

from __future__ import annotations


class WebhookError(Exception):
    """Base exception for webhook errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "webhook_error"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class WebhookValidationError(WebhookError):
    """Invalid input (URL, event list, cursor, filter)."""

    code = "validation_error"
    status_code = 400

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        return {
            "error": {
                "code": self.code,
                "field": self.field,
                "message": self.message,
            }
        }


class WebhookConflictError(WebhookError):
    """An endpoint with the same URL already exists."""

    code = "already_exists"
    status_code = 409


class WebhookNotFoundError(WebhookError):
    """Endpoint or log entry does not exist."""

    code = "not_found"
    status_code = 404


class InvalidLogTransitionError(WebhookError):
    """Log entry status does not allow the requested action."""

    code = "invalid_transition"
    status_code = 409
