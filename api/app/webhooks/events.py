"""Webhook event types and example payloads."""

from typing import Any

# Event types endpoints may subscribe to
WEBHOOK_EVENT_TYPES: tuple[str, ...] = (
    "purchase.completed",
    "lead.captured",
    "waitlist.signup",
    "payment.completed",
    "payment.refunded",
    "payment.failed",
    "user.access_granted",
    "user.access_revoked",
    "product.created",
    "product.updated",
    "product.deleted",
)

# Synthetic event used by test sends; never subscribable
TEST_EVENT = "test.event"

_CUSTOMER = {
    "email": "customer@example.com",
    "firstName": "Jan",
    "lastName": "Kowalski",
}

_PRODUCT = {
    "id": "00000000-0000-0000-0000-000000000001",
    "name": "Example Course",
    "slug": "example-course",
    "price": 49.99,
    "currency": "USD",
}

MOCK_PAYLOADS: dict[str, dict[str, Any]] = {
    TEST_EVENT: {
        "message": "This is a test webhook from GateFlow",
        "test": True,
    },
    "purchase.completed": {
        "customer": _CUSTOMER,
        "product": _PRODUCT,
        "order": {
            "amount": 4999,
            "currency": "usd",
            "sessionId": "cs_test_123",
            "paymentIntentId": "pi_test_123",
            "couponId": None,
            "isGuest": False,
        },
        "source": "stripe_webhook",
    },
    "lead.captured": {
        "customer": {"email": _CUSTOMER["email"], "userId": "user_test_123"},
        "product": _PRODUCT | {"price": 0},
    },
    "waitlist.signup": {
        "customer": {"email": _CUSTOMER["email"]},
        "product": _PRODUCT,
    },
    "payment.completed": {
        "email": _CUSTOMER["email"],
        "productId": _PRODUCT["id"],
        "amount": 4999,
        "currency": "usd",
    },
    "payment.refunded": {
        "email": _CUSTOMER["email"],
        "productId": _PRODUCT["id"],
        "amount": 4999,
        "currency": "usd",
        "reason": "requested_by_customer",
    },
    "payment.failed": {
        "email": _CUSTOMER["email"],
        "productId": _PRODUCT["id"],
        "amount": 4999,
        "currency": "usd",
        "error": "card_declined",
    },
    "user.access_granted": {
        "email": _CUSTOMER["email"],
        "productId": _PRODUCT["id"],
        "expiresAt": None,
    },
    "user.access_revoked": {
        "email": _CUSTOMER["email"],
        "productId": _PRODUCT["id"],
    },
    "product.created": {"product": _PRODUCT},
    "product.updated": {"product": _PRODUCT, "changes": ["price"]},
    "product.deleted": {"productId": _PRODUCT["id"]},
}


def is_valid_event_type(event_type: str) -> bool:
    """Check if an event type can be subscribed to."""
    return event_type in WEBHOOK_EVENT_TYPES


def mock_payload_for(event_type: str) -> dict[str, Any]:
    """Example data for an event type, falling back to the generic test payload."""
    return MOCK_PAYLOADS.get(event_type, MOCK_PAYLOADS[TEST_EVENT])
