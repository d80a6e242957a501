"""Webhook payload signer using HMAC-SHA256."""

import hashlib
import hmac


class WebhookSigner:
    """Signs webhook payloads for verification."""

    @staticmethod
    def sign(payload: str, secret: str) -> str:
        """
        Generate HMAC-SHA256 signature for a webhook payload.

        Args:
            payload: The exact JSON body that is sent
            secret: The endpoint's shared secret

        Returns:
            Hex-encoded digest
        """
        return hmac.new(
            secret.encode("utf-8"),
            payload.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    @staticmethod
    def verify(payload: str, secret: str, signature: str) -> bool:
        """
        Verify a webhook signature (receiver side).

        Args:
            payload: The raw request body
            secret: The shared secret
            signature: Value of the signature header

        Returns:
            True if signature is valid, False otherwise
        """
        expected = WebhookSigner.sign(payload, secret)
        return hmac.compare_digest(expected, signature)

    @staticmethod
    def get_headers(
        payload: str,
        secret: str,
        event_type: str,
        timestamp: str,
        prefix: str = "X-GateFlow",
    ) -> dict[str, str]:
        """
        Generate all webhook HTTP headers including signature.

        Args:
            payload: The JSON payload string
            secret: The shared secret key
            event_type: The event type (e.g., "purchase.completed")
            timestamp: ISO-8601 timestamp of the envelope
            prefix: Header name prefix

        Returns:
            Dictionary of HTTP headers
        """
        return {
            "Content-Type": "application/json",
            f"{prefix}-Event": event_type,
            f"{prefix}-Signature": WebhookSigner.sign(payload, secret),
            f"{prefix}-Timestamp": timestamp,
        }
