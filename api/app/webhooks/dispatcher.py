"""Webhook dispatcher: sign, POST once, record the attempt."""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from app.config import get_settings
from app.webhooks.logs import DeliveryLogStore
from app.webhooks.models import LogStatus
from app.webhooks.signer import WebhookSigner

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.webhooks.models import WebhookEndpoint

logger = logging.getLogger(__name__)

# Recorded as the HTTP status when the request exceeds the timeout
TIMEOUT_HTTP_STATUS = 408


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_envelope(
    event_type: str, data: dict[str, Any], timestamp: str | None = None
) -> dict[str, Any]:
    """Build the wire envelope sent to subscribers."""
    return {
        "event": event_type,
        "timestamp": timestamp or utc_timestamp(),
        "data": data,
    }


def serialize_envelope(envelope: dict[str, Any]) -> str:
    """Serialize an envelope to the exact body that is signed, sent and stored."""
    return json.dumps(envelope, separators=(",", ":"), default=str)


@dataclass(frozen=True)
class DeliveryTarget:
    """Where and how to deliver: endpoint id, URL and signing secret."""

    id: uuid.UUID
    url: str
    secret: str

    @classmethod
    def from_endpoint(cls, endpoint: WebhookEndpoint) -> DeliveryTarget:
        return cls(id=endpoint.id, url=endpoint.url, secret=endpoint.secret)


@dataclass
class DeliveryResult:
    """Result of a webhook delivery attempt."""

    success: bool
    http_status: int = 0
    error: str | None = None
    duration_ms: int = 0
    log_id: uuid.UUID | None = None


class WebhookDispatcher:
    """Performs single delivery attempts and logs each of them."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        timeout: float | None = None,
        response_body_limit: int | None = None,
        header_prefix: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            session_factory: Async session factory; each attempt logs in its own session
            timeout: Hard per-request timeout in seconds
            response_body_limit: Max characters of response body stored
            header_prefix: Prefix for the event/signature/timestamp headers
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        settings = get_settings()
        self._session_factory = session_factory
        self._timeout = timeout if timeout is not None else settings.WEBHOOK_TIMEOUT_SECONDS
        self._body_limit = response_body_limit or settings.WEBHOOK_RESPONSE_BODY_LIMIT
        self._header_prefix = header_prefix or settings.WEBHOOK_HEADER_PREFIX
        self._transport = transport

    @property
    def header_prefix(self) -> str:
        return self._header_prefix

    async def dispatch(
        self,
        target: DeliveryTarget,
        event_type: str,
        envelope: dict[str, Any],
        extra_headers: dict[str, str] | None = None,
    ) -> DeliveryResult:
        """Serialize an envelope once and deliver it."""
        body = serialize_envelope(envelope)
        return await self.deliver(
            target,
            event_type,
            body,
            timestamp=envelope.get("timestamp"),
            extra_headers=extra_headers,
        )

    async def deliver(
        self,
        target: DeliveryTarget,
        event_type: str,
        body: str,
        timestamp: str | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> DeliveryResult:
        """Deliver an already serialized body and record exactly one log entry.

        Delivery failures (non-2xx, timeout, network) are reported in the
        result, never raised.
        """
        status = LogStatus.FAILED
        http_status = 0
        response_body: str | None = None
        error: str | None = None
        start_time = time.monotonic()

        try:
            headers = WebhookSigner.get_headers(
                body,
                target.secret,
                event_type,
                timestamp or utc_timestamp(),
                prefix=self._header_prefix,
            )
            if extra_headers:
                headers.update(extra_headers)

            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await asyncio.wait_for(
                    client.post(target.url, content=body.encode("utf-8"), headers=headers),
                    timeout=self._timeout,
                )

            http_status = response.status_code
            response_body = response.text[: self._body_limit] if response.text else None
            if 200 <= http_status < 300:
                status = LogStatus.SUCCESS
            else:
                error = f"HTTP {http_status}"

        except (TimeoutError, httpx.TimeoutException):
            http_status = TIMEOUT_HTTP_STATUS
            error = f"Request timed out ({self._timeout:g}s)"
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            error = str(e) or e.__class__.__name__
        except Exception as e:
            logger.exception("Webhook delivery error: %s", e)
            error = f"Unexpected error: {e}"
        finally:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            log_id = await self._log_delivery(
                target, event_type, body, status, http_status, response_body, error, duration_ms
            )

        if status is LogStatus.SUCCESS:
            logger.info(
                "Webhook delivered: %s to endpoint %s (status %d, %dms)",
                event_type,
                target.id,
                http_status,
                duration_ms,
            )
        else:
            logger.warning(
                "Webhook delivery failed: %s to endpoint %s (%s)",
                event_type,
                target.id,
                error,
            )

        return DeliveryResult(
            success=status is LogStatus.SUCCESS,
            http_status=http_status,
            error=error,
            duration_ms=duration_ms,
            log_id=log_id,
        )

    async def _log_delivery(
        self,
        target: DeliveryTarget,
        event_type: str,
        body: str,
        status: LogStatus,
        http_status: int,
        response_body: str | None,
        error: str | None,
        duration_ms: int,
    ) -> uuid.UUID | None:
        """Persist the attempt; a logging failure must not mask the outcome."""
        try:
            async with self._session_factory() as session:
                entry = await DeliveryLogStore(session).record(
                    endpoint_id=target.id,
                    event_type=event_type,
                    payload=body,
                    status=status,
                    http_status=http_status,
                    response_body=response_body,
                    error_message=error,
                    duration_ms=duration_ms,
                )
                return entry.id
        except Exception as e:
            logger.error("Failed to log webhook delivery: %s", e)
            return None
