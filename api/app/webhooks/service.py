"""Webhook orchestration: event fan-out, test sends and operator retries."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from app.db.session import async_session_maker
from app.webhooks.dispatcher import (
    DeliveryResult,
    DeliveryTarget,
    WebhookDispatcher,
    build_envelope,
)
from app.webhooks.events import TEST_EVENT, mock_payload_for
from app.webhooks.exceptions import WebhookNotFoundError
from app.webhooks.logs import DeliveryLogStore
from app.webhooks.registry import EndpointRegistry

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# Strong references to fire-and-forget trigger tasks
_background_tasks: set[asyncio.Task] = set()


class WebhookService:
    """Delivers events to subscribed endpoints."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        dispatcher: WebhookDispatcher | None = None,
    ):
        self._session_factory = session_factory
        self._dispatcher = dispatcher or WebhookDispatcher(session_factory)

    async def trigger(self, event_type: str, data: dict[str, Any]) -> list[DeliveryResult]:
        """
        Deliver an event to every active endpoint subscribed to it.

        Deliveries run concurrently and independently; a failing subscriber
        does not affect the others. Registry failures are logged, not raised.

        Args:
            event_type: The event type (e.g., "purchase.completed")
            data: Event-specific payload

        Returns:
            One result per dispatched endpoint (empty if none subscribe)
        """
        try:
            async with self._session_factory() as session:
                endpoints = await EndpointRegistry(session).list_subscribed(event_type)
                targets = [DeliveryTarget.from_endpoint(ep) for ep in endpoints]
        except Exception as e:
            logger.error("Failed to fetch webhook endpoints for %s: %s", event_type, e)
            return []

        if not targets:
            logger.debug("No endpoints subscribe to event: %s", event_type)
            return []

        envelope = build_envelope(event_type, data)
        results = await asyncio.gather(
            *(self._dispatcher.dispatch(target, event_type, envelope) for target in targets),
            return_exceptions=True,
        )

        delivered: list[DeliveryResult] = []
        for target, result in zip(targets, results, strict=True):
            if isinstance(result, BaseException):
                logger.error("Webhook dispatch to endpoint %s raised: %s", target.id, result)
                continue
            delivered.append(result)

        logger.info(
            "Triggered %s: %d/%d endpoint(s) succeeded",
            event_type,
            sum(1 for r in delivered if r.success),
            len(targets),
        )
        return delivered

    async def test_endpoint(
        self, endpoint_id: uuid.UUID, event_type: str | None = None
    ) -> DeliveryResult:
        """
        Send a synthetic event to one endpoint.

        Raises:
            WebhookNotFoundError: endpoint does not exist
        """
        event_type = event_type or TEST_EVENT
        async with self._session_factory() as session:
            endpoint = await EndpointRegistry(session).get(endpoint_id)
            target = DeliveryTarget.from_endpoint(endpoint)

        envelope = build_envelope(event_type, mock_payload_for(event_type))
        return await self._dispatcher.dispatch(target, event_type, envelope)

    async def retry(self, log_id: uuid.UUID) -> DeliveryResult:
        """
        Replay a logged delivery with its original payload.

        The original entry is marked ``retried`` once the retry produced a
        response (or timed out); a pure network failure leaves it retryable.

        Raises:
            WebhookNotFoundError: log entry or its endpoint does not exist
        """
        async with self._session_factory() as session:
            entry = await DeliveryLogStore(session).get(log_id)
            if entry.endpoint_id is None:
                raise WebhookNotFoundError("Endpoint ID is missing in log entry")
            endpoint = await EndpointRegistry(session).get(entry.endpoint_id)
            target = DeliveryTarget.from_endpoint(endpoint)
            event_type = entry.event_type
            payload = entry.payload

        result = await self._dispatcher.deliver(
            target,
            event_type,
            payload,
            timestamp=_envelope_timestamp(payload),
            extra_headers={f"{self._dispatcher.header_prefix}-Retry": "true"},
        )

        if result.success or result.http_status > 0:
            async with self._session_factory() as session:
                await DeliveryLogStore(session).mark_retried(log_id)

        return result


def _envelope_timestamp(payload: str) -> str | None:
    try:
        envelope = json.loads(payload)
    except ValueError:
        return None
    return envelope.get("timestamp") if isinstance(envelope, dict) else None


def get_webhook_service() -> WebhookService:
    """Dependency for the application-wide webhook service."""
    return WebhookService(async_session_maker)


def trigger_webhook_event(
    event_type: str,
    data: dict[str, Any],
    service: WebhookService | None = None,
) -> asyncio.Task:
    """
    Fire-and-forget trigger for business code.

    Schedules delivery on the running loop and returns immediately; the
    caller never observes delivery errors.
    """
    service = service or get_webhook_service()
    task = asyncio.create_task(_run_trigger(service, event_type, data))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def _run_trigger(service: WebhookService, event_type: str, data: dict[str, Any]) -> None:
    try:
        await service.trigger(event_type, data)
    except Exception as e:
        logger.error("Internal webhook error for %s: %s", event_type, e)
