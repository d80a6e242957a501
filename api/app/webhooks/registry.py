"""Endpoint registry: CRUD over subscriber endpoints."""

from __future__ import annotations

import logging
import secrets
import uuid
from typing import Any

from sqlalchemy import Select, cast, select, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.pagination import Page, apply_cursor, clamp_limit, paginate
from app.webhooks.exceptions import (
    WebhookConflictError,
    WebhookNotFoundError,
    WebhookValidationError,
)
from app.webhooks.models import WebhookEndpoint, WebhookLog
from app.webhooks.validation import validate_event_types, validate_webhook_url

logger = logging.getLogger(__name__)

ENDPOINT_STATUS_FILTERS = ("all", "active", "inactive")
UPDATABLE_FIELDS = ("url", "events", "description", "is_active")


def subscribed_query(event_type: str, dialect_name: str) -> Select:
    """Active endpoints, narrowed in SQL by event type where the database can do it."""
    query = select(WebhookEndpoint).where(WebhookEndpoint.is_active.is_(True))
    if dialect_name == "postgresql":
        query = query.where(cast(WebhookEndpoint.events, JSONB).contains([event_type]))
    return query


def generate_secret() -> str:
    """Generate a new endpoint signing secret."""
    return f"whsec_{secrets.token_hex(32)}"


class EndpointRegistry:
    """Stores and looks up webhook endpoints."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def create(
        self,
        url: str,
        events: list[str],
        description: str | None = None,
        is_active: bool = True,
    ) -> WebhookEndpoint:
        """Register a new endpoint with a freshly generated secret.

        Raises:
            WebhookValidationError: URL or event list is invalid.
            WebhookConflictError: another endpoint already uses the URL.
        """
        url = validate_webhook_url(url)
        events = validate_event_types(events)
        await self._ensure_url_available(url)

        endpoint = WebhookEndpoint(
            url=url,
            secret=generate_secret(),
            events=events,
            description=description or None,
            is_active=is_active,
        )
        self._db.add(endpoint)
        await self._commit_or_conflict()
        await self._db.refresh(endpoint)

        logger.info("Registered webhook endpoint %s (%d event(s))", endpoint.id, len(events))
        return endpoint

    async def get(self, endpoint_id: uuid.UUID) -> WebhookEndpoint:
        """Load an endpoint by id.

        Raises:
            WebhookNotFoundError: no such endpoint.
        """
        endpoint = await self._db.get(WebhookEndpoint, endpoint_id)
        if endpoint is None:
            raise WebhookNotFoundError("Webhook not found")
        return endpoint

    async def list(
        self,
        status: str = "all",
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page[WebhookEndpoint]:
        """List endpoints newest first."""
        if status not in ENDPOINT_STATUS_FILTERS:
            raise WebhookValidationError(
                "status", f"Invalid status. Valid values: {', '.join(ENDPOINT_STATUS_FILTERS)}"
            )

        limit = clamp_limit(limit)
        query = select(WebhookEndpoint)
        if status == "active":
            query = query.where(WebhookEndpoint.is_active.is_(True))
        elif status == "inactive":
            query = query.where(WebhookEndpoint.is_active.is_(False))

        result = await self._db.execute(apply_cursor(query, WebhookEndpoint, cursor, limit))
        return paginate(list(result.scalars().all()), limit)

    async def update(self, endpoint_id: uuid.UUID, changes: dict[str, Any]) -> WebhookEndpoint:
        """Apply a partial update.

        Only keys present in ``changes`` are touched; an empty dict returns
        the endpoint unchanged.

        Raises:
            WebhookNotFoundError: no such endpoint.
            WebhookValidationError: new URL or event list is invalid.
            WebhookConflictError: new URL belongs to another endpoint.
        """
        endpoint = await self.get(endpoint_id)
        changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}

        if "url" in changes:
            changes["url"] = validate_webhook_url(changes["url"])
            if changes["url"] != endpoint.url:
                await self._ensure_url_available(changes["url"], exclude_id=endpoint.id)
        if "events" in changes:
            changes["events"] = validate_event_types(changes["events"])
        if "description" in changes:
            changes["description"] = changes["description"] or None
        if "is_active" in changes and not isinstance(changes["is_active"], bool):
            del changes["is_active"]

        if not changes:
            return endpoint

        for key, value in changes.items():
            setattr(endpoint, key, value)
        await self._commit_or_conflict()
        await self._db.refresh(endpoint)
        return endpoint

    async def delete(self, endpoint_id: uuid.UUID) -> None:
        """Delete an endpoint; its log entries keep a null endpoint reference.

        Raises:
            WebhookNotFoundError: no such endpoint.
        """
        endpoint = await self.get(endpoint_id)
        await self._db.execute(
            update(WebhookLog).where(WebhookLog.endpoint_id == endpoint.id).values(endpoint_id=None)
        )
        await self._db.delete(endpoint)
        await self._db.commit()
        logger.info("Deleted webhook endpoint %s", endpoint_id)

    async def list_subscribed(self, event_type: str) -> list[WebhookEndpoint]:
        """Get all active endpoints subscribed to an event type."""
        dialect_name = self._db.get_bind().dialect.name
        result = await self._db.execute(subscribed_query(event_type, dialect_name))
        return [ep for ep in result.scalars().all() if ep.subscribes_to(event_type)]

    async def _ensure_url_available(
        self, url: str, exclude_id: uuid.UUID | None = None
    ) -> None:
        query = select(WebhookEndpoint.id).where(WebhookEndpoint.url == url)
        if exclude_id is not None:
            query = query.where(WebhookEndpoint.id != exclude_id)
        if (await self._db.execute(query)).first() is not None:
            raise WebhookConflictError("A webhook with this URL already exists")

    async def _commit_or_conflict(self) -> None:
        try:
            await self._db.commit()
        except IntegrityError as e:
            # Concurrent registration of the same URL
            await self._db.rollback()
            raise WebhookConflictError("A webhook with this URL already exists") from e
