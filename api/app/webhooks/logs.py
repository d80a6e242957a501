"""Delivery log store: one row per dispatch attempt."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.pagination import Page, apply_cursor, clamp_limit, paginate
from app.webhooks.exceptions import (
    InvalidLogTransitionError,
    WebhookNotFoundError,
    WebhookValidationError,
)
from app.webhooks.models import LogStatus, WebhookLog

logger = logging.getLogger(__name__)

LOG_STATUS_FILTERS = ("all", *(s.value for s in LogStatus))


class DeliveryLogStore:
    """Reads and updates webhook delivery log entries."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def record(
        self,
        endpoint_id: uuid.UUID | None,
        event_type: str,
        payload: str,
        status: LogStatus,
        http_status: int,
        response_body: str | None,
        error_message: str | None,
        duration_ms: int,
    ) -> WebhookLog:
        """Insert a log entry for one delivery attempt."""
        entry = WebhookLog(
            id=uuid.uuid4(),
            endpoint_id=endpoint_id,
            event_type=event_type,
            payload=payload,
            status=status.value,
            http_status=http_status,
            response_body=response_body,
            error_message=error_message,
            duration_ms=duration_ms,
        )
        self._db.add(entry)
        await self._db.commit()
        return entry

    async def get(self, log_id: uuid.UUID) -> WebhookLog:
        """Load a log entry by id.

        Raises:
            WebhookNotFoundError: no such entry.
        """
        entry = await self._db.get(WebhookLog, log_id)
        if entry is None:
            raise WebhookNotFoundError("Log entry not found")
        return entry

    async def list(
        self,
        endpoint_id: uuid.UUID | None = None,
        status: str = "all",
        event_type: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page[WebhookLog]:
        """List log entries newest first, with their endpoint loaded."""
        if status not in LOG_STATUS_FILTERS:
            raise WebhookValidationError(
                "status",
                f"Invalid status. Valid values: {', '.join(LOG_STATUS_FILTERS[1:])}",
            )

        limit = clamp_limit(limit)
        query = select(WebhookLog).options(selectinload(WebhookLog.endpoint))
        if endpoint_id is not None:
            query = query.where(WebhookLog.endpoint_id == endpoint_id)
        if status != "all":
            query = query.where(WebhookLog.status == status)
        if event_type:
            query = query.where(WebhookLog.event_type == event_type)

        result = await self._db.execute(apply_cursor(query, WebhookLog, cursor, limit))
        return paginate(list(result.scalars().all()), limit)

    async def archive(self, log_id: uuid.UUID) -> WebhookLog:
        """Dismiss a failed entry.

        Archiving an already archived entry is a no-op.

        Raises:
            WebhookNotFoundError: no such entry.
            InvalidLogTransitionError: entry is ``success`` or ``retried``.
        """
        entry = await self.get(log_id)
        if entry.status == LogStatus.ARCHIVED.value:
            return entry
        if entry.status != LogStatus.FAILED.value:
            raise InvalidLogTransitionError(
                f"Only failed log entries can be archived (status: {entry.status})"
            )
        return await self._set_status(entry, LogStatus.ARCHIVED)

    async def mark_retried(self, log_id: uuid.UUID) -> WebhookLog:
        """Mark an entry as superseded by a retry attempt.

        Raises:
            WebhookNotFoundError: no such entry.
        """
        entry = await self.get(log_id)
        return await self._set_status(entry, LogStatus.RETRIED)

    async def _set_status(self, entry: WebhookLog, status: LogStatus) -> WebhookLog:
        entry.status = status.value
        await self._db.commit()
        logger.info("Webhook log %s marked %s", entry.id, status.value)
        return entry
