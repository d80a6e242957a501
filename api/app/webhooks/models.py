"""Webhook SQLAlchemy models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LogStatus(str, Enum):
    """Webhook delivery log status."""

    SUCCESS = "success"
    FAILED = "failed"
    ARCHIVED = "archived"
    RETRIED = "retried"


class WebhookEndpoint(Base):
    """Registered subscriber endpoint."""

    __tablename__ = "webhook_endpoints"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
        unique=True,
    )
    secret: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )
    events: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    def subscribes_to(self, event_type: str) -> bool:
        """Check if this endpoint is active and subscribed to the event type."""
        return self.is_active and event_type in (self.events or [])


class WebhookLog(Base):
    """One delivery attempt and its outcome."""

    __tablename__ = "webhook_logs"
    __table_args__ = (
        CheckConstraint(
            "status IN ('success', 'failed', 'archived', 'retried')",
            name="ck_webhook_logs_status",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    endpoint_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("webhook_endpoints.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    event_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    # Serialized envelope exactly as sent; retries replay it verbatim
    payload: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=LogStatus.FAILED.value,
        index=True,
    )
    http_status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    response_body: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    duration_ms: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        index=True,
    )

    endpoint: Mapped[WebhookEndpoint | None] = relationship(
        WebhookEndpoint,
        lazy="raise",
    )
