"""Webhook Pydantic schemas."""

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.webhooks.events import TEST_EVENT


class EndpointCreateRequest(BaseModel):
    """Register a new webhook endpoint."""

    url: str = Field(..., description="Destination URL (HTTPS)")
    events: list[str] = Field(..., description="Subscribed event types")
    description: str | None = Field(None, description="Free-form description")
    is_active: bool = Field(True, description="Whether the endpoint receives events")


class EndpointUpdateRequest(BaseModel):
    """Partial update; only fields present in the request body are applied."""

    url: str | None = None
    events: list[str] | None = None
    description: str | None = None
    is_active: bool | None = None


class TestSendRequest(BaseModel):
    """Synthetic event sent to one endpoint."""

    event_type: str = Field(TEST_EVENT, description="Event type to simulate")


class EndpointResponse(BaseModel):
    """Webhook endpoint (secret omitted)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    url: str
    events: list[str]
    description: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class EndpointCreatedResponse(EndpointResponse):
    """Create response; the only place the signing secret is ever returned."""

    secret: str = Field(..., description="Signing secret, shown once")


class EndpointSummary(BaseModel):
    """Owning endpoint embedded in a log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    url: str
    description: str | None = None
    is_active: bool


class LogResponse(BaseModel):
    """Webhook delivery log entry."""

    id: UUID
    endpoint_id: UUID | None = None
    event_type: str
    payload: Any = Field(..., description="Envelope as sent")
    status: str = Field(..., description="success, failed, archived or retried")
    http_status: int = Field(..., description="HTTP status (0 if no response)")
    response_body: str | None = None
    error_message: str | None = None
    duration_ms: int
    created_at: datetime
    endpoint: EndpointSummary | None = None

    @classmethod
    def from_entry(cls, entry, include_endpoint: bool = False) -> "LogResponse":
        try:
            payload = json.loads(entry.payload)
        except ValueError:
            payload = entry.payload
        endpoint = None
        if include_endpoint and entry.endpoint is not None:
            endpoint = EndpointSummary.model_validate(entry.endpoint)
        return cls(
            id=entry.id,
            endpoint_id=entry.endpoint_id,
            event_type=entry.event_type,
            payload=payload,
            status=entry.status,
            http_status=entry.http_status,
            response_body=entry.response_body,
            error_message=entry.error_message,
            duration_ms=entry.duration_ms,
            created_at=entry.created_at,
            endpoint=endpoint,
        )


class PaginationInfo(BaseModel):
    next_cursor: str | None = None
    has_more: bool = False


class EndpointListResponse(BaseModel):
    data: list[EndpointResponse]
    pagination: PaginationInfo


class LogListResponse(BaseModel):
    data: list[LogResponse]
    pagination: PaginationInfo


class DispatchResultResponse(BaseModel):
    """Outcome of a test send or retry."""

    success: bool
    http_status: int = Field(..., description="HTTP status (0 if no response)")
    error: str | None = None
    duration_ms: int = 0
    log_id: UUID | None = Field(None, description="Log entry recorded for the attempt")


class EventTypesResponse(BaseModel):
    events: list[str]
