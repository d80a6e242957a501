"""Webhook admin API router."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import Principal, require_scope
from app.db.session import get_db
from app.webhooks.events import WEBHOOK_EVENT_TYPES
from app.webhooks.exceptions import InvalidLogTransitionError
from app.webhooks.logs import DeliveryLogStore
from app.webhooks.models import LogStatus
from app.webhooks.registry import EndpointRegistry
from app.webhooks.schemas import (
    DispatchResultResponse,
    EndpointCreatedResponse,
    EndpointCreateRequest,
    EndpointListResponse,
    EndpointResponse,
    EndpointUpdateRequest,
    EventTypesResponse,
    LogListResponse,
    LogResponse,
    PaginationInfo,
    TestSendRequest,
)
from app.webhooks.service import WebhookService, get_webhook_service

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

read_access = require_scope("webhooks:read")
write_access = require_scope("webhooks:write")


@router.get("/events", response_model=EventTypesResponse)
async def list_event_types(_: Principal = Depends(read_access)):
    """List event types endpoints may subscribe to."""
    return EventTypesResponse(events=list(WEBHOOK_EVENT_TYPES))


@router.get("", response_model=EndpointListResponse)
async def list_endpoints(
    status_filter: str = Query("all", alias="status", description="all, active or inactive"),
    cursor: str | None = Query(None, description="Cursor from a previous page"),
    limit: int = Query(50, ge=1, le=100, description="Maximum results"),
    _: Principal = Depends(read_access),
    db: AsyncSession = Depends(get_db),
):
    """List webhook endpoints, newest first."""
    page = await EndpointRegistry(db).list(status=status_filter, cursor=cursor, limit=limit)
    return EndpointListResponse(
        data=[EndpointResponse.model_validate(ep) for ep in page.items],
        pagination=PaginationInfo(next_cursor=page.next_cursor, has_more=page.has_more),
    )


@router.post("", response_model=EndpointCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_endpoint(
    request: EndpointCreateRequest,
    _: Principal = Depends(write_access),
    db: AsyncSession = Depends(get_db),
):
    """Register an endpoint. The response carries the signing secret, shown only once."""
    endpoint = await EndpointRegistry(db).create(
        url=request.url,
        events=request.events,
        description=request.description,
        is_active=request.is_active,
    )
    return EndpointCreatedResponse.model_validate(endpoint)


@router.get("/logs", response_model=LogListResponse)
async def list_logs(
    endpoint_id: UUID | None = Query(None, description="Filter by endpoint"),
    status_filter: str = Query(
        "all", alias="status", description="all, success, failed, archived or retried"
    ),
    event_type: str | None = Query(None, description="Filter by event type"),
    cursor: str | None = Query(None, description="Cursor from a previous page"),
    limit: int = Query(50, ge=1, le=100, description="Maximum results"),
    _: Principal = Depends(read_access),
    db: AsyncSession = Depends(get_db),
):
    """List delivery log entries, newest first."""
    page = await DeliveryLogStore(db).list(
        endpoint_id=endpoint_id,
        status=status_filter,
        event_type=event_type,
        cursor=cursor,
        limit=limit,
    )
    return LogListResponse(
        data=[LogResponse.from_entry(entry, include_endpoint=True) for entry in page.items],
        pagination=PaginationInfo(next_cursor=page.next_cursor, has_more=page.has_more),
    )


@router.post("/logs/{log_id}/archive", response_model=LogResponse)
async def archive_log(
    log_id: UUID,
    _: Principal = Depends(write_access),
    db: AsyncSession = Depends(get_db),
):
    """Dismiss a failed delivery."""
    entry = await DeliveryLogStore(db).archive(log_id)
    return LogResponse.from_entry(entry)


@router.post("/logs/{log_id}/retry", response_model=DispatchResultResponse)
async def retry_log(
    log_id: UUID,
    _: Principal = Depends(write_access),
    db: AsyncSession = Depends(get_db),
    service: WebhookService = Depends(get_webhook_service),
):
    """Replay a failed delivery with its original payload."""
    entry = await DeliveryLogStore(db).get(log_id)
    if entry.status != LogStatus.FAILED.value:
        raise InvalidLogTransitionError(
            f"Only failed log entries can be retried (status: {entry.status})"
        )
    result = await service.retry(log_id)
    return DispatchResultResponse(**vars(result))


@router.get("/{endpoint_id}", response_model=EndpointResponse)
async def get_endpoint(
    endpoint_id: UUID,
    _: Principal = Depends(read_access),
    db: AsyncSession = Depends(get_db),
):
    endpoint = await EndpointRegistry(db).get(endpoint_id)
    return EndpointResponse.model_validate(endpoint)


@router.patch("/{endpoint_id}", response_model=EndpointResponse)
async def update_endpoint(
    endpoint_id: UUID,
    request: EndpointUpdateRequest,
    _: Principal = Depends(write_access),
    db: AsyncSession = Depends(get_db),
):
    """Update any subset of url, events, description and is_active."""
    endpoint = await EndpointRegistry(db).update(
        endpoint_id, request.model_dump(exclude_unset=True)
    )
    return EndpointResponse.model_validate(endpoint)


@router.delete("/{endpoint_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_endpoint(
    endpoint_id: UUID,
    _: Principal = Depends(write_access),
    db: AsyncSession = Depends(get_db),
):
    """Delete an endpoint. Its log entries are kept with no endpoint reference."""
    await EndpointRegistry(db).delete(endpoint_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{endpoint_id}/test", response_model=DispatchResultResponse)
async def test_endpoint(
    endpoint_id: UUID,
    request: TestSendRequest | None = None,
    _: Principal = Depends(write_access),
    service: WebhookService = Depends(get_webhook_service),
):
    """Send a synthetic event to an endpoint and report the outcome."""
    event_type = request.event_type if request else None
    result = await service.test_endpoint(endpoint_id, event_type)
    return DispatchResultResponse(**vars(result))
