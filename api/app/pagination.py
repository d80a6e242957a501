"""Keyset (cursor) pagination helpers."""

from __future__ import annotations

import base64
import binascii
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, and_, or_

from app.webhooks.exceptions import WebhookValidationError

T = TypeVar("T")

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


@dataclass
class Page(Generic[T]):
    """One page of results, newest first."""

    items: list[T] = field(default_factory=list)
    next_cursor: str | None = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


def encode_cursor(created_at: datetime, item_id: uuid.UUID) -> str:
    """Encode the position after an item."""
    raw = json.dumps({"created_at": created_at.isoformat(), "id": str(item_id)})
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> tuple[datetime, uuid.UUID]:
    """Decode a cursor produced by encode_cursor.

    Raises:
        WebhookValidationError: cursor is not a valid position.
    """
    try:
        data = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
        return datetime.fromisoformat(data["created_at"]), uuid.UUID(data["id"])
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as e:
        raise WebhookValidationError("cursor", "Invalid cursor format") from e


def clamp_limit(limit: int | None) -> int:
    if not limit or limit < 1:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)


def apply_cursor(query: Select, model: Any, cursor: str | None, limit: int) -> Select:
    """Order newest first and restrict to rows after ``cursor``.

    Fetches one extra row so paginate() can tell whether more exist.
    """
    if cursor:
        created_at, item_id = decode_cursor(cursor)
        query = query.where(
            or_(
                model.created_at < created_at,
                and_(model.created_at == created_at, model.id < item_id),
            )
        )
    return query.order_by(model.created_at.desc(), model.id.desc()).limit(limit + 1)


def paginate(rows: list[T], limit: int) -> Page[T]:
    """Build a page from rows fetched with apply_cursor()."""
    if len(rows) <= limit:
        return Page(items=list(rows))
    items = list(rows[:limit])
    last = items[-1]
    return Page(items=items, next_cursor=encode_cursor(last.created_at, last.id))
