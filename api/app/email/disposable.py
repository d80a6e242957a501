"""Disposable email domain list, cached process-wide."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from app.config import get_settings

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Used only when the list has never been fetched successfully
FALLBACK_DOMAINS = frozenset(
    {
        "10minutemail.com",
        "guerrillamail.com",
        "mailinator.com",
        "tempmail.org",
        "temp-mail.org",
        "yopmail.com",
        "throwaway.email",
        "sharklasers.com",
        "getairmail.com",
        "trashmail.com",
    }
)

# Seconds before a failed fetch is attempted again
FAILED_FETCH_BACKOFF_SECONDS = 300


class DisposableDomainCache:
    """
    Lazily loaded, TTL-bound set of disposable email domains.

    Concurrent callers that find the list missing or expired share a single
    fetch. A failed refresh keeps the previous list; if there is none, the
    built-in fallback list is used.
    """

    def __init__(
        self,
        url: str | None = None,
        ttl_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        fetch_timeout: float = 10.0,
    ):
        settings = get_settings()
        self._url = url or settings.DISPOSABLE_EMAIL_LIST_URL
        self._ttl = (
            ttl_seconds if ttl_seconds is not None else settings.DISPOSABLE_EMAIL_CACHE_TTL_SECONDS
        )
        self._transport = transport
        self._clock = clock
        self._fetch_timeout = fetch_timeout
        self._domains: frozenset[str] | None = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()
        self.fetch_count = 0

    @property
    def domain_count(self) -> int:
        return len(self._domains) if self._domains else 0

    def is_fresh(self) -> bool:
        return self._domains is not None and self._clock() < self._expires_at

    def invalidate(self) -> None:
        """Drop the cached list so the next lookup fetches it again."""
        self._domains = None
        self._expires_at = 0.0

    async def is_disposable_domain(self, domain: str) -> bool:
        if not domain:
            return False
        domains = await self.get_domains()
        return domain.lower() in domains

    async def get_domains(self) -> frozenset[str]:
        """Return the domain set, refreshing it first if missing or expired."""
        if not self.is_fresh():
            async with self._lock:
                # Another waiter may have refreshed while we waited
                if not self.is_fresh():
                    await self._refresh()
        return self._domains or FALLBACK_DOMAINS

    async def _refresh(self) -> None:
        self.fetch_count += 1
        try:
            domains = await self._fetch()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to load disposable email domains: %s", e)
            if self._domains is None:
                self._domains = FALLBACK_DOMAINS
            self._expires_at = self._clock() + min(self._ttl, FAILED_FETCH_BACKOFF_SECONDS)
            return

        self._domains = domains
        self._expires_at = self._clock() + self._ttl
        logger.info("Loaded %d disposable email domains", len(domains))

    async def _fetch(self) -> frozenset[str]:
        async with httpx.AsyncClient(
            timeout=self._fetch_timeout, transport=self._transport
        ) as client:
            response = await client.get(self._url)
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, list):
            raise ValueError("Domain list must be a JSON array")
        return frozenset(str(d).strip().lower() for d in data if str(d).strip())


_cache: DisposableDomainCache | None = None


def get_disposable_cache() -> DisposableDomainCache:
    """Process-wide cache instance (created on first use)."""
    global _cache
    if _cache is None:
        _cache = DisposableDomainCache()
    return _cache


@dataclass
class EmailValidationResult:
    is_valid: bool
    is_disposable: bool
    domain: str | None = None
    error: str | None = None


def email_domain(email: str) -> str | None:
    """Lower-cased domain part of a well-formed address, else None."""
    if not email or not EMAIL_PATTERN.match(email):
        return None
    return email.lower().rsplit("@", 1)[1]


async def is_disposable_email(email: str, cache: DisposableDomainCache | None = None) -> bool:
    """Check an address against overrides and the cached domain list."""
    settings = get_settings()
    if not settings.DISPOSABLE_EMAIL_ENABLED:
        return False

    domain = email_domain(email)
    if domain is None:
        return False
    if domain in settings.DISPOSABLE_EMAIL_WHITELIST:
        return False
    if domain in settings.DISPOSABLE_EMAIL_BLOCKLIST:
        return True

    cache = cache or get_disposable_cache()
    return await cache.is_disposable_domain(domain)


async def validate_email(
    email: str,
    allow_disposable: bool = False,
    cache: DisposableDomainCache | None = None,
) -> EmailValidationResult:
    """
    Validate an address format and reject disposable domains.

    Args:
        email: Address to check
        allow_disposable: Accept disposable addresses (still reported)
        cache: Domain cache to consult (process-wide cache by default)
    """
    if not email:
        return EmailValidationResult(is_valid=False, is_disposable=False, error="Email is required")

    domain = email_domain(email)
    if domain is None:
        return EmailValidationResult(
            is_valid=False, is_disposable=False, error="Invalid email format"
        )

    disposable = await is_disposable_email(email, cache)
    if disposable and not allow_disposable:
        return EmailValidationResult(
            is_valid=False,
            is_disposable=True,
            domain=domain,
            error="Disposable email addresses are not allowed",
        )
    return EmailValidationResult(is_valid=True, is_disposable=disposable, domain=domain)
