"""Endpoint input validation.

URLs are checked against SSRF targets (loopback, private, link-local and
cloud metadata hosts) and must use HTTPS unless plain HTTP is explicitly
enabled for local testing.
"""

from __future__ import annotations

import ipaddress
import re
import socket
from urllib.parse import urlsplit

from app.config import get_settings
from app.webhooks.events import WEBHOOK_EVENT_TYPES, is_valid_event_type
from app.webhooks.exceptions import WebhookValidationError


BLOCKED_HOSTNAMES = (
    "localhost",
    "metadata.google.internal",
    "metadata.goog",
    "kubernetes.default",
    "kubernetes.default.svc",
)

# Legacy IPv4 spellings the resolver still accepts: 2852039166, 0xa9fea9fe, 127.1, 0177.0.0.1
_NUMERIC_HOST = re.compile(r"^(0x[0-9a-f]*|\d+)(\.(0x[0-9a-f]*|\d+)){0,3}$")


def _parse_ip(host: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        pass

    if not _NUMERIC_HOST.match(host):
        return None
    try:
        return ipaddress.IPv4Address(socket.inet_aton(host))
    except OSError as e:
        raise WebhookValidationError("url", "Invalid URL format") from e


def _check_ip(host: str) -> None:
    ip = _parse_ip(host)
    if ip is None:
        return

    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped

    if ip.is_loopback:
        raise WebhookValidationError("url", "URL cannot point to loopback addresses")
    if ip.is_link_local:
        raise WebhookValidationError(
            "url", "URL cannot point to link-local addresses (cloud metadata)"
        )
    if ip.is_unspecified:
        raise WebhookValidationError("url", f"URL cannot point to {ip}")
    if ip.is_private or ip.is_reserved or ip.is_multicast:
        raise WebhookValidationError("url", "URL cannot point to private IP addresses")


def validate_webhook_url(url: str, allow_http: bool | None = None) -> str:
    """Validate an endpoint URL and return it stripped.

    Raises:
        WebhookValidationError: scheme is not allowed or the host is internal.
    """
    if allow_http is None:
        allow_http = get_settings().ALLOW_HTTP_WEBHOOKS

    url = (url or "").strip()
    try:
        parts = urlsplit(url)
        host = parts.hostname
        parts.port  # noqa: B018 - raises ValueError on a malformed port
    except ValueError as e:
        raise WebhookValidationError("url", "Invalid URL format") from e

    # A single trailing dot names the same host
    if host and host.endswith("."):
        host = host[:-1]
    if not host:
        raise WebhookValidationError("url", "Invalid URL format")

    # Host rules apply whatever the scheme
    if any(host == blocked or host.endswith("." + blocked) for blocked in BLOCKED_HOSTNAMES):
        raise WebhookValidationError("url", "URL cannot point to internal services")
    _check_ip(host)

    if parts.scheme != "https" and not (parts.scheme == "http" and allow_http):
        raise WebhookValidationError("url", "URL must use HTTPS protocol")

    return url


def validate_event_types(events: object) -> list[str]:
    """Validate a subscription list and return it de-duplicated in order.

    Raises:
        WebhookValidationError: list is empty or holds unknown event types.
    """
    if not isinstance(events, list | tuple) or not events:
        raise WebhookValidationError("events", "Events must be a non-empty array")

    invalid = [str(e) for e in events if not isinstance(e, str) or not is_valid_event_type(e)]
    if invalid:
        raise WebhookValidationError(
            "events",
            f"Invalid event types: {', '.join(invalid)}. "
            f"Valid types: {', '.join(WEBHOOK_EVENT_TYPES)}",
        )

    return list(dict.fromkeys(events))
