"""Tests for endpoint URL (SSRF) and event list validation."""

import pytest

from app.webhooks.exceptions import WebhookValidationError
from app.webhooks.validation import validate_event_types, validate_webhook_url


class TestWebhookUrlValidation:
    @pytest.mark.parametrize(
        "url",
        [
            "https://hooks.example.com/gateflow",
            "https://example.com:8443/webhook?token=abc",
            "https://93.184.216.34/hook",
            "https://1572395042/hook",
        ],
    )
    def test_public_https_urls_accepted(self, url: str):
        assert validate_webhook_url(url, allow_http=False) == url

    def test_url_is_stripped(self):
        assert validate_webhook_url("  https://example.com/hook \n") == "https://example.com/hook"

    def test_plain_http_rejected_by_default(self):
        with pytest.raises(WebhookValidationError) as exc_info:
            validate_webhook_url("http://example.com/hook", allow_http=False)

        assert exc_info.value.field == "url"
        assert exc_info.value.message == "URL must use HTTPS protocol"

    def test_plain_http_allowed_when_enabled(self):
        assert validate_webhook_url("http://example.com/hook", allow_http=True)

    @pytest.mark.parametrize("scheme", ["ftp", "file", "gopher"])
    def test_other_schemes_rejected(self, scheme: str):
        with pytest.raises(WebhookValidationError):
            validate_webhook_url(f"{scheme}://example.com/hook", allow_http=True)

    @pytest.mark.parametrize("allow_http", [True, False])
    @pytest.mark.parametrize(
        "url",
        [
            "http://169.254.169.254/",
            "https://169.254.169.254/latest/meta-data/",
        ],
    )
    def test_metadata_address_rejected_regardless_of_scheme(self, url: str, allow_http: bool):
        with pytest.raises(WebhookValidationError) as exc_info:
            validate_webhook_url(url, allow_http=allow_http)

        assert "link-local" in exc_info.value.message

    @pytest.mark.parametrize(
        "url",
        [
            "https://localhost/hook",
            "https://LOCALHOST:8080/hook",
            "https://127.0.0.1/hook",
            "https://127.10.0.1/hook",
            "https://10.0.0.5/hook",
            "https://172.16.3.4/hook",
            "https://192.168.1.10/hook",
            "https://0.0.0.0/hook",
            "https://[::1]/hook",
            "https://[fe80::1]/hook",
            "https://[fd12:3456::1]/hook",
            "https://[::ffff:127.0.0.1]/hook",
            "https://metadata.google.internal/computeMetadata/v1/",
            "https://metadata.goog/",
            "https://kubernetes.default.svc/api",
            "https://api.kubernetes.default/",
            "https://2852039166/latest/meta-data/",
            "https://0xa9fea9fe/",
            "https://0xA9.0xFE.0xA9.0xFE/",
            "https://127.1/",
            "https://0177.0.0.1/",
            "https://2130706433/",
            "https://012.0.0.1/",
            "https://localhost./hook",
            "https://127.0.0.1./hook",
            "https://metadata.google.internal./",
        ],
    )
    def test_internal_targets_rejected(self, url: str):
        with pytest.raises(WebhookValidationError) as exc_info:
            validate_webhook_url(url, allow_http=True)

        assert exc_info.value.field == "url"

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "not a url",
            "https://",
            "https://.",
            "https://example.com:99999/",
            "https://999.1.1.1/",
        ],
    )
    def test_malformed_urls_rejected(self, url: str):
        with pytest.raises(WebhookValidationError) as exc_info:
            validate_webhook_url(url)

        assert exc_info.value.message == "Invalid URL format"


class TestEventTypeValidation:
    def test_valid_events_accepted(self):
        assert validate_event_types(["purchase.completed", "lead.captured"]) == [
            "purchase.completed",
            "lead.captured",
        ]

    def test_duplicates_removed_in_order(self):
        assert validate_event_types(["lead.captured", "payment.failed", "lead.captured"]) == [
            "lead.captured",
            "payment.failed",
        ]

    @pytest.mark.parametrize("events", [[], None, "purchase.completed", {"a": 1}])
    def test_empty_or_non_list_rejected(self, events):
        with pytest.raises(WebhookValidationError) as exc_info:
            validate_event_types(events)

        assert exc_info.value.field == "events"
        assert exc_info.value.message == "Events must be a non-empty array"

    def test_unknown_event_rejected(self):
        with pytest.raises(WebhookValidationError) as exc_info:
            validate_event_types(["purchase.completed", "user.created"])

        assert "Invalid event types: user.created" in exc_info.value.message

    def test_test_event_not_subscribable(self):
        with pytest.raises(WebhookValidationError):
            validate_event_types(["test.event"])
