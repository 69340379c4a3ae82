"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Infrastructure: respx_mock, mock_settings, mock_logfire, logfire_capture, test_client
2. Credentials & clock: credential, fake_clock
3. Token subsystem: token_cache, token_client, token_manager
4. Webhook payloads: sign_body, message_envelope, comment_change, mention_change
"""

import os
from unittest.mock import MagicMock, Mock, patch

import pytest

try:
    import respx
except ImportError:
    respx = None

try:
    import logfire
except ImportError:
    logfire = None

from src.models.credential_models import InstagramCredential
from src.services.instagram_token_api import InstagramTokenClient
from src.services.signature import compute_signature
from src.services.token_cache import TokenCache
from src.services.token_manager import TokenManager

# Let logfire calls run in tests without a configured project
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

NOW = 1_700_000_000.0
DAY = 86400


class FakeClock:
    """Deterministic replacement for time.time()."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def respx_mock():
    """Respx mock fixture for HTTP mocking."""
    if respx is None:
        pytest.skip("respx not available")
    with respx.mock:
        yield respx


# =============================================================================
# Credentials & Clock
# =============================================================================


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def credential():
    """Credential with auto-refresh on and the default 7-day threshold."""
    return InstagramCredential(
        credential_id="default",
        access_token="IGQVJ-original-token",
        business_account_id="17841400000000000",
        auto_refresh=True,
        refresh_threshold_days=7,
        webhook_verify_token="verify-secret-123",
    )


# =============================================================================
# Token Subsystem
# =============================================================================


@pytest.fixture
def token_cache():
    """Fresh cache per test; nothing leaks between tests."""
    return TokenCache()


@pytest.fixture
def token_client():
    return InstagramTokenClient(timeout_seconds=5.0)


@pytest.fixture
def token_manager(token_cache, token_client, fake_clock):
    return TokenManager.create(
        cache=token_cache, token_client=token_client, clock=fake_clock
    )


# =============================================================================
# Webhook Payloads
# =============================================================================


@pytest.fixture
def sign_body():
    """Build an X-Hub-Signature-256 header value for a body."""

    def _sign(body: bytes, secret: str = "verify-secret-123") -> str:
        return f"sha256={compute_signature(body, secret)}"

    return _sign


@pytest.fixture
def messaging_event():
    """Factory for one item of an entry's messaging array."""

    def _event(**overrides):
        event = {
            "sender": {"id": "igsid-sender"},
            "recipient": {"id": "igsid-business"},
            "timestamp": 1700000000123,
        }
        event.update(overrides)
        return event

    return _event


@pytest.fixture
def message_envelope(messaging_event):
    """Envelope with one entry holding the given messaging events."""

    def _envelope(*events, entry_id="17841400000000000"):
        return {
            "object": "instagram",
            "entry": [
                {
                    "id": entry_id,
                    "time": 1700000000,
                    "messaging": list(events)
                    or [messaging_event(message={"mid": "m-1", "text": "hello"})],
                }
            ],
        }

    return _envelope


@pytest.fixture
def comment_change():
    def _change(parent_id=None, comment_id="c-1"):
        value = {
            "id": comment_id,
            "text": "Nice post!",
            "media": {"id": "media-1", "media_product_type": "FEED"},
            "from": {"id": "user-1", "username": "jane"},
        }
        if parent_id:
            value["parent_id"] = parent_id
        return {"field": "comments", "value": value}

    return _change


@pytest.fixture
def mention_change():
    def _change(comment_id=None, text=None):
        value = {"id": "mention-1", "media_id": "media-9"}
        if comment_id:
            value["comment_id"] = comment_id
        if text:
            value["text"] = text
        return {"field": "mentions", "value": value}

    return _change


# =============================================================================
# Application
# =============================================================================


@pytest.fixture
def mock_settings(monkeypatch):
    """Mock application settings."""
    from src.config import Settings

    settings = Settings(
        _env_file=None,
        instagram_access_token="IGQVJ-original-token",
        instagram_business_account_id="17841400000000000",
        instagram_auto_refresh=True,
        instagram_refresh_threshold_days=7,
        instagram_webhook_verify_token="verify-secret-123",
        strict_webhook_auth=False,
        webhook_events=[
            "messages",
            "messaging_postbacks",
            "messaging_optins",
            "comments",
            "mentions",
        ],
        webhook_ignore_echo=True,
        env="local",
        logfire_token=None,
        sentry_dsn=None,
    )

    monkeypatch.setattr("src.config.get_settings", lambda: settings)
    # Patch where get_settings is used so request handlers see the mock
    monkeypatch.setattr("src.main.get_settings", lambda: settings)
    monkeypatch.setattr("src.api.dependencies.get_settings", lambda: settings)
    monkeypatch.setattr("src.api.webhook.get_settings", lambda: settings)
    monkeypatch.setattr("src.logging_config.get_settings", lambda: settings)
    return settings


@pytest.fixture
def test_client(mock_settings, mock_logfire):
    """FastAPI TestClient for E2E tests; runs the app lifespan."""
    from fastapi.testclient import TestClient
    from src.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def logfire_capture():
    """
    Capture Logfire logs for testing.

    This fixture patches Logfire to capture log calls for assertion.
    """
    if logfire is None:
        pytest.skip("logfire not available")

    captured_logs = []

    def capture(level):
        def _capture(*args, **kwargs):
            captured_logs.append((level, args, kwargs))

        return _capture

    with (
        patch("logfire.info", side_effect=capture("info")),
        patch("logfire.warn", side_effect=capture("warn")),
        patch("logfire.error", side_effect=capture("error")),
    ):
        yield captured_logs


@pytest.fixture
def mock_logfire(monkeypatch):
    """
    Mock Logfire for testing without actual logging.

    Useful for tests that don't need to verify logging behavior.
    """
    from contextlib import contextmanager

    @contextmanager
    def mock_span(*args, **kwargs):
        yield {}

    mock_logfire_module = MagicMock()
    mock_logfire_module.info = Mock()
    mock_logfire_module.warn = Mock()
    mock_logfire_module.error = Mock()
    mock_logfire_module.span = mock_span
    mock_logfire_module.configure = Mock()
    mock_logfire_module.instrument_fastapi = Mock()
    mock_logfire_module.instrument_pydantic = Mock()

    for module in (
        "src.main",
        "src.logging_config",
        "src.middleware.correlation_id",
        "src.services.token_status",
        "src.services.token_refresh",
        "src.services.token_manager",
        "src.services.token_cache",
        "src.services.signature",
        "src.services.webhook_dispatcher",
        "src.services.instagram_token_api",
        "src.services.instagram_service",
    ):
        monkeypatch.setattr(f"{module}.logfire", mock_logfire_module)

    return mock_logfire_module
