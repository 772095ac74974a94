"""Shared test fixtures for cucuru-bridge."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest

from src.audit.logger import AuditLogger
from src.config import BridgeConfig
from src.models import AuditEvent, AuditEventType, RiskLevel

BASE_URL = "https://api.cucuru.test/app/v1/"
API_KEY = "test-api-key"
COLLECTOR_ID = "collector-42"
WEBHOOK_SECRET = "whsec-test"


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


# --- Factory functions for test data ---


def make_config(**kwargs: Any) -> BridgeConfig:
    """Factory for BridgeConfig with the mandatory fields filled in."""
    defaults: dict[str, Any] = {
        "base_url": BASE_URL,
        "api_key": API_KEY,
        "collector_id": COLLECTOR_ID,
    }
    defaults.update(kwargs)
    return BridgeConfig(**defaults)


def make_audit_event(**kwargs: Any) -> AuditEvent:
    """Factory for AuditEvent with sensible defaults."""
    defaults: dict[str, Any] = {
        "event_type": AuditEventType.WEBHOOK_AUTH_FAILURE,
        "action": "collection_received",
        "result": "rejected",
        "risk_level": RiskLevel.HIGH,
    }
    defaults.update(kwargs)
    return AuditEvent(**defaults)


def sign_hex(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def sign_b64(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


# --- Stub upstreams ---


class RecordingUpstream:
    """httpx.MockTransport handler that records requests and answers via ``responder``."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []
        self._responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def echo_responder(request: httpx.Request) -> httpx.Response:
    """Answer 200 with the request body (or ``{}``) as JSON."""
    body = json.loads(request.content) if request.content else {}
    return httpx.Response(200, json=body)


@pytest.fixture
def echo_upstream() -> RecordingUpstream:
    return RecordingUpstream(echo_responder)
