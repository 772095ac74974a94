"""Outbound client for the Cucuru REST API.

Every supported upstream resource is one entry in ``RESOURCES``; the client
attaches the provider credentials, makes a single attempt bounded by the
resource timeout and either returns the upstream response untouched or raises
``UpstreamError``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from src.config import BridgeConfig

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Cucuru-Api-Key"
COLLECTOR_ID_HEADER = "X-Cucuru-Collector-Id"

READ_TIMEOUT = 10.0
WRITE_TIMEOUT = 15.0


@dataclass(frozen=True)
class UpstreamResource:
    method: str
    path: str  # may contain {placeholders}
    timeout: float


RESOURCES: dict[str, UpstreamResource] = {
    "create_payment_link": UpstreamResource("POST", "payments/links", WRITE_TIMEOUT),
    "get_payment_status": UpstreamResource("GET", "payments/{payment_id}", READ_TIMEOUT),
    "list_collections": UpstreamResource("GET", "collection/collections", WRITE_TIMEOUT),
    "list_settlements": UpstreamResource("GET", "collection/settlements", WRITE_TIMEOUT),
    "register_webhook_endpoint": UpstreamResource(
        "POST", "collection/webhooks/endpoint", WRITE_TIMEOUT,
    ),
    "get_webhook_endpoint": UpstreamResource(
        "GET", "collection/webhooks/endpoint", READ_TIMEOUT,
    ),
    "delete_webhook_endpoint": UpstreamResource(
        "DELETE", "collection/webhooks/endpoint", READ_TIMEOUT,
    ),
}


@dataclass
class UpstreamCall:
    resource: str
    path_params: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] | None = None
    body: Any = None


@dataclass
class UpstreamResult:
    status_code: int
    content: bytes
    content_type: str | None = None


class UpstreamError(Exception):
    """A failed upstream call: network error, timeout or non-2xx response."""

    def __init__(self, status_code: int | None, detail: Any) -> None:
        super().__init__(f"upstream error (status={status_code})")
        self.status_code = status_code
        self.detail = detail

    @property
    def http_status(self) -> int:
        return self.status_code or 500

    def to_body(self) -> dict[str, Any]:
        return {"error": "upstream_error", "detail": self.detail}


class UpstreamClient:
    """Authenticated, single-attempt access to the upstream resources."""

    def __init__(
        self,
        config: BridgeConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = config.base_url.rstrip("/")
        self._credentials = {
            API_KEY_HEADER: config.api_key,
            COLLECTOR_ID_HEADER: config.collector_id,
        }
        self._transport = transport

    def build_url(self, call: UpstreamCall) -> str:
        resource = RESOURCES[call.resource]
        escaped = {k: quote(str(v), safe="") for k, v in call.path_params.items()}
        return f"{self._base_url}/{resource.path.format(**escaped)}"

    async def send(self, call: UpstreamCall) -> UpstreamResult:
        resource = RESOURCES[call.resource]
        url = self.build_url(call)
        headers = dict(self._credentials)
        params = {k: v for k, v in (call.query or {}).items() if v is not None}

        request_kwargs: dict[str, Any] = {
            "method": resource.method,
            "url": url,
            "headers": headers,
            "params": params or None,
            "timeout": resource.timeout,
        }
        if call.body is not None:
            request_kwargs["json"] = call.body

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.request(**request_kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("Upstream %s timed out after %.0fs", call.resource, resource.timeout)
            raise UpstreamError(None, _error_message(exc, "upstream timeout")) from exc
        except httpx.HTTPError as exc:
            logger.warning("Upstream %s unreachable: %s", call.resource, type(exc).__name__)
            raise UpstreamError(None, _error_message(exc, "upstream unavailable")) from exc

        if not resp.is_success:
            logger.warning("Upstream %s answered %d", call.resource, resp.status_code)
            raise UpstreamError(resp.status_code, _response_detail(resp))

        return UpstreamResult(
            status_code=resp.status_code,
            content=resp.content,
            content_type=resp.headers.get("content-type"),
        )

    async def create_payment_link(self, body: Any) -> UpstreamResult:
        return await self.send(UpstreamCall("create_payment_link", body=body))

    async def get_payment_status(self, payment_id: str) -> UpstreamResult:
        return await self.send(
            UpstreamCall("get_payment_status", path_params={"payment_id": payment_id}),
        )

    async def list_collections(
        self, date_from: str | None, date_to: str | None,
    ) -> UpstreamResult:
        return await self.send(UpstreamCall(
            "list_collections", query={"date_from": date_from, "date_to": date_to},
        ))

    async def list_settlements(
        self, date_from: str | None, date_to: str | None,
    ) -> UpstreamResult:
        return await self.send(UpstreamCall(
            "list_settlements", query={"date_from": date_from, "date_to": date_to},
        ))

    async def register_webhook_endpoint(self, payload: dict[str, Any]) -> UpstreamResult:
        return await self.send(UpstreamCall("register_webhook_endpoint", body=payload))

    async def get_webhook_endpoint(self) -> UpstreamResult:
        return await self.send(UpstreamCall("get_webhook_endpoint"))

    async def delete_webhook_endpoint(self) -> UpstreamResult:
        return await self.send(UpstreamCall("delete_webhook_endpoint"))


def _error_message(exc: Exception, fallback: str) -> str:
    return str(exc) or fallback


def _response_detail(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return resp.text or resp.reason_phrase
