"""FastAPI bridge application: outbound proxy routes and inbound webhook gate."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable
from typing import Any

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from src.audit.logger import AuditLogger
from src.config import BridgeConfig
from src.models import AuditEvent, AuditEventType, RiskLevel, now_iso
from src.proxy.upstream import UpstreamClient, UpstreamError, UpstreamResult
from src.webhook.gate import InboundAuthGate
from src.webhook.models import InboundRequest
from src.webhook.recorder import WebhookRecorder

logger = logging.getLogger(__name__)

WEBHOOK_PREFIX = "/api/webhooks"

# Inbound provider callbacks, keyed by the event kind they record
WEBHOOK_KINDS = ("collection_received", "settlement_received", "cucuru")


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    config = BridgeConfig.from_env()
    audit_logger = None
    if config.audit_log_path:
        audit_logger = AuditLogger(
            config.audit_log_path,
            max_bytes=config.audit_log_max_bytes,
            backup_count=config.audit_log_backup_count,
        )
    return create_app(config, audit_logger)


def create_app(
    config: BridgeConfig,
    audit_logger: AuditLogger | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create the bridge app.

    ``transport`` replaces the network transport of outbound calls (tests
    pass an ``httpx.MockTransport``).
    """
    app = FastAPI(docs_url=None, redoc_url=None)
    upstream = UpstreamClient(config, transport=transport)
    gate = InboundAuthGate(config)
    recorder = WebhookRecorder(audit_logger)

    if not gate.enabled:
        logger.warning(
            "Inbound webhook validation is disabled: set INBOUND_HEADER_NAME/"
            "INBOUND_HEADER_VALUE or WEBHOOK_SECRET before going to production",
        )

    async def relay(resource: str, pending: Awaitable[UpstreamResult]) -> Response:
        try:
            result = await pending
        except UpstreamError as exc:
            if audit_logger:
                audit_logger.log(AuditEvent(
                    event_type=AuditEventType.UPSTREAM_ERROR,
                    action=resource,
                    result="failure",
                    risk_level=RiskLevel.MEDIUM,
                    details={"status": exc.status_code},
                ))
            return JSONResponse(exc.to_body(), status_code=exc.http_status)
        return Response(
            content=result.content,
            status_code=result.status_code,
            media_type=result.content_type,
        )

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "ok": True,
            "service": config.service_name,
            "ts": now_iso(),
            "inbound_header_enabled": config.header_auth_enabled,
            "hmac_enabled": config.hmac_auth_enabled,
        }

    # --- Outbound proxy ---

    @app.post("/api/payments/link")
    async def create_payment_link(request: Request) -> Response:
        body = await _json_body(request)
        return await relay("create_payment_link", upstream.create_payment_link(body))

    @app.get("/api/payments/{payment_id}")
    async def get_payment_status(payment_id: str) -> Response:
        return await relay("get_payment_status", upstream.get_payment_status(payment_id))

    @app.get("/api/collections")
    async def list_collections(
        date_from: str | None = None, date_to: str | None = None,
    ) -> Response:
        return await relay("list_collections", upstream.list_collections(date_from, date_to))

    @app.get("/api/settlements")
    async def list_settlements(
        date_from: str | None = None, date_to: str | None = None,
    ) -> Response:
        return await relay("list_settlements", upstream.list_settlements(date_from, date_to))

    @app.post(f"{WEBHOOK_PREFIX}/register")
    async def register_webhook_endpoint(request: Request) -> Response:
        body = await _json_body(request)
        if not isinstance(body, dict):
            body = {}
        payload: dict[str, Any] = {
            "url": body.get("url") or _default_webhook_url(config, request),
        }
        header = body.get("header")
        if not header and config.header_auth_enabled:
            # Tell the provider to send the header the gate expects
            header = {
                "name": config.inbound_header_name,
                "value": config.inbound_header_value,
            }
        if header:
            payload["header"] = header

        response = await relay(
            "register_webhook_endpoint", upstream.register_webhook_endpoint(payload),
        )
        if audit_logger and response.status_code < 400:
            audit_logger.log(AuditEvent(
                event_type=AuditEventType.WEBHOOK_REGISTERED,
                action="register_webhook_endpoint",
                result="success",
                risk_level=RiskLevel.LOW,
                details={"url": payload["url"], "with_header": "header" in payload},
            ))
        return response

    @app.get(f"{WEBHOOK_PREFIX}/endpoint")
    async def get_webhook_endpoint() -> Response:
        return await relay("get_webhook_endpoint", upstream.get_webhook_endpoint())

    @app.delete(f"{WEBHOOK_PREFIX}/endpoint")
    async def delete_webhook_endpoint() -> Response:
        return await relay("delete_webhook_endpoint", upstream.delete_webhook_endpoint())

    # --- Inbound webhook gate ---

    async def receive_webhook(request: Request, kind: str) -> Response:
        raw_body = await request.body()
        result = gate.verify(request.headers, raw_body)
        if not result:
            logger.warning("Rejected webhook %s: %s", kind, result.reason.value)
            if audit_logger:
                audit_logger.log(AuditEvent(
                    event_type=AuditEventType.WEBHOOK_AUTH_FAILURE,
                    source_ip=request.client.host if request.client else None,
                    action=kind,
                    result="rejected",
                    risk_level=RiskLevel.HIGH,
                    details={"reason": result.reason.value},
                ))
            return JSONResponse({"ok": False, "error": "invalid_webhook_auth"}, status_code=401)

        inbound = InboundRequest.from_parts(raw_body, dict(request.headers))
        ack = recorder.record(kind, inbound)
        return JSONResponse(ack.model_dump())

    for kind in WEBHOOK_KINDS:
        app.add_api_route(
            f"{WEBHOOK_PREFIX}/{kind}", _webhook_endpoint(receive_webhook, kind), methods=["POST"],
        )

    return app


def _webhook_endpoint(handler: Any, kind: str) -> Any:
    async def endpoint(request: Request) -> Response:
        return await handler(request, kind)

    endpoint.__name__ = f"webhook_{kind}"
    return endpoint


def _default_webhook_url(config: BridgeConfig, request: Request) -> str:
    if config.public_webhook_url:
        return config.public_webhook_url
    return f"{str(request.base_url).rstrip('/')}{WEBHOOK_PREFIX}"


async def _json_body(request: Request) -> Any:
    """Parse a caller's JSON body for forwarding.

    Requests without a JSON content type carry no body (``None``); an empty
    or unparsable JSON body becomes ``{}``.
    """
    if "application/json" not in request.headers.get("content-type", ""):
        return None
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
