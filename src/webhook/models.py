"""Data models for inbound provider webhooks."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict

REDELIVERY_ATTEMPT_HEADER = "x-redelivery-attempt"


def parse_payload(raw_body: bytes, content_type: str) -> dict[str, Any]:
    """Parse a JSON object body, falling back to ``{}``.

    Bodies without a JSON content type, empty bodies, unparsable bodies and
    JSON values that are not objects all yield an empty payload.
    """
    if "application/json" not in content_type or not raw_body:
        return {}
    try:
        data = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def parse_attempt(value: str | None) -> int:
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        return 0


@dataclass
class InboundRequest:
    """One inbound webhook call, after authentication."""

    raw_body: bytes
    payload: dict[str, Any]
    attempt: int = 0
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_parts(
        cls, raw_body: bytes, headers: dict[str, str],
    ) -> InboundRequest:
        lowered = {k.lower(): v for k, v in headers.items()}
        return cls(
            raw_body=raw_body,
            payload=parse_payload(raw_body, lowered.get("content-type", "")),
            attempt=parse_attempt(lowered.get(REDELIVERY_ATTEMPT_HEADER)),
            headers=lowered,
        )


class WebhookEvent(BaseModel):
    """Provider event as far as it can be read from the payload."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    type: str
    data: dict[str, Any] | None = None
    created_at: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any], default_type: str) -> WebhookEvent:
        # Collection/settlement deliveries carry their own id fields
        event_id = (
            payload.get("id")
            or payload.get("collection_id")
            or payload.get("settlement_id")
            or payload.get("trace_id")
        )
        data = payload.get("data")
        created = payload.get("created_at") or payload.get("timestamp")
        return cls(
            id=str(event_id) if event_id is not None else None,
            type=str(payload.get("type") or payload.get("event") or default_type),
            data=data if isinstance(data, dict) else None,
            created_at=str(created) if created is not None else None,
        )


class WebhookAck(BaseModel):
    received: bool = True
