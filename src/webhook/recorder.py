"""Recording stub for authenticated provider webhooks.

Idempotent persistence and per-event-type routing belong here. For now the
recorder only logs the delivery and acknowledges it; identical deliveries are
acknowledged independently.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.models import AuditEvent, AuditEventType, RiskLevel
from src.webhook.models import InboundRequest, WebhookAck, WebhookEvent

if TYPE_CHECKING:
    from src.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


class WebhookRecorder:
    def __init__(self, audit_logger: AuditLogger | None = None) -> None:
        self._audit = audit_logger

    def record(self, kind: str, inbound: InboundRequest) -> WebhookAck:
        event = WebhookEvent.from_payload(inbound.payload, default_type=kind)
        logger.info(
            "Webhook received: kind=%s type=%s id=%s attempt=%d",
            kind, event.type, event.id, inbound.attempt,
        )
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=AuditEventType.WEBHOOK_RECEIVED,
                action=kind,
                result="success",
                risk_level=RiskLevel.INFO,
                details={
                    "event_id": event.id,
                    "event_type": event.type,
                    "attempt": inbound.attempt,
                },
            ))
        return WebhookAck()
