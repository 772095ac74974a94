"""Bridge configuration loaded once from the environment at startup."""

from __future__ import annotations

import hashlib
import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURE_HEADER = "X-Cucuru-Signature"
DEFAULT_HMAC_ALGO = "sha256"
DEFAULT_PORT = 3000
DEFAULT_SERVICE_NAME = "cucuru-bridge"
DEFAULT_AUDIT_LOG_MAX_BYTES = 10_485_760
DEFAULT_AUDIT_LOG_BACKUP_COUNT = 5

# Prefix used by the original deployment's variable names (CUCURU_BASE_URL, ...)
_LEGACY_PREFIX = "CUCURU_"


class ConfigurationError(Exception):
    """Raised when the bridge cannot start with the given environment."""


class BridgeConfig(BaseModel):
    """Immutable process-wide configuration.

    Secret-bearing fields are kept out of ``repr`` so the object can be
    logged safely.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(min_length=1)
    api_key: str = Field(min_length=1, repr=False)
    collector_id: str = Field(min_length=1, repr=False)
    inbound_header_name: str = ""
    inbound_header_value: str = Field(default="", repr=False)
    webhook_secret: str = Field(default="", repr=False)
    signature_header: str = DEFAULT_SIGNATURE_HEADER
    hmac_algo: str = DEFAULT_HMAC_ALGO
    port: int = DEFAULT_PORT
    public_webhook_url: str | None = None
    service_name: str = DEFAULT_SERVICE_NAME
    audit_log_path: str | None = None
    audit_log_max_bytes: int = Field(default=DEFAULT_AUDIT_LOG_MAX_BYTES, gt=0)
    audit_log_backup_count: int = Field(default=DEFAULT_AUDIT_LOG_BACKUP_COUNT, ge=1)

    @field_validator("hmac_algo")
    @classmethod
    def _known_digest(cls, value: str) -> str:
        algo = value.lower()
        # shake_* digests are variable-length and cannot key an HMAC
        if algo not in hashlib.algorithms_available or algo.startswith("shake"):
            raise ValueError(f"unsupported HMAC algorithm: {value}")
        return algo

    @property
    def header_auth_enabled(self) -> bool:
        return bool(self.inbound_header_name and self.inbound_header_value)

    @property
    def hmac_auth_enabled(self) -> bool:
        return bool(self.webhook_secret)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BridgeConfig:
        """Build the configuration from environment variables.

        Raises ConfigurationError when a mandatory variable is missing or a
        value cannot be used.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str:
            return env.get(name) or env.get(_LEGACY_PREFIX + name) or ""

        def required(name: str) -> str:
            value = get(name)
            if not value:
                raise ConfigurationError(f"Missing env {name}")
            return value

        base_url = required("BASE_URL")
        api_key = required("API_KEY")
        collector_id = required("COLLECTOR_ID")

        def integer(name: str, default: int) -> int:
            raw = get(name)
            if not raw:
                return default
            try:
                return int(raw)
            except ValueError as exc:
                raise ConfigurationError(f"Invalid {name}: {raw!r}") from exc

        try:
            config = cls(
                base_url=base_url,
                api_key=api_key,
                collector_id=collector_id,
                inbound_header_name=get("INBOUND_HEADER_NAME"),
                inbound_header_value=get("INBOUND_HEADER_VALUE"),
                webhook_secret=get("WEBHOOK_SECRET"),
                signature_header=get("SIGNATURE_HEADER") or DEFAULT_SIGNATURE_HEADER,
                hmac_algo=get("HMAC_ALGO") or DEFAULT_HMAC_ALGO,
                port=integer("PORT", DEFAULT_PORT),
                public_webhook_url=get("PUBLIC_WEBHOOK_URL") or None,
                service_name=get("SERVICE_NAME") or DEFAULT_SERVICE_NAME,
                audit_log_path=get("AUDIT_LOG_PATH") or None,
                audit_log_max_bytes=integer(
                    "AUDIT_LOG_MAX_BYTES", DEFAULT_AUDIT_LOG_MAX_BYTES,
                ),
                audit_log_backup_count=integer(
                    "AUDIT_LOG_BACKUP_COUNT", DEFAULT_AUDIT_LOG_BACKUP_COUNT,
                ),
            )
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc

        if bool(config.inbound_header_name) != bool(config.inbound_header_value):
            logger.warning(
                "Only one of INBOUND_HEADER_NAME/INBOUND_HEADER_VALUE is set; "
                "inbound header check is disabled",
            )
        return config
