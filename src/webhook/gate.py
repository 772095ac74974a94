"""Inbound webhook authentication.

Two independent checks, each active only when configured:

1. Shared header: the configured header must carry exactly the configured
   value.
2. HMAC signature: the signature header must match HMAC(secret, raw body),
   accepted in either hex or base64 encoding.

When both are configured both must pass. When neither is configured every
request is accepted; this mode exists for early integration work and is
logged as a warning at startup.
"""

from __future__ import annotations

import base64
import hmac
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from src.config import BridgeConfig

logger = logging.getLogger(__name__)


class AuthFailure(str, Enum):
    INBOUND_HEADER_MISMATCH = "inbound_header_mismatch"
    MISSING_SIGNATURE = "missing_signature"
    SIGNATURE_MISMATCH = "signature_mismatch"


@dataclass(frozen=True)
class AuthResult:
    ok: bool
    reason: AuthFailure | None = None

    def __bool__(self) -> bool:
        return self.ok


_ACCEPTED = AuthResult(ok=True)


def compute_signatures(secret: str, body: bytes, algo: str) -> tuple[str, str]:
    """Return the (hex, base64) encodings of HMAC(secret, body)."""
    digest = hmac.new(secret.encode(), body, algo).digest()
    return digest.hex(), base64.b64encode(digest).decode("ascii")


def constant_time_equals(supplied: str, expected: str) -> bool:
    """Compare two strings without leaking timing information.

    Both sides are compared as UTF-8 bytes, so values of different length or
    with non-ASCII characters simply compare unequal.
    """
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


class InboundAuthGate:
    """Decides whether an inbound provider callback is trustworthy."""

    def __init__(self, config: BridgeConfig) -> None:
        self._header_name = config.inbound_header_name
        self._header_value = config.inbound_header_value
        self._header_enabled = config.header_auth_enabled
        self._secret = config.webhook_secret
        self._signature_header = config.signature_header
        self._algo = config.hmac_algo

    @property
    def enabled(self) -> bool:
        return self._header_enabled or bool(self._secret)

    def verify(self, headers: Mapping[str, str], raw_body: bytes) -> AuthResult:
        """Check a request's headers and exact body bytes.

        ``headers`` must support case-insensitive lookup or use lower-case
        keys (Starlette's ``Headers`` does both).
        """
        if self._header_enabled:
            incoming = _header(headers, self._header_name)
            if incoming is None or not constant_time_equals(incoming, self._header_value):
                return AuthResult(ok=False, reason=AuthFailure.INBOUND_HEADER_MISMATCH)

        if self._secret:
            signature = _header(headers, self._signature_header)
            if not signature:
                return AuthResult(ok=False, reason=AuthFailure.MISSING_SIGNATURE)
            if not self._signature_matches(signature, raw_body):
                return AuthResult(ok=False, reason=AuthFailure.SIGNATURE_MISMATCH)

        return _ACCEPTED

    def _signature_matches(self, signature: str, raw_body: bytes) -> bool:
        # The provider's encoding is not documented, so both are accepted.
        # Both comparisons always run.
        digest_hex, digest_b64 = compute_signatures(self._secret, raw_body, self._algo)
        hex_ok = constant_time_equals(signature, digest_hex)
        b64_ok = constant_time_equals(signature, digest_b64)
        return hex_ok or b64_ok


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        value = headers.get(name.lower())
    return value
