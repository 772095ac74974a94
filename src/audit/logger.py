"""Audit logger — append-only JSON Lines logging with size-based rotation."""

from __future__ import annotations

import fcntl
import json
from pathlib import Path

from src.models import AuditEvent

# Keys that must never reach the audit trail, whatever the caller passes in.
_REDACTED_KEYS = frozenset({
    "api_key", "collector_id", "secret", "signature", "header_value", "token",
})


class AuditLogger:
    """Append-only structured audit logger for bridge security events."""

    def __init__(
        self,
        log_path: str,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count

    def _rotate_if_needed(self) -> None:
        if not self.log_path.exists():
            return
        if self.log_path.stat().st_size < self._max_bytes:
            return

        oldest = self.log_path.with_name(f"{self.log_path.name}.{self._backup_count}")
        if oldest.exists():
            oldest.unlink()

        for i in range(self._backup_count - 1, 0, -1):
            src = self.log_path.with_name(f"{self.log_path.name}.{i}")
            if src.exists():
                src.rename(self.log_path.with_name(f"{self.log_path.name}.{i + 1}"))

        self.log_path.rename(self.log_path.with_name(f"{self.log_path.name}.1"))

    def log(self, event: AuditEvent) -> None:
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

        data = json.loads(event.model_dump_json())
        if data.get("details"):
            data["details"] = {
                k: ("[redacted]" if k in _REDACTED_KEYS else v)
                for k, v in data["details"].items()
            }
        line = json.dumps(data, separators=(",", ":"))

        # Rotation and append happen under the same lock
        lock_file = self.log_path.with_name(f".{self.log_path.name}.lock")
        with open(lock_file, "w") as lf:
            fcntl.flock(lf, fcntl.LOCK_EX)
            try:
                self._rotate_if_needed()
                with open(self.log_path, "a") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lf, fcntl.LOCK_UN)
