"""Audit trail for provisioning events (signed JSONL)."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
from pathlib import Path
from typing import Any, Literal, Optional

logger = logging.getLogger(__name__)

AUDIT_LOG_FILENAME = "provisioning-events.jsonl"

EventType = Literal[
    "application_created", "application_adopted",
    "enterprise_created", "enterprise_adopted",
    "resource_failed", "cleanup_deleted",
]


def _sign_event(event: dict[str, Any], signing_key: bytes) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    if not signing_key:
        return ""
    # Canonical JSON representation for signing
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


class AuditLog:
    """Append-only, HMAC-signed record of what a run created, adopted or deleted.

    Credentials are never written; callers pass identifiers only.
    """

    def __init__(self, log_dir: str | Path, signing_key: str = "", *, operator: str = "system"):
        self.log_dir = Path(log_dir)
        self.log_file = self.log_dir / AUDIT_LOG_FILENAME
        self.operator = operator
        self._signing_key = signing_key.strip().encode("utf-8")

    @classmethod
    def from_config(cls, cfg, operator: str = "system") -> Optional["AuditLog"]:
        """Audit log for the configured directory, or None when auditing is off."""
        if not cfg.audit_log_dir:
            return None
        return cls(cfg.audit_log_dir, cfg.audit_log_signing_key, operator=operator)

    def _ensure_audit_dir(self) -> None:
        """Create audit directory with restricted permissions."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.chmod(0o700)

    def log_event(
        self,
        event_type: EventType,
        display_name: str,
        *,
        request_id: str = "",
        details: dict[str, Any] | None = None,
        success: bool = True,
    ) -> None:
        """Append one event to the audit trail with timestamp and signature.

        Args:
            event_type: Type of provisioning event
            display_name: Display name of the affected resource
            request_id: Run identifier
            details: Additional context (object ids, SSO mode, error text)
            success: Whether the operation succeeded
        """
        self._ensure_audit_dir()

        event = {
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "event_type": event_type,
            "resource": display_name,
            "request_id": request_id,
            "operator": self.operator,
            "success": success,
            "details": details or {},
        }

        signature = _sign_event(event, self._signing_key)
        if signature:
            event["signature"] = signature

        # Append to JSONL file (one JSON object per line)
        with self.log_file.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False) + "\n")

        self.log_file.chmod(0o600)

    def safe_log_event(self, event_type: EventType, display_name: str, **kwargs) -> bool:
        """Log an event, reporting failures through the logger instead of raising.

        Returns:
            True if event was logged successfully, False if logging failed
        """
        try:
            self.log_event(event_type, display_name, **kwargs)
            return True
        except OSError as e:
            logger.warning(f"[audit] Failed to log {event_type} event for {display_name}: {e}")
            return False

    def verify(self) -> tuple[int, int]:
        return verify_audit_log(self.log_file, self._signing_key.decode("utf-8"))


def verify_audit_log(log_file: str | Path, signing_key: str) -> tuple[int, int]:
    """Verify all signatures in an audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    log_file = Path(log_file)
    if not log_file.exists():
        return 0, 0

    key = signing_key.strip().encode("utf-8")
    total = 0
    valid = 0

    with log_file.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                continue
            stored_sig = event.pop("signature", "")
            if not stored_sig:
                continue
            computed_sig = _sign_event(event, key)
            if computed_sig and hmac.compare_digest(stored_sig, computed_sig):
                valid += 1

    return total, valid
