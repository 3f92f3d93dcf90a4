"""
Subscription Manager - Structured Logging.

============================================================
PURPOSE
============================================================
Structured event logging for subscription operations:
- JSON log lines for transitions and queries
- Shortened keys for readable output
- In-memory audit trail of submitted transitions

The orchestrator only emits events here; nothing in this
module affects operation outcomes.

============================================================
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from .errors import SubscriptionError


logger = logging.getLogger(__name__)


def shorten_key(value: Any, show_chars: int = 4) -> str:
    """
    Shorten a base58 key for log output.

    Args:
        value: Public key or string
        show_chars: Chars to keep at each end

    Returns:
        e.g. "7xKX...sAsU"
    """
    text = str(value) if value is not None else ""
    if len(text) <= show_chars * 2 + 3:
        return text
    return f"{text[:show_chars]}...{text[-show_chars:]}"


# ============================================================
# LOG ENTRY STRUCTURES
# ============================================================

@dataclass
class TransitionLogEntry:
    """Structured log entry for a submitted transition."""

    timestamp: str
    operation: str
    transition: str
    subscriber: str
    data_provider: str

    signature: str = None
    error_kind: str = None
    error_message: str = None
    latency_ms: float = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass
class QueryLogEntry:
    """Structured log entry for a read-only query."""

    timestamp: str
    operation: str
    target: str
    result_count: int = None
    skipped: int = None
    latency_ms: float = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


# ============================================================
# EVENT LOGGER
# ============================================================

class SubscriptionEventLogger:
    """Structured event sink for orchestrator operations."""

    def __init__(self, logger_name: str = "subscription_manager.events"):
        self._logger = logging.getLogger(logger_name)

    def log_transition(
        self,
        operation: str,
        transition: str,
        subscriber: Any,
        data_provider: Any,
        signature: Optional[str] = None,
        error: Optional[SubscriptionError] = None,
        latency_ms: Optional[float] = None,
    ) -> None:
        entry = TransitionLogEntry(
            timestamp=datetime.utcnow().isoformat(),
            operation=operation,
            transition=transition,
            subscriber=str(subscriber),
            data_provider=str(data_provider),
            signature=signature,
            error_kind=error.kind.value if error else None,
            error_message=error.message[:200] if error else None,
            latency_ms=round(latency_ms, 3) if latency_ms is not None else None,
        )

        if error:
            self._logger.warning(f"TRANSITION_ERROR: {entry.to_json()}")
        else:
            self._logger.info(f"TRANSITION: {entry.to_json()}")

    def log_query(
        self,
        operation: str,
        target: Any,
        result_count: Optional[int] = None,
        skipped: Optional[int] = None,
        latency_ms: Optional[float] = None,
    ) -> None:
        entry = QueryLogEntry(
            timestamp=datetime.utcnow().isoformat(),
            operation=operation,
            target=str(target),
            result_count=result_count,
            skipped=skipped or None,
            latency_ms=round(latency_ms, 3) if latency_ms is not None else None,
        )
        self._logger.debug(f"QUERY: {entry.to_json()}")


# ============================================================
# AUDIT LOG
# ============================================================

class AuditLog:
    """
    Audit trail of submitted transitions.

    Keeps the most recent `max_entries` entries.
    """

    def __init__(self, max_entries: int = 10000):
        self._entries: List[Dict[str, Any]] = []
        self._max_entries = max_entries

    def record(
        self,
        operation: str,
        transition: str,
        accounts: Dict[str, Any],
        args: Dict[str, Any],
        success: bool,
        signature: Optional[str] = None,
        error_kind: Optional[str] = None,
        latency_ms: Optional[float] = None,
    ) -> None:
        entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "operation": operation,
            "transition": transition,
            "accounts": accounts,
            "args": args,
            "success": success,
            "signature": signature,
            "error_kind": error_kind,
            "latency_ms": latency_ms,
        }

        self._entries.append(entry)

        if len(self._entries) > self._max_entries:
            self._entries = self._entries[-self._max_entries:]

    def get_entries(
        self,
        operation: str = None,
        transition: str = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """
        Get audit entries.

        Args:
            operation: Filter by orchestrator operation
            transition: Filter by transition name
            limit: Max entries to return
        """
        entries = self._entries

        if operation:
            entries = [e for e in entries if e["operation"] == operation]

        if transition:
            entries = [e for e in entries if e["transition"] == transition]

        return entries[-limit:]

    def export(self) -> List[Dict[str, Any]]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()


_global_audit_log = AuditLog()


def get_audit_log() -> AuditLog:
    """Get global audit log."""
    return _global_audit_log
