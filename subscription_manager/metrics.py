"""
Subscription Manager - Operation Metrics.

Latency and outcome counters per orchestrator operation,
plus failure counts per error kind.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from .errors import ErrorKind


logger = logging.getLogger(__name__)


@dataclass
class LatencyStats:
    """Latency statistics."""

    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count > 0 else 0.0

    def record(self, latency_ms: float) -> None:
        self.count += 1
        self.total_ms += latency_ms
        self.min_ms = min(self.min_ms, latency_ms)
        self.max_ms = max(self.max_ms, latency_ms)


class OperationMetrics:
    """Metrics collector for subscription operations."""

    def __init__(self, max_recent: int = 100):
        self._start_time = datetime.utcnow()
        self._max_recent = max_recent
        self.reset()

    def reset(self) -> None:
        self._latency: Dict[str, LatencyStats] = defaultdict(LatencyStats)
        self._success: Dict[str, int] = defaultdict(int)
        self._failure: Dict[str, int] = defaultdict(int)
        self._error_kinds: Dict[str, int] = defaultdict(int)
        self._recent: List[Dict[str, Any]] = []

    def record(
        self,
        operation: str,
        latency_ms: float,
        success: bool,
        error_kind: Optional[ErrorKind] = None,
    ) -> None:
        self._latency[operation].record(latency_ms)
        self._latency["_all"].record(latency_ms)

        if success:
            self._success[operation] += 1
        else:
            self._failure[operation] += 1
            if error_kind is not None:
                self._error_kinds[error_kind.value] += 1

        self._recent.append({
            "timestamp": datetime.utcnow().isoformat(),
            "operation": operation,
            "latency_ms": latency_ms,
            "success": success,
            "error_kind": error_kind.value if error_kind else None,
        })
        if len(self._recent) > self._max_recent:
            self._recent.pop(0)

    def get_latency_by_operation(self) -> Dict[str, Dict[str, float]]:
        return {
            op: {
                "count": stats.count,
                "avg_ms": stats.avg_ms,
                "min_ms": stats.min_ms if stats.count else 0.0,
                "max_ms": stats.max_ms,
            }
            for op, stats in self._latency.items()
            if op != "_all"
        }

    def get_recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        return self._recent[-limit:]

    def get_summary(self) -> Dict[str, Any]:
        overall = self._latency.get("_all", LatencyStats())
        total_success = sum(self._success.values())
        total_failure = sum(self._failure.values())
        return {
            "uptime_seconds": (datetime.utcnow() - self._start_time).total_seconds(),
            "operations": {
                "total": total_success + total_failure,
                "success": total_success,
                "failure": total_failure,
                "by_operation": {
                    op: {"success": self._success.get(op, 0), "failure": self._failure.get(op, 0)}
                    for op in set(self._success) | set(self._failure)
                },
            },
            "latency": {
                "avg_ms": overall.avg_ms,
                "max_ms": overall.max_ms,
            },
            "errors": dict(self._error_kinds),
        }
