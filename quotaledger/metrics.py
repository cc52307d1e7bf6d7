"""
Metrics and observability for the quota ledger.

Provides structured logging and counters for quota and reward events.
"""

import json
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, asdict
from datetime import datetime, UTC
from typing import Optional, Any
from pathlib import Path


@dataclass
class MetricEvent:
    """A single metric event."""
    timestamp: str
    event_type: str  # consume, quota_hit, task, task_rejected, profile_sync, error
    user_id: str
    data: dict[str, Any]


class LedgerMetrics:
    """
    Collects ledger events and counters.

    Safe to share between request handlers.
    """

    def __init__(
        self,
        metrics_file: Optional[Path] = None,
        enable_logging: bool = True,
    ):
        """
        Initialize metrics collector.

        Args:
            metrics_file: Optional file to write events to (JSONL format)
            enable_logging: Whether to log each event
        """
        self.metrics_file = metrics_file
        self.enable_logging = enable_logging
        self.logger = logging.getLogger("quotaledger.metrics")
        self._lock = threading.Lock()

        self._events: list[MetricEvent] = []
        self._counters: dict[str, int] = defaultdict(int)

    def record_consume(
        self,
        user_id: str,
        limit: int,
        usage: int,
        requested: int,
        consumed: bool,
    ) -> None:
        self._record_event(
            "consume",
            user_id,
            {"limit": limit, "usage": usage, "requested": requested, "consumed": consumed},
        )
        with self._lock:
            self._counters["consume_allowed"] += 1
            if consumed:
                self._counters["units_consumed"] += requested

    def record_quota_hit(
        self,
        user_id: str,
        limit: int,
        current_count: int,
        requested: int,
    ) -> None:
        self._record_event(
            "quota_hit",
            user_id,
            {"limit": limit, "current_count": current_count, "requested": requested},
            level=logging.WARNING,
        )
        with self._lock:
            self._counters["quota_exceeded"] += 1

    def record_task(self, user_id: str, task_id: str, daily_limit: int) -> None:
        self._record_event("task", user_id, {"task_id": task_id, "daily_limit": daily_limit})
        with self._lock:
            self._counters[f"task_completed_{task_id}"] += 1

    def record_task_rejected(self, user_id: str, task_id: str, code: str) -> None:
        self._record_event("task_rejected", user_id, {"task_id": task_id, "code": code})
        with self._lock:
            self._counters[f"task_rejected_{code}"] += 1

    def record_profile_sync(self, user_id: str, tier: str, written_fields: list[str]) -> None:
        self._record_event(
            "profile_sync",
            user_id,
            {"tier": tier, "written_fields": written_fields},
        )
        with self._lock:
            self._counters["profile_synced"] += 1
            if written_fields:
                self._counters["profile_written"] += 1

    def record_retry(self, user_id: str, attempt: int) -> None:
        with self._lock:
            self._counters["transaction_retries"] += 1

    def record_error(self, user_id: str, error_type: str, error_message: str) -> None:
        self._record_event(
            "error",
            user_id,
            {"error_type": error_type, "error_message": error_message},
            level=logging.ERROR,
        )
        with self._lock:
            self._counters["errors_total"] += 1
            self._counters[f"errors_{error_type}"] += 1

    def _record_event(
        self,
        event_type: str,
        user_id: str,
        data: dict,
        level: int = logging.INFO,
    ) -> None:
        event = MetricEvent(
            timestamp=datetime.now(UTC).isoformat(),
            event_type=event_type,
            user_id=user_id,
            data=data,
        )

        with self._lock:
            self._events.append(event)
            if self.metrics_file:
                with open(self.metrics_file, "a") as f:
                    f.write(json.dumps(asdict(event)) + "\n")

        if self.enable_logging:
            self.logger.log(level, f"{event_type}: user_id={user_id}, data={data}")

    @property
    def events(self) -> list[MetricEvent]:
        with self._lock:
            return list(self._events)

    def get_stats(self) -> dict:
        """
        Get aggregated statistics.

        Returns:
            Dictionary with counters and event totals
        """
        with self._lock:
            return {
                "counters": dict(self._counters),
                "total_events": len(self._events),
            }

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self._events.clear()
            self._counters.clear()
