"""
observability.py — Counters behind GET /metrics and the RPC event log lines.

One RuntimeMetrics instance lives on the dispatcher, so the stdio session and
the HTTP app report into the same counters.
"""

import collections
import json
import logging
import threading
import time
from typing import Any


class RuntimeMetrics:
    """Thread-safe RPC, tool and framing counters."""

    def __init__(self, *, started_at: float | None = None) -> None:
        self._lock = threading.Lock()
        self._started_at = started_at if started_at is not None else time.time()
        self._requests = 0
        self._errors = 0
        self._latency_ms = 0.0
        self._by_method: collections.Counter[str] = collections.Counter()
        self._by_error_code: collections.Counter[str] = collections.Counter()
        self._tool_calls: collections.Counter[str] = collections.Counter()
        self._tool_failures: collections.Counter[str] = collections.Counter()
        self._frames_dropped = 0

    def record_rpc(
        self,
        *,
        method: str,
        duration_ms: float,
        ok: bool,
        tool_name: str | None = None,
        error_code: int | None = None,
    ) -> None:
        with self._lock:
            self._requests += 1
            self._latency_ms += max(duration_ms, 0.0)
            self._by_method[method or "unknown"] += 1
            if tool_name:
                self._tool_calls[tool_name] += 1
            if ok:
                return
            self._errors += 1
            if error_code is not None:
                self._by_error_code[str(error_code)] += 1
            if tool_name:
                self._tool_failures[tool_name] += 1

    def record_dropped_frame(self) -> None:
        """Count an input frame or body that was discarded without a reply."""
        with self._lock:
            self._frames_dropped += 1

    def uptime_sec(self) -> int:
        return int(max(0, time.time() - self._started_at))

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            avg_latency_ms = round(self._latency_ms / self._requests, 2) if self._requests else 0.0
            return {
                "rpc": {
                    "requests_total": self._requests,
                    "errors_total": self._errors,
                    "avg_latency_ms": avg_latency_ms,
                    "by_method": dict(self._by_method),
                    "by_error_code": dict(self._by_error_code),
                    "by_tool": dict(self._tool_calls),
                    "tool_failures": dict(self._tool_failures),
                },
                "transport": {"frames_dropped_total": self._frames_dropped},
                "uptime_sec": self.uptime_sec(),
            }


def log_rpc_event(
    *,
    logger: logging.Logger,
    structured_logs: bool,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """Emit one RPC lifecycle event, as a JSON object or as ``key=value`` pairs.

    ``None`` fields are left out in both forms.
    """
    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **{k: v for k, v in fields.items() if v is not None}}
    if structured_logs:
        logger.log(level, json.dumps(payload, default=str, sort_keys=True))
        return
    logger.log(
        level,
        " ".join(
            f"{k}={v!r}" if isinstance(v, str) and " " in v else f"{k}={v}"
            for k, v in payload.items()
            if not isinstance(v, (dict, list))
        ),
    )
