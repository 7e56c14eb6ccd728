"""
Error Instrumentation Module
Structured event logging and latency tracking for task execution.

Every task run gets its own context (task id, trace id); events logged
through ``log_with_context`` carry it automatically.
"""

import json
import logging
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

# Context storage (thread-safe)
task_context_var: ContextVar[Dict[str, Any]] = ContextVar("task_context", default={})


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_task_context(
    task_id: Optional[str] = None,
    trace_id: Optional[str] = None,
    service_name: str = "quarry",
) -> Dict[str, Any]:
    """
    Create context with unique IDs for one task run.

    Use this when a task starts executing.
    All events logged while it is active include these IDs.
    """
    return {
        "correlation_id": str(uuid.uuid4()),
        "trace_id": trace_id or str(uuid.uuid4()),
        "task_id": task_id,
        "timestamp": _now(),
        "service_name": service_name,
    }


def get_task_context() -> Dict[str, Any]:
    """
    Get current task context (use in all event logging).

    If no context exists, creates one automatically.
    """
    ctx = task_context_var.get({})
    if not ctx:
        ctx = create_task_context()
        task_context_var.set(ctx)
    return ctx


def get_correlation_id() -> str:
    """Get correlation ID for the active task run."""
    return get_task_context().get("correlation_id", "unknown")


@contextmanager
def task_context(task_id: str, trace_id: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    """Bind a fresh task context for the duration of the block."""
    token = task_context_var.set(create_task_context(task_id=task_id, trace_id=trace_id))
    try:
        yield task_context_var.get()
    finally:
        task_context_var.reset(token)


def log_with_context(level: str, message: str, **kwargs: Any) -> None:
    """
    Log with full context and structured data.

    Every event includes correlation IDs, timestamp, and any extra kwargs.
    """
    ctx = get_task_context()
    log_entry = {
        **ctx,
        "message": message,
        "level": level.upper(),
        "timestamp": _now(),
        **kwargs,
    }
    payload = json.dumps(log_entry, default=str)
    level_name = level.upper()
    if level_name == "ERROR":
        logger.error(payload)
    elif level_name == "WARNING":
        logger.warning(payload)
    elif level_name == "CRITICAL":
        logger.critical(payload)
    elif level_name == "DEBUG":
        logger.debug(payload)
    else:
        logger.info(payload)


class LatencyMetrics:
    """Track and analyze capability call latency."""

    def __init__(self, operation: str, slow_threshold_ms: float = 1000.0):
        self.operation = operation
        self.slow_threshold_ms = slow_threshold_ms
        self.latencies: list[float] = []

    @property
    def p50(self) -> float:
        if not self.latencies:
            return 0
        sorted_latencies = sorted(self.latencies)
        return sorted_latencies[len(sorted_latencies) // 2]

    @property
    def p95(self) -> float:
        if not self.latencies:
            return 0
        sorted_latencies = sorted(self.latencies)
        index = max(0, int(len(sorted_latencies) * 0.95) - 1)
        return sorted_latencies[index]

    def add(self, latency_ms: float) -> None:
        self.latencies.append(latency_ms)
        if latency_ms > self.slow_threshold_ms:
            log_with_context(
                "warning",
                f"{self.operation} slow",
                latency_ms=latency_ms,
                p95=self.p95,
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "p50": self.p50,
            "p95": self.p95,
            "count": len(self.latencies),
        }


class ErrorContext:
    """
    Capture complete context when a capability or action raises.
    """

    def __init__(
        self,
        operation: str,
        error: Exception,
        context: Dict[str, Any],
    ):
        self.operation = operation
        self.error = error
        self.context = context
        self.stack_trace = traceback.format_exc()
        self.timestamp = _now()

    def log(self) -> None:
        log_with_context(
            "error",
            f"{self.operation}_failed",
            error_type=type(self.error).__name__,
            error_message=str(self.error),
            stack_trace=self.stack_trace,
            operation_context=self.context,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "error_type": type(self.error).__name__,
            "error_message": str(self.error),
            "stack_trace": self.stack_trace,
            "context": self.context,
            "timestamp": self.timestamp,
            "correlation_id": get_correlation_id(),
        }
