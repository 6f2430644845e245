"""Security audit events.

Small opt-in event channel for authentication and authorization telemetry.
Operators can register a sink to forward events to logs, metrics, or SIEM.
Every denial is also logged on the ``caaspay.security`` logger.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from time import time
from typing import Any, TypeAlias

_log = logging.getLogger("caaspay.security")


@dataclass(frozen=True, slots=True)
class SecurityEvent:
    """A structured security event."""

    name: str
    timestamp: float = field(default_factory=time)
    path: str | None = None
    method: str | None = None
    caller_id: str | None = None
    snapshot_version: int | None = None
    details: dict[str, Any] = field(default_factory=dict)


SecurityEventSink: TypeAlias = Callable[[SecurityEvent], None]


_sink_lock = threading.Lock()
_sink: SecurityEventSink | None = None


def set_security_event_sink(sink: SecurityEventSink | None) -> None:
    """Set a process-wide sink for security events.

    Pass ``None`` to disable event delivery.
    """
    global _sink
    with _sink_lock:
        _sink = sink


def emit_security_event(
    name: str,
    *,
    request: Any | None = None,
    caller_id: str | None = None,
    snapshot_version: int | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Log a security event and deliver it to the configured sink, if any."""
    path = getattr(request, "path", None) if request is not None else None
    method = getattr(request, "method", None) if request is not None else None

    _log.info(
        "%s caller=%s %s %s v%s %s",
        name,
        caller_id or "-",
        method or "-",
        path or "-",
        snapshot_version if snapshot_version is not None else "-",
        details or "",
    )

    with _sink_lock:
        sink = _sink
    if sink is None:
        return

    sink(
        SecurityEvent(
            name=name,
            path=path,
            method=method,
            caller_id=caller_id,
            snapshot_version=snapshot_version,
            details=details or {},
        )
    )
