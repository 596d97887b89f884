"""
Sync Audit Logger

DESIGN DECISION: This is the operator-facing channel. Failures the user
must not be bothered with still have to be visible somewhere:
1. Prefetch reads that failed behind a live subscription
2. Subscriptions that stopped delivering
3. Seed writes that failed and will not be retried until restart

The audit logger:
- Always writes a structured local log line
- Keeps a bounded in-memory history for inspection
- Forwards to an optional sink, and never crashes the caller if the sink fails
"""

import logging
from collections import deque
from typing import Callable, Optional

import structlog

from household_ledger.models.events import SyncEvent, SyncEventType, SyncSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=level)


EventSink = Callable[[SyncEvent], None]


class SyncAuditLogger:
    """
    Central operator channel for sync events.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional sink (alerting, persistence, a UI banner...)
    """

    def __init__(
        self,
        sink: Optional[EventSink] = None,
        history_size: int = 500,
    ):
        """
        Initialize the audit logger.

        Args:
            sink: Called with every event after it is logged locally.
            history_size: How many recent events to keep in memory.
        """
        self._sink = sink
        self._history: deque[SyncEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger(__name__)

    def log(self, event: SyncEvent) -> bool:
        """
        Record a sync event.

        Returns True if the sink accepted it (or no sink is configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == SyncSeverity.ERROR:
            self._logger.error("sync_event", **log_dict)
        elif event.severity == SyncSeverity.WARNING:
            self._logger.warning("sync_event", **log_dict)
        elif event.severity == SyncSeverity.DEBUG:
            self._logger.debug("sync_event", **log_dict)
        else:
            self._logger.info("sync_event", **log_dict)

        self._history.append(event)

        if self._sink:
            try:
                self._sink(event)
            except Exception as e:
                self._logger.error(
                    "sync_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def recent_events(self, limit: int = 100) -> list[SyncEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._history))[:limit]

    def events_of_type(self, event_type: SyncEventType) -> list[SyncEvent]:
        """Events of one type, oldest first."""
        return [event for event in self._history if event.event_type == event_type]
