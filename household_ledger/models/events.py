"""
Sync Event Models for Household Ledger

Operator-facing record of what the sync engine did. The display layer
never sees these; they exist so failures that are deliberately kept away
from the user (prefetch errors, seeding failures, dead subscriptions)
still leave a trace.

DESIGN DECISION: Events are append-only. We never modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class SyncEventType(str, Enum):
    """Types of events the sync engine records."""
    # Subscriptions
    SUBSCRIPTION_OPENED = "subscription_opened"
    SUBSCRIPTION_CLOSED = "subscription_closed"
    SUBSCRIPTION_FAILED = "subscription_failed"
    PREFETCH_FAILED = "prefetch_failed"
    RECORD_SKIPPED = "record_skipped"

    # Writes
    WRITE_COMPLETED = "write_completed"
    WRITE_FAILED = "write_failed"

    # Bootstrap
    SEED_COMPLETED = "seed_completed"
    SEED_SKIPPED = "seed_skipped"
    SEED_FAILED = "seed_failed"
    OPTIMISTIC_ROLLBACK = "optimistic_rollback"


class SyncSeverity(str, Enum):
    """Severity level for sync events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SyncEvent(BaseModel):
    """
    A single sync event.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: SyncEventType
    severity: SyncSeverity = SyncSeverity.INFO

    # Context - which collection and record is this about?
    collection: Optional[str] = None
    record_id: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "collection": self.collection,
            "record_id": self.record_id,
            "description": self.description,
            "details": self.details,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
        }


class SyncEventBuilder:
    """
    Helper class to build sync events with common patterns.

    Usage:
        event = SyncEventBuilder.subscription_failed("users", "unavailable", "offline")
        event = SyncEventBuilder.seed_completed("categories", ["food", "other"])
    """

    @staticmethod
    def subscription_opened(collection: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SUBSCRIPTION_OPENED,
            severity=SyncSeverity.DEBUG,
            collection=collection,
            description=f"Live subscription opened for {collection}",
        )

    @staticmethod
    def subscription_closed(collection: str, deliveries: int) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SUBSCRIPTION_CLOSED,
            severity=SyncSeverity.DEBUG,
            collection=collection,
            description=f"Live subscription closed for {collection}",
            details={"deliveries": deliveries},
        )

    @staticmethod
    def subscription_failed(
        collection: str,
        error_kind: str,
        error_message: str,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SUBSCRIPTION_FAILED,
            severity=SyncSeverity.ERROR,
            collection=collection,
            description=f"Live updates for {collection} stopped ({error_kind})",
            error_kind=error_kind,
            error_message=error_message,
        )

    @staticmethod
    def prefetch_failed(
        collection: str,
        error_kind: str,
        error_message: str,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.PREFETCH_FAILED,
            severity=SyncSeverity.WARNING,
            collection=collection,
            description=f"Server read for {collection} failed, relying on the live subscription",
            error_kind=error_kind,
            error_message=error_message,
        )

    @staticmethod
    def record_skipped(
        collection: str,
        record_id: str,
        error_message: str,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.RECORD_SKIPPED,
            severity=SyncSeverity.WARNING,
            collection=collection,
            record_id=record_id,
            description=f"Unreadable {collection} record skipped",
            error_message=error_message,
        )

    @staticmethod
    def write_completed(
        collection: str,
        operation: str,
        record_id: str,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.WRITE_COMPLETED,
            collection=collection,
            record_id=record_id,
            description=f"{operation} on {collection} succeeded",
            details={"operation": operation},
        )

    @staticmethod
    def write_failed(
        collection: str,
        operation: str,
        record_id: Optional[str],
        error_kind: str,
        error_message: str,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.WRITE_FAILED,
            severity=SyncSeverity.ERROR,
            collection=collection,
            record_id=record_id,
            description=f"{operation} on {collection} failed ({error_kind})",
            details={"operation": operation},
            error_kind=error_kind,
            error_message=error_message,
        )

    @staticmethod
    def seed_completed(collection: str, record_ids: list[str]) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SEED_COMPLETED,
            collection=collection,
            description=f"Seeded {len(record_ids)} default {collection} record(s)",
            details={"record_ids": record_ids},
        )

    @staticmethod
    def seed_skipped(collection: str, reason: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SEED_SKIPPED,
            severity=SyncSeverity.DEBUG,
            collection=collection,
            description=f"Seeding {collection} skipped: {reason}",
        )

    @staticmethod
    def seed_failed(
        collection: str,
        record_id: Optional[str],
        error_kind: str,
        error_message: str,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SEED_FAILED,
            severity=SyncSeverity.WARNING,
            collection=collection,
            record_id=record_id,
            description=f"Seeding {collection} failed ({error_kind})",
            error_kind=error_kind,
            error_message=error_message,
        )

    @staticmethod
    def optimistic_rollback(collection: str, pending_write_id: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.OPTIMISTIC_ROLLBACK,
            severity=SyncSeverity.WARNING,
            collection=collection,
            record_id=pending_write_id,
            description=f"Optimistic {collection} view rolled back after a failed write",
        )
