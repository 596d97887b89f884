"""Operator-facing sync event channel."""

from household_ledger.audit.logger import EventSink, SyncAuditLogger, configure_logging

__all__ = ["EventSink", "SyncAuditLogger", "configure_logging"]
