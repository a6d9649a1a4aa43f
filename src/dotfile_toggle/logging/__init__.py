"""Structured logging utilities."""

from .audit import (
    AuditEvent,
    JsonlAuditLogger,
    index_failure_event,
    sanitize_arguments,
    utc_timestamp,
)

__all__ = [
    "AuditEvent",
    "JsonlAuditLogger",
    "index_failure_event",
    "sanitize_arguments",
    "utc_timestamp",
]
