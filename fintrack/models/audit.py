"""
Sync Event Models for Fintrack

Every step a collection sync store takes is recorded as a SyncEvent.
This provides:
1. Traceability of what the store did with each remote push
2. Debugging information for stale-data reports
3. Evidence of which asynchronous results were discarded, and why

DESIGN DECISION: Events are plain values. The logger decides where they
go; building an event never has side effects.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class SyncEventType(str, Enum):
    """Types of events a sync store emits."""
    # Scope and subscription lifecycle
    SCOPE_CHANGED = "scope_changed"
    SUBSCRIPTION_OPENED = "subscription_opened"
    SUBSCRIPTION_CLOSED = "subscription_closed"
    SUBSCRIPTION_FAILED = "subscription_failed"

    # Push channel
    SNAPSHOT_APPLIED = "snapshot_applied"
    EMPTY_SNAPSHOT_RECEIVED = "empty_snapshot_received"

    # Direct fetches
    FALLBACK_APPLIED = "fallback_applied"
    REFRESH_COMPLETED = "refresh_completed"
    FETCH_FAILED = "fetch_failed"
    STALE_RESULT_DISCARDED = "stale_result_discarded"

    # Decoding
    RECORD_DECODE_FAILED = "record_decode_failed"


class EventSeverity(str, Enum):
    """Severity level for sync events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SyncEvent(BaseModel):
    """
    A single sync event.

    `correlation_id` identifies the store instance that emitted it, so
    the history of one store can be pulled out of a shared log.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: SyncEventType
    severity: EventSeverity = EventSeverity.INFO

    collection: Optional[str] = Field(
        default=None,
        description="Remote collection path the event relates to"
    )
    revision: Optional[int] = Field(
        default=None,
        description="Store revision at the time of the event"
    )
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "collection": self.collection,
            "revision": self.revision,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class SyncEventBuilder:
    """
    Helper class to build sync events with common patterns.

    Usage:
        event = SyncEventBuilder.snapshot_applied(path, 3, revision, store_id)
        event = SyncEventBuilder.stale_result_discarded(path, "fallback", 2, 3, store_id)
    """

    @staticmethod
    def scope_changed(
        collection: Optional[str],
        revision: int,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SCOPE_CHANGED,
            severity=EventSeverity.DEBUG,
            collection=collection,
            revision=revision,
            correlation_id=correlation_id,
            description=(
                f"Scope changed to {collection}" if collection
                else "Scope cleared"
            ),
        )

    @staticmethod
    def subscription_opened(
        collection: str,
        revision: int,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SUBSCRIPTION_OPENED,
            collection=collection,
            revision=revision,
            correlation_id=correlation_id,
            description=f"Subscribed to {collection}",
        )

    @staticmethod
    def subscription_closed(
        collection: str,
        revision: int,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SUBSCRIPTION_CLOSED,
            severity=EventSeverity.DEBUG,
            collection=collection,
            revision=revision,
            correlation_id=correlation_id,
            description=f"Unsubscribed from {collection}",
        )

    @staticmethod
    def subscription_failed(
        collection: str,
        revision: int,
        error_message: str,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SUBSCRIPTION_FAILED,
            severity=EventSeverity.ERROR,
            collection=collection,
            revision=revision,
            correlation_id=correlation_id,
            description=f"Push channel failed for {collection}",
            error_message=error_message,
        )

    @staticmethod
    def snapshot_applied(
        collection: str,
        item_count: int,
        revision: int,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SNAPSHOT_APPLIED,
            collection=collection,
            revision=revision,
            correlation_id=correlation_id,
            description=f"Applied pushed snapshot with {item_count} records",
            details={"item_count": item_count},
        )

    @staticmethod
    def empty_snapshot_received(
        collection: str,
        revision: int,
        will_fetch: bool,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.EMPTY_SNAPSHOT_RECEIVED,
            collection=collection,
            revision=revision,
            correlation_id=correlation_id,
            description="Empty snapshot pushed, treating it as ambiguous",
            details={"fallback_fetch": will_fetch},
        )

    @staticmethod
    def fallback_applied(
        collection: str,
        item_count: int,
        revision: int,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.FALLBACK_APPLIED,
            collection=collection,
            revision=revision,
            correlation_id=correlation_id,
            description=f"Fallback fetch resolved with {item_count} records",
            details={"item_count": item_count},
        )

    @staticmethod
    def refresh_completed(
        collection: str,
        item_count: int,
        revision: int,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REFRESH_COMPLETED,
            collection=collection,
            revision=revision,
            correlation_id=correlation_id,
            description=f"Manual refresh loaded {item_count} records",
            details={"item_count": item_count},
        )

    @staticmethod
    def fetch_failed(
        collection: str,
        reason: str,
        revision: int,
        error_message: str,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.FETCH_FAILED,
            severity=EventSeverity.ERROR,
            collection=collection,
            revision=revision,
            correlation_id=correlation_id,
            description=f"{reason.capitalize()} fetch failed for {collection}",
            details={"reason": reason},
            error_message=error_message,
        )

    @staticmethod
    def stale_result_discarded(
        collection: str,
        reason: str,
        started_revision: int,
        current_revision: int,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.STALE_RESULT_DISCARDED,
            severity=EventSeverity.DEBUG,
            collection=collection,
            revision=current_revision,
            correlation_id=correlation_id,
            description=f"Discarded superseded {reason} result",
            details={
                "reason": reason,
                "started_revision": started_revision,
                "current_revision": current_revision,
            },
        )

    @staticmethod
    def record_decode_failed(
        collection: str,
        document_id: str,
        error_message: str,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.RECORD_DECODE_FAILED,
            severity=EventSeverity.WARNING,
            collection=collection,
            description=f"Skipped malformed document {document_id}",
            details={"document_id": document_id},
            error_message=error_message,
        )
