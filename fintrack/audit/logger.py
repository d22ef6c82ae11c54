"""
Sync Audit Logger

DESIGN DECISION: Every significant step of a collection sync store is
logged. This provides:
1. Traceability of each remote push and each direct fetch
2. Debugging capability for "my dashboard shows old numbers" reports
3. A record of which asynchronous results were dropped as stale

The audit logger:
- Is synchronous; it runs inside snapshot callbacks on the event loop
- Never raises into the sync path
- Tags events with a per-store correlation ID
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from fintrack.config import get_settings
from fintrack.models.audit import EventSeverity, SyncEvent, SyncEventBuilder


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


class SyncAuditLogger:
    """
    Central logging service for sync events.

    One instance may be shared by many stores; each store passes its own
    correlation ID.
    """

    def __init__(self, logger_name: str = "fintrack.sync"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: SyncEvent) -> None:
        """Log a sync event at the level matching its severity."""
        log_dict = event.to_log_dict()

        try:
            if event.severity == EventSeverity.ERROR:
                self._logger.error("sync_event", **log_dict)
            elif event.severity == EventSeverity.WARNING:
                self._logger.warning("sync_event", **log_dict)
            elif event.severity == EventSeverity.DEBUG:
                self._logger.debug("sync_event", **log_dict)
            else:
                self._logger.info("sync_event", **log_dict)
        except Exception:
            # A broken log handler must not take the sync path down with it
            pass

    def scope_changed(
        self,
        collection: Optional[str],
        revision: int,
        correlation_id: UUID,
    ) -> None:
        self.log(SyncEventBuilder.scope_changed(collection, revision, correlation_id))

    def subscription_opened(
        self,
        collection: str,
        revision: int,
        correlation_id: UUID,
    ) -> None:
        self.log(SyncEventBuilder.subscription_opened(collection, revision, correlation_id))

    def subscription_closed(
        self,
        collection: str,
        revision: int,
        correlation_id: UUID,
    ) -> None:
        self.log(SyncEventBuilder.subscription_closed(collection, revision, correlation_id))

    def subscription_failed(
        self,
        collection: str,
        revision: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(SyncEventBuilder.subscription_failed(
            collection, revision, error_message, correlation_id,
        ))

    def snapshot_applied(
        self,
        collection: str,
        item_count: int,
        revision: int,
        correlation_id: UUID,
    ) -> None:
        self.log(SyncEventBuilder.snapshot_applied(
            collection, item_count, revision, correlation_id,
        ))

    def empty_snapshot_received(
        self,
        collection: str,
        revision: int,
        will_fetch: bool,
        correlation_id: UUID,
    ) -> None:
        self.log(SyncEventBuilder.empty_snapshot_received(
            collection, revision, will_fetch, correlation_id,
        ))

    def fallback_applied(
        self,
        collection: str,
        item_count: int,
        revision: int,
        correlation_id: UUID,
    ) -> None:
        self.log(SyncEventBuilder.fallback_applied(
            collection, item_count, revision, correlation_id,
        ))

    def refresh_completed(
        self,
        collection: str,
        item_count: int,
        revision: int,
        correlation_id: UUID,
    ) -> None:
        self.log(SyncEventBuilder.refresh_completed(
            collection, item_count, revision, correlation_id,
        ))

    def fetch_failed(
        self,
        collection: str,
        reason: str,
        revision: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(SyncEventBuilder.fetch_failed(
            collection, reason, revision, error_message, correlation_id,
        ))

    def stale_result_discarded(
        self,
        collection: str,
        reason: str,
        started_revision: int,
        current_revision: int,
        correlation_id: UUID,
    ) -> None:
        self.log(SyncEventBuilder.stale_result_discarded(
            collection, reason, started_revision, current_revision, correlation_id,
        ))

    def record_decode_failed(
        self,
        collection: str,
        document_id: str,
        error_message: str,
    ) -> None:
        self.log(SyncEventBuilder.record_decode_failed(
            collection, document_id, error_message,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Each store takes one at construction and tags all its events with it.
    """
    return uuid4()


def configure_logging(level: Optional[str] = None) -> None:
    """
    Send log output to stderr at the configured level.

    structlog hands its rendered JSON lines to the stdlib logging module,
    so this decides which sync events actually get written.
    """
    logging.basicConfig(
        format="%(message)s",
        level=level or get_settings().app.log_level,
    )
