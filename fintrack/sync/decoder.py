"""
Document Decoding

Turns raw remote documents into typed records. Decoding never fails as a
whole: a malformed document is logged and skipped so one bad row cannot
blank a dashboard.
"""

from typing import Optional

from pydantic import ValidationError

from fintrack.audit import SyncAuditLogger
from fintrack.config import get_settings
from fintrack.models.records import BankAccount, Budget, Expense, Income, RemoteRecord
from fintrack.models.sync import EntityKind, SyncScope
from fintrack.services.remote.interface import RemoteDocument


RECORD_MODELS: dict[EntityKind, type[RemoteRecord]] = {
    EntityKind.INCOMES: Income,
    EntityKind.EXPENSES: Expense,
    EntityKind.BANK_ACCOUNTS: BankAccount,
    EntityKind.BUDGETS: Budget,
}


def _fill_default(payload: dict, alias: str, name: str, value: Optional[str]) -> None:
    """Fill a reference field from the collection path when the payload lacks it."""
    if value and payload.get(alias) is None and payload.get(name) is None:
        payload[alias] = value


def decode_documents(
    documents: list[RemoteDocument],
    kind: EntityKind,
    scope: SyncScope,
    audit_logger: Optional[SyncAuditLogger] = None,
) -> tuple[RemoteRecord, ...]:
    """
    Decode a snapshot's documents into records of the given kind.

    The store-assigned document id always wins over an `id` field inside
    the payload. Owner references missing from the payload are taken
    from the scope the documents were read under, and budgets without an
    alert threshold get the configured default.

    Returns:
        The decoded records in snapshot order
    """
    model = RECORD_MODELS[kind]
    collection = (
        scope.collection_path(kind) if scope.is_complete_for(kind) else kind.value
    )

    records = []
    for document in documents:
        payload = dict(document.data)
        payload.pop("id", None)
        payload["id"] = document.id
        _fill_default(payload, "userId", "user_id", scope.user_id)
        if kind.requires_account:
            _fill_default(payload, "bankAccountId", "bank_account_id", scope.bank_account_id)
        if kind == EntityKind.BUDGETS and not {"alertThreshold", "alert_threshold"} & payload.keys():
            payload["alertThreshold"] = get_settings().sync.default_budget_alert_threshold

        try:
            records.append(model.model_validate(payload))
        except ValidationError as e:
            if audit_logger:
                audit_logger.record_decode_failed(
                    collection=collection,
                    document_id=document.id,
                    error_message=str(e),
                )
            continue

    return tuple(records)
