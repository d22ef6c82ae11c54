"""
Synchronization Models

A collection sync store tracks exactly one remote collection, chosen by
its entity kind and its scope. Everything a consumer can observe about a
store is captured in one immutable CollectionSnapshot.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class EntityKind(str, Enum):
    """
    Kinds of remote collections that get mirrored.

    The value is the last segment of the collection path.
    """
    INCOMES = "incomes"
    EXPENSES = "expenses"
    BANK_ACCOUNTS = "bankAccounts"
    BUDGETS = "budgets"

    @property
    def requires_account(self) -> bool:
        """Per-account entities live under a bank account document."""
        return self in (EntityKind.INCOMES, EntityKind.EXPENSES)


class SyncScope(BaseModel):
    """
    The identifiers that select which remote collection a store tracks.

    Either identifier may be missing; a scope is only usable for an
    entity kind once every identifier that kind requires is present.
    """
    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None
    bank_account_id: Optional[str] = None

    def is_complete_for(self, kind: EntityKind) -> bool:
        if not self.user_id:
            return False
        if kind.requires_account and not self.bank_account_id:
            return False
        return True

    def collection_path(self, kind: EntityKind) -> str:
        """
        Build the remote collection path for an entity kind.

        Raises:
            ValueError: If the scope is incomplete for the kind
        """
        if not self.is_complete_for(kind):
            raise ValueError(f"Scope {self!r} is incomplete for {kind.value}")
        if kind.requires_account:
            return (
                f"users/{self.user_id}/bankAccounts/"
                f"{self.bank_account_id}/{kind.value}"
            )
        return f"users/{self.user_id}/{kind.value}"


class SyncState(str, Enum):
    """
    Lifecycle of one store instance.

    IDLE -> LOADING -> SYNCED <-> ERRORED; any state returns to IDLE when
    the scope becomes undefined and to LOADING when it changes.
    """
    IDLE = "idle"          # No usable scope, nothing to synchronize
    LOADING = "loading"    # Scope set, first snapshot pending
    SYNCED = "synced"      # Items populated
    ERRORED = "errored"    # Push channel failed, items possibly stale


class CollectionSnapshot(BaseModel):
    """
    Materialized state of one collection sync store.

    `revision` increases on every scope change and on disposal. It tags
    asynchronous work so results from a superseded scope can be dropped.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: EntityKind
    scope: SyncScope = Field(default_factory=SyncScope)
    items: tuple[Any, ...] = ()
    loading: bool = False
    error: Optional[str] = None
    state: SyncState = SyncState.IDLE
    revision: int = Field(default=0, ge=0)

    @property
    def is_empty(self) -> bool:
        return not self.items
