"""
Tests for Fintrack

Test strategy:
1. Unit tests for models and pure calculations
2. Sync tests drive stores with a scripted client to control ordering
3. No real API calls in tests (use mocks or the in-memory client)
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from fintrack.models import (
    BankAccount,
    Budget,
    BudgetNotifications,
    BudgetStatus,
    CollectionSnapshot,
    EntityKind,
    EventSeverity,
    Expense,
    ExpenseFrequency,
    Income,
    IncomeFrequency,
    SyncEvent,
    SyncEventBuilder,
    SyncEventType,
    SyncScope,
    SyncState,
    get_category,
    get_category_color,
    get_category_name,
)
from fintrack.services.remote import RemoteDocument
from fintrack.sync import decode_documents
from scripted import RecordingAuditLogger


class TestRecordModels:
    """Tests for records mirrored from the remote store."""

    def test_income_from_camel_case_document(self):
        """Test remote field names are accepted."""
        income = Income.model_validate({
            "id": "i1",
            "userId": "u1",
            "bankAccountId": "acc-a",
            "amount": "45000.50",
            "frequency": "monthly",
            "date": "2024-07-01",
        })
        assert income.bank_account_id == "acc-a"
        assert income.amount == Decimal("45000.50")
        assert income.frequency == IncomeFrequency.MONTHLY

    def test_income_defaults(self):
        """Test source and frequency defaults."""
        income = Income(id="i1", bank_account_id="a", amount=Decimal("1"), date=date(2024, 1, 1))
        assert income.source == "other"
        assert income.frequency == IncomeFrequency.ONE_TIME

    def test_timestamp_dates_are_truncated(self):
        """Test full timestamps keep only their calendar date."""
        expense = Expense.model_validate({
            "id": "e1",
            "bankAccountId": "acc-a",
            "amount": "10",
            "date": "2024-07-03T18:45:00.000Z",
            "isRecurring": True,
            "frequency": "yearly",
            "nextDueDate": datetime(2025, 7, 3, 9, 0),
        })
        assert expense.date == date(2024, 7, 3)
        assert expense.next_due_date == date(2025, 7, 3)
        assert expense.frequency == ExpenseFrequency.YEARLY

    def test_negative_amount_rejected(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            Expense(id="e1", bank_account_id="a", amount=Decimal("-1"), date=date(2024, 1, 1))

    def test_records_are_frozen(self):
        """Test decoded records cannot be mutated locally."""
        income = Income(id="i1", bank_account_id="a", amount=Decimal("1"), date=date(2024, 1, 1))
        with pytest.raises(ValidationError):
            income.amount = Decimal("2")

    def test_whitespace_is_stripped(self):
        """Test that whitespace is stripped from text fields."""
        account = BankAccount(id="a", bank_name="  HDFC  ")
        assert account.bank_name == "HDFC"

    def test_bank_account_display_name(self):
        """Test nickname wins over bank name."""
        assert BankAccount(id="a", bank_name="HDFC").display_name == "HDFC"
        assert BankAccount(id="a", bank_name="HDFC", nickname="Salary").display_name == "Salary"
        assert BankAccount(id="a").display_name == "a"

    def test_budget_threshold_bounds(self):
        """Test alert threshold must be a percentage."""
        with pytest.raises(ValidationError):
            Budget(id="b", category="food", budget_amount=Decimal("1"), alert_threshold=150)

    def test_dump_uses_remote_field_names(self):
        """Test records serialize back to camelCase."""
        account = BankAccount(id="a", starting_balance=Decimal("10"))
        data = account.model_dump(by_alias=True, mode="json")
        assert "startingBalance" in data
        assert "isActive" in data


class TestSyncModels:
    """Tests for scopes and snapshots."""

    def test_collection_paths(self):
        """Test paths per entity kind."""
        scope = SyncScope(user_id="u1", bank_account_id="acc-a")
        assert scope.collection_path(EntityKind.INCOMES) == "users/u1/bankAccounts/acc-a/incomes"
        assert scope.collection_path(EntityKind.EXPENSES) == "users/u1/bankAccounts/acc-a/expenses"
        assert scope.collection_path(EntityKind.BANK_ACCOUNTS) == "users/u1/bankAccounts"
        assert scope.collection_path(EntityKind.BUDGETS) == "users/u1/budgets"

    def test_incomplete_scope(self):
        """Test per-account kinds need the bank account."""
        scope = SyncScope(user_id="u1")
        assert scope.is_complete_for(EntityKind.BANK_ACCOUNTS)
        assert not scope.is_complete_for(EntityKind.INCOMES)
        assert not SyncScope().is_complete_for(EntityKind.BUDGETS)
        with pytest.raises(ValueError):
            scope.collection_path(EntityKind.EXPENSES)

    def test_snapshot_defaults(self):
        """Test a new snapshot is idle and empty."""
        snapshot = CollectionSnapshot(kind=EntityKind.INCOMES)
        assert snapshot.state == SyncState.IDLE
        assert snapshot.is_empty
        assert snapshot.loading is False
        assert snapshot.error is None


class TestDecoding:
    """Tests for turning remote documents into records."""

    def test_scope_fills_missing_references(self):
        """Test owner references come from the collection path."""
        scope = SyncScope(user_id="u1", bank_account_id="acc-a")
        documents = [RemoteDocument(id="e1", data={"amount": "5", "date": "2024-07-01"})]

        expenses = decode_documents(documents, EntityKind.EXPENSES, scope)

        assert expenses[0].user_id == "u1"
        assert expenses[0].bank_account_id == "acc-a"

    def test_payload_reference_is_kept(self):
        """Test an explicit reference in the payload is not overwritten."""
        scope = SyncScope(user_id="u1", bank_account_id="acc-a")
        documents = [RemoteDocument(
            id="i1",
            data={"bank_account_id": "acc-x", "amount": "5", "date": "2024-07-01"},
        )]

        incomes = decode_documents(documents, EntityKind.INCOMES, scope)

        assert incomes[0].bank_account_id == "acc-x"

    def test_budget_threshold_default_from_settings(self, monkeypatch):
        """Test budgets without a threshold use the configured default."""
        monkeypatch.setenv("SYNC_DEFAULT_BUDGET_ALERT_THRESHOLD", "60")
        documents = [
            RemoteDocument(id="b1", data={"category": "food", "budgetAmount": "100"}),
            RemoteDocument(id="b2", data={"category": "food", "budgetAmount": "100", "alertThreshold": 90}),
        ]

        budgets = decode_documents(documents, EntityKind.BUDGETS, SyncScope(user_id="u1"))

        assert [b.alert_threshold for b in budgets] == [60.0, 90.0]

    def test_bad_documents_are_logged_and_skipped(self):
        """Test a malformed document is skipped with a warning event."""
        audit = RecordingAuditLogger()
        documents = [
            RemoteDocument(id="b1", data={"category": "food", "budgetAmount": "100"}),
            RemoteDocument(id="b2", data={"category": "food"}),
        ]

        budgets = decode_documents(documents, EntityKind.BUDGETS, SyncScope(user_id="u1"), audit)

        assert [b.id for b in budgets] == ["b1"]
        assert audit.events[0].severity == EventSeverity.WARNING
        assert audit.events[0].collection == "users/u1/budgets"


class TestSummaryModels:
    """Tests for derived summary models."""

    def test_budget_status_over_budget(self):
        """Test the over-budget flag."""
        budget = Budget(id="b", category="food", budget_amount=Decimal("100"))
        assert BudgetStatus(budget=budget, progress=Decimal("100.5")).is_over_budget
        assert not BudgetStatus(budget=budget, progress=Decimal("100")).is_over_budget

    def test_empty_notifications(self):
        """Test no budgets means nothing to show."""
        assert not BudgetNotifications().has_notifications


class TestCategories:
    """Tests for the expense category catalog."""

    def test_catalog_lookup(self):
        """Test catalog entries resolve."""
        assert get_category("food").name == "Food & Groceries"
        assert get_category_name("utilities") == "Utilities"
        assert get_category_color("housing") == "#8B5CF6"

    def test_unknown_category(self):
        """Test unknown ids fall back gracefully."""
        assert get_category("pets") is None
        assert get_category_name("pets") == "pets"
        assert get_category_color("pets") == "#64748B"


class TestSyncEvents:
    """Tests for sync event models."""

    def test_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = SyncEventBuilder.snapshot_applied("users/u1/budgets", 3, 2, correlation_id)

        log_dict = event.to_log_dict()

        assert "event_id" in log_dict
        assert log_dict["event_type"] == "snapshot_applied"
        assert log_dict["details"]["item_count"] == 3
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_failure_events_are_errors(self):
        """Test failures are logged at error severity."""
        event = SyncEventBuilder.fetch_failed("users/u1/budgets", "refresh", 1, "timeout", uuid4())
        assert event.severity == EventSeverity.ERROR
        assert event.error_message == "timeout"

    def test_stale_result_details(self):
        """Test discarded results record both revisions."""
        event = SyncEventBuilder.stale_result_discarded("users/u1/budgets", "fallback", 1, 3, uuid4())
        assert event.event_type == SyncEventType.STALE_RESULT_DISCARDED
        assert event.details["started_revision"] == 1
        assert event.details["current_revision"] == 3

    def test_event_defaults(self):
        """Test SyncEvent model creation."""
        event = SyncEvent(
            event_type=SyncEventType.SCOPE_CHANGED,
            description="Scope changed",
        )
        assert event.severity == EventSeverity.INFO
        assert event.collection is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
