"""
Tests for the finance session.

These run against the in-memory client, so pushes, fallbacks and writes
behave the way the hosted store does, without any network access.
"""

from datetime import date
from decimal import Decimal

import pytest

from fintrack.config import SyncSettings, get_settings
from fintrack.models import BankAccount, Income, SyncState
from fintrack.services.remote import InMemoryCollectionClient, SubscriptionError
from fintrack.session import FinanceSession, create_session
from fintrack.sync import StoreClosedError
from scripted import settle


ACCOUNTS = "users/u1/bankAccounts"
BUDGETS = "users/u1/budgets"
INCOMES_A = "users/u1/bankAccounts/acc-a/incomes"
EXPENSES_A = "users/u1/bankAccounts/acc-a/expenses"
INCOMES_B = "users/u1/bankAccounts/acc-b/incomes"


async def settle_session(session: FinanceSession) -> None:
    """Let every subscription, binding and fallback finish."""
    for _ in range(4):
        await settle()
        await session.drain()


@pytest.fixture
def client():
    client = InMemoryCollectionClient()
    client.seed(ACCOUNTS, {
        "acc-a": {"bankName": "HDFC", "startingBalance": "0", "createdAt": "2024-07-01T10:00:00"},
        "acc-b": {"bankName": "SBI", "nickname": "Salary", "startingBalance": "500"},
    })
    client.seed(INCOMES_A, {"i1": {"source": "salary", "amount": "45000", "date": "2024-07-01"}})
    client.seed(EXPENSES_A, {
        "e1": {"category": "housing", "amount": "18000", "date": "2024-07-02"},
        "e2": {"category": "food", "amount": "8500", "date": "2024-07-03"},
    })
    client.seed(INCOMES_B, {"i2": {"amount": "2000", "date": "2024-07-04"}})
    client.seed(BUDGETS, {
        "b1": {"bankAccountId": "acc-a", "category": "food", "budgetAmount": "8000"},
    })
    return client


@pytest.fixture
def session(client):
    return FinanceSession(client, sync_settings=SyncSettings())


class TestUserLifecycle:
    """Tests for signing a user in and out."""

    @pytest.mark.asyncio
    async def test_set_user_loads_and_selects_first_account(self, session):
        """Test the first account is selected and its figures computed."""
        await session.set_user("u1")
        await settle_session(session)

        view = session.view
        assert session.selected_account_id == "acc-a"
        assert view.selected_account.bank_name == "HDFC"
        assert view.summary.total_income == Decimal("45000")
        assert view.summary.total_expenses == Decimal("26500")
        assert view.summary.savings == Decimal("18500")
        assert view.loading is False
        assert view.errors == ()

    @pytest.mark.asyncio
    async def test_stores_opened_per_account(self, session, client):
        """Test every account gets its own income and expense store."""
        await session.set_user("u1")
        await settle_session(session)

        assert session.income_store("acc-b").state == SyncState.SYNCED
        assert session.expense_store("acc-b").state == SyncState.SYNCED
        assert client.subscriber_count(INCOMES_B) == 1

    @pytest.mark.asyncio
    async def test_auto_select_can_be_disabled(self, client):
        """Test no account is picked when auto-selection is off."""
        session = FinanceSession(client, sync_settings=SyncSettings(auto_select_first_account=False))
        await session.set_user("u1")
        await settle_session(session)

        assert session.selected_account_id is None
        assert session.view.summary.total_income == Decimal("47000")

    @pytest.mark.asyncio
    async def test_sign_out_goes_idle(self, session, client):
        """Test clearing the user closes every channel."""
        await session.set_user("u1")
        await settle_session(session)

        await session.set_user(None)
        await settle_session(session)

        assert session.accounts_store.state == SyncState.IDLE
        assert session.income_store("acc-a") is None
        assert session.view.incomes == ()
        assert session.view.selected_account is None
        assert client.subscriber_count(ACCOUNTS) == 0
        assert client.subscriber_count(INCOMES_A) == 0

    @pytest.mark.asyncio
    async def test_switching_user_never_shows_old_records(self, session, client):
        """Test no view after a user switch holds the previous user's data."""
        client.seed("users/u2/bankAccounts", {"acc-z": {"bankName": "Axis"}})
        await session.set_user("u1")
        await settle_session(session)

        views = []
        session.add_listener(views.append)
        await session.set_user("u2")
        await settle_session(session)

        assert views
        assert all(not view.incomes and not view.expenses for view in views)
        assert session.selected_account_id == "acc-z"


class TestAccountSelection:
    """Tests for choosing the account to show."""

    @pytest.mark.asyncio
    async def test_select_all_accounts(self, session):
        """Test None combines every account without a starting balance."""
        await session.set_user("u1")
        await settle_session(session)

        view = session.select_account(None)

        assert view.summary.total_income == Decimal("47000")
        assert view.selected_account is None

    @pytest.mark.asyncio
    async def test_select_other_account_adds_its_balance(self, session):
        """Test the selected account's starting balance is included."""
        await session.set_user("u1")
        await settle_session(session)

        view = session.select_account("acc-b")

        assert [i.id for i in view.incomes] == ["i2"]
        assert view.summary.total_income == Decimal("2500")
        assert view.selected_account.display_name == "Salary"

    @pytest.mark.asyncio
    async def test_select_unknown_account_raises(self, session):
        """Test only the user's accounts can be selected."""
        await session.set_user("u1")
        await settle_session(session)

        with pytest.raises(ValueError):
            session.select_account("nope")

    @pytest.mark.asyncio
    async def test_explicit_all_accounts_survives_new_account(self, session):
        """Test a new account does not override an explicit choice."""
        await session.set_user("u1")
        await settle_session(session)
        session.select_account(None)

        await session.save(BankAccount(id="acc-c", user_id="u1", bank_name="ICICI"))
        await settle_session(session)

        assert session.selected_account_id is None
        assert session.income_store("acc-c") is not None
        assert len(session.accounts) == 3

    @pytest.mark.asyncio
    async def test_removed_account_is_deselected(self, session, client):
        """Test deleting the selected account moves to the remaining one."""
        await session.set_user("u1")
        await settle_session(session)

        await client.delete_document(ACCOUNTS, "acc-a")
        await settle_session(session)

        assert session.income_store("acc-a") is None
        assert client.subscriber_count(INCOMES_A) == 0
        assert session.selected_account_id == "acc-b"
        assert all(i.bank_account_id == "acc-b" for i in session.view.incomes)

    @pytest.mark.asyncio
    async def test_account_update_refreshes_selected_object(self, session, client):
        """Test a new starting balance reaches the summary."""
        await session.set_user("u1")
        await settle_session(session)

        await client.set_document(ACCOUNTS, "acc-a", {"bankName": "HDFC", "startingBalance": "1000"})
        await settle_session(session)

        assert session.view.selected_account.starting_balance == Decimal("1000")
        assert session.view.summary.total_income == Decimal("46000")


class TestSessionData:
    """Tests for writes, errors and derived figures."""

    @pytest.mark.asyncio
    async def test_save_income_flows_back_into_view(self, session, client):
        """Test a write is visible once the store pushes it back."""
        await session.set_user("u1")
        await settle_session(session)

        saved = await session.save(Income(
            id="i9",
            bank_account_id="acc-a",
            amount=Decimal("1000"),
            date=date(2024, 7, 10),
        ))
        await settle_session(session)

        assert saved is True
        assert session.view.summary.total_income == Decimal("46000")
        assert client.query_count[INCOMES_A] == 0

    @pytest.mark.asyncio
    async def test_delete_income(self, session):
        """Test deleting a record removes it from the view."""
        await session.set_user("u1")
        await settle_session(session)
        record = session.view.incomes[0]

        assert await session.delete(record) is True
        await settle_session(session)

        assert session.view.incomes == ()

    @pytest.mark.asyncio
    async def test_channel_error_is_surfaced(self, session, client):
        """Test a failed store shows up in the view's errors."""
        await session.set_user("u1")
        await settle_session(session)

        client.fail_subscriptions(INCOMES_A, SubscriptionError("denied"))
        await settle_session(session)

        assert session.view.errors == ("Failed to listen for incomes: denied",)
        assert session.view.summary.total_income == Decimal("45000")

    @pytest.mark.asyncio
    async def test_refresh_reopens_failed_channel(self, session, client):
        """Test refresh re-subscribes a store whose channel died."""
        await session.set_user("u1")
        await settle_session(session)
        client.fail_subscriptions(INCOMES_A, SubscriptionError("denied"))
        await settle_session(session)

        await session.refresh()
        await settle_session(session)

        assert session.view.errors == ()
        assert session.income_store("acc-a").connected is True
        assert client.subscriber_count(INCOMES_A) == 1
        assert session.view.summary.total_income == Decimal("45000")

    @pytest.mark.asyncio
    async def test_refresh_reads_every_collection(self, session, client):
        """Test refresh queries each store's collection directly."""
        await session.set_user("u1")
        await settle_session(session)

        await session.refresh()

        assert client.query_count[ACCOUNTS] == 1
        assert client.query_count[INCOMES_A] == 1
        assert client.query_count[INCOMES_B] == 1

    @pytest.mark.asyncio
    async def test_budget_notifications(self, session):
        """Test budgets are checked against the user's expenses."""
        await session.set_user("u1")
        await settle_session(session)

        result = session.budget_notifications(on=date(2024, 7, 20))

        assert [s.budget.id for s in result.over_budget] == ["b1"]
        assert result.over_budget[0].bank_account.id == "acc-a"

    @pytest.mark.asyncio
    async def test_year_report(self, session):
        """Test the selected account's year breakdown."""
        await session.set_user("u1")
        await settle_session(session)

        months = session.year_report(2024)

        july = months[6]
        assert july.monthly_income == Decimal("45000")
        assert july.monthly_expense == Decimal("26500")

    def test_format_amount_uses_configured_prefix(self, session, monkeypatch):
        """Test amounts are shown with the configured currency."""
        assert session.format_amount(Decimal("123456.785")) == "Rs. 1,23,456.79"

        monkeypatch.setenv("CURRENCY_PREFIX", "INR")
        get_settings.cache_clear()

        assert session.format_amount(Decimal("-50")) == "INR -50.00"

    @pytest.mark.asyncio
    async def test_year_report_requires_account(self, session):
        """Test a report needs an account."""
        with pytest.raises(ValueError):
            session.year_report(2024)


class TestSessionClose:
    """Tests for disposing of a session."""

    @pytest.mark.asyncio
    async def test_close_releases_everything(self, session, client):
        """Test close unsubscribes every store."""
        await session.set_user("u1")
        await settle_session(session)

        await session.close()
        await session.close()

        assert client.subscriber_count(ACCOUNTS) == 0
        assert client.subscriber_count(INCOMES_A) == 0
        assert session.view.incomes == ()

    @pytest.mark.asyncio
    async def test_set_user_after_close_raises(self, session):
        """Test a closed session cannot be reused."""
        await session.close()

        with pytest.raises(StoreClosedError):
            await session.set_user("u1")


class TestCreateSession:
    """Tests for the session factory."""

    def test_without_storage(self):
        """Test the in-memory client is used when storage is off."""
        session = create_session(use_storage=False)

        assert isinstance(session.client, InMemoryCollectionClient)

    def test_unconfigured_storage_falls_back(self, monkeypatch):
        """Test missing Google configuration falls back to memory."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)

        session = create_session()

        assert isinstance(session.client, InMemoryCollectionClient)
