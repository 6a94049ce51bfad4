"""Tests for account service."""

import pytest
from datetime import date
from decimal import Decimal

from finledger.domain.entities import AccountKind, TransactionKind
from finledger.domain.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

USER_ID = 1
OTHER_USER_ID = 2


class TestAccountService:
    """Test cases for AccountService."""

    def test_create_account(self, account_service):
        account_id = account_service.create_account(USER_ID, "Wallet", kind="cash", opening_balance="25.5")

        account = account_service.get_account(USER_ID, account_id)
        assert account.name == "Wallet"
        assert account.kind == AccountKind.CASH
        assert account.opening_balance == Decimal("25.50")
        assert account.current_balance == Decimal("25.50")
        assert account.active is True

    def test_negative_opening_balance_allowed(self, account_service):
        account_id = account_service.create_account(USER_ID, "Overdraft", opening_balance=Decimal("-10"))
        assert account_service.get_account(USER_ID, account_id).current_balance == Decimal("-10.00")

    def test_duplicate_name(self, account_service, sample_account):
        with pytest.raises(ConflictError, match="already exists"):
            account_service.create_account(USER_ID, "Checking")

    def test_same_name_for_other_user(self, account_service, sample_account):
        assert account_service.create_account(OTHER_USER_ID, "Checking")

    def test_invalid_kind(self, account_service):
        with pytest.raises(ValidationError):
            account_service.create_account(USER_ID, "Odd", kind="crypto")

    def test_blank_name(self, account_service):
        with pytest.raises(ValidationError):
            account_service.create_account(USER_ID, "   ")

    def test_list_accounts_by_name(self, account_service, sample_account, other_account):
        account_service.create_account(USER_ID, "Brokerage", kind=AccountKind.INVESTMENT)
        assert [a.name for a in account_service.list_accounts(USER_ID)] == ["Brokerage", "Checking"]

    def test_get_missing_and_foreign(self, account_service, other_account):
        with pytest.raises(NotFoundError):
            account_service.get_account(USER_ID, 999)
        with pytest.raises(ForbiddenError):
            account_service.get_account(USER_ID, other_account.id)

    def test_update_opening_balance_shifts_current(self, account_service, transaction_service, sample_account):
        transaction_service.create_transaction(
            USER_ID, "Food", Decimal("100"), TransactionKind.EXPENSE, date(2025, 1, 1),
            paid=True, account_id=sample_account.id,
        )

        account = account_service.update_account(USER_ID, sample_account.id, opening_balance=Decimal("2000"))

        assert account.opening_balance == Decimal("2000.00")
        assert account.current_balance == Decimal("1900.00")

    def test_update_name_and_active(self, account_service, sample_account):
        account = account_service.update_account(USER_ID, sample_account.id, name="Main", active=False)
        assert account.name == "Main"
        assert account.active is False

    def test_rename_to_taken_name(self, account_service, sample_account):
        account_service.create_account(USER_ID, "Savings")
        with pytest.raises(ConflictError):
            account_service.update_account(USER_ID, sample_account.id, name="Savings")

    def test_delete_account_keeps_transactions(self, account_service, transaction_service, sample_account):
        ids = transaction_service.create_transaction(
            USER_ID, "Food", Decimal("10"), TransactionKind.EXPENSE, date(2025, 1, 1), account_id=sample_account.id
        )

        account_service.delete_account(USER_ID, sample_account.id)

        with pytest.raises(NotFoundError):
            account_service.get_account(USER_ID, sample_account.id)
        assert transaction_service.get_transaction(USER_ID, ids[0]).account_id is None

    def test_delete_foreign_account(self, account_service, other_account):
        with pytest.raises(ForbiddenError):
            account_service.delete_account(USER_ID, other_account.id)
