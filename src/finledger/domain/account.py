"""Account domain service."""

import logging
from decimal import Decimal
from typing import Optional

from finledger.database.base import Database
from finledger.domain.entities import Account as AccountEntity, AccountKind
from finledger.domain.errors import ConflictError
from finledger.domain.ownership import require_account
from finledger.domain.reconciliation import AccountLedger
from finledger.domain.validation import enum_value, required_text, signed_amount

logger = logging.getLogger(__name__)


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db
        self.ledger = AccountLedger(db)

    def create_account(
        self,
        user_id: int,
        name: str,
        kind: AccountKind = AccountKind.CHECKING,
        opening_balance: Decimal = Decimal("0"),
    ) -> int:
        """Create a new account.

        Args:
            user_id: Owner
            name: Account name, unique per user
            kind: checking, savings, investment or cash
            opening_balance: Balance before any recorded transaction

        Returns:
            Account ID

        Raises:
            ConflictError: If the user already has an account with this name
        """
        name = required_text(name, "Account name")
        kind = enum_value(AccountKind, kind, "account kind")
        opening_balance = signed_amount(opening_balance, "Opening balance")
        self._check_unique_name(user_id, name)

        account_id = self.db.create_account(
            user_id=user_id, name=name, kind=kind, opening_balance=opening_balance
        )
        logger.info("Created account %s '%s' for user %s", account_id, name, user_id)
        return account_id

    def get_account(self, user_id: int, account_id: int) -> AccountEntity:
        """Get an account owned by ``user_id``.

        Raises:
            NotFoundError: If the account does not exist
            ForbiddenError: If it belongs to another user
        """
        return require_account(self.db, user_id, account_id)

    def list_accounts(self, user_id: int) -> list[AccountEntity]:
        """List a user's accounts.

        Returns:
            List of account entities
        """
        return self.db.list_accounts(user_id)

    def update_account(
        self,
        user_id: int,
        account_id: int,
        name: Optional[str] = None,
        kind: Optional[AccountKind] = None,
        opening_balance: Optional[Decimal] = None,
        active: Optional[bool] = None,
    ) -> AccountEntity:
        """Update account fields.

        A new opening balance shifts the current balance by the same amount.

        Raises:
            ConflictError: If the new name is taken by another of the user's accounts
        """
        require_account(self.db, user_id, account_id)
        changes = {}
        if name is not None:
            name = required_text(name, "Account name")
            self._check_unique_name(user_id, name, exclude_id=account_id)
            changes["name"] = name
        if kind is not None:
            changes["kind"] = enum_value(AccountKind, kind, "account kind")
        if opening_balance is not None:
            changes["opening_balance"] = signed_amount(opening_balance, "Opening balance")
        if active is not None:
            changes["active"] = active

        if changes:
            with self.db.atomic():
                self.db.update_account(account_id, changes)
                if "opening_balance" in changes:
                    self.ledger.reconcile(account_id)
        return self.db.get_account(account_id)

    def delete_account(self, user_id: int, account_id: int) -> None:
        """Delete an account.

        Transactions, cards and invoices that referenced it are kept and lose
        the reference.
        """
        require_account(self.db, user_id, account_id)
        with self.db.atomic():
            self.db.delete_account(account_id)
        logger.info("Deleted account %s", account_id)

    def _check_unique_name(self, user_id: int, name: str, exclude_id: Optional[int] = None) -> None:
        for acc in self.db.list_accounts(user_id):
            if acc.id != exclude_id and acc.name == name:
                raise ConflictError(f"Account with name '{name}' already exists")
