"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Any
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from finledger.domain.entities import (
    Account,
    Category,
    CategoryGroup,
    CreditCard,
    Invoice,
    Series,
    Transaction,
)


class Database(ABC):
    """Abstract database interface for finledger.

    Every method that writes commits on its own, unless it runs inside an
    ``atomic()`` block, in which case the outermost block commits or rolls
    back everything at once.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Unit of work
    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Group writes into one all-or-nothing unit. Re-entrant."""
        pass

    @abstractmethod
    def lock_account(self, account_id: int) -> Optional[Account]:
        """Read an account, holding a row lock until the unit of work ends."""
        pass

    @abstractmethod
    def lock_card(self, card_id: int) -> Optional[CreditCard]:
        """Read a card, holding a row lock until the unit of work ends."""
        pass

    @abstractmethod
    def lock_invoice(self, invoice_id: int) -> Optional[Invoice]:
        """Read an invoice, holding a row lock until the unit of work ends."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        user_id: int,
        name: str,
        kind: str,
        opening_balance: Decimal,
        active: bool = True,
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self, user_id: int) -> list[Account]:
        """List a user's accounts."""
        pass

    @abstractmethod
    def update_account(self, account_id: int, changes: dict[str, Any]) -> None:
        """Update account columns named in ``changes``."""
        pass

    @abstractmethod
    def set_account_balance(self, account_id: int, balance: Decimal) -> None:
        """Store a recomputed current balance."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account, clearing references to it."""
        pass

    # Category operations
    @abstractmethod
    def create_category_group(self, user_id: int, name: str) -> int:
        """Create a category group. Returns group ID."""
        pass

    @abstractmethod
    def get_category_group(self, group_id: int) -> Optional[CategoryGroup]:
        """Get category group by ID."""
        pass

    @abstractmethod
    def list_category_groups(self, user_id: int) -> list[CategoryGroup]:
        """List a user's category groups."""
        pass

    @abstractmethod
    def create_category(
        self, user_id: int, name: str, kind: str, group_id: Optional[int] = None
    ) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def list_categories(self, user_id: int, kind: Optional[str] = None) -> list[Category]:
        """List a user's categories, optionally filtered by kind."""
        pass

    @abstractmethod
    def delete_category(self, category_id: int) -> None:
        """Delete a category, clearing references to it."""
        pass

    # Credit card operations
    @abstractmethod
    def create_card(
        self,
        user_id: int,
        name: str,
        credit_limit: Decimal,
        closing_day: int,
        due_day: int,
        default_account_id: Optional[int] = None,
        brand: Optional[str] = None,
        last_digits: Optional[str] = None,
        color: Optional[str] = None,
        active: bool = True,
    ) -> int:
        """Create a credit card. Returns card ID."""
        pass

    @abstractmethod
    def get_card(self, card_id: int) -> Optional[CreditCard]:
        """Get credit card by ID."""
        pass

    @abstractmethod
    def list_cards(self, user_id: int) -> list[CreditCard]:
        """List a user's credit cards."""
        pass

    @abstractmethod
    def update_card(self, card_id: int, changes: dict[str, Any]) -> None:
        """Update card columns named in ``changes``."""
        pass

    @abstractmethod
    def set_card_utilized_limit(self, card_id: int, utilized_limit: Decimal) -> None:
        """Store a recomputed utilized limit."""
        pass

    @abstractmethod
    def delete_card(self, card_id: int) -> None:
        """Delete a card row. Invoices and transactions must be removed first."""
        pass

    # Invoice operations
    @abstractmethod
    def create_invoice(
        self,
        card_id: int,
        reference_month: int,
        reference_year: int,
        closing_date: date,
        due_date: date,
        settlement_account_id: Optional[int] = None,
    ) -> int:
        """Create an open invoice with zero totals. Returns invoice ID."""
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        """Get invoice by ID."""
        pass

    @abstractmethod
    def find_invoice(self, card_id: int, reference_month: int, reference_year: int) -> Optional[Invoice]:
        """Get the invoice of a card for a period, if it exists."""
        pass

    @abstractmethod
    def list_invoices(
        self, card_ids: list[int], status: Optional[str] = None
    ) -> list[Invoice]:
        """List invoices of the given cards, newest period first."""
        pass

    @abstractmethod
    def update_invoice(self, invoice_id: int, changes: dict[str, Any]) -> None:
        """Update invoice columns named in ``changes``."""
        pass

    @abstractmethod
    def delete_invoice(self, invoice_id: int) -> None:
        """Delete an invoice row. Its transactions must be removed first."""
        pass

    # Series operations
    @abstractmethod
    def create_series(
        self,
        user_id: int,
        description: str,
        kind: str,
        start_date: date,
        end_date: Optional[date],
        occurrences: int,
    ) -> int:
        """Create a series definition. Returns series ID."""
        pass

    @abstractmethod
    def get_series(self, series_id: int) -> Optional[Series]:
        """Get series by ID."""
        pass

    @abstractmethod
    def list_series(self, user_id: int) -> list[Series]:
        """List a user's series definitions."""
        pass

    @abstractmethod
    def update_series(self, series_id: int, changes: dict[str, Any]) -> None:
        """Update series columns named in ``changes``."""
        pass

    @abstractmethod
    def delete_series(self, series_id: int) -> None:
        """Delete a series definition; its transactions stay, unlinked."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        user_id: int,
        description: str,
        amount: Decimal,
        kind: str,
        accrual_date: date,
        settlement_date: Optional[date] = None,
        paid: bool = False,
        companion: bool = False,
        origin: str = "manual",
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        invoice_id: Optional[int] = None,
        series_id: Optional[int] = None,
        installment_group: Optional[str] = None,
        ordinal: Optional[int] = None,
        total_installments: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Create a transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        user_id: Optional[int] = None,
        kind: Optional[str] = None,
        paid: Optional[bool] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        invoice_id: Optional[int] = None,
        invoice_ids: Optional[list[int]] = None,
        origin: Optional[str] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters, newest accrual date first.

        Args:
            user_id: Optional owner filter
            kind: Optional kind filter
            paid: Optional paid flag filter
            start_date: Optional start of accrual date range
            end_date: Optional end of accrual date range
            account_id: Optional account filter
            category_id: Optional category filter
            invoice_id: Optional invoice filter
            invoice_ids: Optional filter on a set of invoices
            origin: Optional origin filter
        """
        pass

    @abstractmethod
    def list_series_members(
        self,
        series_id: Optional[int] = None,
        installment_group: Optional[str] = None,
        min_ordinal: Optional[int] = None,
        max_ordinal: Optional[int] = None,
    ) -> list[Transaction]:
        """List members of a series or installment group by ordinal range, in ordinal order."""
        pass

    @abstractmethod
    def update_transaction(self, transaction_id: int, changes: dict[str, Any]) -> None:
        """Update transaction columns named in ``changes``."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction, clearing invoice pointers to it."""
        pass
