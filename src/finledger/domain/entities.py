"""Domain model entities for finledger.

These are pure data classes representing business concepts, independent of
database schema. Derived fields (account current balance, invoice total,
card utilized limit) are only ever written by the reconciliation layer.
"""

from dataclasses import dataclass
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionKind(str, Enum):
    """Direction of a transaction."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class TransactionOrigin(str, Enum):
    """Where a transaction came from."""

    MANUAL = "manual"
    CARD_PURCHASE = "card-purchase"
    INVOICE_SETTLEMENT = "invoice-settlement"


class InvoiceStatus(str, Enum):
    """Invoice lifecycle state. See ``domain.invoice_status`` for transitions."""

    OPEN = "open"
    CLOSED = "closed"
    PAID = "paid"
    OVERDUE = "overdue"


class AccountKind(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    INVESTMENT = "investment"
    CASH = "cash"


class CategoryKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class SeriesScope(str, Enum):
    """Which members of a series an update or delete applies to."""

    ONE = "one"
    ALL = "all"
    FUTURE = "future"
    PAST = "past"


@dataclass(frozen=True)
class Account:
    """Bank account domain entity."""

    id: int
    user_id: int
    name: str
    kind: AccountKind
    opening_balance: Decimal
    current_balance: Decimal
    active: bool
    created_at: datetime


@dataclass(frozen=True)
class CategoryGroup:
    id: int
    user_id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Category domain entity."""

    id: int
    user_id: int
    name: str
    kind: CategoryKind
    group_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class CreditCard:
    """Credit card domain entity."""

    id: int
    user_id: int
    name: str
    credit_limit: Decimal
    utilized_limit: Decimal
    closing_day: int
    due_day: int
    default_account_id: Optional[int]
    brand: Optional[str]
    last_digits: Optional[str]
    color: Optional[str]
    active: bool
    created_at: datetime

    @property
    def available_limit(self) -> Decimal:
        return self.credit_limit - self.utilized_limit


@dataclass(frozen=True)
class Invoice:
    """Monthly statement of a credit card."""

    id: int
    card_id: int
    reference_month: int
    reference_year: int
    closing_date: date
    due_date: date
    total: Decimal
    amount_paid: Decimal
    status: InvoiceStatus
    settlement_account_id: Optional[int]
    settlement_transaction_id: Optional[int]
    created_at: datetime

    @property
    def remaining(self) -> Decimal:
        return max(self.total - self.amount_paid, Decimal("0"))


@dataclass(frozen=True)
class Series:
    """Definition of a recurring transaction series."""

    id: int
    user_id: int
    description: str
    kind: TransactionKind
    start_date: date
    end_date: Optional[date]
    occurrences: int
    active: bool
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity."""

    id: int
    user_id: int
    description: str
    amount: Decimal
    kind: TransactionKind
    accrual_date: date
    settlement_date: Optional[date]
    paid: bool
    companion: bool
    origin: TransactionOrigin
    account_id: Optional[int]
    category_id: Optional[int]
    invoice_id: Optional[int]
    series_id: Optional[int]
    installment_group: Optional[str]
    ordinal: Optional[int]
    total_installments: Optional[int]
    notes: Optional[str]
    created_at: datetime

    @property
    def signed_amount(self) -> Decimal:
        """Amount as seen by an account balance: income adds, expense subtracts."""
        if self.kind == TransactionKind.INCOME:
            return self.amount
        if self.kind == TransactionKind.EXPENSE:
            return -self.amount
        return Decimal("0")

    @property
    def in_series(self) -> bool:
        return self.series_id is not None or self.installment_group is not None


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of applying a payment to an invoice."""

    invoice: Invoice
    settlements: list[Transaction]
    remaining: Decimal
