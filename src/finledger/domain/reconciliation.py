"""Reconciliation of derived aggregates.

Account current balance, invoice total and card utilized limit are never
adjusted incrementally by the lifecycle code. After every mutation the
affected aggregates are recomputed from the rows they summarise and
overwritten, inside the same unit of work as the mutation.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from finledger.config import LimitPolicy
from finledger.database.base import Database
from finledger.domain.entities import (
    CreditCard,
    Invoice,
    Transaction,
    TransactionKind,
    TransactionOrigin,
)
from finledger.domain.invoice_status import after_settlement_change

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _sum(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO).quantize(Decimal("0.01"))


def companion_description(card: CreditCard, invoice: Invoice) -> str:
    return f"Invoice {card.name} {invoice.reference_month:02d}/{invoice.reference_year}"


def open_companion_transaction(db: Database, card: CreditCard, invoice: Invoice, amount: Decimal) -> int:
    """Create the unpaid liability transaction standing for an invoice and point the invoice at it.

    Returns:
        ID of the new transaction
    """
    transaction_id = db.create_transaction(
        user_id=card.user_id,
        description=companion_description(card, invoice),
        amount=amount,
        kind=TransactionKind.EXPENSE,
        accrual_date=invoice.due_date,
        settlement_date=invoice.due_date,
        paid=False,
        companion=True,
        origin=TransactionOrigin.INVOICE_SETTLEMENT,
        account_id=invoice.settlement_account_id or card.default_account_id,
        invoice_id=invoice.id,
    )
    db.update_invoice(invoice.id, {"settlement_transaction_id": transaction_id})
    return transaction_id


class AccountLedger:
    """Keeps an account's current balance equal to its paid, non-card movements."""

    def __init__(self, db: Database):
        self.db = db

    def compute_balance(self, opening_balance: Decimal, account_id: int) -> Decimal:
        paid = self.db.list_transactions(account_id=account_id, paid=True)
        return opening_balance + _sum(
            txn.signed_amount for txn in paid if txn.origin != TransactionOrigin.CARD_PURCHASE
        )

    def reconcile(self, account_id: int) -> Optional[Decimal]:
        """Recompute and store the account's current balance.

        Returns:
            The new balance, or None if the account no longer exists
        """
        account = self.db.lock_account(account_id)
        if account is None:
            return None
        balance = self.compute_balance(account.opening_balance, account_id)
        if balance != account.current_balance:
            logger.debug(
                "Account %s balance %s -> %s", account_id, account.current_balance, balance
            )
            self.db.set_account_balance(account_id, balance)
        return balance


class InvoiceAggregator:
    """Keeps an invoice consistent with the transactions attached to it.

    The total is the sum of its card purchases, the amount paid is the sum of
    its paid settlement transactions, and the status follows the payment
    state. The invoice always points at one settlement transaction: the
    companion liability while nothing is paid, the newest payment
    afterwards. Only the companion's amount is ever rewritten.
    """

    def __init__(self, db: Database):
        self.db = db

    def compute_total(self, invoice_id: int) -> Decimal:
        purchases = self.db.list_transactions(
            invoice_id=invoice_id, origin=TransactionOrigin.CARD_PURCHASE
        )
        return _sum(txn.amount for txn in purchases)

    def settlements(self, invoice_id: int) -> list[Transaction]:
        """Settlement transactions of an invoice, oldest first."""
        txns = self.db.list_transactions(
            invoice_id=invoice_id, origin=TransactionOrigin.INVOICE_SETTLEMENT
        )
        return sorted(txns, key=lambda txn: txn.id)

    def compute_amount_paid(self, invoice_id: int) -> Decimal:
        return _sum(txn.amount for txn in self.settlements(invoice_id) if txn.paid)

    def reconcile(self, invoice_id: int) -> Optional[int]:
        """Recompute the invoice's derived fields and its companion transaction.

        Returns:
            The owning card ID, or None if the invoice no longer exists
        """
        invoice = self.db.lock_invoice(invoice_id)
        if invoice is None:
            return None

        total = self.compute_total(invoice_id)
        settlements = self.settlements(invoice_id)
        companion = self._companion(invoice, settlements)
        if companion is None:
            card = self.db.get_card(invoice.card_id)
            open_companion_transaction(self.db, card, invoice, total)
        elif companion.companion and not companion.paid:
            # The unpaid companion carries whatever the payments leave owing.
            # Payments keep their own amount even while marked unpaid.
            paid_elsewhere = _sum(t.amount for t in settlements if t.paid and t.id != companion.id)
            owing = max(total - paid_elsewhere, ZERO)
            if companion.amount != owing:
                self.db.update_transaction(companion.id, {"amount": owing})
            settlements = self.settlements(invoice_id)

        amount_paid = _sum(txn.amount for txn in settlements if txn.paid)
        status = after_settlement_change(invoice.status, total, amount_paid)

        changes = {}
        if total != invoice.total:
            changes["total"] = total
        if amount_paid != invoice.amount_paid:
            changes["amount_paid"] = amount_paid
        if status != invoice.status:
            changes["status"] = status
        if companion is not None and companion.id != invoice.settlement_transaction_id:
            changes["settlement_transaction_id"] = companion.id
        if changes:
            logger.debug("Invoice %s reconciled: %s", invoice_id, changes)
            self.db.update_invoice(invoice_id, changes)
        return invoice.card_id

    def _companion(self, invoice: Invoice, settlements: list[Transaction]) -> Optional[Transaction]:
        for txn in settlements:
            if txn.id == invoice.settlement_transaction_id:
                return txn
        # Pointer lost (settlement deleted): fall back to the newest remaining one.
        return settlements[-1] if settlements else None


class CardLimitAggregator:
    """Keeps a card's utilized limit equal to the fold of its invoices."""

    def __init__(self, db: Database, policy: LimitPolicy = LimitPolicy.OUTSTANDING):
        self.db = db
        self.policy = LimitPolicy(policy)

    def compute_utilized(self, card_id: int) -> Decimal:
        invoices = self.db.list_invoices([card_id])
        if self.policy == LimitPolicy.INVOICE_TOTAL:
            return _sum(inv.total for inv in invoices)
        return _sum(inv.remaining for inv in invoices)

    def reconcile(self, card_id: int) -> Optional[Decimal]:
        """Recompute and store the card's utilized limit.

        Returns:
            The new utilized limit, or None if the card no longer exists
        """
        card = self.db.lock_card(card_id)
        if card is None:
            return None
        utilized = self.compute_utilized(card_id)
        if utilized != card.utilized_limit:
            logger.debug("Card %s utilized limit %s -> %s", card_id, card.utilized_limit, utilized)
            self.db.set_card_utilized_limit(card_id, utilized)
        return utilized

    def apply_settlement(self, card_id: int, released: Decimal) -> Optional[Decimal]:
        """Account for a settlement that released (positive) or restored (negative) limit.

        Under the outstanding policy the recompute already reflects payments.
        Under the invoice-total policy the stored value is lowered by the
        payment (floored at zero), and a reversal restores it without going
        above the recomputed total.
        """
        if self.policy == LimitPolicy.OUTSTANDING:
            return self.reconcile(card_id)

        card = self.db.lock_card(card_id)
        if card is None:
            return None
        if released >= 0:
            utilized = max(card.utilized_limit - released, ZERO)
        else:
            utilized = min(card.utilized_limit - released, self.compute_utilized(card_id))
        self.db.set_card_utilized_limit(card_id, utilized)
        return utilized


@dataclass
class Touched:
    """Aggregates a mutation may have changed."""

    accounts: set[int] = field(default_factory=set)
    invoices: set[int] = field(default_factory=set)
    cards: set[int] = field(default_factory=set)

    def add_refs(self, account_id: Optional[int], invoice_id: Optional[int]) -> None:
        if account_id is not None:
            self.accounts.add(account_id)
        if invoice_id is not None:
            self.invoices.add(invoice_id)

    def add_transaction(self, txn: Transaction) -> None:
        self.add_refs(txn.account_id, txn.invoice_id)

    def update(self, other: "Touched") -> None:
        self.accounts |= other.accounts
        self.invoices |= other.invoices
        self.cards |= other.cards


class LedgerReconciler:
    """Runs the aggregators over a touched set: accounts, then invoices, then cards.

    IDs are visited in ascending order so concurrent units of work take row
    locks in the same order.
    """

    def __init__(self, db: Database, policy: LimitPolicy = LimitPolicy.OUTSTANDING):
        self.db = db
        self.accounts = AccountLedger(db)
        self.invoices = InvoiceAggregator(db)
        self.cards = CardLimitAggregator(db, policy)

    def reconcile(self, touched: Touched) -> None:
        for account_id in sorted(touched.accounts):
            self.accounts.reconcile(account_id)

        cards = set(touched.cards)
        for invoice_id in sorted(touched.invoices):
            card_id = self.invoices.reconcile(invoice_id)
            if card_id is not None:
                cards.add(card_id)

        for card_id in sorted(cards):
            self.cards.reconcile(card_id)
