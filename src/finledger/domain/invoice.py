"""Invoice domain services: invoice management and invoice payment."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from finledger.config import LedgerConfig
from finledger.database.base import Database
from finledger.domain.entities import (
    Invoice as InvoiceEntity,
    InvoiceStatus,
    PaymentOutcome,
    Transaction as TransactionEntity,
    TransactionKind,
    TransactionOrigin,
)
from finledger.domain.errors import ValidationError, payment_exceeds_remaining
from finledger.domain.invoice_resolver import InvoiceResolver
from finledger.domain.invoice_status import manual_transition, overdue_on
from finledger.domain.ownership import (
    require_account,
    require_card,
    require_category,
    require_invoice,
)
from finledger.domain.reconciliation import ZERO, LedgerReconciler, Touched, companion_description
from finledger.domain.validation import enum_value, positive_amount

logger = logging.getLogger(__name__)


class InvoiceService:
    """Service for managing credit card invoices."""

    def __init__(self, db: Database, config: Optional[LedgerConfig] = None):
        """Initialize invoice service.

        Args:
            db: Database instance
            config: Ledger configuration; defaults are used when omitted
        """
        self.db = db
        self.config = config or LedgerConfig()
        self.resolver = InvoiceResolver(db)
        self.reconciler = LedgerReconciler(db, self.config.limit_policy)

    def create_invoice(
        self,
        user_id: int,
        card_id: int,
        reference_month: int,
        reference_year: int,
        closing_date: Optional[date] = None,
        due_date: Optional[date] = None,
        settlement_account_id: Optional[int] = None,
    ) -> int:
        """Open an invoice for a card period ahead of any purchase.

        Closing and due dates default to the card's closing and due days.

        Returns:
            Invoice ID

        Raises:
            ValidationError: If the period or dates are invalid
            ConflictError: If the card already has an invoice for the period
        """
        if not 1 <= reference_month <= 12:
            raise ValidationError(f"Reference month must be between 1 and 12, got {reference_month}")
        if not 1900 <= reference_year <= 9999:
            raise ValidationError(f"Invalid reference year {reference_year}")
        if closing_date and due_date and due_date < closing_date:
            raise ValidationError("Due date cannot be before closing date")

        card = require_card(self.db, user_id, card_id)
        if settlement_account_id is not None:
            require_account(self.db, user_id, settlement_account_id)

        with self.db.atomic():
            invoice = self.resolver.open_invoice(
                card,
                reference_month,
                reference_year,
                closing_date=closing_date,
                due_date=due_date,
                settlement_account_id=settlement_account_id,
            )
            self.reconciler.reconcile(Touched(invoices={invoice.id}))
        return invoice.id

    def get_invoice(self, user_id: int, invoice_id: int) -> InvoiceEntity:
        invoice, _ = require_invoice(self.db, user_id, invoice_id)
        return invoice

    def list_invoices(
        self,
        user_id: int,
        card_id: Optional[int] = None,
        status: Optional[InvoiceStatus] = None,
    ) -> list[InvoiceEntity]:
        """List a user's invoices, newest period first.

        Args:
            user_id: Acting user
            card_id: Optional card filter
            status: Optional status filter

        Returns:
            List of invoices
        """
        if card_id is not None:
            card_ids = [require_card(self.db, user_id, card_id).id]
        else:
            card_ids = [card.id for card in self.db.list_cards(user_id)]
        if not card_ids:
            return []
        if status is not None:
            status = enum_value(InvoiceStatus, status, "invoice status")
        return self.db.list_invoices(card_ids, status)

    def list_invoice_transactions(self, user_id: int, invoice_id: int) -> list[TransactionEntity]:
        """Purchases and settlements filed under an invoice."""
        require_invoice(self.db, user_id, invoice_id)
        return self.db.list_transactions(invoice_id=invoice_id)

    def update_invoice(
        self,
        user_id: int,
        invoice_id: int,
        status: Optional[InvoiceStatus] = None,
        closing_date: Optional[date] = None,
        due_date: Optional[date] = None,
        settlement_account_id: Optional[int] = None,
        clear_settlement_account: bool = False,
    ) -> InvoiceEntity:
        """Update an invoice's status, dates or settlement account.

        The paid status is managed by payments and cannot be set here. Date
        and account changes are carried over to the unpaid companion
        transaction, so the liability shows up on the new due date and
        account.

        Returns:
            The updated invoice

        Raises:
            ValidationError: If the status change or dates are invalid
        """
        invoice, card = require_invoice(self.db, user_id, invoice_id)
        if settlement_account_id is not None and clear_settlement_account:
            raise ValidationError("Cannot set and clear the settlement account at the same time")
        if settlement_account_id is not None:
            require_account(self.db, user_id, settlement_account_id)

        changes = {}
        if status is not None:
            target = enum_value(InvoiceStatus, status, "invoice status")
            changes["status"] = manual_transition(invoice.status, target)
        if closing_date is not None:
            changes["closing_date"] = closing_date
        if due_date is not None:
            changes["due_date"] = due_date
        if settlement_account_id is not None or clear_settlement_account:
            changes["settlement_account_id"] = settlement_account_id
        if changes.get("due_date", invoice.due_date) < changes.get("closing_date", invoice.closing_date):
            raise ValidationError("Due date cannot be before closing date")
        if not changes:
            return invoice

        with self.db.atomic():
            self.db.update_invoice(invoice_id, changes)
            companion = None
            if invoice.settlement_transaction_id is not None:
                companion = self.db.get_transaction(invoice.settlement_transaction_id)
            if companion is not None and companion.companion and not companion.paid:
                companion_changes = {}
                if "due_date" in changes:
                    companion_changes["accrual_date"] = due_date
                    companion_changes["settlement_date"] = due_date
                if "settlement_account_id" in changes:
                    companion_changes["account_id"] = settlement_account_id or card.default_account_id
                if companion_changes:
                    self.db.update_transaction(companion.id, companion_changes)
            self.reconciler.reconcile(Touched(invoices={invoice_id}))

        logger.info("Updated invoice %s: %s", invoice_id, sorted(changes))
        return self.db.get_invoice(invoice_id)

    def delete_invoice(self, user_id: int, invoice_id: int) -> None:
        """Delete an invoice with its purchases, settlements and companion transaction.

        Balances of accounts that paid the invoice and the card's utilized
        limit are recomputed without them.
        """
        invoice, card = require_invoice(self.db, user_id, invoice_id)
        with self.db.atomic():
            touched = Touched(cards={card.id})
            for txn in self.db.list_transactions(invoice_id=invoice_id):
                if txn.account_id is not None:
                    touched.accounts.add(txn.account_id)
                self.db.delete_transaction(txn.id)
            self.db.delete_invoice(invoice_id)
            self.reconciler.reconcile(touched)
        logger.info(
            "Deleted invoice %s (card %s, %02d/%d)",
            invoice_id,
            card.id,
            invoice.reference_month,
            invoice.reference_year,
        )

    def refresh_overdue(self, user_id: int, today: Optional[date] = None) -> list[int]:
        """Flag open or closed invoices past their due date with an amount still owing.

        Returns:
            IDs of the invoices now overdue
        """
        today = today or date.today()
        flagged = []
        with self.db.atomic():
            for invoice in self.list_invoices(user_id):
                if invoice.remaining <= 0:
                    continue
                status = overdue_on(invoice.status, invoice.due_date, today)
                if status != invoice.status:
                    self.db.update_invoice(invoice.id, {"status": status})
                    flagged.append(invoice.id)
        if flagged:
            logger.info("Flagged %d invoice(s) overdue: %s", len(flagged), flagged)
        return flagged


class InvoicePaymentProcessor:
    """Applies full or partial payments to invoices."""

    def __init__(self, db: Database, config: Optional[LedgerConfig] = None):
        """Initialize payment processor.

        Args:
            db: Database instance
            config: Ledger configuration; defaults are used when omitted
        """
        self.db = db
        self.config = config or LedgerConfig()
        self.reconciler = LedgerReconciler(db, self.config.limit_policy)

    def pay(
        self,
        user_id: int,
        invoice_id: int,
        amount: Decimal,
        settlement_date: date,
        paying_account_id: int,
        category_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> PaymentOutcome:
        """Pay ``amount`` of an invoice from an account.

        A paid settlement transaction debits the paying account. The unpaid
        companion transaction is replaced by the settlement, the invoice's
        amount paid and status follow, and the paid amount of card limit is
        released.

        Args:
            user_id: Acting user
            invoice_id: Invoice to pay
            amount: Payment amount, at most what is still owing
            settlement_date: Payment date
            paying_account_id: Account the payment comes from
            category_id: Optional category for the settlement transaction
            description: Optional description for the settlement transaction

        Returns:
            The invoice after payment, its settlement transactions and what remains owing

        Raises:
            ValidationError: If the amount is not positive or exceeds the remaining balance
            NotFoundError: If the invoice or account does not exist
            ForbiddenError: If either belongs to another user
        """
        amount = positive_amount(amount)
        if settlement_date is None:
            raise ValidationError("Settlement date is required")
        invoice, card = require_invoice(self.db, user_id, invoice_id)
        require_account(self.db, user_id, paying_account_id)
        if category_id is not None:
            require_category(self.db, user_id, category_id)

        aggregator = self.reconciler.invoices
        with self.db.atomic():
            # Lock first so the remaining balance cannot move under a concurrent payment.
            invoice = self.db.lock_invoice(invoice_id)
            total = aggregator.compute_total(invoice_id)
            remaining = max(total - aggregator.compute_amount_paid(invoice_id), ZERO)
            if amount > remaining:
                raise ValidationError(payment_exceeds_remaining(amount, remaining))

            if total != invoice.total:
                logger.warning(
                    "Invoice %s stored total %s drifted from purchases %s; recomputing",
                    invoice_id,
                    invoice.total,
                    total,
                )
                self.reconciler.reconcile(Touched(invoices={invoice_id}))
                invoice = self.db.lock_invoice(invoice_id)

            settlement_id = self.db.create_transaction(
                user_id=user_id,
                description=description or f"Payment {companion_description(card, invoice)}",
                amount=amount,
                kind=TransactionKind.EXPENSE,
                accrual_date=settlement_date,
                settlement_date=settlement_date,
                paid=True,
                origin=TransactionOrigin.INVOICE_SETTLEMENT,
                account_id=paying_account_id,
                category_id=category_id,
                invoice_id=invoice_id,
            )

            touched = Touched(accounts={paying_account_id}, invoices={invoice_id})
            companion = None
            if invoice.settlement_transaction_id is not None:
                companion = self.db.get_transaction(invoice.settlement_transaction_id)
            if companion is not None and companion.companion and not companion.paid:
                touched.add_transaction(companion)
                self.db.delete_transaction(companion.id)
            self.db.update_invoice(invoice_id, {"settlement_transaction_id": settlement_id})

            self.reconciler.reconcile(touched)
            self.reconciler.cards.apply_settlement(card.id, amount)

        outcome = self.outcome(invoice_id)
        logger.info(
            "Paid %s on invoice %s from account %s; remaining %s, status %s",
            amount,
            invoice_id,
            paying_account_id,
            outcome.remaining,
            outcome.invoice.status.value,
        )
        return outcome

    def outcome(self, invoice_id: int) -> PaymentOutcome:
        invoice = self.db.get_invoice(invoice_id)
        settlements = self.reconciler.invoices.settlements(invoice_id)
        return PaymentOutcome(invoice=invoice, settlements=settlements, remaining=invoice.remaining)
