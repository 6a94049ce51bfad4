"""Transaction domain service.

Every create, update, delete and paid toggle runs as one unit of work: the
transaction rows change, then the account balances, invoice totals and card
limits they touch (before and after the change) are recomputed.
"""

import logging
from dataclasses import asdict, replace
from datetime import date
from decimal import Decimal
from typing import Optional

from finledger.config import LedgerConfig
from finledger.database.base import Database
from finledger.domain.entities import (
    CreditCard,
    SeriesScope,
    Transaction as TransactionEntity,
    TransactionKind,
    TransactionOrigin,
)
from finledger.domain.errors import (
    ImmutableEntityError,
    ValidationError,
    settlement_not_editable,
)
from finledger.domain.invoice_resolver import InvoiceResolver
from finledger.domain.ownership import (
    require_account,
    require_card,
    require_category,
    require_invoice,
    require_transaction,
)
from finledger.domain.periods import invoice_period
from finledger.domain.reconciliation import LedgerReconciler, Touched
from finledger.domain.series import (
    SeriesExpander,
    SeriesMode,
    TransactionIntent,
    TransactionSpec,
    annotate_description,
    mode_of,
)
from finledger.domain.validation import enum_value, positive_amount, required_text
from finledger.utils.date_parser import add_months

logger = logging.getLogger(__name__)


class TransactionService:
    """Service for managing transactions."""

    def __init__(self, db: Database, config: Optional[LedgerConfig] = None):
        """Initialize transaction service.

        Args:
            db: Database instance
            config: Ledger configuration; defaults are used when omitted
        """
        self.db = db
        self.config = config or LedgerConfig()
        self.resolver = InvoiceResolver(db)
        self.expander = SeriesExpander(db, self.config.recurring_occurrences)
        self.reconciler = LedgerReconciler(db, self.config.limit_policy)

    def create_transaction(
        self,
        user_id: int,
        description: str,
        amount: Decimal,
        kind: TransactionKind,
        accrual_date: date,
        settlement_date: Optional[date] = None,
        paid: bool = False,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        card_id: Optional[int] = None,
        invoice_id: Optional[int] = None,
        notes: Optional[str] = None,
        installments: Optional[int] = None,
        recurring: bool = False,
        occurrences: Optional[int] = None,
    ) -> list[int]:
        """Create a transaction, or a whole installment or recurring set.

        A card (or an invoice of a card) turns the transaction into a card
        purchase: each occurrence is filed under the invoice covering its own
        accrual date, opening that invoice if needed.

        Args:
            user_id: Acting user
            description: Description (installment and recurring members are annotated)
            amount: Positive amount of each occurrence
            kind: income, expense or transfer
            accrual_date: Date the transaction is incurred
            settlement_date: Optional date it is settled
            paid: Paid flag (only the first occurrence of a set keeps it)
            account_id: Optional account
            category_id: Optional category
            card_id: Optional credit card, for card purchases
            invoice_id: Optional invoice, for card purchases on a known invoice
            notes: Optional notes
            installments: Split into this many monthly installments
            recurring: Repeat monthly
            occurrences: Number of recurring occurrences (default from config)

        Returns:
            IDs of the created transactions, in ordinal order

        Raises:
            ValidationError: If any input is invalid
            NotFoundError: If a referenced entity does not exist
            ForbiddenError: If a referenced entity belongs to another user
        """
        description = required_text(description, "Description")
        amount = positive_amount(amount)
        kind = enum_value(TransactionKind, kind, "transaction kind")
        if accrual_date is None:
            raise ValidationError("Accrual date is required")
        if installments is not None and recurring:
            raise ValidationError("A transaction cannot be both installments and recurring")

        if account_id is not None:
            require_account(self.db, user_id, account_id)
        if category_id is not None:
            require_category(self.db, user_id, category_id)

        card = self._purchase_card(user_id, card_id, invoice_id)
        origin = TransactionOrigin.MANUAL
        if card is not None:
            self._check_purchase_kind(kind)
            origin = TransactionOrigin.CARD_PURCHASE
            if invoice_id is not None:
                self._check_invoice_covers(user_id, invoice_id, card, accrual_date)

        spec = TransactionSpec(
            user_id=user_id,
            description=description,
            amount=amount,
            kind=kind,
            accrual_date=accrual_date,
            settlement_date=settlement_date,
            paid=paid,
            origin=origin,
            account_id=account_id,
            category_id=category_id,
            notes=notes,
        )
        if installments is not None:
            intent = TransactionIntent(spec, SeriesMode.INSTALLMENT, installments)
        elif recurring:
            intent = TransactionIntent(spec, SeriesMode.RECURRING, occurrences)
        else:
            intent = TransactionIntent(spec)

        ids = []
        with self.db.atomic():
            touched = Touched()
            for spec in self.expander.expand(intent):
                if card is not None:
                    spec = replace(spec, invoice_id=self.resolver.resolve(card, spec.accrual_date))
                ids.append(self.db.create_transaction(**asdict(spec)))
                touched.add_refs(spec.account_id, spec.invoice_id)
            self.reconciler.reconcile(touched)

        logger.info("Created %d transaction(s) for user %s: %s", len(ids), user_id, ids)
        return ids

    def get_transaction(self, user_id: int, transaction_id: int) -> TransactionEntity:
        """Get a transaction owned by ``user_id``.

        Raises:
            NotFoundError: If the transaction does not exist
            ForbiddenError: If it belongs to another user
        """
        return require_transaction(self.db, user_id, transaction_id)

    def list_transactions(
        self,
        user_id: int,
        kind: Optional[TransactionKind] = None,
        paid: Optional[bool] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        card_id: Optional[int] = None,
        invoice_id: Optional[int] = None,
        origin: Optional[TransactionOrigin] = None,
    ) -> list[TransactionEntity]:
        """List a user's transactions, newest first.

        Args:
            user_id: Acting user
            kind: Optional kind filter
            paid: Optional paid flag filter
            start_date: Optional start of accrual date range (inclusive)
            end_date: Optional end of accrual date range (inclusive)
            account_id: Optional account filter
            category_id: Optional category filter
            card_id: Optional card filter (transactions on any of its invoices)
            invoice_id: Optional invoice filter
            origin: Optional origin filter

        Returns:
            List of transactions
        """
        if start_date and end_date and start_date > end_date:
            raise ValidationError("Start date must be on or before end date")
        if account_id is not None:
            require_account(self.db, user_id, account_id)
        if category_id is not None:
            require_category(self.db, user_id, category_id)
        if invoice_id is not None:
            require_invoice(self.db, user_id, invoice_id)

        invoice_ids = None
        if card_id is not None:
            require_card(self.db, user_id, card_id)
            invoice_ids = [inv.id for inv in self.db.list_invoices([card_id])]
            if not invoice_ids:
                return []

        return self.db.list_transactions(
            user_id=user_id,
            kind=enum_value(TransactionKind, kind, "transaction kind") if kind else None,
            paid=paid,
            start_date=start_date,
            end_date=end_date,
            account_id=account_id,
            category_id=category_id,
            invoice_id=invoice_id,
            invoice_ids=invoice_ids,
            origin=enum_value(TransactionOrigin, origin, "origin") if origin else None,
        )

    def update_transaction(
        self,
        user_id: int,
        transaction_id: int,
        scope: SeriesScope = SeriesScope.ONE,
        description: Optional[str] = None,
        amount: Optional[Decimal] = None,
        kind: Optional[TransactionKind] = None,
        accrual_date: Optional[date] = None,
        settlement_date: Optional[date] = None,
        paid: Optional[bool] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        card_id: Optional[int] = None,
        notes: Optional[str] = None,
        clear_account: bool = False,
        clear_category: bool = False,
        clear_settlement_date: bool = False,
        clear_notes: bool = False,
    ) -> list[int]:
        """Update a transaction or a slice of its series.

        Dates of the other members of a slice move by the same number of
        months as the selected transaction, so a series keeps its monthly
        spacing. A new description is re-annotated per member.

        Args:
            user_id: Acting user
            transaction_id: Transaction the slice is anchored on
            scope: one, all, future (this and later) or past (this and earlier)
            description: Optional new description
            amount: Optional new amount
            kind: Optional new kind
            accrual_date: Optional new accrual date of the anchor transaction
            settlement_date: Optional new settlement date of the anchor transaction
            paid: Optional new paid flag
            account_id: Optional new account
            category_id: Optional new category
            card_id: Optional card to move the transaction(s) onto
            notes: Optional new notes
            clear_account: Remove the account
            clear_category: Remove the category
            clear_settlement_date: Remove the settlement date
            clear_notes: Remove the notes

        Returns:
            IDs of the updated transactions

        Raises:
            ImmutableEntityError: If the transaction settles an invoice
            ValidationError: If any input is invalid
            NotFoundError: If a referenced entity does not exist
            ForbiddenError: If a referenced entity belongs to another user
        """
        anchor = require_transaction(self.db, user_id, transaction_id)
        if anchor.origin == TransactionOrigin.INVOICE_SETTLEMENT:
            raise ImmutableEntityError(settlement_not_editable(transaction_id))

        scope = enum_value(SeriesScope, scope, "scope")
        if account_id is not None and clear_account:
            raise ValidationError("Cannot set and clear the account at the same time")
        if category_id is not None and clear_category:
            raise ValidationError("Cannot set and clear the category at the same time")
        if description is not None:
            description = required_text(description, "Description")
        if amount is not None:
            amount = positive_amount(amount)
        if kind is not None:
            kind = enum_value(TransactionKind, kind, "transaction kind")
        if account_id is not None:
            require_account(self.db, user_id, account_id)
        if category_id is not None:
            require_category(self.db, user_id, category_id)

        card = require_card(self.db, user_id, card_id) if card_id is not None else None
        if card is not None or anchor.origin == TransactionOrigin.CARD_PURCHASE:
            self._check_purchase_kind(kind or anchor.kind)

        with self.db.atomic():
            targets = self._select(anchor, scope)
            touched = Touched()
            for txn in targets:
                touched.add_transaction(txn)
                changes = {}
                if description is not None:
                    changes["description"] = annotate_description(
                        description,
                        mode_of(txn.series_id, txn.installment_group),
                        txn.ordinal,
                        txn.total_installments,
                        self._shifted(accrual_date, anchor, txn) or txn.accrual_date,
                    )
                if amount is not None:
                    changes["amount"] = amount
                if kind is not None:
                    changes["kind"] = kind
                if accrual_date is not None:
                    changes["accrual_date"] = self._shifted(accrual_date, anchor, txn)
                if settlement_date is not None:
                    changes["settlement_date"] = self._shifted(settlement_date, anchor, txn)
                elif clear_settlement_date:
                    changes["settlement_date"] = None
                if paid is not None:
                    changes["paid"] = paid
                if account_id is not None or clear_account:
                    changes["account_id"] = account_id
                if category_id is not None or clear_category:
                    changes["category_id"] = category_id
                if notes is not None or clear_notes:
                    changes["notes"] = notes

                target_card = card or self._card_of(txn)
                if target_card is not None:
                    new_accrual = changes.get("accrual_date", txn.accrual_date)
                    new_invoice_id = self.resolver.resolve(target_card, new_accrual)
                    if new_invoice_id != txn.invoice_id:
                        changes["invoice_id"] = new_invoice_id
                    changes["origin"] = TransactionOrigin.CARD_PURCHASE

                if changes:
                    self.db.update_transaction(txn.id, changes)
                touched.add_transaction(self.db.get_transaction(txn.id))
            self.reconciler.reconcile(touched)

        updated = [txn.id for txn in targets]
        logger.info("Updated transaction(s) %s (scope %s)", updated, scope.value)
        return updated

    def delete_transaction(
        self, user_id: int, transaction_id: int, scope: SeriesScope = SeriesScope.ONE
    ) -> list[int]:
        """Delete a transaction or a slice of its series.

        Deleting a settlement transaction reverses the payment it made: the
        invoice's amount paid and status are recomputed without it, and
        released card limit is restored.

        Returns:
            IDs of the deleted transactions

        Raises:
            NotFoundError: If the transaction does not exist
            ForbiddenError: If it belongs to another user
        """
        anchor = require_transaction(self.db, user_id, transaction_id)
        scope = enum_value(SeriesScope, scope, "scope")

        with self.db.atomic():
            targets = self._select(anchor, scope)
            touched = Touched()
            reversed_payments = []
            for txn in targets:
                touched.add_transaction(txn)
                if txn.origin == TransactionOrigin.INVOICE_SETTLEMENT and txn.paid:
                    invoice = self.db.get_invoice(txn.invoice_id) if txn.invoice_id else None
                    if invoice is not None:
                        reversed_payments.append((invoice.card_id, txn.amount))
                self.db.delete_transaction(txn.id)
            self.reconciler.reconcile(touched)
            for card_id, amount in reversed_payments:
                self.reconciler.cards.apply_settlement(card_id, -amount)

        deleted = [txn.id for txn in targets]
        logger.info("Deleted transaction(s) %s (scope %s)", deleted, scope.value)
        return deleted

    def toggle_paid(self, user_id: int, transaction_id: int) -> TransactionEntity:
        """Flip the paid flag of one transaction.

        For a settlement transaction this pays or un-pays the invoice it
        settles, releasing or restoring card limit accordingly.

        Returns:
            The updated transaction
        """
        txn = require_transaction(self.db, user_id, transaction_id)
        now_paid = not txn.paid

        with self.db.atomic():
            self.db.update_transaction(txn.id, {"paid": now_paid})
            touched = Touched()
            touched.add_transaction(txn)
            self.reconciler.reconcile(touched)
            if txn.origin == TransactionOrigin.INVOICE_SETTLEMENT and txn.invoice_id is not None:
                invoice = self.db.get_invoice(txn.invoice_id)
                if invoice is not None:
                    released = txn.amount if now_paid else -txn.amount
                    self.reconciler.cards.apply_settlement(invoice.card_id, released)

        logger.info("Transaction %s marked %s", txn.id, "paid" if now_paid else "unpaid")
        return self.db.get_transaction(txn.id)

    def _select(self, anchor: TransactionEntity, scope: SeriesScope) -> list[TransactionEntity]:
        """Transactions a scope selects, by ordinal relative to ``anchor``."""
        if scope == SeriesScope.ONE or not anchor.in_series or anchor.ordinal is None:
            return [anchor]
        min_ordinal = anchor.ordinal if scope == SeriesScope.FUTURE else None
        max_ordinal = anchor.ordinal if scope == SeriesScope.PAST else None
        if anchor.series_id is not None:
            return self.db.list_series_members(
                series_id=anchor.series_id, min_ordinal=min_ordinal, max_ordinal=max_ordinal
            )
        return self.db.list_series_members(
            installment_group=anchor.installment_group,
            min_ordinal=min_ordinal,
            max_ordinal=max_ordinal,
        )

    @staticmethod
    def _shifted(
        new_date: Optional[date], anchor: TransactionEntity, txn: TransactionEntity
    ) -> Optional[date]:
        if new_date is None:
            return None
        if txn.id == anchor.id or txn.ordinal is None or anchor.ordinal is None:
            return new_date
        return add_months(new_date, txn.ordinal - anchor.ordinal)

    def _card_of(self, txn: TransactionEntity) -> Optional[CreditCard]:
        if txn.origin != TransactionOrigin.CARD_PURCHASE or txn.invoice_id is None:
            return None
        invoice = self.db.get_invoice(txn.invoice_id)
        return self.db.get_card(invoice.card_id) if invoice else None

    def _purchase_card(
        self, user_id: int, card_id: Optional[int], invoice_id: Optional[int]
    ) -> Optional[CreditCard]:
        if invoice_id is not None:
            invoice, card = require_invoice(self.db, user_id, invoice_id)
            if card_id is not None and card_id != invoice.card_id:
                raise ValidationError(f"Invoice {invoice_id} does not belong to card {card_id}")
            return card
        if card_id is not None:
            return require_card(self.db, user_id, card_id)
        return None

    def _check_invoice_covers(
        self, user_id: int, invoice_id: int, card: CreditCard, accrual_date: date
    ) -> None:
        invoice, _ = require_invoice(self.db, user_id, invoice_id)
        period = invoice_period(accrual_date, card.closing_day)
        if period != (invoice.reference_month, invoice.reference_year):
            raise ValidationError(
                f"A purchase on {accrual_date.isoformat()} belongs to the "
                f"{period[0]:02d}/{period[1]} invoice, not "
                f"{invoice.reference_month:02d}/{invoice.reference_year}"
            )

    @staticmethod
    def _check_purchase_kind(kind: TransactionKind) -> None:
        if kind != TransactionKind.EXPENSE:
            raise ValidationError("Card purchases must be expenses")
