"""Invoice resolution for card purchases."""

import logging
from datetime import date
from typing import Optional

from finledger.database.base import Database
from finledger.domain.entities import CreditCard, Invoice
from finledger.domain.errors import ConflictError, duplicate_invoice
from finledger.domain.periods import invoice_dates, invoice_period
from finledger.domain.reconciliation import ZERO, open_companion_transaction

logger = logging.getLogger(__name__)


class InvoiceResolver:
    """Finds, or lazily opens, the invoice a card purchase belongs to."""

    def __init__(self, db: Database):
        """Initialize invoice resolver.

        Args:
            db: Database instance
        """
        self.db = db

    def resolve(self, card: CreditCard, accrual_date: date) -> int:
        """Return the ID of the invoice covering a purchase made on ``accrual_date``.

        Args:
            card: Card the purchase was made with
            accrual_date: Purchase date

        Returns:
            Invoice ID
        """
        month, year = invoice_period(accrual_date, card.closing_day)
        return self.get_or_open(card, month, year).id

    def get_or_open(self, card: CreditCard, month: int, year: int) -> Invoice:
        existing = self.db.find_invoice(card.id, month, year)
        if existing is not None:
            return existing
        return self.open_invoice(card, month, year)

    def open_invoice(
        self,
        card: CreditCard,
        month: int,
        year: int,
        closing_date: Optional[date] = None,
        due_date: Optional[date] = None,
        settlement_account_id: Optional[int] = None,
    ) -> Invoice:
        """Create an open invoice for a period, with its zero-amount companion transaction.

        Raises:
            ConflictError: If the card already has an invoice for the period
        """
        if self.db.find_invoice(card.id, month, year) is not None:
            raise ConflictError(duplicate_invoice(card.id, month, year))

        default_closing, default_due = invoice_dates(month, year, card.closing_day, card.due_day)
        invoice_id = self.db.create_invoice(
            card_id=card.id,
            reference_month=month,
            reference_year=year,
            closing_date=closing_date or default_closing,
            due_date=due_date or default_due,
            settlement_account_id=settlement_account_id,
        )
        invoice = self.db.get_invoice(invoice_id)
        open_companion_transaction(self.db, card, invoice, ZERO)
        logger.info("Opened invoice %s for card %s period %02d/%d", invoice_id, card.id, month, year)
        return self.db.get_invoice(invoice_id)
