"""Tests for invoice management and invoice payment."""

import pytest
from datetime import date
from decimal import Decimal

from finledger.config import LedgerConfig, LimitPolicy
from finledger.database.factories import create_sqlite_database
from finledger.domain.entities import InvoiceStatus, SeriesScope, TransactionKind, TransactionOrigin
from finledger.domain.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from finledger.domain.invoice import InvoicePaymentProcessor
from finledger.domain.transaction import TransactionService

USER_ID = 1
OTHER_USER_ID = 2


def _purchase(transaction_service, card, amount, accrual_date):
    ids = transaction_service.create_transaction(
        USER_ID, "Purchase", Decimal(amount), TransactionKind.EXPENSE, accrual_date, card_id=card.id
    )
    return transaction_service.get_transaction(USER_ID, ids[0]).invoice_id


def _balance(account_service, account_id):
    return account_service.get_account(USER_ID, account_id).current_balance


def _utilized(card_service, card_id):
    return card_service.get_card(USER_ID, card_id).utilized_limit


class TestPay:
    def test_full_payment(
        self, transaction_service, payment_processor, card_service, account_service, sample_card, sample_account
    ):
        _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        january = _purchase(transaction_service, sample_card, "50.00", date(2025, 1, 5))
        assert _utilized(card_service, sample_card.id) == Decimal("150.00")

        outcome = payment_processor.pay(
            USER_ID, january, Decimal("50.00"), date(2025, 1, 20), sample_account.id
        )

        assert outcome.invoice.status == InvoiceStatus.PAID
        assert outcome.invoice.amount_paid == Decimal("50.00")
        assert outcome.remaining == Decimal("0.00")
        assert _balance(account_service, sample_account.id) == Decimal("950.00")
        assert _utilized(card_service, sample_card.id) == Decimal("100.00")

    def test_payment_replaces_companion(self, transaction_service, payment_processor, sample_card, sample_account):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))

        outcome = payment_processor.pay(
            USER_ID, invoice_id, Decimal("100.00"), date(2025, 2, 18), sample_account.id
        )

        assert len(outcome.settlements) == 1
        settlement = outcome.settlements[0]
        assert settlement.paid is True
        assert settlement.origin == TransactionOrigin.INVOICE_SETTLEMENT
        assert settlement.companion is False
        assert settlement.accrual_date == date(2025, 2, 18)
        assert settlement.description == "Payment Invoice Visa 02/2025"
        assert outcome.invoice.settlement_transaction_id == settlement.id

    def test_partial_payments(
        self, transaction_service, payment_processor, card_service, account_service, sample_card, sample_account
    ):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))

        first = payment_processor.pay(USER_ID, invoice_id, Decimal("50"), date(2025, 2, 15), sample_account.id)
        assert first.invoice.status == InvoiceStatus.OPEN
        assert first.remaining == Decimal("50.00")
        assert _balance(account_service, sample_account.id) == Decimal("950.00")
        assert _utilized(card_service, sample_card.id) == Decimal("50.00")

        second = payment_processor.pay(USER_ID, invoice_id, Decimal("50"), date(2025, 2, 20), sample_account.id)
        assert second.invoice.status == InvoiceStatus.PAID
        assert second.invoice.amount_paid == Decimal("100.00")
        assert len(second.settlements) == 2
        assert second.invoice.settlement_transaction_id == second.settlements[-1].id
        assert _balance(account_service, sample_account.id) == Decimal("900.00")
        assert _utilized(card_service, sample_card.id) == Decimal("0.00")

    def test_overpayment_rejected(
        self, transaction_service, payment_processor, invoice_service, account_service, sample_card, sample_account
    ):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))

        with pytest.raises(ValidationError, match="exceeds remaining"):
            payment_processor.pay(USER_ID, invoice_id, Decimal("150"), date(2025, 2, 15), sample_account.id)

        assert _balance(account_service, sample_account.id) == Decimal("1000.00")
        invoice = invoice_service.get_invoice(USER_ID, invoice_id)
        assert invoice.amount_paid == Decimal("0.00")
        settlements = invoice_service.list_invoice_transactions(USER_ID, invoice_id)
        assert [t.paid for t in settlements if t.origin == TransactionOrigin.INVOICE_SETTLEMENT] == [False]

    def test_payment_committed_elsewhere_is_seen_under_lock(
        self, temp_db, transaction_service, payment_processor, invoice_service, account_service,
        sample_card, sample_account, monkeypatch,
    ):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        other = create_sqlite_database(temp_db.database_path)
        lock_invoice = temp_db.lock_invoice
        paid_elsewhere = []

        def pay_elsewhere_then_lock(locked_id):
            # Another session settles the invoice just before this one takes the lock
            if not paid_elsewhere:
                paid_elsewhere.append(
                    InvoicePaymentProcessor(other).pay(
                        USER_ID, invoice_id, Decimal("100"), date(2025, 2, 15), sample_account.id
                    )
                )
            return lock_invoice(locked_id)

        monkeypatch.setattr(temp_db, "lock_invoice", pay_elsewhere_then_lock)
        try:
            with pytest.raises(ValidationError, match="exceeds remaining"):
                payment_processor.pay(USER_ID, invoice_id, Decimal("100"), date(2025, 2, 16), sample_account.id)
        finally:
            other.disconnect()

        invoice = invoice_service.get_invoice(USER_ID, invoice_id)
        assert invoice.amount_paid == Decimal("100.00")
        assert invoice.status == InvoiceStatus.PAID
        assert _balance(account_service, sample_account.id) == Decimal("900.00")

    def test_empty_invoice_cannot_be_paid(self, invoice_service, payment_processor, sample_card, sample_account):
        invoice_id = invoice_service.create_invoice(USER_ID, sample_card.id, 3, 2025)
        with pytest.raises(ValidationError):
            payment_processor.pay(USER_ID, invoice_id, Decimal("10"), date(2025, 3, 1), sample_account.id)

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
    def test_non_positive_amount(self, transaction_service, payment_processor, sample_card, sample_account, amount):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        with pytest.raises(ValidationError):
            payment_processor.pay(USER_ID, invoice_id, amount, date(2025, 2, 15), sample_account.id)

    def test_foreign_paying_account(self, transaction_service, payment_processor, sample_card, other_account):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        with pytest.raises(ForbiddenError):
            payment_processor.pay(USER_ID, invoice_id, Decimal("10"), date(2025, 2, 15), other_account.id)

    def test_missing_invoice(self, payment_processor, sample_account):
        with pytest.raises(NotFoundError):
            payment_processor.pay(USER_ID, 999, Decimal("10"), date(2025, 2, 15), sample_account.id)

    def test_purchase_after_payment_reopens_balance(
        self, transaction_service, payment_processor, invoice_service, card_service, sample_card, sample_account
    ):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        payment_processor.pay(USER_ID, invoice_id, Decimal("100"), date(2025, 1, 30), sample_account.id)

        _purchase(transaction_service, sample_card, "30.00", date(2025, 2, 1))

        invoice = invoice_service.get_invoice(USER_ID, invoice_id)
        assert invoice.total == Decimal("130.00")
        assert invoice.status == InvoiceStatus.CLOSED
        assert invoice.remaining == Decimal("30.00")
        assert _utilized(card_service, sample_card.id) == Decimal("30.00")

        outcome = payment_processor.pay(USER_ID, invoice_id, Decimal("30"), date(2025, 2, 20), sample_account.id)
        assert outcome.invoice.status == InvoiceStatus.PAID

    def test_drifted_total_is_recomputed(self, temp_db, transaction_service, payment_processor, sample_card, sample_account):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        temp_db.update_invoice(invoice_id, {"total": Decimal("999.00")})

        outcome = payment_processor.pay(USER_ID, invoice_id, Decimal("100"), date(2025, 2, 15), sample_account.id)

        assert outcome.invoice.total == Decimal("100.00")
        assert outcome.invoice.status == InvoiceStatus.PAID


class TestReversal:
    def test_delete_partial_payment(
        self, transaction_service, payment_processor, invoice_service, card_service, account_service,
        sample_card, sample_account,
    ):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        outcome = payment_processor.pay(USER_ID, invoice_id, Decimal("50"), date(2025, 2, 15), sample_account.id)

        transaction_service.delete_transaction(USER_ID, outcome.settlements[0].id)

        invoice = invoice_service.get_invoice(USER_ID, invoice_id)
        assert invoice.amount_paid == Decimal("0.00")
        assert invoice.status == InvoiceStatus.OPEN
        assert _balance(account_service, sample_account.id) == Decimal("1000.00")
        assert _utilized(card_service, sample_card.id) == Decimal("100.00")
        # A fresh unpaid companion stands in for the liability again
        companion = transaction_service.get_transaction(USER_ID, invoice.settlement_transaction_id)
        assert companion.paid is False
        assert companion.amount == Decimal("100.00")

    def test_delete_one_of_two_payments(
        self, transaction_service, payment_processor, invoice_service, card_service, account_service,
        sample_card, sample_account,
    ):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        payment_processor.pay(USER_ID, invoice_id, Decimal("50"), date(2025, 2, 15), sample_account.id)
        outcome = payment_processor.pay(USER_ID, invoice_id, Decimal("50"), date(2025, 2, 20), sample_account.id)
        first, second = outcome.settlements

        transaction_service.delete_transaction(USER_ID, second.id)

        invoice = invoice_service.get_invoice(USER_ID, invoice_id)
        assert invoice.status == InvoiceStatus.CLOSED
        assert invoice.amount_paid == Decimal("50.00")
        assert invoice.settlement_transaction_id == first.id
        assert _balance(account_service, sample_account.id) == Decimal("950.00")
        assert _utilized(card_service, sample_card.id) == Decimal("50.00")

    def test_toggle_settlement_unpaid_and_back(
        self, transaction_service, payment_processor, invoice_service, card_service, account_service,
        sample_card, sample_account,
    ):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        outcome = payment_processor.pay(USER_ID, invoice_id, Decimal("100"), date(2025, 2, 15), sample_account.id)
        settlement_id = outcome.settlements[0].id

        transaction_service.toggle_paid(USER_ID, settlement_id)

        invoice = invoice_service.get_invoice(USER_ID, invoice_id)
        assert invoice.status == InvoiceStatus.CLOSED
        assert invoice.amount_paid == Decimal("0.00")
        assert _balance(account_service, sample_account.id) == Decimal("1000.00")
        assert _utilized(card_service, sample_card.id) == Decimal("100.00")

        transaction_service.toggle_paid(USER_ID, settlement_id)

        invoice = invoice_service.get_invoice(USER_ID, invoice_id)
        assert invoice.status == InvoiceStatus.PAID
        assert _balance(account_service, sample_account.id) == Decimal("900.00")
        assert _utilized(card_service, sample_card.id) == Decimal("0.00")


    def test_toggle_partial_settlement_keeps_its_amount(
        self, transaction_service, payment_processor, invoice_service, card_service, account_service,
        sample_card, sample_account,
    ):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        outcome = payment_processor.pay(USER_ID, invoice_id, Decimal("30"), date(2025, 2, 15), sample_account.id)
        settlement_id = outcome.settlements[0].id

        transaction_service.toggle_paid(USER_ID, settlement_id)

        assert transaction_service.get_transaction(USER_ID, settlement_id).amount == Decimal("30.00")
        invoice = invoice_service.get_invoice(USER_ID, invoice_id)
        assert invoice.amount_paid == Decimal("0.00")
        assert _balance(account_service, sample_account.id) == Decimal("1000.00")
        assert _utilized(card_service, sample_card.id) == Decimal("100.00")

        transaction_service.toggle_paid(USER_ID, settlement_id)

        settlement = transaction_service.get_transaction(USER_ID, settlement_id)
        assert settlement.paid is True
        assert settlement.amount == Decimal("30.00")
        invoice = invoice_service.get_invoice(USER_ID, invoice_id)
        assert invoice.amount_paid == Decimal("30.00")
        assert invoice.remaining == Decimal("70.00")
        assert _balance(account_service, sample_account.id) == Decimal("970.00")
        assert _utilized(card_service, sample_card.id) == Decimal("70.00")

    def test_unpaid_settlement_survives_next_payment(
        self, transaction_service, payment_processor, invoice_service, sample_card, sample_account
    ):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        outcome = payment_processor.pay(USER_ID, invoice_id, Decimal("30"), date(2025, 2, 15), sample_account.id)
        first_id = outcome.settlements[0].id
        transaction_service.toggle_paid(USER_ID, first_id)

        outcome = payment_processor.pay(USER_ID, invoice_id, Decimal("50"), date(2025, 2, 18), sample_account.id)

        assert [(t.id, t.amount, t.paid) for t in outcome.settlements][0] == (first_id, Decimal("30.00"), False)
        assert outcome.invoice.amount_paid == Decimal("50.00")

    def test_delete_settlement_with_series_scope(
        self, transaction_service, payment_processor, invoice_service, card_service, account_service,
        sample_card, sample_account,
    ):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        payment_processor.pay(USER_ID, invoice_id, Decimal("40"), date(2025, 2, 15), sample_account.id)
        outcome = payment_processor.pay(USER_ID, invoice_id, Decimal("60"), date(2025, 2, 18), sample_account.id)
        first, second = outcome.settlements

        deleted = transaction_service.delete_transaction(USER_ID, second.id, scope=SeriesScope.ALL)

        assert deleted == [second.id]
        assert transaction_service.get_transaction(USER_ID, first.id).amount == Decimal("40.00")
        invoice = invoice_service.get_invoice(USER_ID, invoice_id)
        assert invoice.amount_paid == Decimal("40.00")
        assert invoice.status == InvoiceStatus.CLOSED
        assert _balance(account_service, sample_account.id) == Decimal("960.00")
        assert _utilized(card_service, sample_card.id) == Decimal("60.00")


class TestInvoiceTotalPolicy:
    """Under the invoice-total policy payments lower the stored utilized limit."""

    @pytest.fixture
    def policy_config(self):
        return LedgerConfig(limit_policy=LimitPolicy.INVOICE_TOTAL)

    def test_payment_and_reversal(self, temp_db, policy_config, card_service, sample_card, sample_account):
        transactions = TransactionService(temp_db, policy_config)
        processor = InvoicePaymentProcessor(temp_db, policy_config)
        invoice_id = _purchase(transactions, sample_card, "100.00", date(2025, 1, 15))
        assert _utilized(card_service, sample_card.id) == Decimal("100.00")

        outcome = processor.pay(USER_ID, invoice_id, Decimal("40"), date(2025, 2, 15), sample_account.id)
        assert _utilized(card_service, sample_card.id) == Decimal("60.00")

        transactions.delete_transaction(USER_ID, outcome.settlements[0].id)
        assert _utilized(card_service, sample_card.id) == Decimal("100.00")

    def test_policy_accepts_string(self):
        assert LedgerConfig(limit_policy="invoice-total").limit_policy == LimitPolicy.INVOICE_TOTAL


class TestInvoiceService:
    def test_create_invoice(self, invoice_service, transaction_service, sample_card, sample_account):
        invoice_id = invoice_service.create_invoice(USER_ID, sample_card.id, 3, 2025)

        invoice = invoice_service.get_invoice(USER_ID, invoice_id)
        assert invoice.status == InvoiceStatus.OPEN
        assert invoice.total == Decimal("0.00")
        assert invoice.closing_date == date(2025, 3, 10)
        assert invoice.due_date == date(2025, 3, 20)
        companion = transaction_service.get_transaction(USER_ID, invoice.settlement_transaction_id)
        assert companion.amount == Decimal("0.00")
        assert companion.account_id == sample_account.id

    def test_create_with_explicit_dates(self, invoice_service, sample_card):
        invoice_id = invoice_service.create_invoice(
            USER_ID, sample_card.id, 3, 2025, closing_date=date(2025, 3, 12), due_date=date(2025, 4, 2)
        )
        invoice = invoice_service.get_invoice(USER_ID, invoice_id)
        assert (invoice.closing_date, invoice.due_date) == (date(2025, 3, 12), date(2025, 4, 2))

    def test_duplicate_period(self, invoice_service, sample_card):
        invoice_service.create_invoice(USER_ID, sample_card.id, 3, 2025)
        with pytest.raises(ConflictError):
            invoice_service.create_invoice(USER_ID, sample_card.id, 3, 2025)

    @pytest.mark.parametrize("month,year", [(0, 2025), (13, 2025), (1, 1800)])
    def test_invalid_period(self, invoice_service, sample_card, month, year):
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(USER_ID, sample_card.id, month, year)

    def test_due_before_closing(self, invoice_service, sample_card):
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(
                USER_ID, sample_card.id, 3, 2025, closing_date=date(2025, 3, 10), due_date=date(2025, 3, 1)
            )

    def test_foreign_invoice(self, invoice_service, sample_card):
        invoice_id = invoice_service.create_invoice(USER_ID, sample_card.id, 3, 2025)
        with pytest.raises(ForbiddenError):
            invoice_service.get_invoice(OTHER_USER_ID, invoice_id)
        assert invoice_service.list_invoices(OTHER_USER_ID) == []

    def test_list_by_status(self, invoice_service, sample_card):
        march = invoice_service.create_invoice(USER_ID, sample_card.id, 3, 2025)
        april = invoice_service.create_invoice(USER_ID, sample_card.id, 4, 2025)
        invoice_service.update_invoice(USER_ID, march, status="closed")

        assert [i.id for i in invoice_service.list_invoices(USER_ID)] == [april, march]
        assert [i.id for i in invoice_service.list_invoices(USER_ID, status=InvoiceStatus.CLOSED)] == [march]
        with pytest.raises(ValidationError):
            invoice_service.list_invoices(USER_ID, status="settled")

    def test_manual_paid_status_rejected(self, invoice_service, sample_card):
        invoice_id = invoice_service.create_invoice(USER_ID, sample_card.id, 3, 2025)
        with pytest.raises(ValidationError):
            invoice_service.update_invoice(USER_ID, invoice_id, status=InvoiceStatus.PAID)

    def test_due_date_moves_companion(self, invoice_service, transaction_service, sample_card):
        invoice_id = invoice_service.create_invoice(USER_ID, sample_card.id, 3, 2025)

        invoice = invoice_service.update_invoice(USER_ID, invoice_id, due_date=date(2025, 3, 25))

        assert invoice.due_date == date(2025, 3, 25)
        companion = transaction_service.get_transaction(USER_ID, invoice.settlement_transaction_id)
        assert companion.accrual_date == date(2025, 3, 25)

    def test_settlement_account_moves_companion(
        self, invoice_service, account_service, transaction_service, sample_card
    ):
        savings_id = account_service.create_account(USER_ID, "Savings")
        invoice_id = invoice_service.create_invoice(USER_ID, sample_card.id, 3, 2025)

        invoice = invoice_service.update_invoice(USER_ID, invoice_id, settlement_account_id=savings_id)

        assert invoice.settlement_account_id == savings_id
        companion = transaction_service.get_transaction(USER_ID, invoice.settlement_transaction_id)
        assert companion.account_id == savings_id

    def test_list_invoice_transactions(self, transaction_service, invoice_service, sample_card):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        _purchase(transaction_service, sample_card, "20.00", date(2025, 1, 16))

        txns = invoice_service.list_invoice_transactions(USER_ID, invoice_id)
        origins = sorted(t.origin.value for t in txns)
        assert origins == ["card-purchase", "card-purchase", "invoice-settlement"]

    def test_delete_invoice(
        self, transaction_service, payment_processor, invoice_service, card_service, account_service,
        sample_card, sample_account,
    ):
        invoice_id = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        payment_processor.pay(USER_ID, invoice_id, Decimal("50"), date(2025, 2, 15), sample_account.id)

        invoice_service.delete_invoice(USER_ID, invoice_id)

        with pytest.raises(NotFoundError):
            invoice_service.get_invoice(USER_ID, invoice_id)
        assert transaction_service.list_transactions(USER_ID) == []
        assert _balance(account_service, sample_account.id) == Decimal("1000.00")
        assert _utilized(card_service, sample_card.id) == Decimal("0.00")

    def test_refresh_overdue(self, transaction_service, invoice_service, sample_card):
        owing = _purchase(transaction_service, sample_card, "100.00", date(2025, 1, 15))
        empty = invoice_service.create_invoice(USER_ID, sample_card.id, 1, 2025)

        assert invoice_service.refresh_overdue(USER_ID, date(2025, 2, 20)) == []
        assert invoice_service.refresh_overdue(USER_ID, date(2025, 2, 21)) == [owing]

        assert invoice_service.get_invoice(USER_ID, owing).status == InvoiceStatus.OVERDUE
        assert invoice_service.get_invoice(USER_ID, empty).status == InvoiceStatus.OPEN
