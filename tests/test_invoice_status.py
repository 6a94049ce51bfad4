"""Tests for invoice status transitions."""

import pytest
from datetime import date
from decimal import Decimal

from finledger.domain.entities import InvoiceStatus
from finledger.domain.errors import ValidationError
from finledger.domain.invoice_status import (
    after_settlement_change,
    can_transition,
    manual_transition,
    overdue_on,
    transition,
)

OPEN = InvoiceStatus.OPEN
CLOSED = InvoiceStatus.CLOSED
PAID = InvoiceStatus.PAID
OVERDUE = InvoiceStatus.OVERDUE


class TestTransition:
    def test_staying_put_is_allowed(self):
        for status in InvoiceStatus:
            assert can_transition(status, status)

    def test_paid_can_only_reopen_as_closed(self):
        assert can_transition(PAID, CLOSED)
        assert not can_transition(PAID, OPEN)
        assert not can_transition(PAID, OVERDUE)

    def test_overdue_cannot_reopen(self):
        assert not can_transition(OVERDUE, OPEN)

    def test_illegal_transition_raises(self):
        with pytest.raises(ValidationError, match="cannot change from 'paid' to 'open'"):
            transition(PAID, OPEN)


class TestManualTransition:
    def test_close_open_invoice(self):
        assert manual_transition(OPEN, CLOSED) == CLOSED

    def test_cannot_mark_paid_by_hand(self):
        with pytest.raises(ValidationError, match="paying them"):
            manual_transition(CLOSED, PAID)

    def test_cannot_leave_paid_by_hand(self):
        with pytest.raises(ValidationError):
            manual_transition(PAID, CLOSED)


class TestAfterSettlementChange:
    def test_fully_paid(self):
        assert after_settlement_change(OPEN, Decimal("100"), Decimal("100")) == PAID

    def test_partially_paid_keeps_status(self):
        assert after_settlement_change(CLOSED, Decimal("100"), Decimal("40")) == CLOSED
        assert after_settlement_change(OVERDUE, Decimal("100"), Decimal("40")) == OVERDUE

    def test_reversal_drops_paid_to_closed(self):
        assert after_settlement_change(PAID, Decimal("100"), Decimal("50")) == CLOSED

    def test_empty_invoice_is_never_paid(self):
        assert after_settlement_change(OPEN, Decimal("0"), Decimal("0")) == OPEN


class TestOverdueOn:
    def test_past_due(self):
        assert overdue_on(CLOSED, date(2025, 1, 20), today=date(2025, 1, 21)) == OVERDUE

    def test_due_today_is_not_overdue(self):
        assert overdue_on(OPEN, date(2025, 1, 20), today=date(2025, 1, 20)) == OPEN

    def test_paid_never_overdue(self):
        assert overdue_on(PAID, date(2025, 1, 20), today=date(2025, 3, 1)) == PAID
