"""Invoice status transitions.

Status is only ever changed through the functions in this module, so every
legal move between states is listed in one place.
"""

from datetime import date
from decimal import Decimal

from finledger.domain.entities import InvoiceStatus
from finledger.domain.errors import ValidationError

_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.OPEN: frozenset({InvoiceStatus.CLOSED, InvoiceStatus.OVERDUE, InvoiceStatus.PAID}),
    InvoiceStatus.CLOSED: frozenset({InvoiceStatus.OPEN, InvoiceStatus.OVERDUE, InvoiceStatus.PAID}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.CLOSED, InvoiceStatus.PAID}),
    InvoiceStatus.PAID: frozenset({InvoiceStatus.CLOSED}),
}


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    return current == target or target in _TRANSITIONS[current]


def transition(current: InvoiceStatus, target: InvoiceStatus) -> InvoiceStatus:
    """Move from ``current`` to ``target`` or raise ValidationError."""
    if not can_transition(current, target):
        raise ValidationError(
            f"Invoice status cannot change from '{current.value}' to '{target.value}'"
        )
    return target


def manual_transition(current: InvoiceStatus, target: InvoiceStatus) -> InvoiceStatus:
    """Status change requested by a user.

    Users may open, close or flag invoices as overdue. The paid state is
    reached only by settling the invoice, and left only by reversing a
    settlement.
    """
    if target == InvoiceStatus.PAID and current != InvoiceStatus.PAID:
        raise ValidationError("Invoices are marked paid by paying them, not by editing status")
    if current == InvoiceStatus.PAID and target != InvoiceStatus.PAID:
        raise ValidationError("A paid invoice changes status only when a settlement is reversed")
    return transition(current, target)


def after_settlement_change(
    current: InvoiceStatus, total: Decimal, amount_paid: Decimal
) -> InvoiceStatus:
    """Status once the paid settlements of an invoice add up to ``amount_paid``."""
    if total > 0 and amount_paid >= total:
        return transition(current, InvoiceStatus.PAID)
    if current == InvoiceStatus.PAID:
        return transition(current, InvoiceStatus.CLOSED)
    return current


def overdue_on(current: InvoiceStatus, due_date: date, today: date) -> InvoiceStatus:
    """Status of an unpaid invoice checked on ``today``."""
    if current in (InvoiceStatus.OPEN, InvoiceStatus.CLOSED) and due_date < today:
        return transition(current, InvoiceStatus.OVERDUE)
    return current
