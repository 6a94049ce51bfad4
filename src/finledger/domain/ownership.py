"""Owner-scoped lookups.

Every lookup made on behalf of a user goes through these helpers: a missing
row is NotFoundError, a row owned by someone else is ForbiddenError.
"""

from finledger.database.base import Database
from finledger.domain.entities import (
    Account,
    Category,
    CreditCard,
    Invoice,
    Series,
    Transaction,
)
from finledger.domain.errors import (
    ForbiddenError,
    NotFoundError,
    account_not_found,
    card_not_found,
    category_not_found,
    invoice_not_found,
    not_owned,
    series_not_found,
    transaction_not_found,
)


def _check_owner(owner_id: int, user_id: int, label: str, entity_id: int) -> None:
    if owner_id != user_id:
        raise ForbiddenError(not_owned(label, entity_id))


def require_account(db: Database, user_id: int, account_id: int) -> Account:
    account = db.get_account(account_id)
    if account is None:
        raise NotFoundError(account_not_found(account_id))
    _check_owner(account.user_id, user_id, "Account", account_id)
    return account


def require_category(db: Database, user_id: int, category_id: int) -> Category:
    category = db.get_category(category_id)
    if category is None:
        raise NotFoundError(category_not_found(category_id))
    _check_owner(category.user_id, user_id, "Category", category_id)
    return category


def require_card(db: Database, user_id: int, card_id: int) -> CreditCard:
    card = db.get_card(card_id)
    if card is None:
        raise NotFoundError(card_not_found(card_id))
    _check_owner(card.user_id, user_id, "Credit card", card_id)
    return card


def require_invoice(db: Database, user_id: int, invoice_id: int) -> tuple[Invoice, CreditCard]:
    """Invoices are owned through their card; returns both."""
    invoice = db.get_invoice(invoice_id)
    if invoice is None:
        raise NotFoundError(invoice_not_found(invoice_id))
    card = db.get_card(invoice.card_id)
    if card is None:
        raise NotFoundError(invoice_not_found(invoice_id))
    _check_owner(card.user_id, user_id, "Invoice", invoice_id)
    return invoice, card


def require_transaction(db: Database, user_id: int, transaction_id: int) -> Transaction:
    txn = db.get_transaction(transaction_id)
    if txn is None:
        raise NotFoundError(transaction_not_found(transaction_id))
    _check_owner(txn.user_id, user_id, "Transaction", transaction_id)
    return txn


def require_series(db: Database, user_id: int, series_id: int) -> Series:
    series = db.get_series(series_id)
    if series is None:
        raise NotFoundError(series_not_found(series_id))
    _check_owner(series.user_id, user_id, "Series", series_id)
    return series
