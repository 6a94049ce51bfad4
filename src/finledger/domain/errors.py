"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ForbiddenError(DomainError):
    """Requested domain entity belongs to another user."""


class ImmutableEntityError(DomainError):
    """Entity may only be changed through a dedicated workflow."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or concurrent edits."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category."""
    return f"Category {category_id} not found"


def card_not_found(card_id: int) -> str:
    """Return message for missing credit card."""
    return f"Credit card {card_id} not found"


def invoice_not_found(invoice_id: int) -> str:
    """Return message for missing invoice."""
    return f"Invoice {invoice_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def series_not_found(series_id: int) -> str:
    return f"Series {series_id} not found"


def not_owned(entity: str, entity_id: int) -> str:
    """Return message for an entity that belongs to another user."""
    return f"{entity} {entity_id} belongs to another user"


def settlement_not_editable(transaction_id: int) -> str:
    return (
        f"Transaction {transaction_id} settles an invoice and cannot be edited directly; "
        "use the invoice payment workflow instead"
    )


def duplicate_invoice(card_id: int, month: int, year: int) -> str:
    return f"Card {card_id} already has an invoice for {month:02d}/{year}"


def payment_exceeds_remaining(amount, remaining) -> str:
    return f"Payment of {amount} exceeds remaining invoice balance of {remaining}"
