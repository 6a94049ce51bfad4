"""Resolve names given on the command line to entity IDs."""

from typing import Callable, Sequence, TypeVar

from finledger.domain.account import AccountService
from finledger.domain.card import CreditCardService
from finledger.domain.category import CategoryService
from finledger.domain.errors import NotFoundError

T = TypeVar("T")


def _resolve(value: str | int, get_by_id: Callable[[int], T], candidates: Callable[[], Sequence[T]], label: str) -> int:
    """Resolve ``value`` as an ID if it is numeric, otherwise as a name."""
    if isinstance(value, int):
        return get_by_id(value).id

    try:
        entity_id = int(value)
    except (ValueError, TypeError):
        entity_id = None
    if entity_id is not None:
        return get_by_id(entity_id).id

    for entity in candidates():
        if entity.name == value:
            return entity.id
    raise NotFoundError(f"{label} '{value}' not found")


def resolve_account(account_service: AccountService, user_id: int, account: str | int) -> int:
    """Resolve account name or ID to account ID.

    Args:
        account_service: AccountService instance
        user_id: Acting user
        account: Account name, or ID (int or string representation of int)

    Returns:
        Account ID

    Raises:
        NotFoundError: If no such account exists
        ForbiddenError: If the ID belongs to another user's account
    """
    return _resolve(
        account,
        lambda account_id: account_service.get_account(user_id, account_id),
        lambda: account_service.list_accounts(user_id),
        "Account",
    )


def resolve_card(card_service: CreditCardService, user_id: int, card: str | int) -> int:
    """Resolve credit card name or ID to card ID."""
    return _resolve(
        card,
        lambda card_id: card_service.get_card(user_id, card_id),
        lambda: card_service.list_cards(user_id),
        "Credit card",
    )


def resolve_category(category_service: CategoryService, user_id: int, category: str | int) -> int:
    """Resolve category name or ID to category ID.

    Income and expense categories may share a name; the first match by name wins.
    """
    return _resolve(
        category,
        lambda category_id: category_service.get_category(user_id, category_id),
        lambda: category_service.list_categories(user_id),
        "Category",
    )
