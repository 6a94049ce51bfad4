"""Credit card domain service."""

import logging
import re
from decimal import Decimal
from typing import Optional

from finledger.config import LedgerConfig
from finledger.database.base import Database
from finledger.domain.entities import CreditCard as CreditCardEntity
from finledger.domain.errors import ConflictError, ValidationError
from finledger.domain.ownership import require_account, require_card
from finledger.domain.periods import validate_day_of_month
from finledger.domain.reconciliation import LedgerReconciler, Touched
from finledger.domain.validation import non_negative_amount, required_text

logger = logging.getLogger(__name__)

_LAST_DIGITS = re.compile(r"^\d{4}$")
_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _validate_card_details(last_digits: Optional[str], color: Optional[str]) -> None:
    if last_digits is not None and not _LAST_DIGITS.match(last_digits):
        raise ValidationError(f"Last digits must be exactly 4 digits, got '{last_digits}'")
    if color is not None and not _COLOR.match(color):
        raise ValidationError(f"Color must look like #RRGGBB, got '{color}'")


class CreditCardService:
    """Service for managing credit cards."""

    def __init__(self, db: Database, config: Optional[LedgerConfig] = None):
        """Initialize credit card service.

        Args:
            db: Database instance
            config: Ledger configuration; defaults are used when omitted
        """
        self.db = db
        self.config = config or LedgerConfig()
        self.reconciler = LedgerReconciler(db, self.config.limit_policy)

    def create_card(
        self,
        user_id: int,
        name: str,
        credit_limit: Decimal,
        closing_day: int,
        due_day: int,
        default_account_id: Optional[int] = None,
        brand: Optional[str] = None,
        last_digits: Optional[str] = None,
        color: Optional[str] = None,
    ) -> int:
        """Register a credit card.

        Invoices are not created up front; each one is opened the first time
        a purchase falls into its period.

        Args:
            user_id: Owner
            name: Card name, unique per user
            credit_limit: Credit limit, zero or more
            closing_day: Day of month the statement closes (1-31)
            due_day: Day of month the statement is due (1-31)
            default_account_id: Account invoices are settled from by default
            brand: Optional brand, e.g. "visa"
            last_digits: Optional last four digits of the card number
            color: Optional display color as #RRGGBB

        Returns:
            Card ID

        Raises:
            ValidationError: If any field is invalid
            ConflictError: If the user already has a card with this name
        """
        name = required_text(name, "Card name")
        credit_limit = non_negative_amount(credit_limit, "Credit limit")
        validate_day_of_month(closing_day, "Closing day")
        validate_day_of_month(due_day, "Due day")
        _validate_card_details(last_digits, color)
        if default_account_id is not None:
            require_account(self.db, user_id, default_account_id)
        self._check_unique_name(user_id, name)

        card_id = self.db.create_card(
            user_id=user_id,
            name=name,
            credit_limit=credit_limit,
            closing_day=closing_day,
            due_day=due_day,
            default_account_id=default_account_id,
            brand=brand,
            last_digits=last_digits,
            color=color,
        )
        logger.info("Created card %s '%s' for user %s", card_id, name, user_id)
        return card_id

    def get_card(self, user_id: int, card_id: int) -> CreditCardEntity:
        """Get a card owned by ``user_id``.

        Raises:
            NotFoundError: If the card does not exist
            ForbiddenError: If it belongs to another user
        """
        return require_card(self.db, user_id, card_id)

    def list_cards(self, user_id: int) -> list[CreditCardEntity]:
        return self.db.list_cards(user_id)

    def available_limit(self, user_id: int, card_id: int) -> Decimal:
        """Credit still available on a card."""
        return require_card(self.db, user_id, card_id).available_limit

    def update_card(
        self,
        user_id: int,
        card_id: int,
        name: Optional[str] = None,
        credit_limit: Optional[Decimal] = None,
        closing_day: Optional[int] = None,
        due_day: Optional[int] = None,
        default_account_id: Optional[int] = None,
        clear_default_account: bool = False,
        brand: Optional[str] = None,
        last_digits: Optional[str] = None,
        color: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> CreditCardEntity:
        """Update card fields.

        New closing and due days apply to invoices opened from now on;
        existing invoices keep their dates and purchases.

        Returns:
            The updated card
        """
        require_card(self.db, user_id, card_id)
        if default_account_id is not None and clear_default_account:
            raise ValidationError("Cannot set and clear the default account at the same time")

        changes = {}
        if name is not None:
            name = required_text(name, "Card name")
            self._check_unique_name(user_id, name, exclude_id=card_id)
            changes["name"] = name
        if credit_limit is not None:
            changes["credit_limit"] = non_negative_amount(credit_limit, "Credit limit")
        if closing_day is not None:
            validate_day_of_month(closing_day, "Closing day")
            changes["closing_day"] = closing_day
        if due_day is not None:
            validate_day_of_month(due_day, "Due day")
            changes["due_day"] = due_day
        if default_account_id is not None:
            require_account(self.db, user_id, default_account_id)
            changes["default_account_id"] = default_account_id
        elif clear_default_account:
            changes["default_account_id"] = None
        _validate_card_details(last_digits, color)
        if brand is not None:
            changes["brand"] = brand
        if last_digits is not None:
            changes["last_digits"] = last_digits
        if color is not None:
            changes["color"] = color
        if active is not None:
            changes["active"] = active

        if changes:
            with self.db.atomic():
                self.db.update_card(card_id, changes)
            logger.info("Updated card %s: %s", card_id, sorted(changes))
        return self.db.get_card(card_id)

    def delete_card(self, user_id: int, card_id: int) -> None:
        """Delete a card with all its invoices and their transactions.

        Accounts that paid its invoices have their balances recomputed.
        """
        require_card(self.db, user_id, card_id)
        with self.db.atomic():
            touched = Touched()
            for invoice in self.db.list_invoices([card_id]):
                for txn in self.db.list_transactions(invoice_id=invoice.id):
                    if txn.account_id is not None:
                        touched.accounts.add(txn.account_id)
                    self.db.delete_transaction(txn.id)
                self.db.delete_invoice(invoice.id)
            self.db.delete_card(card_id)
            self.reconciler.reconcile(touched)
        logger.info("Deleted card %s", card_id)

    def _check_unique_name(self, user_id: int, name: str, exclude_id: Optional[int] = None) -> None:
        for card in self.db.list_cards(user_id):
            if card.id != exclude_id and card.name == name:
                raise ConflictError(f"Credit card with name '{name}' already exists")
