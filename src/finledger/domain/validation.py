"""Input checks shared by the domain services."""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, TypeVar

from finledger.domain.errors import ValidationError

CENTS = Decimal("0.01")

E = TypeVar("E", bound=Enum)


def positive_amount(amount, field: str = "Amount") -> Decimal:
    """Return ``amount`` as a Decimal rounded to cents.

    Raises:
        ValidationError: If the amount is not a finite number greater than zero
    """
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{field} must be a number, got '{amount}'") from e
    if not value.is_finite() or value.quantize(CENTS) <= 0:
        raise ValidationError(f"{field} must be greater than zero, got {amount}")
    return value.quantize(CENTS)


def non_negative_amount(amount, field: str) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{field} must be a number, got '{amount}'") from e
    if not value.is_finite() or value < 0:
        raise ValidationError(f"{field} cannot be negative, got {amount}")
    return value.quantize(CENTS)


def signed_amount(amount, field: str) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{field} must be a number, got '{amount}'") from e
    if not value.is_finite():
        raise ValidationError(f"{field} must be a finite number, got {amount}")
    return value.quantize(CENTS)


def required_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} cannot be empty")
    return value.strip()


def enum_value(enum_cls: type[E], value, field: str) -> E:
    """Coerce ``value`` into a member of ``enum_cls``."""
    try:
        return enum_cls(value)
    except ValueError as e:
        choices = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field} '{value}'. Expected one of: {choices}") from e
