"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

CENTS = Decimal("0.01")


def parse_amount(amount_str: str) -> Decimal:
    """Parse a positive money amount into a Decimal rounded to cents.

    Handles:
    - "123.45"
    - "R$ 123.45", "$123.45"
    - "1,234.56"
    - "1.234,56" (comma as decimal separator)

    The direction of money is carried by the transaction kind, so signs are
    rejected.

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed or is not positive
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    cleaned = re.sub(r"R\$|[$€£¥\s]", "", amount_str.strip())

    # Whichever separator comes last is the decimal separator
    if "," in cleaned and cleaned.rfind(",") > cleaned.rfind("."):
        cleaned = cleaned.replace(".", "").replace(",", ".")
    else:
        cleaned = cleaned.replace(",", "")

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")

    if not amount.is_finite():
        raise ValueError(f"Amount must be a finite number, got '{amount_str}'")
    amount = amount.quantize(CENTS)
    if amount <= 0:
        raise ValueError(f"Amount must be positive, got '{amount_str}'")
    return amount
