"""Invoice period arithmetic.

Pure functions: which statement month a purchase falls into, and when that
statement closes and falls due.
"""

from datetime import date

from finledger.domain.errors import ValidationError
from finledger.utils.date_parser import day_in_month, next_period


def validate_day_of_month(day: int, field: str) -> None:
    """Raise ValidationError unless ``day`` is a valid day-of-month setting."""
    if not isinstance(day, int) or isinstance(day, bool) or not 1 <= day <= 31:
        raise ValidationError(f"{field} must be between 1 and 31, got {day!r}")


def invoice_period(accrual_date: date, closing_day: int) -> tuple[int, int]:
    """Return the (month, year) of the invoice a purchase belongs to.

    A purchase on the closing day still belongs to the accrual month; from
    the day after it belongs to the following month.
    """
    if accrual_date.day > closing_day:
        return next_period(accrual_date.month, accrual_date.year)
    return accrual_date.month, accrual_date.year


def invoice_dates(month: int, year: int, closing_day: int, due_day: int) -> tuple[date, date]:
    """Return (closing_date, due_date) for the invoice of a period.

    The invoice closes in its reference month. It falls due in the same month
    when the due day comes after the closing day, otherwise in the next one.
    Days beyond the end of a month are clamped to its last day.
    """
    closing_date = day_in_month(year, month, closing_day)
    if due_day > closing_day:
        due_month, due_year = month, year
    else:
        due_month, due_year = next_period(month, year)
    due_date = day_in_month(due_year, due_month, due_day)
    return closing_date, due_date
