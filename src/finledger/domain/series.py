"""Series expansion and series definitions.

One user intent becomes one or more concrete transactions:

- a single transaction;
- an installment set: N transactions of the full amount, one per month,
  described "<description> i/N", grouped by a shared installment group key
  and an ordinal (no series record);
- a recurring set: N monthly occurrences recorded under a Series
  definition, each carrying the series id and a 1-based ordinal.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from finledger.config import DEFAULT_RECURRING_OCCURRENCES, MAX_OCCURRENCES
from finledger.database.base import Database
from finledger.domain.entities import Series, TransactionKind, TransactionOrigin
from finledger.domain.errors import ValidationError
from finledger.domain.ownership import require_series
from finledger.utils.date_parser import add_months

logger = logging.getLogger(__name__)


class SeriesMode(str, Enum):
    SINGLE = "single"
    INSTALLMENT = "installment"
    RECURRING = "recurring"


@dataclass(frozen=True)
class TransactionSpec:
    """Everything needed to persist one transaction, before invoice resolution."""

    user_id: int
    description: str
    amount: Decimal
    kind: TransactionKind
    accrual_date: date
    settlement_date: Optional[date] = None
    paid: bool = False
    origin: TransactionOrigin = TransactionOrigin.MANUAL
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    invoice_id: Optional[int] = None
    series_id: Optional[int] = None
    installment_group: Optional[str] = None
    ordinal: Optional[int] = None
    total_installments: Optional[int] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class TransactionIntent:
    """A transaction as submitted, plus how many times it repeats."""

    spec: TransactionSpec
    mode: SeriesMode = SeriesMode.SINGLE
    count: Optional[int] = None


def annotate_description(
    base: str,
    mode: SeriesMode,
    ordinal: Optional[int],
    total: Optional[int],
    accrual_date: date,
) -> str:
    """Description of one member of a series."""
    if mode == SeriesMode.INSTALLMENT:
        return f"{base} {ordinal}/{total}"
    if mode == SeriesMode.RECURRING and ordinal is not None and ordinal > 1:
        return f"{base} ({accrual_date.month:02d}/{accrual_date.year})"
    return base


def mode_of(series_id: Optional[int], installment_group: Optional[str]) -> SeriesMode:
    if series_id is not None:
        return SeriesMode.RECURRING
    if installment_group is not None:
        return SeriesMode.INSTALLMENT
    return SeriesMode.SINGLE


def occurrence_count(intent: TransactionIntent, default_occurrences: int = DEFAULT_RECURRING_OCCURRENCES) -> int:
    """Number of transactions an intent expands to.

    Raises:
        ValidationError: If the requested count is out of range
    """
    if intent.mode == SeriesMode.SINGLE:
        return 1
    count = intent.count
    if count is None:
        if intent.mode == SeriesMode.INSTALLMENT:
            raise ValidationError("Installment transactions need a number of installments")
        count = default_occurrences
    if not 1 <= count <= MAX_OCCURRENCES:
        raise ValidationError(f"Number of occurrences must be between 1 and {MAX_OCCURRENCES}, got {count}")
    return count


def expand(
    intent: TransactionIntent,
    default_occurrences: int = DEFAULT_RECURRING_OCCURRENCES,
    series_id: Optional[int] = None,
    installment_group: Optional[str] = None,
) -> list[TransactionSpec]:
    """Expand an intent into concrete transaction specs.

    Occurrence i (0-based) is dated i calendar months after the first one,
    always measured from the original dates so month-end days do not drift.
    Only the first occurrence keeps the requested paid flag.
    """
    base = intent.spec
    if intent.mode == SeriesMode.SINGLE:
        return [base]

    count = occurrence_count(intent, default_occurrences)
    specs = []
    for i in range(count):
        ordinal = i + 1
        accrual = add_months(base.accrual_date, i)
        settlement = add_months(base.settlement_date, i) if base.settlement_date else None
        total = count if intent.mode == SeriesMode.INSTALLMENT else None
        specs.append(
            replace(
                base,
                description=annotate_description(base.description, intent.mode, ordinal, total, accrual),
                accrual_date=accrual,
                settlement_date=settlement,
                paid=base.paid if i == 0 else False,
                series_id=series_id if intent.mode == SeriesMode.RECURRING else None,
                installment_group=installment_group if intent.mode == SeriesMode.INSTALLMENT else None,
                ordinal=ordinal,
                total_installments=total,
            )
        )
    return specs


class SeriesExpander:
    """Expands intents, creating the series record for recurring ones."""

    def __init__(self, db: Database, default_occurrences: int = DEFAULT_RECURRING_OCCURRENCES):
        self.db = db
        self.default_occurrences = default_occurrences

    def expand(self, intent: TransactionIntent) -> list[TransactionSpec]:
        if intent.mode == SeriesMode.SINGLE:
            return expand(intent)

        count = occurrence_count(intent, self.default_occurrences)
        if intent.mode == SeriesMode.INSTALLMENT:
            return expand(intent, self.default_occurrences, installment_group=str(uuid.uuid4()))

        spec = intent.spec
        series_id = self.db.create_series(
            user_id=spec.user_id,
            description=spec.description,
            kind=spec.kind,
            start_date=spec.accrual_date,
            end_date=add_months(spec.accrual_date, count - 1),
            occurrences=count,
        )
        logger.info("Created series %s with %d occurrences", series_id, count)
        return expand(replace(intent, count=count), self.default_occurrences, series_id=series_id)


class SeriesService:
    """Service for recurring series definitions."""

    def __init__(self, db: Database):
        """Initialize series service.

        Args:
            db: Database instance
        """
        self.db = db

    def get_series(self, user_id: int, series_id: int) -> Series:
        return require_series(self.db, user_id, series_id)

    def list_series(self, user_id: int) -> list[Series]:
        return self.db.list_series(user_id)

    def deactivate_series(self, user_id: int, series_id: int) -> None:
        """Mark a series inactive. Its transactions are unchanged."""
        require_series(self.db, user_id, series_id)
        self.db.update_series(series_id, {"active": False})

    def delete_series(self, user_id: int, series_id: int) -> None:
        """Delete a series definition.

        Member transactions are kept; they lose their series link and become
        standalone transactions.
        """
        require_series(self.db, user_id, series_id)
        with self.db.atomic():
            self.db.delete_series(series_id)
        logger.info("Deleted series %s", series_id)
