"""Configuration management for finledger."""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from finledger.domain.errors import ValidationError


class LimitPolicy(str, Enum):
    """How a card's utilized limit is folded from its invoices.

    ``invoice-total`` is the literal rule: the sum of every invoice total
    ever billed. Payments then only lower the stored value until the next
    recompute, so a card whose invoices are all paid never frees its limit.
    ``outstanding`` counts what is still owed on each invoice, so paying an
    invoice frees limit and a full recompute agrees with it.

    The default is ``outstanding``. This is a product decision that departs
    from the literal rule; set ``FINLEDGER_LIMIT_POLICY=invoice-total`` to
    get the literal fold.
    """

    OUTSTANDING = "outstanding"
    INVOICE_TOTAL = "invoice-total"


DEFAULT_RECURRING_OCCURRENCES = 12
MAX_OCCURRENCES = 360


@dataclass
class LedgerConfig:
    """Main configuration for finledger."""

    database_path: Optional[str] = None
    database_url: Optional[str] = None
    log_level: str = "WARNING"
    recurring_occurrences: int = DEFAULT_RECURRING_OCCURRENCES
    limit_policy: LimitPolicy = LimitPolicy.OUTSTANDING
    user_id: Optional[int] = None

    def __post_init__(self) -> None:
        if not 1 <= self.recurring_occurrences <= MAX_OCCURRENCES:
            raise ValidationError(
                f"Recurring occurrences must be between 1 and {MAX_OCCURRENCES}, "
                f"got {self.recurring_occurrences}"
            )
        self.limit_policy = LimitPolicy(self.limit_policy)

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Create config from environment variables."""
        user_id = os.getenv("FINLEDGER_USER_ID")
        return cls(
            database_path=os.getenv("FINLEDGER_DB_PATH"),
            database_url=os.getenv("FINLEDGER_DATABASE_URL"),
            log_level=os.getenv("FINLEDGER_LOG_LEVEL", "WARNING"),
            recurring_occurrences=int(
                os.getenv("FINLEDGER_RECURRING_OCCURRENCES", str(DEFAULT_RECURRING_OCCURRENCES))
            ),
            limit_policy=LimitPolicy(os.getenv("FINLEDGER_LIMIT_POLICY", LimitPolicy.OUTSTANDING.value)),
            user_id=int(user_id) if user_id else None,
        )
