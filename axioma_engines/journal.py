"""
axioma_engines.journal -- Double-entry balance validation for manual entries.

Responsibility:
    Total the debit and credit sides of a manual journal entry and decide
    whether the entry may be posted.  Also provides the posting gate that
    callers invoke right before submitting an entry.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports only axioma_kernel.

Invariants enforced:
    - Debits and credits are totalled independently, then compared after
      rounding to the currency's precision (fixed-point equality, never a
      float tolerance).
    - An entry is balanced only when it has at least two lines, debits equal
      credits, and the debit total is greater than zero.

Failure modes:
    - An unbalanced entry is a normal result (``is_balanced=False``), not an
      exception.  Only ``require_postable`` raises UnbalancedEntryError.
    - InvalidInputError for a negative or non-numeric line amount.
    - CurrencyMismatchError when lines mix currencies.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from axioma_engines.tracer import traced_engine
from axioma_kernel.domain.validation import resolve_currency
from axioma_kernel.domain.values import Currency, Money
from axioma_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidInputError,
    UnbalancedEntryError,
)
from axioma_kernel.logging_config import get_logger

logger = get_logger("engines.journal")

MIN_JOURNAL_LINES = 2


class JournalSide(str, Enum):
    """Which side of the entry a line is on."""

    DEBIT = "debit"
    CREDIT = "credit"


@dataclass(frozen=True)
class JournalLine:
    """
    One posting line of a manual journal entry.

    Zero amounts are allowed while an entry is being edited; they simply
    contribute nothing to either total.
    """

    account_reference: str
    side: JournalSide
    amount: Money
    memo: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Money):
            raise InvalidInputError("amount", self.amount, "must be Money")
        if self.amount.is_negative:
            raise InvalidInputError("amount", self.amount.amount, "must not be negative")
        try:
            object.__setattr__(self, "side", JournalSide(self.side))
        except ValueError as e:
            raise InvalidInputError("side", self.side, "must be debit or credit") from e


@dataclass(frozen=True)
class JournalBalance:
    """Totals of a journal entry and whether it may be posted."""

    is_balanced: bool
    total_debits: Money
    total_credits: Money
    line_count: int

    @property
    def difference(self) -> Money:
        """Debits minus credits (positive = debit-heavy)."""
        return self.total_debits - self.total_credits


class JournalBalanceValidator:
    """
    Decide whether a manual journal entry is balanced.

    Contract:
        Pure predicate plus the two totals for display.  Performs no
        persistence; callers must refuse to post when ``is_balanced`` is
        False.
    """

    def __init__(self, currency: str | Currency = "USD"):
        self.currency = resolve_currency(currency)

    @traced_engine("journal", "1.0", fingerprint_fields=("lines",))
    def validate(self, lines: Sequence[JournalLine]) -> JournalBalance:
        """
        Total both sides and evaluate the balance predicate.

        Raises:
            CurrencyMismatchError: A line is in another currency.
        """
        debits = Money.zero(self.currency)
        credits = Money.zero(self.currency)

        for position, line in enumerate(lines):
            if line.amount.currency != self.currency:
                logger.error("journal_line_currency_mismatch", extra={
                    "line_index": position,
                    "expected_currency": self.currency.code,
                    "line_currency": line.amount.currency.code,
                })
                raise CurrencyMismatchError(
                    self.currency.code,
                    line.amount.currency.code,
                    f"lines[{position}].amount",
                )
            if line.side == JournalSide.DEBIT:
                debits = debits + line.amount
            else:
                credits = credits + line.amount

        total_debits = debits.round()
        total_credits = credits.round()
        is_balanced = (
            len(lines) >= MIN_JOURNAL_LINES
            and total_debits == total_credits
            and total_debits.is_positive
        )

        logger.info("journal_balance_evaluated", extra={
            "line_count": len(lines),
            "total_debits": total_debits,
            "total_credits": total_credits,
            "is_balanced": is_balanced,
        })

        return JournalBalance(
            is_balanced=is_balanced,
            total_debits=total_debits,
            total_credits=total_credits,
            line_count=len(lines),
        )

    def require_postable(self, lines: Sequence[JournalLine]) -> JournalBalance:
        """
        Posting gate: return the balance or raise if the entry cannot post.

        Raises:
            UnbalancedEntryError: Entry is unbalanced, all-zero, or has
                fewer than two lines.
        """
        balance = self.validate(lines)
        if not balance.is_balanced:
            logger.warning("journal_entry_rejected", extra={
                "line_count": balance.line_count,
                "total_debits": balance.total_debits,
                "total_credits": balance.total_credits,
            })
            raise UnbalancedEntryError(
                debits=str(balance.total_debits.amount),
                credits=str(balance.total_credits.amount),
                currency=self.currency.code,
            )
        return balance
