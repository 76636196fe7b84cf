"""
axioma_engines.running_balance -- Running balances for statements and ledgers.

Responsibility:
    Annotate an already-ordered sequence of signed movements with the
    cumulative balance after each one.  The same accumulator serves client
    statements, the general ledger of a single account, and bank account
    transaction views; only the caller's sign convention differs.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports only axioma_kernel.

Invariants enforced:
    - running[i] = running[i-1] + signed_amount[i], running[-1] = opening.
    - closing_balance = running[last] = opening + sum(signed_amount), exactly.
      No rounding is applied; movements already carry money amounts.
    - The accumulator never sorts.  Chronological order with ties broken by
      a caller-defined key (insertion sequence) is the caller's job.
    - Movements are never mutated; rows reference the original objects.

Failure modes:
    - CurrencyMismatchError when a movement or the opening balance is in a
      different currency from the accumulator.
    - InvalidInputError for a non-numeric opening balance.

Sign conventions:
    - Client statement: invoice charges positive, payments negative.
    - General ledger: use ``signed_amount(debit, credit, normal_balance)``
      with the account's normal balance side.
    - Bank account: the bank's own sign is already on each transaction.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from axioma_engines.tracer import traced_engine
from axioma_kernel.domain.validation import coerce_money, resolve_currency
from axioma_kernel.domain.values import Currency, Money
from axioma_kernel.exceptions import CurrencyMismatchError, InvalidInputError
from axioma_kernel.logging_config import get_logger

logger = get_logger("engines.running_balance")


class MovementType(str, Enum):
    """What produced a movement. Informational; never changes the sign."""

    INVOICE_CHARGE = "invoice_charge"
    PAYMENT = "payment"
    CREDIT_NOTE = "credit_note"
    BANK_DEPOSIT = "bank_deposit"
    BANK_WITHDRAWAL = "bank_withdrawal"
    JOURNAL_POSTING = "journal_posting"
    ADJUSTMENT = "adjustment"


class NormalBalance(str, Enum):
    """Side on which an account's balance naturally increases."""

    DEBIT = "debit"  # Assets, expenses
    CREDIT = "credit"  # Liabilities, equity, revenue


def signed_amount(
    debit: Money,
    credit: Money,
    normal_balance: NormalBalance,
) -> Money:
    """
    Convert a debit/credit column pair into a signed movement.

    For a debit-normal account debits increase the balance; for a
    credit-normal account credits do.
    """
    if normal_balance == NormalBalance.DEBIT:
        return debit - credit
    return credit - debit


@dataclass(frozen=True)
class LedgerMovement:
    """One signed movement (positive = increase, negative = decrease)."""

    occurred_at: date | datetime
    signed_amount: Money
    description: str
    movement_type: MovementType
    sequence: int | None = None
    reference: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.signed_amount, Money):
            raise InvalidInputError("signed_amount", self.signed_amount, "must be Money")


@dataclass(frozen=True)
class BalanceRow:
    """A movement paired with the balance after applying it."""

    movement: LedgerMovement
    running_balance: Money


@dataclass(frozen=True)
class RunningBalanceResult:
    """Annotated rows plus opening and closing balances."""

    opening_balance: Money
    rows: tuple[BalanceRow, ...]
    closing_balance: Money

    @property
    def net_change(self) -> Money:
        return self.closing_balance - self.opening_balance

    @property
    def total_increases(self) -> Money:
        """Sum of positive movements (the statement's charges column)."""
        return Money.total(
            (r.movement.signed_amount for r in self.rows if r.movement.signed_amount.is_positive),
            self.opening_balance.currency,
        )

    @property
    def total_decreases(self) -> Money:
        """Sum of negative movements as a positive amount (payments column)."""
        currency = self.opening_balance.currency
        return Money.zero(currency) - Money.total(
            (r.movement.signed_amount for r in self.rows if r.movement.signed_amount.is_negative),
            currency,
        )


class RunningBalanceAccumulator:
    """
    Single left-to-right scan producing running balances.

    Contract:
        Pure, deterministic, O(n).  Movements must arrive in the order they
        should be displayed.
    """

    def __init__(self, currency: str | Currency = "USD"):
        self.currency = resolve_currency(currency)

    @traced_engine("running_balance", "1.0", fingerprint_fields=("opening_balance", "movements"))
    def accumulate(
        self,
        opening_balance: Money | Decimal | int | str,
        movements: Sequence[LedgerMovement],
    ) -> RunningBalanceResult:
        """
        Annotate each movement with the balance after it.

        A bare numeric opening balance is taken in the accumulator's
        currency.

        Raises:
            CurrencyMismatchError: Opening balance or a movement is in a
                different currency.
            InvalidInputError: Opening balance is not numeric.
        """
        t0 = time.monotonic()
        if isinstance(opening_balance, Money):
            self._check_currency(opening_balance, "opening_balance")
        opening_balance = coerce_money(opening_balance, "opening_balance", self.currency)

        running = opening_balance
        rows: list[BalanceRow] = []
        for position, movement in enumerate(movements):
            self._check_currency(movement.signed_amount, f"movements[{position}].signed_amount")
            running = running + movement.signed_amount
            rows.append(BalanceRow(movement=movement, running_balance=running))

        result = RunningBalanceResult(
            opening_balance=opening_balance,
            rows=tuple(rows),
            closing_balance=running,
        )

        logger.info("running_balance_accumulated", extra={
            "movement_count": len(rows),
            "opening_balance": opening_balance,
            "closing_balance": running,
            "currency": self.currency.code,
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })
        return result

    def _check_currency(self, amount: Money, field: str) -> None:
        if amount.currency != self.currency:
            logger.error("running_balance_currency_mismatch", extra={
                "field": field,
                "expected_currency": self.currency.code,
                "received_currency": amount.currency.code,
            })
            raise CurrencyMismatchError(self.currency.code, amount.currency.code, field)
