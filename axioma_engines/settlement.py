"""
axioma_engines.settlement -- Balance due and payment-amount checks.

Responsibility:
    Compute what remains owed on an invoice or bill after recorded payments,
    and vet a proposed payment against that balance before it is applied.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports only axioma_kernel.  The document total comes from
    ``LineItemTaxCalculator``; this module never recomputes it.

Invariants enforced:
    - balance_due = document_total - sum(payments), rounded once.
    - A payment is accepted only when 0 < amount <= balance_due.

Failure modes:
    - InvalidInputError for a non-positive payment amount or a negative
      recorded payment.
    - PaymentExceedsBalanceError for a payment larger than the balance due.
    - CurrencyMismatchError when amounts are in different currencies.
"""

from __future__ import annotations

from collections.abc import Sequence

from axioma_kernel.domain.values import Money
from axioma_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidInputError,
    PaymentExceedsBalanceError,
)
from axioma_kernel.logging_config import get_logger

logger = get_logger("engines.settlement")


def compute_balance_due(document_total: Money, payments: Sequence[Money]) -> Money:
    """
    Outstanding balance of a document.

    Overpaid documents yield a negative balance; callers decide whether to
    show it as a credit.
    """
    paid = Money.zero(document_total.currency)
    for position, payment in enumerate(payments):
        if payment.currency != document_total.currency:
            raise CurrencyMismatchError(
                document_total.currency.code,
                payment.currency.code,
                f"payments[{position}]",
            )
        if payment.is_negative:
            raise InvalidInputError(f"payments[{position}]", payment.amount, "must not be negative")
        paid = paid + payment

    balance_due = (document_total - paid).round()
    logger.debug("balance_due_computed", extra={
        "document_total": document_total,
        "total_paid": paid,
        "balance_due": balance_due,
        "payment_count": len(payments),
    })
    return balance_due


def validate_payment_amount(amount: Money, balance_due: Money) -> Money:
    """
    Check a proposed payment and return it rounded.

    Raises:
        InvalidInputError: amount is zero or negative.
        PaymentExceedsBalanceError: amount is larger than balance_due.
        CurrencyMismatchError: amount and balance_due differ in currency.
    """
    if amount.currency != balance_due.currency:
        raise CurrencyMismatchError(balance_due.currency.code, amount.currency.code, "amount")

    rounded = amount.round()
    if not rounded.is_positive:
        raise InvalidInputError("amount", amount.amount, "must be greater than zero")
    if rounded > balance_due.round():
        logger.warning("payment_exceeds_balance", extra={
            "amount": rounded,
            "balance_due": balance_due,
            "currency": balance_due.currency.code,
        })
        raise PaymentExceedsBalanceError(
            amount=str(rounded.amount),
            balance_due=str(balance_due.round().amount),
            currency=balance_due.currency.code,
        )
    return rounded
