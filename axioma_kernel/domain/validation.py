"""
Lightweight input validation helpers.

Pure checks with no I/O, used at engine boundaries so malformed caller input
fails fast with an InvalidInputError naming the offending field.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from axioma_kernel.domain.values import Currency, Money
from axioma_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidCurrencyError,
    InvalidInputError,
)


def resolve_currency(currency: str | Currency) -> Currency:
    """Return a Currency, raising InvalidCurrencyError for unknown codes."""
    if isinstance(currency, Currency):
        return currency
    try:
        return Currency(currency)
    except ValueError as e:
        raise InvalidCurrencyError(str(currency)) from e


def coerce_decimal(value: Any, field: str) -> Decimal:
    """
    Convert an int, str or Decimal to a finite Decimal.

    Floats and booleans are rejected: a float cannot carry an exact rate or
    amount, and a bool is almost always a wiring mistake.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidInputError(field, value, "must be a Decimal, int or numeric string")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise InvalidInputError(field, value, "is not numeric") from e
    else:
        raise InvalidInputError(field, value, "is not numeric")
    if not result.is_finite():
        raise InvalidInputError(field, value, "must be finite")
    return result


def require_non_negative(value: Decimal, field: str) -> Decimal:
    """Return value unchanged, or raise when it is below zero."""
    if value < 0:
        raise InvalidInputError(field, value, "must not be negative")
    return value


def coerce_money(value: Any, field: str, currency: Currency) -> Money:
    """
    Accept a Money in ``currency`` or a bare numeric value to wrap in it.

    Raises:
        CurrencyMismatchError: value is Money in a different currency.
        InvalidInputError: value is not numeric.
    """
    if isinstance(value, Money):
        if value.currency != currency:
            raise CurrencyMismatchError(currency.code, value.currency.code, field)
        return value
    return Money(amount=coerce_decimal(value, field), currency=currency)
