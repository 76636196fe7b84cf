"""
Typed exception hierarchy for the Axioma calculation engines.

Every error has a typed class, a ``code`` class attribute that is safe to
return through an API, and structured attributes instead of a message the
caller would have to parse.

    AxiomaCalcError (base)
    |
    +-- InvalidInputError
    |
    +-- CurrencyError
    |   +-- InvalidCurrencyError
    |   +-- CurrencyMismatchError
    |
    +-- PostingError
    |   +-- UnbalancedEntryError
    |
    +-- SettlementError
        +-- PaymentExceedsBalanceError

Category        | Code                        | When raised
----------------|-----------------------------|-------------------------------------
Input           | INVALID_INPUT               | Non-numeric, float, or negative-where-
                |                             | disallowed field
Currency        | INVALID_CURRENCY            | Unknown ISO 4217 code
                | CURRENCY_MISMATCH           | Amounts in one call use two currencies
Posting         | UNBALANCED_ENTRY            | require_postable() on debits != credits
Settlement      | PAYMENT_EXCEEDS_BALANCE     | Payment larger than the balance due

An unbalanced journal entry is NOT an exception when validated: the
validator returns ``is_balanced=False``.  UnbalancedEntryError is raised
only by the explicit posting gate.

Handling pattern::

    try:
        totals = calculator.compute(lines, rules)
    except InvalidInputError as e:
        form.add_error(e.field, e.reason)
"""

from typing import Any


class AxiomaCalcError(Exception):
    """
    Base exception for all engine errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "AXIOMA_CALC_ERROR"


class InvalidInputError(AxiomaCalcError):
    """A caller-supplied field is malformed or out of range."""

    code: str = "INVALID_INPUT"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value if value is None else str(value)
        self.reason = reason
        super().__init__(f"Invalid {field} ({value!r}): {reason}")


# Currency-related exceptions


class CurrencyError(AxiomaCalcError):
    """Base exception for currency errors."""

    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError):
    """Currency code is not registered."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid currency code: {currency}")


class CurrencyMismatchError(CurrencyError):
    """Amounts passed to a single calculation use different currencies."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, expected: str, received: str, field: str):
        self.expected = expected
        self.received = received
        self.field = field
        super().__init__(
            f"Currency mismatch in {field}: expected {expected}, received {received}"
        )


# Posting-related exceptions


class PostingError(AxiomaCalcError):
    """Base exception for errors that block a journal entry from posting."""

    code: str = "POSTING_ERROR"


class UnbalancedEntryError(PostingError):
    """Journal entry debits do not equal credits, or both are zero."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str, currency: str):
        self.debits = debits
        self.credits = credits
        self.currency = currency
        super().__init__(
            f"Unbalanced entry in {currency}: debits={debits}, credits={credits}"
        )


# Settlement-related exceptions


class SettlementError(AxiomaCalcError):
    """Base exception for payment application errors."""

    code: str = "SETTLEMENT_ERROR"


class PaymentExceedsBalanceError(SettlementError):
    """Payment amount is larger than the document's outstanding balance."""

    code: str = "PAYMENT_EXCEEDS_BALANCE"

    def __init__(self, amount: str, balance_due: str, currency: str):
        self.amount = amount
        self.balance_due = balance_due
        self.currency = currency
        super().__init__(
            f"Payment {amount} {currency} exceeds balance due {balance_due} {currency}"
        )
