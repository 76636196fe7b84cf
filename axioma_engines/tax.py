"""
axioma_engines.tax -- Per-line, multi-tax document totals.

Responsibility:
    Compute subtotal, per-tax-name breakdown and grand total for a sales
    document whose line items opt into taxes individually.  Mixed-taxability
    documents (some items taxed, some exempt) are the normal case.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports only axioma_kernel.  Safe to call on every keystroke.

Invariants enforced:
    - Tax applies per line: a line accrues ``line_subtotal x rate`` for each
      rule it opts into whose rate is positive and whose name is non-empty.
    - Breakdown entries are keyed by tax NAME, not by rule code: rules that
      share a name merge into one entry.
    - Rates are applied to unrounded line subtotals.  Each breakdown amount
      is rounded once; subtotal and grand total are rounded once, at the end.
    - Determinism: breakdown order is first-encounter order (lines in input
      order, rules in declaration order within each line).

Failure modes:
    - InvalidInputError for a negative quantity or rate, a float or
      non-numeric field, or two rules declaring the same tax code.
    - CurrencyMismatchError when a line's unit price is not in the
      calculator's currency.

Usage:
    from decimal import Decimal
    from axioma_engines.tax import LineItem, LineItemTaxCalculator, TaxRule
    from axioma_kernel.domain.values import Money

    vat = TaxRule(tax_code="VAT", tax_name="VAT", rate=Decimal("0.10"))
    line = LineItem(
        quantity=Decimal("2"),
        unit_price=Money.of("100.00", "USD"),
        tax_codes=frozenset({"VAT"}),
    )
    totals = LineItemTaxCalculator().compute([line], [vat])
    print(totals.grand_total)  # 220.00 USD
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from axioma_engines.tracer import traced_engine
from axioma_kernel.domain.validation import (
    coerce_decimal,
    require_non_negative,
    resolve_currency,
)
from axioma_kernel.domain.values import Currency, Money
from axioma_kernel.exceptions import CurrencyMismatchError, InvalidInputError
from axioma_kernel.logging_config import get_logger

logger = get_logger("engines.tax")

# Codes assigned to the legacy fixed tax slots (slot 1 -> "TAX1").
SLOT_CODE_FORMAT = "TAX{}"


@dataclass(frozen=True)
class TaxRule:
    """
    One configured tax.

    ``tax_code`` is the stable identifier lines opt into; ``tax_name`` is
    what the breakdown groups and displays by.  A rule with an empty name is
    treated as "no tax configured" even if it carries a rate.
    """

    tax_code: str
    tax_name: str
    rate: Decimal  # As fraction (e.g., 0.0825 for 8.25%)

    def __post_init__(self) -> None:
        if not isinstance(self.tax_code, str) or not self.tax_code.strip():
            raise InvalidInputError("tax_code", self.tax_code, "is required")
        rate = require_non_negative(coerce_decimal(self.rate, "rate"), "rate")
        object.__setattr__(self, "rate", rate)
        object.__setattr__(self, "tax_name", (self.tax_name or "").strip())

    @property
    def is_active(self) -> bool:
        """True when this rule can produce a breakdown entry."""
        return self.rate > 0 and bool(self.tax_name)

    @property
    def rate_percent(self) -> Decimal:
        """Rate as percentage (e.g., 8.25 for 8.25%)."""
        return self.rate * Decimal("100")


@dataclass(frozen=True)
class LineItem:
    """
    One priced row of a sales or purchase document.

    ``unit_price`` may be negative (credit and discount lines); quantity
    may not.
    """

    quantity: Decimal
    unit_price: Money
    tax_codes: frozenset[str] = field(default_factory=frozenset)
    description: str | None = None

    def __post_init__(self) -> None:
        quantity = require_non_negative(coerce_decimal(self.quantity, "quantity"), "quantity")
        object.__setattr__(self, "quantity", quantity)
        if not isinstance(self.unit_price, Money):
            raise InvalidInputError("unit_price", self.unit_price, "must be Money")
        object.__setattr__(self, "tax_codes", frozenset(self.tax_codes))

    @property
    def line_subtotal(self) -> Money:
        """quantity x unit_price, unrounded."""
        return self.unit_price * self.quantity

    @classmethod
    def from_slot_flags(
        cls,
        quantity: Decimal | int | str,
        unit_price: Money,
        flags: Sequence[bool],
        description: str | None = None,
    ) -> LineItem:
        """Build a line from legacy per-slot booleans (slot 1 first)."""
        codes = frozenset(
            SLOT_CODE_FORMAT.format(index)
            for index, applies in enumerate(flags, start=1)
            if applies
        )
        return cls(
            quantity=quantity,
            unit_price=unit_price,
            tax_codes=codes,
            description=description,
        )


def tax_rules_from_slots(
    slots: Sequence[tuple[str | None, Decimal | int | str]],
) -> tuple[TaxRule, ...]:
    """
    Build rules from the legacy positional ``(name, rate)`` tax slots.

    Slot N gets code ``TAXN``, matching ``LineItem.from_slot_flags``.  The
    number of slots is not limited to four.
    """
    return tuple(
        TaxRule(
            tax_code=SLOT_CODE_FORMAT.format(index),
            tax_name=name or "",
            rate=rate,
        )
        for index, (name, rate) in enumerate(slots, start=1)
    )


@dataclass(frozen=True)
class TaxBreakdownLine:
    """Accumulated tax for one distinct tax name across all lines."""

    tax_name: str
    rate: Decimal
    amount: Money  # Rounded once

    @property
    def rate_percent(self) -> Decimal:
        return self.rate * Decimal("100")


@dataclass(frozen=True)
class DocumentTotals:
    """
    Result of a document tax computation.

    ``subtotal``, ``breakdown`` amounts and ``grand_total`` are rounded and
    are the values to display AND submit.  ``unrounded_grand_total`` is the
    exact figure, kept so a document computed in parts reconciles with the
    document computed whole.
    """

    subtotal: Money
    breakdown: tuple[TaxBreakdownLine, ...]
    grand_total: Money
    unrounded_grand_total: Money
    line_totals: tuple[Money, ...] = ()

    @property
    def currency(self) -> Currency:
        return self.subtotal.currency

    @property
    def tax_total(self) -> Money:
        """Sum of the rounded breakdown amounts."""
        return Money.total((line.amount for line in self.breakdown), self.currency)

    def tax_by_name(self, tax_name: str) -> Money:
        """Breakdown amount for one tax name, zero if not present."""
        for line in self.breakdown:
            if line.tax_name == tax_name:
                return line.amount
        return Money.zero(self.currency)


class LineItemTaxCalculator:
    """
    Compute document totals from line items and tax rules.

    Contract:
        Pure, deterministic, no I/O.  Inputs are never mutated.
    Guarantees:
        - Zero lines -> subtotal 0, empty breakdown, grand total 0.
        - grand_total == round(subtotal_exact + sum(rounded breakdown)).
    Non-goals:
        - No tax-inclusive (reverse) pricing and no compound taxes.
        - No jurisdiction lookup; rates come from the caller.
    """

    def __init__(self, currency: str | Currency = "USD"):
        self.currency = resolve_currency(currency)

    @traced_engine("tax", "1.0", fingerprint_fields=("lines", "tax_rules"))
    def compute(
        self,
        lines: Sequence[LineItem],
        tax_rules: Sequence[TaxRule],
    ) -> DocumentTotals:
        """
        Compute subtotal, tax breakdown and grand total.

        Args:
            lines: Line items in document order.
            tax_rules: Configured taxes; lines reference them by tax_code.

        Returns:
            DocumentTotals with rounded amounts.

        Raises:
            InvalidInputError: Duplicate tax codes in ``tax_rules``.
            CurrencyMismatchError: A line is priced in another currency.
        """
        t0 = time.monotonic()
        logger.info("tax_calculation_started", extra={
            "line_count": len(lines),
            "rule_count": len(tax_rules),
            "currency": self.currency.code,
        })

        ordered_rules = self._index_rules(tax_rules)

        subtotal = Money.zero(self.currency)
        accrued: dict[str, Money] = {}
        rates: dict[str, Decimal] = {}
        line_totals: list[Money] = []

        for position, line in enumerate(lines):
            if line.unit_price.currency != self.currency:
                logger.error("tax_line_currency_mismatch", extra={
                    "line_index": position,
                    "expected_currency": self.currency.code,
                    "line_currency": line.unit_price.currency.code,
                })
                raise CurrencyMismatchError(
                    self.currency.code,
                    line.unit_price.currency.code,
                    f"lines[{position}].unit_price",
                )

            line_subtotal = line.line_subtotal
            subtotal = subtotal + line_subtotal
            line_totals.append(line_subtotal.round())

            for rule in ordered_rules:
                if rule.tax_code not in line.tax_codes:
                    continue
                if not rule.is_active:
                    if rule.rate > 0:
                        logger.debug("tax_rule_skipped_unnamed", extra={
                            "tax_code": rule.tax_code,
                            "rate": rule.rate,
                        })
                    continue
                tax = line_subtotal * rule.rate
                if rule.tax_name in accrued:
                    accrued[rule.tax_name] = accrued[rule.tax_name] + tax
                else:
                    accrued[rule.tax_name] = tax
                    rates[rule.tax_name] = rule.rate

        breakdown = tuple(
            TaxBreakdownLine(tax_name=name, rate=rates[name], amount=amount.round())
            for name, amount in accrued.items()
        )
        rounded_taxes = Money.total((line.amount for line in breakdown), self.currency)
        exact_taxes = Money.total(accrued.values(), self.currency)

        result = DocumentTotals(
            subtotal=subtotal.round(),
            breakdown=breakdown,
            grand_total=(subtotal + rounded_taxes).round(),
            unrounded_grand_total=subtotal + exact_taxes,
            line_totals=tuple(line_totals),
        )

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("tax_calculation_completed", extra={
            "subtotal": result.subtotal,
            "tax_total": result.tax_total,
            "grand_total": result.grand_total,
            "breakdown_count": len(breakdown),
            "duration_ms": duration_ms,
        })
        return result

    @staticmethod
    def _index_rules(tax_rules: Sequence[TaxRule]) -> list[TaxRule]:
        """Validate rule codes are unique; keep declaration order."""
        seen: set[str] = set()
        ordered: list[TaxRule] = []
        for rule in tax_rules:
            if rule.tax_code in seen:
                logger.error("tax_rule_duplicate_code", extra={"tax_code": rule.tax_code})
                raise InvalidInputError("tax_rules", rule.tax_code, "duplicate tax code")
            seen.add(rule.tax_code)
            ordered.append(rule)
        return ordered


def compute_bill_total(
    lines: Sequence[LineItem],
    currency: str | Currency = "USD",
) -> Money:
    """
    Total of an untaxed purchase document (vendor bill).

    Equivalent to ``compute(lines, []).grand_total``.
    """
    return LineItemTaxCalculator(currency).compute(lines, []).grand_total
