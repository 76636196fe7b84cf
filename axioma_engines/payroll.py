"""
axioma_engines.payroll -- Gross-to-net pay stub computation.

Responsibility:
    Derive gross pay from an employee's compensation basis, apply the
    caller's deduction rules (or, for contractors, the threshold
    withholding rule), and produce an itemized pay stub with net pay.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports only axioma_kernel.  No tax-table lookups and no jurisdiction
    logic: this is a generic weighted-deduction engine, and the correctness
    of the percentages is the caller's configuration responsibility.

Invariants enforced:
    - net_pay = max(0, gross_pay - total_deductions); never negative.
    - A gross override, when supplied, replaces the derived gross for every
      employment class.
    - Deduction itemization follows rule declaration order.  A later rule
      sharing a name replaces the earlier amount but keeps its position;
      a later rule that computes to zero leaves the earlier amount in place.
    - Each itemized amount is rounded once, half away from zero.
    - Contractors get only the contractor withholding rule:
      max(0, gross - threshold) x percent / 100.

Failure modes:
    - InvalidInputError for negative hours, rates, overrides or rule
      values, and for float or non-numeric fields.
    - CurrencyMismatchError when amounts are not in the calculator's
      currency.

Usage:
    from decimal import Decimal
    from axioma_engines.payroll import (
        CompensationBasis, DeductionKind, DeductionRule, EmploymentClass,
        PayrollCalculator,
    )
    from axioma_kernel.domain.values import Money

    basis = CompensationBasis(EmploymentClass.HOURLY, Money.of("20.00", "USD"))
    ss = DeductionRule(
        name="SS", kind=DeductionKind.PERCENTAGE, value=Decimal("6.20"),
        applies_to=frozenset({EmploymentClass.HOURLY}),
    )
    stub = PayrollCalculator().compute_pay(basis, [ss], hours_override=Decimal("45"))
    print(stub.gross_pay, stub.net_pay)  # 900.00 USD 844.20 USD
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from axioma_engines.tracer import traced_engine
from axioma_kernel.domain.validation import (
    coerce_decimal,
    coerce_money,
    require_non_negative,
    resolve_currency,
)
from axioma_kernel.domain.values import Currency, Money
from axioma_kernel.exceptions import CurrencyMismatchError, InvalidInputError
from axioma_kernel.logging_config import get_logger

logger = get_logger("engines.payroll")

DEFAULT_HOURS = Decimal("40")
HUNDRED = Decimal("100")


class EmploymentClass(str, Enum):
    """How an employee's gross pay is derived."""

    HOURLY = "hourly"
    FIXED_SALARY = "fixed_salary"
    CONTRACTOR = "contractor"


EMPLOYEE_CLASSES = frozenset({EmploymentClass.HOURLY, EmploymentClass.FIXED_SALARY})


class PayFrequency(str, Enum):
    """Pay periods per year for converting an annual salary."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    SEMIMONTHLY = "semimonthly"
    MONTHLY = "monthly"

    @property
    def periods_per_year(self) -> int:
        return _PERIODS_PER_YEAR[self]


_PERIODS_PER_YEAR = {
    PayFrequency.WEEKLY: 52,
    PayFrequency.BIWEEKLY: 26,
    PayFrequency.SEMIMONTHLY: 24,
    PayFrequency.MONTHLY: 12,
}


class DeductionKind(str, Enum):
    PERCENTAGE = "percentage"  # value is a percent of gross (6.20 = 6.2%)
    FIXED_AMOUNT = "fixed_amount"  # value is a flat amount per period


class EarningKind(str, Enum):
    FIXED_AMOUNT = "fixed_amount"
    HOURLY_RATE = "hourly_rate"  # value x hours worked
    PERCENTAGE_OF_BASE = "percentage_of_base"  # value percent of base pay


def _coerce_enum(enum_type: type[Enum], value: Any, field_name: str) -> Any:
    try:
        return enum_type(value)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_type)
        raise InvalidInputError(field_name, value, f"must be one of: {allowed}") from e


def _coerce_classes(values: Any, field_name: str) -> frozenset[EmploymentClass]:
    return frozenset(_coerce_enum(EmploymentClass, v, field_name) for v in values)


def _non_negative(value: Any, field_name: str) -> Decimal:
    return require_non_negative(coerce_decimal(value, field_name), field_name)


@dataclass(frozen=True)
class CompensationBasis:
    """
    An employee's compensation record for one pay period.

    ``rate`` is the hourly rate for HOURLY, the periodic salary for
    FIXED_SALARY and the default engagement amount for CONTRACTOR.
    ``hours`` is only meaningful for HOURLY.
    """

    employment_class: EmploymentClass
    rate: Money
    hours: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "employment_class",
            _coerce_enum(EmploymentClass, self.employment_class, "employment_class"),
        )
        if not isinstance(self.rate, Money):
            raise InvalidInputError("rate", self.rate, "must be Money")
        if self.rate.is_negative:
            raise InvalidInputError("rate", self.rate.amount, "must not be negative")
        if self.hours is not None:
            object.__setattr__(self, "hours", _non_negative(self.hours, "hours"))

    @classmethod
    def from_annual_salary(
        cls,
        annual_salary: Money,
        frequency: PayFrequency | str,
    ) -> CompensationBasis:
        """FIXED_SALARY basis whose periodic rate is annual / periods per year."""
        if not isinstance(annual_salary, Money):
            raise InvalidInputError("annual_salary", annual_salary, "must be Money")
        frequency = _coerce_enum(PayFrequency, frequency, "frequency")
        if annual_salary.is_negative:
            raise InvalidInputError("annual_salary", annual_salary.amount, "must not be negative")
        return cls(
            employment_class=EmploymentClass.FIXED_SALARY,
            rate=annual_salary / frequency.periods_per_year,
        )


@dataclass(frozen=True)
class DeductionRule:
    """
    A deduction applied to gross pay.

    PERCENTAGE rules deduct ``max(0, gross - threshold) x value / 100``;
    with the default threshold of zero that is simply a percent of gross.
    FIXED_AMOUNT rules deduct ``value`` whenever they apply.
    """

    name: str
    kind: DeductionKind
    value: Decimal
    applies_to: frozenset[EmploymentClass] = EMPLOYEE_CLASSES
    threshold: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidInputError("name", self.name, "is required")
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "kind", _coerce_enum(DeductionKind, self.kind, "kind"))
        object.__setattr__(self, "value", _non_negative(self.value, "value"))
        object.__setattr__(self, "threshold", _non_negative(self.threshold, "threshold"))
        object.__setattr__(self, "applies_to", _coerce_classes(self.applies_to, "applies_to"))

    def applies(self, employment_class: EmploymentClass) -> bool:
        return employment_class in self.applies_to

    def amount_for(self, gross_pay: Money) -> Money:
        """Unrounded deduction for a given gross."""
        if self.kind == DeductionKind.FIXED_AMOUNT:
            return Money(amount=self.value, currency=gross_pay.currency)
        taxable = max(gross_pay.amount - self.threshold, Decimal("0"))
        return Money(amount=taxable * self.value / HUNDRED, currency=gross_pay.currency)


DEFAULT_CONTRACTOR_WITHHOLDING = DeductionRule(
    name="Contractor Withholding",
    kind=DeductionKind.PERCENTAGE,
    value=Decimal("10"),
    applies_to=frozenset({EmploymentClass.CONTRACTOR}),
    threshold=Decimal("500"),
)


@dataclass(frozen=True)
class EarningRule:
    """A supplemental earning added on top of base pay (bonus, shift premium)."""

    name: str
    kind: EarningKind
    value: Decimal
    applies_to: frozenset[EmploymentClass] = frozenset(EmploymentClass)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidInputError("name", self.name, "is required")
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "kind", _coerce_enum(EarningKind, self.kind, "kind"))
        object.__setattr__(self, "value", _non_negative(self.value, "value"))
        object.__setattr__(self, "applies_to", _coerce_classes(self.applies_to, "applies_to"))

    def amount_for(self, base_pay: Money, hours: Decimal) -> Money:
        """Unrounded earning for a given base pay and hours worked."""
        if self.kind == EarningKind.FIXED_AMOUNT:
            return Money(amount=self.value, currency=base_pay.currency)
        if self.kind == EarningKind.HOURLY_RATE:
            return Money(amount=self.value * hours, currency=base_pay.currency)
        return base_pay * (self.value / HUNDRED)


@dataclass(frozen=True)
class PayStubLine:
    name: str
    amount: Money


@dataclass(frozen=True)
class PayStub:
    """
    Itemized result of one pay computation.

    ``gross_pay``, every line amount, ``total_deductions`` and ``net_pay``
    are rounded and are the values to display and submit.
    """

    employment_class: EmploymentClass | None
    hours_worked: Decimal | None
    base_pay: Money
    earnings: tuple[PayStubLine, ...]
    gross_pay: Money
    deductions: tuple[PayStubLine, ...]
    total_deductions: Money
    net_pay: Money
    gross_overridden: bool = False

    @property
    def itemized_deductions(self) -> dict[str, Money]:
        """Deductions as an ordered name -> amount mapping."""
        return {line.name: line.amount for line in self.deductions}

    @property
    def total_earnings(self) -> Money:
        return Money.total((line.amount for line in self.earnings), self.gross_pay.currency)


class PayrollCalculator:
    """
    Compute pay stubs.

    Contract:
        Pure, deterministic, no I/O.  The contractor withholding policy and
        the default hourly hours are constructor parameters so each tenant
        can configure them (see axioma_config).
    Guarantees:
        - net_pay >= 0 for every input.
        - Non-positive computed deductions never appear as lines.
    Non-goals:
        - No tax brackets, wage-base caps or year-to-date tracking.
    """

    def __init__(
        self,
        currency: str | Currency = "USD",
        default_hours: Decimal = DEFAULT_HOURS,
        contractor_withholding: DeductionRule = DEFAULT_CONTRACTOR_WITHHOLDING,
    ):
        self.currency = resolve_currency(currency)
        self.default_hours = _non_negative(default_hours, "default_hours")
        self.contractor_withholding = contractor_withholding

    @traced_engine(
        "payroll", "1.0",
        fingerprint_fields=("basis", "rules", "hours_override", "gross_override", "earnings"),
    )
    def compute_pay(
        self,
        basis: CompensationBasis,
        rules: Sequence[DeductionRule] = (),
        hours_override: Decimal | int | str | None = None,
        gross_override: Money | Decimal | int | str | None = None,
        earnings: Sequence[EarningRule] = (),
    ) -> PayStub:
        """
        Compute gross pay, itemized deductions and net pay.

        Args:
            basis: The employee's compensation record.
            rules: Deduction rules in declaration order.  Ignored for
                contractors.
            hours_override: Hours worked this period (HOURLY only).
            gross_override: Replaces the derived gross for any class.
            earnings: Supplemental earnings added to base pay.  Not
                computed when ``gross_override`` is given.

        Returns:
            PayStub with rounded amounts.

        Raises:
            InvalidInputError: Negative or non-numeric override.
            CurrencyMismatchError: Basis or override in another currency.
        """
        t0 = time.monotonic()
        employment_class = basis.employment_class
        logger.info("payroll_calculation_started", extra={
            "employment_class": employment_class.value,
            "rule_count": len(rules),
            "earning_count": len(earnings),
            "has_hours_override": hours_override is not None,
            "has_gross_override": gross_override is not None,
        })

        if basis.rate.currency != self.currency:
            logger.error("payroll_currency_mismatch", extra={
                "expected_currency": self.currency.code,
                "basis_currency": basis.rate.currency.code,
            })
            raise CurrencyMismatchError(self.currency.code, basis.rate.currency.code, "basis.rate")

        hours = self._resolve_hours(basis, hours_override)
        base_pay = self._base_pay(basis, hours)

        earning_lines: tuple[PayStubLine, ...] = ()
        if gross_override is not None:
            override = coerce_money(gross_override, "gross_override", self.currency)
            require_non_negative(override.amount, "gross_override")
            gross_pay = override.round()
        else:
            earning_lines = self._itemize_earnings(earnings, employment_class, base_pay, hours or Decimal("0"))
            earned = Money.total((line.amount for line in earning_lines), self.currency)
            gross_pay = (base_pay + earned).round()

        if employment_class == EmploymentClass.CONTRACTOR:
            applicable = [self.contractor_withholding]
        else:
            applicable = [rule for rule in rules if rule.applies(employment_class)]
        deduction_lines = self._itemize_deductions(applicable, gross_pay)

        stub = self._build_stub(
            employment_class=employment_class,
            hours_worked=hours,
            base_pay=base_pay.round(),
            earnings=earning_lines,
            gross_pay=gross_pay,
            deductions=deduction_lines,
            gross_overridden=gross_override is not None,
        )

        logger.info("payroll_calculation_completed", extra={
            "employment_class": employment_class.value,
            "gross_pay": stub.gross_pay,
            "total_deductions": stub.total_deductions,
            "net_pay": stub.net_pay,
            "deduction_count": len(stub.deductions),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })
        return stub

    def restate(
        self,
        gross_pay: Money | Decimal | int | str,
        deductions: Mapping[str, Money | Decimal | int | str],
        employment_class: EmploymentClass | None = None,
    ) -> PayStub:
        """
        Recompute totals after deduction lines were edited by hand.

        The caller's mapping is taken as-is (including zero lines), in its
        own order; only totals and net pay are derived.
        """
        gross = coerce_money(gross_pay, "gross_pay", self.currency)
        require_non_negative(gross.amount, "gross_pay")
        lines: list[PayStubLine] = []
        for name, value in deductions.items():
            amount = coerce_money(value, f"deductions[{name}]", self.currency)
            require_non_negative(amount.amount, f"deductions[{name}]")
            lines.append(PayStubLine(name=name, amount=amount.round()))

        stub = self._build_stub(
            employment_class=employment_class,
            hours_worked=None,
            base_pay=gross.round(),
            earnings=(),
            gross_pay=gross.round(),
            deductions=tuple(lines),
            gross_overridden=True,
        )
        logger.info("payroll_restated", extra={
            "gross_pay": stub.gross_pay,
            "total_deductions": stub.total_deductions,
            "net_pay": stub.net_pay,
            "deduction_count": len(lines),
        })
        return stub

    # -- internals ----------------------------------------------------------

    def _resolve_hours(
        self,
        basis: CompensationBasis,
        hours_override: Decimal | int | str | None,
    ) -> Decimal | None:
        """Hours for HOURLY: override, else basis hours, else the default."""
        if basis.employment_class != EmploymentClass.HOURLY:
            return None
        if hours_override is not None:
            return _non_negative(hours_override, "hours_override")
        if basis.hours is not None:
            return basis.hours
        return self.default_hours

    @staticmethod
    def _base_pay(basis: CompensationBasis, hours: Decimal | None) -> Money:
        if basis.employment_class == EmploymentClass.HOURLY:
            return basis.rate * hours
        return basis.rate

    def _itemize_earnings(
        self,
        earnings: Sequence[EarningRule],
        employment_class: EmploymentClass,
        base_pay: Money,
        hours: Decimal,
    ) -> tuple[PayStubLine, ...]:
        accrued: dict[str, Money] = {}
        for rule in earnings:
            if employment_class not in rule.applies_to:
                continue
            amount = rule.amount_for(base_pay, hours)
            if not amount.is_positive:
                continue
            accrued[rule.name] = amount
        return tuple(PayStubLine(name=n, amount=a.round()) for n, a in accrued.items())

    def _itemize_deductions(
        self,
        rules: Sequence[DeductionRule],
        gross_pay: Money,
    ) -> tuple[PayStubLine, ...]:
        accrued: dict[str, Money] = {}
        for rule in rules:
            amount = rule.amount_for(gross_pay)
            if not amount.is_positive:
                logger.debug("payroll_deduction_omitted", extra={
                    "deduction_name": rule.name,
                    "kind": rule.kind.value,
                })
                continue
            accrued[rule.name] = amount

        lines = []
        for name, amount in accrued.items():
            rounded = amount.round()
            if rounded.is_positive:
                lines.append(PayStubLine(name=name, amount=rounded))
        return tuple(lines)

    def _build_stub(
        self,
        *,
        employment_class: EmploymentClass | None,
        hours_worked: Decimal | None,
        base_pay: Money,
        earnings: tuple[PayStubLine, ...],
        gross_pay: Money,
        deductions: tuple[PayStubLine, ...],
        gross_overridden: bool,
    ) -> PayStub:
        total_deductions = Money.total((line.amount for line in deductions), self.currency)
        net_pay = gross_pay - total_deductions
        if net_pay.is_negative:
            logger.warning("payroll_net_pay_floored", extra={
                "gross_pay": gross_pay,
                "total_deductions": total_deductions,
            })
            net_pay = Money.zero(self.currency).round()
        return PayStub(
            employment_class=employment_class,
            hours_worked=hours_worked,
            base_pay=base_pay,
            earnings=earnings,
            gross_pay=gross_pay,
            deductions=deductions,
            total_deductions=total_deductions,
            net_pay=net_pay,
            gross_overridden=gross_overridden,
        )
