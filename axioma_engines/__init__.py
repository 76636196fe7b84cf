"""
Module: axioma_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for the
    presentation layer and the persistence backend alike.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import axioma_kernel (and sibling engine modules).
    Sibling engines never import each other.

Invariants enforced:
    - Purity: engines never read the clock for business logic or touch
      files, databases or the network.
    - Decimal-only arithmetic: floats are rejected at every boundary.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine`` (see
    ``axioma_engines.tracer``), emitting AXIOMA_ENGINE_TRACE log records
    with engine name, version, input fingerprint and duration.

Usage:
    from axioma_engines import LineItemTaxCalculator, PayrollCalculator
    from axioma_engines.journal import JournalBalanceValidator
    from axioma_engines.running_balance import RunningBalanceAccumulator
"""

from axioma_kernel.logging_config import get_logger

logger = get_logger("engines")

from axioma_engines.journal import (
    JournalBalance,
    JournalBalanceValidator,
    JournalLine,
    JournalSide,
)
from axioma_engines.payroll import (
    DEFAULT_CONTRACTOR_WITHHOLDING,
    CompensationBasis,
    DeductionKind,
    DeductionRule,
    EarningKind,
    EarningRule,
    EmploymentClass,
    PayFrequency,
    PayrollCalculator,
    PayStub,
    PayStubLine,
)
from axioma_engines.running_balance import (
    BalanceRow,
    LedgerMovement,
    MovementType,
    NormalBalance,
    RunningBalanceAccumulator,
    RunningBalanceResult,
    signed_amount,
)
from axioma_engines.settlement import compute_balance_due, validate_payment_amount
from axioma_engines.tax import (
    DocumentTotals,
    LineItem,
    LineItemTaxCalculator,
    TaxBreakdownLine,
    TaxRule,
    compute_bill_total,
    tax_rules_from_slots,
)
from axioma_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Tax
    "DocumentTotals",
    "LineItem",
    "LineItemTaxCalculator",
    "TaxBreakdownLine",
    "TaxRule",
    "compute_bill_total",
    "tax_rules_from_slots",
    # Journal
    "JournalBalance",
    "JournalBalanceValidator",
    "JournalLine",
    "JournalSide",
    # Running balance
    "BalanceRow",
    "LedgerMovement",
    "MovementType",
    "NormalBalance",
    "RunningBalanceAccumulator",
    "RunningBalanceResult",
    "signed_amount",
    # Payroll
    "DEFAULT_CONTRACTOR_WITHHOLDING",
    "CompensationBasis",
    "DeductionKind",
    "DeductionRule",
    "EarningKind",
    "EarningRule",
    "EmploymentClass",
    "PayFrequency",
    "PayStub",
    "PayStubLine",
    "PayrollCalculator",
    # Settlement
    "compute_balance_due",
    "validate_payment_amount",
    # Tracer
    "compute_input_fingerprint",
    "traced_engine",
]
