"""
EngineConfig schema.

Typed, frozen model of a tenant's engine configuration.  YAML files are
parsed into these types by the loader; bridges turn them into engine
inputs.  Amounts and rates are Decimal, never float.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

# ---------------------------------------------------------------------------
# Tax
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaxSlotDef:
    """One configured tax.  ``code`` defaults to the positional slot code."""

    name: str
    rate: Decimal  # As fraction (0.0825 for 8.25%)
    code: str | None = None


# ---------------------------------------------------------------------------
# Payroll
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WithholdingDef:
    """Threshold withholding applied to contractor gross pay."""

    name: str
    percent: Decimal  # 10 = 10%
    threshold: Decimal


@dataclass(frozen=True)
class PayrollDef:
    default_hours: Decimal
    contractor_withholding: WithholdingDef


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineConfig:
    """Root configuration artifact for one tenant."""

    config_id: str
    version: int
    currency: str
    payroll: PayrollDef
    tax_slots: tuple[TaxSlotDef, ...] = ()
    checksum: str = ""
