"""
Config -> Engine Bridges.

Functions that convert an EngineConfig into engine inputs.  These live in
axioma_config (the producer) because the engines must never import
axioma_config.

Usage:
    from axioma_config import get_engine_config
    from axioma_config.bridges import payroll_calculator_from_config, tax_rules_from_config

    config = get_engine_config()
    calculator = payroll_calculator_from_config(config)
    rules = tax_rules_from_config(config)
"""

from __future__ import annotations

from axioma_config.schema import EngineConfig
from axioma_engines.payroll import (
    DeductionKind,
    DeductionRule,
    EmploymentClass,
    PayrollCalculator,
)
from axioma_engines.tax import SLOT_CODE_FORMAT, LineItemTaxCalculator, TaxRule


def tax_rules_from_config(config: EngineConfig) -> tuple[TaxRule, ...]:
    """Build tax rules in slot order; slots without a code get ``TAXn``."""
    return tuple(
        TaxRule(
            tax_code=slot.code or SLOT_CODE_FORMAT.format(index),
            tax_name=slot.name,
            rate=slot.rate,
        )
        for index, slot in enumerate(config.tax_slots, start=1)
    )


def contractor_withholding_from_config(config: EngineConfig) -> DeductionRule:
    withholding = config.payroll.contractor_withholding
    return DeductionRule(
        name=withholding.name,
        kind=DeductionKind.PERCENTAGE,
        value=withholding.percent,
        applies_to=frozenset({EmploymentClass.CONTRACTOR}),
        threshold=withholding.threshold,
    )


def payroll_calculator_from_config(config: EngineConfig) -> PayrollCalculator:
    return PayrollCalculator(
        currency=config.currency,
        default_hours=config.payroll.default_hours,
        contractor_withholding=contractor_withholding_from_config(config),
    )


def tax_calculator_from_config(config: EngineConfig) -> LineItemTaxCalculator:
    return LineItemTaxCalculator(currency=config.currency)
