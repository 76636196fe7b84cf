"""Pure domain primitives: currency registry, value objects, input checks."""

from axioma_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from axioma_kernel.domain.values import Currency, Money

__all__ = [
    "Currency",
    "CurrencyInfo",
    "CurrencyRegistry",
    "Money",
]
