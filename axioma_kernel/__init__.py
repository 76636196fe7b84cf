"""
Axioma Kernel

Shared primitives for the Axioma calculation engines:
- Money and Currency value objects with currency-derived rounding
- Typed exceptions carrying machine-readable codes
- Structured JSON logging with request-scoped context
"""

__version__ = "0.1.0"
