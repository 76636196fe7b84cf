"""
Configuration Loader (``axioma_config.loader``).

Responsibility
--------------
Loads a YAML engine configuration file and parses it into the frozen
``axioma_config.schema`` dataclasses.  The public runtime entry point is
``axioma_config.get_engine_config()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Has no dependency on the
kernel or the engines.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Rates and amounts are parsed to ``Decimal`` through their string form,
  so an unquoted YAML ``0.0825`` stays exactly 0.0825.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Non-numeric or negative rate/amount  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from axioma_config.schema import EngineConfig, PayrollDef, TaxSlotDef, WithholdingDef


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field: str) -> Decimal:
    """Parse a non-negative Decimal from a YAML scalar."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{field}: expected a number, got {value!r}")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"{field}: expected a number, got {value!r}") from e
    if not result.is_finite() or result < 0:
        raise ValueError(f"{field}: must be a finite, non-negative number, got {value!r}")
    return result


def parse_withholding(data: dict[str, Any]) -> WithholdingDef:
    """Parse a WithholdingDef from a dict."""
    return WithholdingDef(
        name=data["name"],
        percent=parse_decimal(data["percent"], "contractor_withholding.percent"),
        threshold=parse_decimal(data.get("threshold", 0), "contractor_withholding.threshold"),
    )


def parse_payroll(data: dict[str, Any]) -> PayrollDef:
    """Parse a PayrollDef from a dict."""
    return PayrollDef(
        default_hours=parse_decimal(data["default_hours"], "payroll.default_hours"),
        contractor_withholding=parse_withholding(data["contractor_withholding"]),
    )


def parse_tax_slot(data: dict[str, Any], index: int) -> TaxSlotDef:
    """Parse one TaxSlotDef; ``index`` is only used in error messages."""
    return TaxSlotDef(
        name=data.get("name") or "",
        rate=parse_decimal(data.get("rate", 0), f"tax_slots[{index}].rate"),
        code=data.get("code"),
    )


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """
    Parse a full EngineConfig from a dict.

    The checksum is computed over the raw dict as written.  Key order does
    not matter, but scalar spelling does: a rate written as "0.10" and one
    written as 0.1 parse to equal values yet produce different checksums.
    """
    tax_slots = tuple(
        parse_tax_slot(slot, index) for index, slot in enumerate(data.get("tax_slots") or [])
    )
    codes = [slot.code for slot in tax_slots if slot.code]
    if len(codes) != len(set(codes)):
        raise ValueError(f"tax_slots: duplicate tax codes in {codes}")

    return EngineConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        currency=data["currency"],
        payroll=parse_payroll(data["payroll"]),
        tax_slots=tax_slots,
        checksum=compute_checksum(data),
    )


def load_engine_config(path: Path) -> EngineConfig:
    """Load and parse one configuration file."""
    return parse_engine_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
