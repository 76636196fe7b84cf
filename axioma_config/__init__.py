"""
axioma_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the way to obtain engine configuration at runtime through
    ``get_engine_config()``: default currency, default hourly hours, the
    contractor withholding policy and the tenant's tax slots.

Architecture position:
    Configuration -- YAML-driven.  Sits above ``axioma_kernel`` and
    ``axioma_engines``; neither may import from ``axioma_config``.  Bridges
    in this package translate the config into engine inputs.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``KeyError`` / ``ValueError`` -- missing or malformed fields.

Audit relevance:
    Every successful ``get_engine_config()`` call emits an
    ``AXIOMA_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying every computed document back to the configuration that
    governed it.
"""

from __future__ import annotations

from pathlib import Path

from axioma_config.loader import load_engine_config
from axioma_config.schema import EngineConfig
from axioma_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_engine_config(path: Path | str | None = None) -> EngineConfig:
    """Load the engine configuration.

    Args:
        path: YAML file to load.  Defaults to the packaged defaults.yaml.

    Returns:
        Frozen EngineConfig with its checksum populated.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = load_engine_config(config_path)

    _logger.info(
        "AXIOMA_CONFIG_TRACE",
        extra={
            "trace_type": "AXIOMA_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "currency": config.currency,
            "tax_slot_count": len(config.tax_slots),
        },
    )
    return config


__all__ = ["DEFAULT_CONFIG_PATH", "EngineConfig", "get_engine_config"]
