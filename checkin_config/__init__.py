"""
checkin_config -- single public entrypoint for check-in settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_config()``.  Services receive a ``CheckInSettings``
    and never read YAML or environment variables themselves.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- missing identity keys or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``CHECKIN_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying each approved invoice to the settings that priced it.
"""

from __future__ import annotations

from pathlib import Path

from checkin_config.loader import load_yaml_file, parse_settings
from checkin_config.schema import (
    BillingSettings,
    CheckInSettings,
    DescriptionSettings,
    RateSettings,
)
from checkin_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | str | None = None) -> CheckInSettings:
    """The ONLY public settings entrypoint.

    Args:
        path: Override settings file.  Defaults to checkin_config/defaults.yaml.

    Returns:
        Frozen ``CheckInSettings``.

    Raises:
        FileNotFoundError: If the settings file does not exist.
        ValueError: If validation fails.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not config_path.is_file():
        raise FileNotFoundError(f"Check-in settings file not found: {config_path}")

    settings = parse_settings(load_yaml_file(config_path))

    _logger.info(
        "CHECKIN_CONFIG_TRACE",
        extra={
            "trace_type": "CHECKIN_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "default_tax_rate": str(settings.default_tax_rate),
            "payment_terms_days": settings.payment_terms_days,
            "rate_cache_ttl_seconds": settings.rate_cache_ttl_seconds,
        },
    )
    return settings


__all__ = [
    "BillingSettings",
    "CheckInSettings",
    "DescriptionSettings",
    "RateSettings",
    "get_active_config",
]
