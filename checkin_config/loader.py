"""
Configuration Loader (``checkin_config.loader``).

Responsibility
--------------
Loads a settings YAML file and parses it into ``checkin_config.schema``
dataclasses.  Runtime callers use ``checkin_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``config_id`` / ``version`` or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from checkin_config.schema import (
    BillingSettings,
    CheckInSettings,
    DescriptionSettings,
    RateSettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, name: str) -> Decimal:
    """
    Parse a Decimal from YAML.

    Floats are accepted only via their string form so ``0.15`` stays exact.
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"{name} must be finite, got {value!r}")
    return result


def _parse_int(value: Any, name: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def parse_billing(data: dict[str, Any]) -> BillingSettings:
    """Parse BillingSettings from a dict."""
    defaults = BillingSettings()
    tax_rate = parse_decimal(
        data.get("default_tax_rate", defaults.default_tax_rate),
        "billing.default_tax_rate",
    )
    if tax_rate < 0 or tax_rate > 1:
        raise ValueError(f"billing.default_tax_rate must be between 0 and 1, got {tax_rate}")
    prefix = data.get("invoice_reference_prefix", defaults.invoice_reference_prefix)
    if not isinstance(prefix, str) or not prefix.strip():
        raise ValueError("billing.invoice_reference_prefix must be a non-empty string")
    return BillingSettings(
        default_tax_rate=tax_rate,
        payment_terms_days=_parse_int(
            data.get("payment_terms_days", defaults.payment_terms_days),
            "billing.payment_terms_days",
            0,
        ),
        invoice_reference_prefix=prefix.strip(),
    )


def parse_rates(data: dict[str, Any]) -> RateSettings:
    """Parse RateSettings from a dict."""
    return RateSettings(
        cache_ttl_seconds=_parse_int(
            data.get("cache_ttl_seconds", RateSettings().cache_ttl_seconds),
            "rates.cache_ttl_seconds",
            0,
        ),
    )


def parse_descriptions(data: dict[str, Any]) -> DescriptionSettings:
    """Parse DescriptionSettings; each template must contain ``{label}``."""
    defaults = DescriptionSettings()
    templates = {
        "aircraft": data.get("aircraft", defaults.aircraft),
        "instructor": data.get("instructor", defaults.instructor),
    }
    for key, template in templates.items():
        if not isinstance(template, str) or "{label}" not in template:
            raise ValueError(f"descriptions.{key} must be a string containing '{{label}}'")
    return DescriptionSettings(**templates)


def parse_settings(data: dict[str, Any]) -> CheckInSettings:
    """
    Parse a full ``CheckInSettings`` from a dict.

    Raises:
        ValueError: on missing identity keys or invalid values.
    """
    missing = [key for key in ("config_id", "version") if key not in data]
    if missing:
        raise ValueError(f"Settings missing required keys: {', '.join(missing)}")

    return CheckInSettings(
        config_id=str(data["config_id"]),
        version=_parse_int(data["version"], "version", 1),
        billing=parse_billing(data.get("billing") or {}),
        rates=parse_rates(data.get("rates") or {}),
        descriptions=parse_descriptions(data.get("descriptions") or {}),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 checksum of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
