"""
Configuration management and loading.

Loads pricing catalogs from YAML and resolves the catalog used by the
process.
"""

import logging
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ai_cost_lens.core.pricing import (
    PRICING_CATALOG,
    OutputUnit,
    PricingCatalog,
    PricingEntry,
    Provider,
    RateTable,
)

logger = logging.getLogger(__name__)

PRICING_PATH_ENV = "AI_COST_LENS_PRICING"


def load_pricing_catalog(path: str, extend_builtin: bool = False) -> PricingCatalog:
    """Load and validate a pricing catalog from a YAML file.

    Strict validation ensures a typo in a rate table fails loudly instead
    of silently pricing a model at zero.

    The file maps model identifiers to entries::

        models:
          gemini-2.5-pro:
            provider: GOOGLE
            label: Gemini 2.5 Pro
            breakpoint: 200000
            standard:
              input: {TEXT: 1.25, AUDIO: 1.25}
              output: 10.00
            high:
              input: {TEXT: 2.50}
              output: 15.00

    Args:
        path: Path to YAML catalog file
        extend_builtin: Merge file entries over the built-in catalog

    Returns:
        Validated PricingCatalog

    Raises:
        FileNotFoundError: If catalog file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If catalog is invalid
    """
    catalog_path = Path(path)
    if not catalog_path.exists():
        raise FileNotFoundError(f"Pricing catalog file not found: {path}")

    with open(catalog_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in pricing catalog {path}: {e}")

    if not raw_config:
        raise ValueError("Pricing catalog file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Pricing catalog must be a dictionary")

    unknown_keys = set(raw_config.keys()) - {'models'}
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    models_data = raw_config.get('models')
    if not isinstance(models_data, dict) or not models_data:
        raise ValueError("'models' must be a non-empty dictionary")

    entries: Dict[str, PricingEntry] = dict(PRICING_CATALOG.entries) if extend_builtin else {}
    for model, entry_data in models_data.items():
        if not isinstance(entry_data, dict):
            raise ValueError(f"Model '{model}' must be a dictionary")
        entries[str(model)] = _parse_entry(entry_data, f"models.{model}")

    logger.info("Loaded %d pricing entries from %s", len(models_data), path)
    return PricingCatalog(entries)


def _parse_entry(data: Dict[str, Any], path: str) -> PricingEntry:
    allowed_keys = {'provider', 'label', 'standard', 'high', 'breakpoint', 'fixed_output_per_image'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    provider_str = data.get('provider', Provider.GOOGLE.value)
    try:
        provider = Provider(str(provider_str).upper())
    except ValueError:
        valid = [p.value for p in Provider]
        raise ValueError(f"'provider' in {path} must be one of: {valid}")

    if 'standard' not in data:
        raise ValueError(f"Missing required 'standard' in {path}")
    standard = _parse_rate_table(data['standard'], f"{path}.standard")
    high = _parse_rate_table(data['high'], f"{path}.high") if data.get('high') is not None else None

    breakpoint_value = data.get('breakpoint')
    if breakpoint_value is not None:
        if isinstance(breakpoint_value, bool) or not isinstance(breakpoint_value, int) or breakpoint_value < 0:
            raise ValueError(f"'breakpoint' in {path} must be a non-negative integer")

    fixed = data.get('fixed_output_per_image')
    fixed_rate = _parse_rate(fixed, f"{path}.fixed_output_per_image") if fixed is not None else None

    try:
        return PricingEntry(
            provider=provider,
            label=str(data.get('label', '')),
            standard=standard,
            high=high,
            breakpoint=breakpoint_value,
            fixed_output_per_image=fixed_rate,
        )
    except ValueError as e:
        raise ValueError(f"Invalid entry {path}: {e}")


def _parse_rate_table(data: Any, path: str) -> RateTable:
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")

    allowed_keys = {'input', 'output', 'output_unit', 'output_image_rate', 'audio_output_rate'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    input_data = data.get('input')
    if not isinstance(input_data, dict) or not input_data:
        raise ValueError(f"Missing required 'input' rates in {path}")
    input_rates = {
        str(modality).upper(): _parse_rate(rate, f"{path}.input.{modality}")
        for modality, rate in input_data.items()
    }

    if 'output' not in data:
        raise ValueError(f"Missing required 'output' in {path}")

    unit_str = data.get('output_unit', OutputUnit.TOKENS.value)
    try:
        output_unit = OutputUnit(str(unit_str).upper())
    except ValueError:
        valid = [unit.value for unit in OutputUnit]
        raise ValueError(f"'output_unit' in {path} must be one of: {valid}")

    image_rate = data.get('output_image_rate')
    audio_rate = data.get('audio_output_rate')
    return RateTable(
        input=input_rates,
        output=_parse_rate(data['output'], f"{path}.output"),
        output_unit=output_unit,
        output_image_rate=_parse_rate(image_rate, f"{path}.output_image_rate") if image_rate is not None else None,
        audio_output_rate=_parse_rate(audio_rate, f"{path}.audio_output_rate") if audio_rate is not None else None,
    )


def _parse_rate(value: Any, path: str) -> Decimal:
    """Parse a non-negative rate, going through str to keep YAML floats exact."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"'{path}' must be a number")
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"'{path}' must be a number")
    if rate < 0:
        raise ValueError(f"'{path}' cannot be negative")
    return rate


# Process-wide catalog, loaded once
_active_catalog: Optional[PricingCatalog] = None


def get_catalog(path: Optional[str] = None) -> PricingCatalog:
    """Get the pricing catalog for this process.

    Resolution order: explicit path, the AI_COST_LENS_PRICING environment
    variable, then the built-in catalog. An explicit path always reloads;
    otherwise the first resolved catalog is reused.

    Args:
        path: Optional YAML catalog path

    Returns:
        Active PricingCatalog
    """
    global _active_catalog
    if path is not None:
        _active_catalog = load_pricing_catalog(path, extend_builtin=True)
        return _active_catalog
    if _active_catalog is None:
        env_path = os.environ.get(PRICING_PATH_ENV)
        if env_path:
            _active_catalog = load_pricing_catalog(env_path, extend_builtin=True)
        else:
            _active_catalog = PRICING_CATALOG
    return _active_catalog


def reset_catalog() -> None:
    """Forget the cached catalog so the next lookup resolves again."""
    global _active_catalog
    _active_catalog = None
