"""Configuration loader: reads a YAML file into a frozen LendingConfig and validates it."""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .core import (
    DEFAULT_CUSTODY_ACCOUNT,
    DEFAULT_INTEREST_RATE_BPS, MIN_INTEREST_RATE_BPS, MAX_INTEREST_RATE_BPS,
    DEFAULT_LIQUIDATION_THRESHOLD_BPS,
    MIN_LIQUIDATION_THRESHOLD_BPS, MAX_LIQUIDATION_THRESHOLD_BPS,
    DEFAULT_REWARD_MULTIPLIER_BPS, MIN_REWARD_MULTIPLIER_BPS, MAX_REWARD_MULTIPLIER_BPS,
    DEFAULT_MAX_SEIZE_FRACTION_BPS, MIN_SEIZE_FRACTION_BPS, MAX_SEIZE_FRACTION_BPS,
)

logger = logging.getLogger(__name__)

_BANDS = {
    "interest_rate_bps": (MIN_INTEREST_RATE_BPS, MAX_INTEREST_RATE_BPS),
    "liquidation_threshold_bps": (MIN_LIQUIDATION_THRESHOLD_BPS, MAX_LIQUIDATION_THRESHOLD_BPS),
    "reward_multiplier_bps": (MIN_REWARD_MULTIPLIER_BPS, MAX_REWARD_MULTIPLIER_BPS),
    "max_seize_fraction_bps": (MIN_SEIZE_FRACTION_BPS, MAX_SEIZE_FRACTION_BPS),
}


@dataclass(frozen=True)
class LendingConfig:
    owner: str = ""
    allowed_asset: str = ""
    custody_account: str = DEFAULT_CUSTODY_ACCOUNT
    interest_rate_bps: int = DEFAULT_INTEREST_RATE_BPS
    liquidation_threshold_bps: int = DEFAULT_LIQUIDATION_THRESHOLD_BPS
    reward_multiplier_bps: int = DEFAULT_REWARD_MULTIPLIER_BPS
    max_seize_fraction_bps: int = DEFAULT_MAX_SEIZE_FRACTION_BPS
    log_level: str = "INFO"


def config_from_dict(raw: Dict[str, Any]) -> LendingConfig:
    """Build and validate a LendingConfig from a parsed mapping.

    Unknown keys are rejected so that typos do not silently fall back to defaults.
    """
    known = {f.name for f in fields(LendingConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    cfg = LendingConfig(
        owner=_text(raw, "owner", ""),
        allowed_asset=_text(raw, "allowed_asset", ""),
        custody_account=_text(raw, "custody_account", DEFAULT_CUSTODY_ACCOUNT),
        interest_rate_bps=_whole(raw, "interest_rate_bps", DEFAULT_INTEREST_RATE_BPS),
        liquidation_threshold_bps=_whole(
            raw, "liquidation_threshold_bps", DEFAULT_LIQUIDATION_THRESHOLD_BPS
        ),
        reward_multiplier_bps=_whole(raw, "reward_multiplier_bps", DEFAULT_REWARD_MULTIPLIER_BPS),
        max_seize_fraction_bps=_whole(
            raw, "max_seize_fraction_bps", DEFAULT_MAX_SEIZE_FRACTION_BPS
        ),
        log_level=_text(raw, "log_level", "INFO").upper(),
    )
    _validate(cfg)
    return cfg


def _text(raw: Dict[str, Any], key: str, default: str) -> str:
    """String setting; a key present with no value (YAML null) takes the default."""
    value = raw.get(key)
    if value is None:
        return default
    return str(value).strip()


def _whole(raw: Dict[str, Any], key: str, default: int) -> int:
    """Integer setting. Fractional, boolean and non-numeric values are rejected."""
    value = raw.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return int(value)


def load_config(config_path: Union[str, Path, None] = None) -> LendingConfig:
    """Load and validate lending configuration from YAML.

    The file may hold the settings at the top level or under a ``lending:`` key.

    Args:
        config_path: Path to the YAML file. Defaults to ``lending.yaml`` in the
            current working directory.
    """
    if config_path is None:
        config_path = Path.cwd() / "lending.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw: Optional[Dict[str, Any]] = yaml.safe_load(f)

    raw = raw or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    if "lending" in raw:
        raw = raw["lending"] or {}

    cfg = config_from_dict(raw)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: LendingConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.owner:
        raise ValueError("owner must be configured")
    if not cfg.allowed_asset:
        raise ValueError("allowed_asset must be configured")
    if not cfg.custody_account:
        raise ValueError("custody_account cannot be empty")
    if cfg.custody_account == cfg.owner:
        raise ValueError("custody_account must differ from owner")
    for name, (low, high) in _BANDS.items():
        value = getattr(cfg, name)
        if not low <= value <= high:
            raise ValueError(f"{name} must be in [{low}, {high}], got {value}")
