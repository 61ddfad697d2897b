"""
state.py - Global Protocol State

ProtocolState holds the values shared by every position:
    - global counters: total_deposits, total_borrows
    - the pause flag
    - configuration scalars: interest rate, liquidation threshold,
      liquidator reward multiplier and seize fraction
    - identities: owner, allowed_asset

Configuration setters are owner-gated guard-and-assign operations validated
against fixed bands. They stay available while the protocol is paused.
"""

from __future__ import annotations
import logging
from typing import Any, Dict

from .core import (
    Account, Amount, ProtocolStats,
    NotAuthorized, InvalidAmount, ProtocolPaused,
    MIN_INTEREST_RATE_BPS, MAX_INTEREST_RATE_BPS, DEFAULT_INTEREST_RATE_BPS,
    MIN_LIQUIDATION_THRESHOLD_BPS, MAX_LIQUIDATION_THRESHOLD_BPS,
    DEFAULT_LIQUIDATION_THRESHOLD_BPS,
    MIN_REWARD_MULTIPLIER_BPS, MAX_REWARD_MULTIPLIER_BPS, DEFAULT_REWARD_MULTIPLIER_BPS,
    MIN_SEIZE_FRACTION_BPS, MAX_SEIZE_FRACTION_BPS, DEFAULT_MAX_SEIZE_FRACTION_BPS,
)

logger = logging.getLogger(__name__)


def check_band(name: str, value: int, low: int, high: int) -> int:
    """
    Return value if it is an int within [low, high].

    Raises:
        InvalidAmount: If value is not an int or lies outside the band
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidAmount(f"{name} must be int, got {type(value).__name__}")
    if value < low or value > high:
        raise InvalidAmount(f"{name} must be in [{low}, {high}], got {value}")
    return value


class ProtocolState:
    """
    Global counters, pause flag and configuration of one lending protocol.

    total_deposits only increases. total_borrows increases on borrow and
    decreases on repay and on liquidation, so it always equals the sum of
    open debts.
    """

    def __init__(
        self,
        owner: Account,
        allowed_asset: str,
        interest_rate_bps: int = DEFAULT_INTEREST_RATE_BPS,
        liquidation_threshold_bps: int = DEFAULT_LIQUIDATION_THRESHOLD_BPS,
        reward_multiplier_bps: int = DEFAULT_REWARD_MULTIPLIER_BPS,
        max_seize_fraction_bps: int = DEFAULT_MAX_SEIZE_FRACTION_BPS,
    ):
        if not owner or not owner.strip():
            raise ValueError("owner cannot be empty")
        if not allowed_asset or not allowed_asset.strip():
            raise ValueError("allowed_asset cannot be empty")
        self.owner = owner
        self.allowed_asset = allowed_asset
        self.paused = False
        self.total_deposits: Amount = 0
        self.total_borrows: Amount = 0
        self.interest_rate_bps = check_band(
            "interest_rate_bps", interest_rate_bps,
            MIN_INTEREST_RATE_BPS, MAX_INTEREST_RATE_BPS,
        )
        self.liquidation_threshold_bps = check_band(
            "liquidation_threshold_bps", liquidation_threshold_bps,
            MIN_LIQUIDATION_THRESHOLD_BPS, MAX_LIQUIDATION_THRESHOLD_BPS,
        )
        self.reward_multiplier_bps = check_band(
            "reward_multiplier_bps", reward_multiplier_bps,
            MIN_REWARD_MULTIPLIER_BPS, MAX_REWARD_MULTIPLIER_BPS,
        )
        self.max_seize_fraction_bps = check_band(
            "max_seize_fraction_bps", max_seize_fraction_bps,
            MIN_SEIZE_FRACTION_BPS, MAX_SEIZE_FRACTION_BPS,
        )

    # ========================================================================
    # GATES
    # ========================================================================

    def require_active(self) -> None:
        """Raise ProtocolPaused if user operations are suspended."""
        if self.paused:
            raise ProtocolPaused("protocol is paused")

    def require_asset(self, asset_symbol: str) -> None:
        """Raise NotAuthorized unless asset_symbol is the allowed asset."""
        if asset_symbol != self.allowed_asset:
            raise NotAuthorized(
                f"asset {asset_symbol!r} not allowed (expected {self.allowed_asset!r})"
            )

    def require_owner(self, caller: Account) -> None:
        """Raise NotAuthorized unless caller is the owner."""
        if caller != self.owner:
            raise NotAuthorized(f"{caller} is not the owner")

    # ========================================================================
    # ADMINISTRATION (owner only)
    # ========================================================================

    def set_interest_rate(self, caller: Account, rate_bps: int) -> None:
        self.require_owner(caller)
        self.interest_rate_bps = check_band(
            "interest_rate_bps", rate_bps, MIN_INTEREST_RATE_BPS, MAX_INTEREST_RATE_BPS,
        )
        logger.info("Interest rate set to %d bps", rate_bps)

    def set_liquidation_threshold(self, caller: Account, threshold_bps: int) -> None:
        self.require_owner(caller)
        self.liquidation_threshold_bps = check_band(
            "liquidation_threshold_bps", threshold_bps,
            MIN_LIQUIDATION_THRESHOLD_BPS, MAX_LIQUIDATION_THRESHOLD_BPS,
        )
        logger.info("Liquidation threshold set to %d bps", threshold_bps)

    def set_liquidation_reward(
        self,
        caller: Account,
        reward_multiplier_bps: int,
        max_seize_fraction_bps: int,
    ) -> None:
        """Set both reward parameters; neither changes unless both are valid."""
        self.require_owner(caller)
        multiplier = check_band(
            "reward_multiplier_bps", reward_multiplier_bps,
            MIN_REWARD_MULTIPLIER_BPS, MAX_REWARD_MULTIPLIER_BPS,
        )
        seize = check_band(
            "max_seize_fraction_bps", max_seize_fraction_bps,
            MIN_SEIZE_FRACTION_BPS, MAX_SEIZE_FRACTION_BPS,
        )
        self.reward_multiplier_bps = multiplier
        self.max_seize_fraction_bps = seize
        logger.info(
            "Liquidation reward set to multiplier=%d bps, max seize=%d bps",
            multiplier, seize,
        )

    def pause(self, caller: Account) -> None:
        self.require_owner(caller)
        self.paused = True
        logger.info("Protocol paused by %s", caller)

    def unpause(self, caller: Account) -> None:
        self.require_owner(caller)
        self.paused = False
        logger.info("Protocol unpaused by %s", caller)

    # ========================================================================
    # READS
    # ========================================================================

    def stats(self) -> ProtocolStats:
        return ProtocolStats(
            total_deposits=self.total_deposits,
            total_borrows=self.total_borrows,
            interest_rate_bps=self.interest_rate_bps,
        )

    def snapshot(self) -> Dict[str, Any]:
        """Every field as a plain dict."""
        return {
            'owner': self.owner,
            'allowed_asset': self.allowed_asset,
            'paused': self.paused,
            'total_deposits': self.total_deposits,
            'total_borrows': self.total_borrows,
            'interest_rate_bps': self.interest_rate_bps,
            'liquidation_threshold_bps': self.liquidation_threshold_bps,
            'reward_multiplier_bps': self.reward_multiplier_bps,
            'max_seize_fraction_bps': self.max_seize_fraction_bps,
        }

    def __repr__(self) -> str:
        flag = " PAUSED" if self.paused else ""
        return (
            f"ProtocolState(deposits={self.total_deposits}, "
            f"borrows={self.total_borrows}{flag})"
        )
