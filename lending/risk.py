"""
risk.py - Collateralization Predicates

Pure functions over a position's collateral and debt, expressed in basis
points. They take the values explicitly and never read ledger state, so the
risk view of an open debt is whatever collateral snapshot the caller passes.

Key formulas:
    ratio_bps        = collateral * 10000 // debt
    borrow allowed   : debt == 0 or ratio_bps >= 15000
    liquidatable     : debt > 0 and ratio_bps <= liquidation_threshold_bps
"""

from __future__ import annotations
from typing import Optional

from .core import BPS_SCALE, MIN_COLLATERAL_RATIO_BPS, Amount
from .safe_math import multiply


def collateral_ratio_bps(collateral: Amount, debt: Amount) -> Optional[int]:
    """
    Collateralization ratio in basis points, truncated toward zero.

    Returns:
        collateral * 10000 // debt, or None when debt is zero (no ratio)

    Raises:
        ArithmeticOverflow: If collateral * 10000 overflows
    """
    if debt == 0:
        return None
    return multiply(collateral, BPS_SCALE) // debt


def is_borrow_admissible(collateral: Amount, total_debt_after_borrow: Amount) -> bool:
    """
    True if collateral covers at least 150% of the debt after the borrow.

    A zero debt is vacuously admissible.

    Example:
        collateral 1,000,000 and debt 600,000 -> 16,666 bps -> True
        collateral 1,000,000 and debt 700,000 -> 14,285 bps -> False
    """
    ratio = collateral_ratio_bps(collateral, total_debt_after_borrow)
    if ratio is None:
        return True
    return ratio >= MIN_COLLATERAL_RATIO_BPS


def is_liquidatable(collateral: Amount, debt: Amount, liquidation_threshold_bps: int) -> bool:
    """
    True if the position has debt and its ratio is at or below the threshold.

    Example:
        collateral 1,000,000, debt 1,250,000, threshold 8,000 -> 8,000 bps -> True
    """
    ratio = collateral_ratio_bps(collateral, debt)
    if ratio is None:
        return False
    return ratio <= liquidation_threshold_bps
