"""
liquidation.py - Liquidation Eligibility and Liquidator Reward

ARCHITECTURE (Pure Function Pattern):
=====================================

1. calculate_reward(): the reward formula, all inputs explicit.
2. plan_liquidation(): validates a liquidation against a BorrowRecord and
   returns a frozen LiquidationPlan. No ledger access, no side effects.
3. LendingProtocol.liquidate() (protocol.py) loads the record, plans, moves
   the repaid funds through the asset service and commits the plan.

Key Formulas:
    bonus_cap  = repay_amount * reward_multiplier_bps // 10000
    seize_cap  = collateral_snapshot * max_seize_fraction_bps // 10000
    reward     = min(bonus_cap, seize_cap)
    debt_after       = debt - repay_amount
    collateral_after = max(0, collateral_snapshot - reward)

Example (threshold 8000, multiplier 11000, seize 5000):
    debt 1,250,000 against snapshot 1,000,000 -> ratio 8,000 bps -> eligible
    repay 500,000 -> bonus_cap 550,000, seize_cap 500,000 -> reward 500,000
    debt_after 750,000, collateral_after 500,000
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import (
    Amount, BorrowRecord, BPS_SCALE, MAX_UINT, UINT_BITS,
    InvalidAmount, LiquidationNotEligible,
)
from .risk import collateral_ratio_bps, is_liquidatable
from .safe_math import multiply, subtract


@dataclass(frozen=True, slots=True)
class LiquidationPlan:
    """
    Validated outcome of a liquidation, not yet applied.

    Attributes:
        repay_amount: Debt the liquidator pays off
        reward: Amount credited to the liquidator's reward balance
        ratio_bps: Target's collateral ratio before liquidation
        debt_after: Target's debt after liquidation
        collateral_after: Target's collateral snapshot after liquidation
    """
    repay_amount: Amount
    reward: Amount
    ratio_bps: int
    debt_after: Amount
    collateral_after: Amount


def calculate_reward(
    repay_amount: Amount,
    collateral_available: Amount,
    reward_multiplier_bps: int,
    max_seize_fraction_bps: int,
) -> Amount:
    """
    Liquidator reward for repaying repay_amount of a position's debt.

    PURE FUNCTION - All inputs explicit.

    The liquidator receives more than it repaid (multiplier above 100%), but
    never more than max_seize_fraction_bps of the remaining collateral.

    Raises:
        ArithmeticOverflow: If either product overflows
    """
    bonus_cap = multiply(repay_amount, reward_multiplier_bps) // BPS_SCALE
    seize_cap = multiply(collateral_available, max_seize_fraction_bps) // BPS_SCALE
    return min(bonus_cap, seize_cap)


def plan_liquidation(
    borrow: BorrowRecord,
    repay_amount: Amount,
    liquidation_threshold_bps: int,
    reward_multiplier_bps: int,
    max_seize_fraction_bps: int,
) -> LiquidationPlan:
    """
    Validate a liquidation and compute its effect on the target.

    PURE FUNCTION - operates on the target's BorrowRecord only.

    Checks, in order:
        1. repay_amount is a positive int
        2. the position is liquidatable at the threshold
        3. repay_amount does not exceed the debt

    Raises:
        InvalidAmount: Zero repay_amount, or repay_amount above the debt
        LiquidationNotEligible: Ratio above the threshold, or no debt
    """
    if not isinstance(repay_amount, int) or isinstance(repay_amount, bool) or repay_amount <= 0:
        raise InvalidAmount(f"liquidation repay amount must be positive, got {repay_amount!r}")
    if repay_amount > MAX_UINT:
        raise InvalidAmount(f"liquidation repay amount exceeds {UINT_BITS}-bit width: {repay_amount}")

    debt = borrow.debt_amount
    collateral = borrow.collateral_snapshot
    if not is_liquidatable(collateral, debt, liquidation_threshold_bps):
        ratio = collateral_ratio_bps(collateral, debt)
        raise LiquidationNotEligible(
            f"position ratio {ratio} bps is above threshold {liquidation_threshold_bps} bps"
            if ratio is not None else "position has no debt"
        )
    if repay_amount > debt:
        raise InvalidAmount(f"repay {repay_amount} exceeds debt {debt}")

    reward = calculate_reward(
        repay_amount, collateral, reward_multiplier_bps, max_seize_fraction_bps,
    )
    return LiquidationPlan(
        repay_amount=repay_amount,
        reward=reward,
        ratio_bps=collateral_ratio_bps(collateral, debt),
        debt_after=debt - repay_amount,
        collateral_after=subtract(collateral, reward),
    )
