"""
rewards.py - Liquidator Reward Balances

RewardLedger tracks rewards earned by liquidators separately from the
collateral/debt accounting. A record is created on the first reward and zeroed
(not removed) when claimed.
"""

from __future__ import annotations
from typing import Dict

from .core import Account, Amount, RewardRecord, InsufficientBalance
from .safe_math import add


class RewardLedger:
    """Keyed storage of RewardRecord per liquidator."""

    def __init__(self):
        self.rewards: Dict[Account, RewardRecord] = {}

    def get_reward(self, account: Account) -> RewardRecord:
        return self.rewards.get(account, RewardRecord())

    def prepare_credit(self, account: Account, amount: Amount) -> RewardRecord:
        """
        Record that would result from crediting amount.

        Raises:
            ArithmeticOverflow: If the accrued balance overflows
        """
        current = self.get_reward(account)
        return RewardRecord(accrued_amount=add(current.accrued_amount, amount))

    def store(self, account: Account, record: RewardRecord) -> None:
        """Write a record produced by prepare_credit()."""
        self.rewards[account] = record

    def credit(self, account: Account, amount: Amount) -> RewardRecord:
        record = self.prepare_credit(account, amount)
        self.store(account, record)
        return record

    def claimable(self, account: Account) -> Amount:
        """
        Amount a claim would pay out.

        Raises:
            InsufficientBalance: If nothing has accrued
        """
        accrued = self.get_reward(account).accrued_amount
        if accrued == 0:
            raise InsufficientBalance(f"{account} has no rewards to claim")
        return accrued

    def settle_claim(self, account: Account) -> None:
        """Zero the record after the payout transfer succeeded."""
        self.rewards[account] = RewardRecord(accrued_amount=0)

    def total_accrued(self) -> Amount:
        return sum(r.accrued_amount for r in self.rewards.values())

    def __repr__(self) -> str:
        return f"RewardLedger({len(self.rewards)} liquidators)"
