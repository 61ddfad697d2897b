"""
protocol.py - Collateralized Lending Protocol

LendingProtocol is the only entry point that changes lending state. It owns a
ProtocolState, a PositionLedger and a RewardLedger, and moves funds only
through an external AssetService.

Every user operation follows the same order:
    1. Gate: protocol not paused, asset is the allowed asset
    2. Check: validate against current records (prepare_* / plan_*)
    3. Interact: call AssetService.transfer() with the custody account
    4. Commit: write records and counters only if the transfer was APPLIED

A failed check or a rejected transfer leaves every record, counter and the
audit log untouched.

Thread Safety:
    All public methods, reads included, run under one re-entrant lock per
    protocol instance. Operations are therefore serialized and the global
    counters are linearizable with respect to every ratio check.

Example:
    token = TokenLedger("USDX")
    for wallet in ("alice", "lending-protocol"):
        token.register_wallet(wallet)
    token.issue("alice", 1_000_000)

    protocol = LendingProtocol(owner="admin", allowed_asset="USDX")
    protocol.deposit("alice", token, 1_000_000)
    protocol.borrow("alice", token, 600_000)
    protocol.get_protocol_stats()
    # ProtocolStats(total_deposits=1000000, total_borrows=600000, interest_rate_bps=500)
"""

from __future__ import annotations
from contextlib import contextmanager
import logging
import threading
from typing import Any, Dict, Iterator, List, Optional

from .config import LendingConfig
from .core import (
    Account, Action, Amount, AssetService, LedgerEntry, TransferResult,
    DepositRecord, BorrowRecord, RewardRecord, ProtocolStats,
    LendingError, InsufficientBalance,
    DEFAULT_CUSTODY_ACCOUNT, DEFAULT_INTEREST_RATE_BPS,
    DEFAULT_LIQUIDATION_THRESHOLD_BPS, DEFAULT_REWARD_MULTIPLIER_BPS,
    DEFAULT_MAX_SEIZE_FRACTION_BPS,
)
from .liquidation import plan_liquidation
from .positions import PositionLedger
from .rewards import RewardLedger
from .risk import collateral_ratio_bps, is_liquidatable
from .state import ProtocolState

logger = logging.getLogger(__name__)


class LendingProtocol:
    """
    Deposit, borrow, repay, liquidate and claim against a single asset.

    Attributes:
        state: Global counters, pause flag and configuration
        positions: Deposit and borrow records
        rewards: Liquidator reward balances
        custody_account: Wallet on the asset service that holds collateral
        entries: Append-only audit log of committed operations

    Args:
        test_mode: Enable set_position() for seeding positions in tests
    """

    def __init__(
        self,
        owner: Account,
        allowed_asset: str,
        custody_account: Account = DEFAULT_CUSTODY_ACCOUNT,
        interest_rate_bps: int = DEFAULT_INTEREST_RATE_BPS,
        liquidation_threshold_bps: int = DEFAULT_LIQUIDATION_THRESHOLD_BPS,
        reward_multiplier_bps: int = DEFAULT_REWARD_MULTIPLIER_BPS,
        max_seize_fraction_bps: int = DEFAULT_MAX_SEIZE_FRACTION_BPS,
        test_mode: bool = False,
    ):
        if not custody_account or not custody_account.strip():
            raise ValueError("custody_account cannot be empty")
        self.state = ProtocolState(
            owner=owner,
            allowed_asset=allowed_asset,
            interest_rate_bps=interest_rate_bps,
            liquidation_threshold_bps=liquidation_threshold_bps,
            reward_multiplier_bps=reward_multiplier_bps,
            max_seize_fraction_bps=max_seize_fraction_bps,
        )
        self.positions = PositionLedger(self.state)
        self.rewards = RewardLedger()
        self.custody_account = custody_account
        self.entries: List[LedgerEntry] = []
        self._next_sequence = 0
        self._lock = threading.RLock()
        self._test_mode = test_mode

    @classmethod
    def from_config(cls, config: LendingConfig) -> LendingProtocol:
        """Build a protocol from a loaded LendingConfig."""
        return cls(
            owner=config.owner,
            allowed_asset=config.allowed_asset,
            custody_account=config.custody_account,
            interest_rate_bps=config.interest_rate_bps,
            liquidation_threshold_bps=config.liquidation_threshold_bps,
            reward_multiplier_bps=config.reward_multiplier_bps,
            max_seize_fraction_bps=config.max_seize_fraction_bps,
        )

    # ========================================================================
    # USER OPERATIONS
    # ========================================================================

    def deposit(self, caller: Account, token: AssetService, amount: Amount) -> DepositRecord:
        """
        Deposit collateral.

        Raises:
            ProtocolPaused, NotAuthorized: Gate failures
            InvalidAmount: If amount is zero
            ArithmeticOverflow: If the deposit or total overflows
            InsufficientBalance: If the transfer into custody is rejected
        """
        with self._operation(Action.DEPOSIT, caller):
            self._gate(token)
            update = self.positions.prepare_deposit(caller, amount)
            self._transfer(token, amount, caller, self.custody_account, Action.DEPOSIT)
            self.positions.commit(update)
            self._record(Action.DEPOSIT, caller, amount,
                         detail={'deposit_amount': update.deposit.deposit_amount})
            return update.deposit

    def borrow(self, caller: Account, token: AssetService, amount: Amount) -> BorrowRecord:
        """
        Borrow against deposited collateral, re-snapshotting it.

        Raises:
            ProtocolPaused, NotAuthorized: Gate failures
            InvalidAmount: If amount is zero
            InsufficientCollateral: If collateral would fall below 150% of debt
            ArithmeticOverflow: If the debt, ratio or total overflows
            InsufficientBalance: If the transfer out of custody is rejected
        """
        with self._operation(Action.BORROW, caller):
            self._gate(token)
            update = self.positions.prepare_borrow(caller, amount)
            self._transfer(token, amount, self.custody_account, caller, Action.BORROW)
            self.positions.commit(update)
            self._record(Action.BORROW, caller, amount, detail={
                'debt_amount': update.borrow.debt_amount,
                'collateral_snapshot': update.borrow.collateral_snapshot,
            })
            return update.borrow

    def repay(self, caller: Account, token: AssetService, amount: Amount) -> BorrowRecord:
        """
        Repay part or all of the caller's debt.

        Raises:
            ProtocolPaused, NotAuthorized: Gate failures
            InvalidAmount: If amount is zero or exceeds the debt
            InsufficientBalance: If the transfer into custody is rejected
        """
        with self._operation(Action.REPAY, caller):
            self._gate(token)
            update = self.positions.prepare_repay(caller, amount)
            self._transfer(token, amount, caller, self.custody_account, Action.REPAY)
            self.positions.commit(update)
            self._record(Action.REPAY, caller, amount,
                         detail={'debt_amount': update.borrow.debt_amount})
            return update.borrow

    def liquidate(
        self,
        liquidator: Account,
        token: AssetService,
        target: Account,
        repay_amount: Amount,
    ) -> Amount:
        """
        Repay part of an under-collateralized position in exchange for a reward.

        The liquidator pays repay_amount into custody. The reward is credited
        to its RewardRecord (paid out by claim_rewards) and deducted from the
        target's collateral snapshot.

        Returns:
            The reward credited

        Raises:
            ProtocolPaused, NotAuthorized: Gate failures
            InvalidAmount: If repay_amount is zero or exceeds the debt
            LiquidationNotEligible: If the target ratio is above the threshold
            ArithmeticOverflow: If the reward balance overflows
            InsufficientBalance: If the transfer into custody is rejected
        """
        with self._operation(Action.LIQUIDATE, liquidator):
            self._gate(token)
            plan = plan_liquidation(
                self.positions.get_borrow(target),
                repay_amount,
                self.state.liquidation_threshold_bps,
                self.state.reward_multiplier_bps,
                self.state.max_seize_fraction_bps,
            )
            reward_record = self.rewards.prepare_credit(liquidator, plan.reward)
            update = self.positions.prepare_liquidation(target, plan.repay_amount, plan.reward)
            self._transfer(token, repay_amount, liquidator, self.custody_account, Action.LIQUIDATE)
            self.rewards.store(liquidator, reward_record)
            self.positions.commit(update)
            self._record(Action.LIQUIDATE, liquidator, repay_amount, counterparty=target, detail={
                'reward': plan.reward,
                'ratio_bps': plan.ratio_bps,
                'debt_amount': plan.debt_after,
                'collateral_snapshot': plan.collateral_after,
            })
            return plan.reward

    def claim_rewards(self, liquidator: Account, token: AssetService) -> Amount:
        """
        Pay out the liquidator's accrued rewards and zero its record.

        Returns:
            The amount paid

        Raises:
            ProtocolPaused, NotAuthorized: Gate failures
            InsufficientBalance: If nothing has accrued or the payout is rejected
        """
        with self._operation(Action.CLAIM_REWARDS, liquidator):
            self._gate(token)
            amount = self.rewards.claimable(liquidator)
            self._transfer(token, amount, self.custody_account, liquidator, Action.CLAIM_REWARDS)
            self.rewards.settle_claim(liquidator)
            self._record(Action.CLAIM_REWARDS, liquidator, amount)
            return amount

    # ========================================================================
    # ADMINISTRATION (owner only)
    # ========================================================================

    def set_interest_rate(self, caller: Account, rate_bps: int) -> None:
        with self._operation(Action.SET_INTEREST_RATE, caller):
            self.state.set_interest_rate(caller, rate_bps)
            self._record(Action.SET_INTEREST_RATE, caller, rate_bps)

    def set_liquidation_threshold(self, caller: Account, threshold_bps: int) -> None:
        with self._operation(Action.SET_LIQUIDATION_THRESHOLD, caller):
            self.state.set_liquidation_threshold(caller, threshold_bps)
            self._record(Action.SET_LIQUIDATION_THRESHOLD, caller, threshold_bps)

    def set_liquidation_reward(
        self,
        caller: Account,
        reward_multiplier_bps: int,
        max_seize_fraction_bps: int,
    ) -> None:
        with self._operation(Action.SET_LIQUIDATION_REWARD, caller):
            self.state.set_liquidation_reward(caller, reward_multiplier_bps, max_seize_fraction_bps)
            self._record(Action.SET_LIQUIDATION_REWARD, caller, reward_multiplier_bps,
                         detail={'max_seize_fraction_bps': max_seize_fraction_bps})

    def pause(self, caller: Account) -> None:
        with self._operation(Action.PAUSE, caller):
            self.state.pause(caller)
            self._record(Action.PAUSE, caller, 0)

    def unpause(self, caller: Account) -> None:
        with self._operation(Action.UNPAUSE, caller):
            self.state.unpause(caller)
            self._record(Action.UNPAUSE, caller, 0)

    def set_position(self, account: Account, debt_amount: Amount, collateral_snapshot: Amount) -> None:
        """
        Overwrite an account's BorrowRecord directly.

        WARNING: This bypasses the collateralization check and the asset
        service, and is only available in test mode. total_borrows is adjusted
        by the change in debt so the accounting stays consistent.

        Raises:
            LendingError: If called when test_mode is False
        """
        if not self._test_mode:
            raise LendingError(
                "set_position() is disabled in production mode. "
                "Set test_mode=True when creating LendingProtocol for testing."
            )
        with self._lock:
            record = BorrowRecord(debt_amount=debt_amount, collateral_snapshot=collateral_snapshot)
            old_debt = self.positions.get_borrow(account).debt_amount
            self.positions.borrows[account] = record
            self.state.total_borrows = self.state.total_borrows - old_debt + debt_amount

    # ========================================================================
    # READS
    # ========================================================================

    def get_deposit(self, account: Account) -> DepositRecord:
        with self._lock:
            return self.positions.get_deposit(account)

    def get_borrow(self, account: Account) -> BorrowRecord:
        with self._lock:
            return self.positions.get_borrow(account)

    def get_reward(self, account: Account) -> RewardRecord:
        with self._lock:
            return self.rewards.get_reward(account)

    def get_collateral_ratio(self, account: Account) -> Optional[int]:
        """Ratio of the account's collateral snapshot to its debt, in bps (None without debt)."""
        with self._lock:
            borrow = self.positions.get_borrow(account)
            return collateral_ratio_bps(borrow.collateral_snapshot, borrow.debt_amount)

    def is_position_liquidatable(self, account: Account) -> bool:
        with self._lock:
            borrow = self.positions.get_borrow(account)
            return is_liquidatable(
                borrow.collateral_snapshot,
                borrow.debt_amount,
                self.state.liquidation_threshold_bps,
            )

    def get_protocol_stats(self) -> ProtocolStats:
        with self._lock:
            return self.state.stats()

    def get_config_snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {**self.state.snapshot(), 'custody_account': self.custody_account}

    def verify_accounting(self) -> Dict[str, Any]:
        """
        Check the global counters against the per-account records.

        Returns:
            Dict with keys:
            - 'valid': bool - True if both counters match their sums
            - 'total_deposits': int - Counter value
            - 'total_borrows': int - Counter value
            - 'discrepancies': List[Dict] - counter, expected (sum), actual

        Example:
            result = protocol.verify_accounting()
            assert result['valid'], result['discrepancies']
        """
        with self._lock:
            sum_deposits = sum(r.deposit_amount for r in self.positions.deposits.values())
            sum_debts = sum(r.debt_amount for r in self.positions.borrows.values())
            discrepancies = []
            if sum_deposits != self.state.total_deposits:
                discrepancies.append({
                    'counter': 'total_deposits',
                    'expected': sum_deposits,
                    'actual': self.state.total_deposits,
                })
            if sum_debts != self.state.total_borrows:
                discrepancies.append({
                    'counter': 'total_borrows',
                    'expected': sum_debts,
                    'actual': self.state.total_borrows,
                })
            return {
                'valid': len(discrepancies) == 0,
                'total_deposits': self.state.total_deposits,
                'total_borrows': self.state.total_borrows,
                'discrepancies': discrepancies,
            }

    # ========================================================================
    # INTERNALS
    # ========================================================================

    @contextmanager
    def _operation(self, action: Action, caller: Account) -> Iterator[None]:
        """Serialize one operation and log its rejection."""
        with self._lock:
            try:
                yield
            except LendingError as exc:
                logger.debug("%s by %s rejected: %s: %s",
                             action.value, caller, type(exc).__name__, exc)
                raise

    def _gate(self, token: AssetService) -> None:
        self.state.require_active()
        self.state.require_asset(token.symbol)

    def _transfer(
        self,
        token: AssetService,
        amount: Amount,
        sender: Account,
        recipient: Account,
        action: Action,
    ) -> None:
        """
        Move funds through the asset service.

        Raises:
            InsufficientBalance: If the service does not report APPLIED
        """
        result = token.transfer(amount, sender, recipient, memo=action.value)
        if result is not TransferResult.APPLIED:
            logger.warning("%s transfer of %d %s -> %s failed: %s",
                           action.value, amount, sender, recipient, result)
            raise InsufficientBalance(
                f"{action.value}: transfer of {amount} from {sender} to {recipient} failed"
            )

    def _record(
        self,
        action: Action,
        account: Account,
        amount: Amount,
        counterparty: Optional[Account] = None,
        detail: Optional[Dict[str, Any]] = None,
    ) -> LedgerEntry:
        entry = LedgerEntry(
            sequence=self._next_sequence,
            action=action,
            account=account,
            amount=amount,
            counterparty=counterparty,
            detail=detail,
        )
        self._next_sequence += 1
        self.entries.append(entry)
        logger.info("%r", entry)
        return entry

    def __repr__(self) -> str:
        return f"LendingProtocol({self.state.allowed_asset}, {self.state!r})"
