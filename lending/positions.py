"""
positions.py - Per-Account Deposit and Borrow Records

PositionLedger owns two keyed maps:
    deposits: account -> DepositRecord
    borrows:  account -> BorrowRecord

and updates the global counters on the ProtocolState it is given. It applies
no pause/asset/owner policy; those gates belong to LendingProtocol.

TWO-PHASE UPDATES:
==================

Each mutation is split in two:

1. prepare_*(): validates and computes the new records and counters,
   returning a PositionUpdate. Nothing is written.
2. commit(update): writes the records and counters.

This lets the caller run every check, then perform the external asset
transfer, and only then commit. deposit(), open_or_increase_borrow(),
repay() and apply_liquidation() are prepare + commit in one call.

COLLATERAL SNAPSHOT:
====================

A BorrowRecord's collateral_snapshot is copied from the account's current
deposit_amount on every borrow. Later deposits leave it untouched until the
account borrows again. Repay and liquidation never look at DepositRecord.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional

from .core import (
    Account, Amount, DepositRecord, BorrowRecord,
    InvalidAmount, InsufficientCollateral, MAX_UINT, UINT_BITS,
)
from .risk import is_borrow_admissible
from .safe_math import add, subtract
from .state import ProtocolState


@dataclass(frozen=True, slots=True)
class PositionUpdate:
    """
    Validated, uncommitted change to one account's position.

    Attributes:
        account: Account whose records change
        deposit: New DepositRecord, or None if unchanged
        borrow: New BorrowRecord, or None if unchanged
        total_deposits: Global total after the change
        total_borrows: Global total after the change
    """
    account: Account
    total_deposits: Amount
    total_borrows: Amount
    deposit: Optional[DepositRecord] = None
    borrow: Optional[BorrowRecord] = None


def _require_positive(name: str, amount: Amount) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmount(f"{name} must be int, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidAmount(f"{name} must be positive, got {amount}")
    if amount > MAX_UINT:
        raise InvalidAmount(f"{name} exceeds {UINT_BITS}-bit width: {amount}")


class PositionLedger:
    """
    Keyed storage of deposit and borrow records.

    Example:
        state = ProtocolState(owner="admin", allowed_asset="USDX")
        positions = PositionLedger(state)
        positions.deposit("alice", 1_000_000)
        positions.open_or_increase_borrow("alice", 600_000)
        positions.get_borrow("alice")
        # BorrowRecord(debt_amount=600000, collateral_snapshot=1000000)
    """

    def __init__(self, state: ProtocolState):
        self.state = state
        self.deposits: Dict[Account, DepositRecord] = {}
        self.borrows: Dict[Account, BorrowRecord] = {}

    # ========================================================================
    # READS
    # ========================================================================

    def get_deposit(self, account: Account) -> DepositRecord:
        """Deposit record of account (zero record if it never deposited)."""
        return self.deposits.get(account, DepositRecord())

    def get_borrow(self, account: Account) -> BorrowRecord:
        """Borrow record of account (zero record if it never borrowed)."""
        return self.borrows.get(account, BorrowRecord())

    def accounts(self) -> List[Account]:
        """Sorted list of accounts with any record."""
        return sorted(set(self.deposits) | set(self.borrows))

    # ========================================================================
    # PREPARE (pure, no writes)
    # ========================================================================

    def prepare_deposit(self, account: Account, amount: Amount) -> PositionUpdate:
        """
        Validate a deposit.

        Raises:
            InvalidAmount: If amount is not positive
            ArithmeticOverflow: If the deposit or the global total overflows
        """
        _require_positive("deposit amount", amount)
        current = self.get_deposit(account)
        return PositionUpdate(
            account=account,
            deposit=DepositRecord(deposit_amount=add(current.deposit_amount, amount)),
            total_deposits=add(self.state.total_deposits, amount),
            total_borrows=self.state.total_borrows,
        )

    def prepare_borrow(self, account: Account, amount: Amount) -> PositionUpdate:
        """
        Validate a borrow and re-snapshot the account's collateral.

        Raises:
            InvalidAmount: If amount is not positive
            InsufficientCollateral: If the new debt would exceed 2/3 of the deposit
            ArithmeticOverflow: If the debt, the ratio or the global total overflows
        """
        _require_positive("borrow amount", amount)
        collateral = self.get_deposit(account).deposit_amount
        new_debt = add(self.get_borrow(account).debt_amount, amount)
        if not is_borrow_admissible(collateral, new_debt):
            raise InsufficientCollateral(
                f"{account}: collateral {collateral} does not cover 150% of debt {new_debt}"
            )
        return PositionUpdate(
            account=account,
            borrow=BorrowRecord(debt_amount=new_debt, collateral_snapshot=collateral),
            total_deposits=self.state.total_deposits,
            total_borrows=add(self.state.total_borrows, amount),
        )

    def prepare_repay(self, account: Account, amount: Amount) -> PositionUpdate:
        """
        Validate a repayment.

        Raises:
            InvalidAmount: If amount is not positive or exceeds the current debt
        """
        _require_positive("repay amount", amount)
        current = self.get_borrow(account)
        if amount > current.debt_amount:
            raise InvalidAmount(
                f"{account}: repay {amount} exceeds debt {current.debt_amount}"
            )
        return PositionUpdate(
            account=account,
            borrow=BorrowRecord(
                debt_amount=current.debt_amount - amount,
                collateral_snapshot=current.collateral_snapshot,
            ),
            total_deposits=self.state.total_deposits,
            total_borrows=subtract(self.state.total_borrows, amount),
        )

    def prepare_liquidation(
        self,
        target: Account,
        repay_amount: Amount,
        reward: Amount,
    ) -> PositionUpdate:
        """
        Reduce the target's debt by repay_amount and its snapshot by reward.

        The snapshot floors at zero. Eligibility and the repay bound are
        checked by the liquidation engine before this is called.
        """
        current = self.get_borrow(target)
        if repay_amount > current.debt_amount:
            raise InvalidAmount(
                f"{target}: liquidation repay {repay_amount} exceeds debt {current.debt_amount}"
            )
        return PositionUpdate(
            account=target,
            borrow=BorrowRecord(
                debt_amount=current.debt_amount - repay_amount,
                collateral_snapshot=subtract(current.collateral_snapshot, reward),
            ),
            total_deposits=self.state.total_deposits,
            total_borrows=subtract(self.state.total_borrows, repay_amount),
        )

    # ========================================================================
    # COMMIT
    # ========================================================================

    def commit(self, update: PositionUpdate) -> None:
        """Write a prepared update. Never fails."""
        if update.deposit is not None:
            self.deposits[update.account] = update.deposit
        if update.borrow is not None:
            self.borrows[update.account] = update.borrow
        self.state.total_deposits = update.total_deposits
        self.state.total_borrows = update.total_borrows

    # ========================================================================
    # ONE-STEP OPERATIONS
    # ========================================================================

    def deposit(self, account: Account, amount: Amount) -> DepositRecord:
        update = self.prepare_deposit(account, amount)
        self.commit(update)
        return update.deposit

    def open_or_increase_borrow(self, account: Account, amount: Amount) -> BorrowRecord:
        update = self.prepare_borrow(account, amount)
        self.commit(update)
        return update.borrow

    def repay(self, account: Account, amount: Amount) -> BorrowRecord:
        update = self.prepare_repay(account, amount)
        self.commit(update)
        return update.borrow

    def apply_liquidation(self, target: Account, repay_amount: Amount, reward: Amount) -> BorrowRecord:
        update = self.prepare_liquidation(target, repay_amount, reward)
        self.commit(update)
        return update.borrow

    def __repr__(self) -> str:
        return f"PositionLedger({len(self.deposits)} deposits, {len(self.borrows)} borrows)"
