"""
Core types and constants for the collateralized-lending ledger.

This module provides the foundational pieces shared by every other module:
1. Constants: basis-point scale, integer width, parameter bands
2. Exceptions: LendingError and the operation error taxonomy
3. Immutable records: DepositRecord, BorrowRecord, RewardRecord, ProtocolStats
4. Audit records: LedgerEntry
5. Protocols: AssetService, the external fungible-asset collaborator

Nothing in this module mutates state.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# 10000 bps = 100%
BPS_SCALE = 10_000

# Amounts are unsigned 128-bit integers in the asset's smallest unit.
UINT_BITS = 128
MAX_UINT = (1 << UINT_BITS) - 1

# A borrow must leave collateral >= 150% of total debt.
MIN_COLLATERAL_RATIO_BPS = 15_000

# Interest rate band (stored, never applied to balances).
MIN_INTEREST_RATE_BPS = 100
MAX_INTEREST_RATE_BPS = 10_000
DEFAULT_INTEREST_RATE_BPS = 500

# Liquidation threshold band.
MIN_LIQUIDATION_THRESHOLD_BPS = 7_000
MAX_LIQUIDATION_THRESHOLD_BPS = 9_500
DEFAULT_LIQUIDATION_THRESHOLD_BPS = 8_000

# Liquidator reward: bonus over the repaid amount, capped by a share of the
# target's collateral snapshot.
MIN_REWARD_MULTIPLIER_BPS = 10_000
MAX_REWARD_MULTIPLIER_BPS = 12_000
DEFAULT_REWARD_MULTIPLIER_BPS = 11_000
MIN_SEIZE_FRACTION_BPS = 1
MAX_SEIZE_FRACTION_BPS = 10_000
DEFAULT_MAX_SEIZE_FRACTION_BPS = 5_000

# Account that holds deposited collateral on the asset service.
DEFAULT_CUSTODY_ACCOUNT = "lending-protocol"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Opaque principal identifier.
Account = str

# Non-negative integer amount in the asset's smallest unit.
Amount = int


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LendingError(Exception):
    """Base exception for all lending-ledger errors."""
    pass


class NotAuthorized(LendingError):
    """Raised when the caller is not the owner, or the asset is not the allowed asset."""
    pass


class InvalidAmount(LendingError):
    """Raised for a zero amount, an amount above the current debt, or an out-of-band parameter."""
    pass


class InsufficientCollateral(LendingError):
    """Raised when a borrow would leave the position below 150% collateralization."""
    pass


class LiquidationNotEligible(LendingError):
    """Raised when liquidating a position whose ratio is above the liquidation threshold."""
    pass


class InsufficientBalance(LendingError):
    """Raised when claiming with no accrued reward, or when the asset transfer fails."""
    pass


class ArithmeticOverflow(LendingError):
    """Raised when an addition or multiplication exceeds the integer width."""
    pass


class ProtocolPaused(LendingError):
    """Raised when a user operation is attempted while the protocol is paused."""
    pass


# ============================================================================
# ENUMS
# ============================================================================

class TransferResult(Enum):
    """
    Outcome of an asset transfer.

    APPLIED: Funds moved.
    REJECTED: Nothing moved (unknown wallet, insufficient balance, ...).
    """
    APPLIED = "applied"
    REJECTED = "rejected"


class Action(str, Enum):
    """Kind of operation recorded in the audit log."""
    DEPOSIT = "deposit"
    BORROW = "borrow"
    REPAY = "repay"
    LIQUIDATE = "liquidate"
    CLAIM_REWARDS = "claim_rewards"
    SET_INTEREST_RATE = "set_interest_rate"
    SET_LIQUIDATION_THRESHOLD = "set_liquidation_threshold"
    SET_LIQUIDATION_REWARD = "set_liquidation_reward"
    PAUSE = "pause"
    UNPAUSE = "unpause"


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def require_uint(name: str, value: Any) -> None:
    """
    Raise ValueError unless value is an int in [0, MAX_UINT].

    bool is rejected even though it subclasses int.
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    if value > MAX_UINT:
        raise ValueError(f"{name} exceeds {UINT_BITS}-bit width: {value}")


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class DepositRecord:
    """
    Collateral deposited by one account.

    Only ever increases; there is no withdrawal path.
    """
    deposit_amount: Amount = 0

    def __post_init__(self):
        require_uint("deposit_amount", self.deposit_amount)


@dataclass(frozen=True, slots=True)
class BorrowRecord:
    """
    Open debt of one account.

    Attributes:
        debt_amount: Outstanding debt.
        collateral_snapshot: The account's deposit_amount copied at its last
            borrow. Deposits made afterwards do not update it; repay and
            liquidation work against this value only.
    """
    debt_amount: Amount = 0
    collateral_snapshot: Amount = 0

    def __post_init__(self):
        require_uint("debt_amount", self.debt_amount)
        require_uint("collateral_snapshot", self.collateral_snapshot)

    @property
    def is_open(self) -> bool:
        return self.debt_amount > 0


@dataclass(frozen=True, slots=True)
class RewardRecord:
    """Liquidation rewards accrued by one liquidator and not yet claimed."""
    accrued_amount: Amount = 0

    def __post_init__(self):
        require_uint("accrued_amount", self.accrued_amount)


@dataclass(frozen=True, slots=True)
class ProtocolStats:
    """Global statistics exposed by the read interface."""
    total_deposits: Amount
    total_borrows: Amount
    interest_rate_bps: int


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """
    Immutable audit record of a committed operation.

    Attributes:
        sequence: Monotonic position in the protocol's log
        action: What happened
        account: The caller (depositor, borrower, liquidator, owner)
        amount: Amount moved or parameter value set
        counterparty: Liquidation target, if any
        detail: Extra values (reward, new debt, ...)
    """
    sequence: int
    action: Action
    account: Account
    amount: Amount
    counterparty: Optional[Account] = None
    detail: Optional[Dict[str, Any]] = None

    def __repr__(self) -> str:
        target = f" -> {self.counterparty}" if self.counterparty else ""
        return f"LedgerEntry(#{self.sequence} {self.action.value} {self.account}{target}: {self.amount})"


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class AssetService(Protocol):
    """
    External fungible-asset service used for custody.

    The lending protocol never moves funds itself. It calls transfer() with its
    own custody account as sender or recipient and commits ledger changes only
    when the result is TransferResult.APPLIED.
    """

    @property
    def symbol(self) -> str:
        """Identifier of the asset this service moves."""
        ...

    def transfer(
        self,
        amount: Amount,
        sender: Account,
        recipient: Account,
        memo: Optional[str] = None,
    ) -> TransferResult:
        """Move amount from sender to recipient, all or nothing."""
        ...

    def balance(self, account: Account) -> Amount:
        """Current balance of account (0 if unknown)."""
        ...
