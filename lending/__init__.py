"""
lending - Collateralized Lending Ledger

A single-asset lending ledger: users deposit collateral, borrow up to 2/3 of
it, repay, and liquidators close out under-collateralized positions for a
reward. Funds move only through an external asset service.

Usage:
    from lending import LendingProtocol, TokenLedger

    token = TokenLedger("USDX")
    for wallet in ("alice", "bob", "lending-protocol"):
        token.register_wallet(wallet)
    token.issue("alice", 1_000_000)

    protocol = LendingProtocol(owner="admin", allowed_asset="USDX")
    protocol.deposit("alice", token, 1_000_000)
    protocol.borrow("alice", token, 600_000)
    protocol.repay("alice", token, 100_000)
"""

# Core types
from .core import (
    Account,
    Amount,
    Action,
    AssetService,
    TransferResult,
    DepositRecord,
    BorrowRecord,
    RewardRecord,
    ProtocolStats,
    LedgerEntry,
    LendingError,
    NotAuthorized,
    InvalidAmount,
    InsufficientCollateral,
    LiquidationNotEligible,
    InsufficientBalance,
    ArithmeticOverflow,
    ProtocolPaused,
    BPS_SCALE,
    MAX_UINT,
    MIN_COLLATERAL_RATIO_BPS,
    MAX_REWARD_MULTIPLIER_BPS,
    DEFAULT_CUSTODY_ACCOUNT,
)

# Arithmetic
from .safe_math import add, subtract, multiply

# Risk predicates
from .risk import collateral_ratio_bps, is_borrow_admissible, is_liquidatable

# Ledgers and state
from .state import ProtocolState
from .positions import PositionLedger, PositionUpdate
from .rewards import RewardLedger

# Liquidation
from .liquidation import LiquidationPlan, calculate_reward, plan_liquidation

# Protocol
from .protocol import LendingProtocol

# Asset service
from .token import (
    TokenLedger,
    Transfer,
    TokenError,
    WalletNotRegistered,
    WalletAlreadyRegistered,
    SYSTEM_WALLET,
)

# Configuration and logging
from .config import LendingConfig, config_from_dict, load_config
from .logging_setup import configure_logging


__all__ = [
    # Core
    'Account', 'Amount', 'Action', 'AssetService', 'TransferResult',
    'DepositRecord', 'BorrowRecord', 'RewardRecord', 'ProtocolStats', 'LedgerEntry',
    'LendingError', 'NotAuthorized', 'InvalidAmount', 'InsufficientCollateral',
    'LiquidationNotEligible', 'InsufficientBalance', 'ArithmeticOverflow', 'ProtocolPaused',
    'BPS_SCALE', 'MAX_UINT', 'MIN_COLLATERAL_RATIO_BPS', 'MAX_REWARD_MULTIPLIER_BPS',
    'DEFAULT_CUSTODY_ACCOUNT',
    # Arithmetic
    'add', 'subtract', 'multiply',
    # Risk
    'collateral_ratio_bps', 'is_borrow_admissible', 'is_liquidatable',
    # Ledgers
    'ProtocolState', 'PositionLedger', 'PositionUpdate', 'RewardLedger',
    # Liquidation
    'LiquidationPlan', 'calculate_reward', 'plan_liquidation',
    # Protocol
    'LendingProtocol',
    # Asset service
    'TokenLedger', 'Transfer', 'TokenError', 'WalletNotRegistered',
    'WalletAlreadyRegistered', 'SYSTEM_WALLET',
    # Configuration
    'LendingConfig', 'config_from_dict', 'load_config', 'configure_logging',
]
