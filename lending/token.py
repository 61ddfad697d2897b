"""
token.py - In-Memory Fungible Asset Service

TokenLedger is a single-asset, integer, double-entry ledger that implements the
AssetService protocol. It provides custody for a LendingProtocol in tests,
simulations and the demo.

Key properties:
    - Every transfer is all-or-nothing and is recorded in an append-only log
    - New supply is issued from SYSTEM_WALLET, which may go negative
    - Conservation: the balances of all wallets, SYSTEM_WALLET included, sum to 0
    - transfer() never raises for a bad transfer; it returns REJECTED

Example:
    token = TokenLedger("USDX")
    token.register_wallet("alice")
    token.register_wallet("lending-protocol")
    token.issue("alice", 1_000_000)
    token.transfer(250_000, "alice", "lending-protocol", memo="deposit")
    # TransferResult.APPLIED
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
import threading
from typing import Dict, List, Optional, Set

from .core import Account, Amount, TransferResult, MAX_UINT

logger = logging.getLogger(__name__)

# Reserved wallet for issuance and redemption, exempt from balance checks.
SYSTEM_WALLET = "system"


class TokenError(Exception):
    """Base exception for token ledger errors."""
    pass


class WalletNotRegistered(TokenError):
    """Raised when operating on a wallet that has not been registered."""
    pass


class WalletAlreadyRegistered(TokenError):
    """Raised when registering a wallet twice."""
    pass


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    Executed, immutable record of one transfer.

    Attributes:
        sequence: Monotonic position in the token's log
        amount: Quantity moved (always positive)
        sender: Wallet debited
        recipient: Wallet credited
        memo: Optional free-form note
    """
    sequence: int
    amount: Amount
    sender: Account
    recipient: Account
    memo: Optional[str] = None

    def __repr__(self) -> str:
        return f"Transfer(#{self.sequence} {self.amount}: {self.sender}→{self.recipient})"


class TokenLedger:
    """
    Balances of one fungible asset across registered wallets.

    Thread Safety:
        transfer() and issue() hold an internal lock, so the service may be
        shared by several protocols or threads.
    """

    def __init__(self, symbol: str):
        if not symbol or not symbol.strip():
            raise ValueError("symbol cannot be empty")
        self._symbol = symbol
        self.balances: Dict[Account, Amount] = {SYSTEM_WALLET: 0}
        self.registered_wallets: Set[Account] = {SYSTEM_WALLET}
        self.transfer_log: List[Transfer] = []
        self._next_sequence = 0
        self._lock = threading.Lock()

    @property
    def symbol(self) -> str:
        return self._symbol

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register_wallet(self, wallet_id: Account) -> Account:
        """
        Register a new wallet with a zero balance.

        Raises:
            WalletAlreadyRegistered: If the wallet exists
        """
        if not wallet_id or not wallet_id.strip():
            raise ValueError("wallet_id cannot be empty")
        with self._lock:
            if wallet_id in self.registered_wallets:
                raise WalletAlreadyRegistered(f"Wallet {wallet_id} already registered")
            self.registered_wallets.add(wallet_id)
            self.balances[wallet_id] = 0
        return wallet_id

    def is_registered(self, wallet_id: Account) -> bool:
        return wallet_id in self.registered_wallets

    def list_wallets(self) -> Set[Account]:
        return self.registered_wallets.copy()

    # ========================================================================
    # READS
    # ========================================================================

    def balance(self, account: Account) -> Amount:
        """Balance of account, 0 for unknown wallets."""
        return self.balances.get(account, 0)

    def total_supply(self) -> Amount:
        """Amount issued and not redeemed (sum of all non-system balances)."""
        return sum(
            self.balances[w] for w in sorted(self.registered_wallets) if w != SYSTEM_WALLET
        )

    def verify_conservation(self) -> bool:
        """True if every balance, SYSTEM_WALLET included, sums to zero."""
        return sum(self.balances.values()) == 0

    # ========================================================================
    # MUTATION
    # ========================================================================

    def issue(self, wallet_id: Account, amount: Amount) -> None:
        """
        Create new supply in wallet_id, debiting SYSTEM_WALLET.

        Raises:
            WalletNotRegistered: If the wallet is unknown
            ValueError: If amount is not positive
        """
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        result = self.transfer(amount, SYSTEM_WALLET, wallet_id, memo="issue")
        if result is not TransferResult.APPLIED:
            raise ValueError(f"cannot issue {amount!r} to {wallet_id}")

    def transfer(
        self,
        amount: Amount,
        sender: Account,
        recipient: Account,
        memo: Optional[str] = None,
    ) -> TransferResult:
        """
        Move amount from sender to recipient atomically.

        Returns:
            TransferResult.APPLIED if the transfer was recorded
            TransferResult.REJECTED if the amount is not a positive int, a
            wallet is unknown, sender == recipient, or the sender (other than
            SYSTEM_WALLET) lacks the funds
        """
        with self._lock:
            reason = self._validate(amount, sender, recipient)
            if reason:
                logger.warning(
                    "%s transfer rejected: %s (%r %s -> %s)",
                    self._symbol, reason, amount, sender, recipient,
                )
                return TransferResult.REJECTED

            self.balances[sender] -= amount
            self.balances[recipient] += amount
            record = Transfer(
                sequence=self._next_sequence,
                amount=amount,
                sender=sender,
                recipient=recipient,
                memo=memo,
            )
            self._next_sequence += 1
            self.transfer_log.append(record)

        logger.debug("%s %r", self._symbol, record)
        return TransferResult.APPLIED

    def _validate(self, amount: Amount, sender: Account, recipient: Account) -> str:
        """Return the rejection reason, or "" if the transfer is valid."""
        if not isinstance(amount, int) or isinstance(amount, bool):
            return "amount must be int"
        if amount <= 0:
            return "amount must be positive"
        if sender not in self.registered_wallets:
            return f"wallet not registered: {sender}"
        if recipient not in self.registered_wallets:
            return f"wallet not registered: {recipient}"
        if sender == recipient:
            return "sender and recipient must be different"
        if sender != SYSTEM_WALLET and self.balances[sender] < amount:
            return f"{sender} balance {self.balances[sender]} < {amount}"
        if recipient != SYSTEM_WALLET and self.balances[recipient] + amount > MAX_UINT:
            return f"{recipient} balance would exceed maximum"
        return ""

    def __repr__(self) -> str:
        return f"TokenLedger({self._symbol}, {len(self.registered_wallets)} wallets)"
