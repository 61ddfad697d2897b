"""
conftest.py - Shared pytest fixtures for lending tests

Provides common fixtures used across unit, functional and conformance tests:
- A funded TokenLedger with the usual wallets
- A LendingProtocol in test mode
- A protocol with a seeded liquidatable position
"""

import pytest

from lending import LendingProtocol, TokenLedger, DEFAULT_CUSTODY_ACCOUNT

from tests.fake_asset import FailingAsset


ASSET = "USDX"
OWNER = "admin"
CUSTODY = DEFAULT_CUSTODY_ACCOUNT
USERS = ("alice", "bob", "carol", "liquidator")
INITIAL_BALANCE = 10_000_000


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def make_token(symbol: str = ASSET, balance: int = INITIAL_BALANCE) -> TokenLedger:
    """TokenLedger with every user funded and the custody wallet registered."""
    token = TokenLedger(symbol)
    token.register_wallet(OWNER)
    token.register_wallet(CUSTODY)
    for user in USERS:
        token.register_wallet(user)
        token.issue(user, balance)
    return token


def make_protocol(**kwargs) -> LendingProtocol:
    """LendingProtocol for ASSET owned by OWNER, in test mode."""
    kwargs.setdefault("test_mode", True)
    return LendingProtocol(owner=OWNER, allowed_asset=ASSET, **kwargs)


def snapshot(protocol: LendingProtocol, token: TokenLedger) -> dict:
    """Everything an operation could change, for before/after comparisons."""
    return {
        "deposits": dict(protocol.positions.deposits),
        "borrows": dict(protocol.positions.borrows),
        "rewards": dict(protocol.rewards.rewards),
        "state": protocol.state.snapshot(),
        "entries": len(protocol.entries),
        "balances": dict(token.balances),
    }


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def token():
    return make_token()


@pytest.fixture
def protocol():
    return make_protocol()


@pytest.fixture
def failing_token(token):
    """Same asset symbol as token, but every transfer is rejected."""
    return FailingAsset(token)


@pytest.fixture
def liquidatable(protocol, token):
    """
    Protocol where bob's position sits exactly at the 80% threshold.

    bob: collateral_snapshot 1,000,000, debt 1,250,000 (8,000 bps).
    Custody holds 1,000,000 so rewards can be paid out.
    """
    protocol.set_position("bob", debt_amount=1_250_000, collateral_snapshot=1_000_000)
    token.issue(CUSTODY, 1_000_000)
    return protocol
