"""
Functional tests for end-to-end lending scenarios.

Each test drives a LendingProtocol against a TokenLedger through a full
business flow and checks ledger records, custody balances and counters
together.
"""

import pytest

from lending import (
    BorrowRecord, InsufficientBalance, InsufficientCollateral, InvalidAmount,
    LiquidationNotEligible, ProtocolPaused,
)

from tests.conftest import CUSTODY, INITIAL_BALANCE, OWNER


class TestBorrowLimitScenario:
    """Deposit, borrow to the limit, then attempt to over-borrow."""

    def test_over_borrow_rejected(self, protocol, token):
        protocol.deposit("alice", token, 1_000_000)
        protocol.borrow("alice", token, 600_000)
        assert protocol.get_collateral_ratio("alice") == 16_666

        # 1,000,000 / 700,000 = 14,285 bps
        with pytest.raises(InsufficientCollateral):
            protocol.borrow("alice", token, 100_000)

        assert protocol.get_borrow("alice") == BorrowRecord(600_000, 1_000_000)
        assert token.balance("alice") == INITIAL_BALANCE - 1_000_000 + 600_000
        assert token.balance(CUSTODY) == 400_000

    def test_repay_then_borrow_again(self, protocol, token):
        protocol.deposit("alice", token, 1_000_000)
        protocol.borrow("alice", token, 600_000)
        protocol.repay("alice", token, 600_000)
        protocol.borrow("alice", token, 666_666)
        assert protocol.get_borrow("alice").debt_amount == 666_666


class TestLiquidationScenario:
    """A position at the threshold is partially liquidated and the reward claimed."""

    def test_liquidate_and_claim(self, liquidatable, token):
        assert liquidatable.get_collateral_ratio("bob") == 8_000
        assert liquidatable.is_position_liquidatable("bob")

        reward = liquidatable.liquidate("liquidator", token, "bob", 500_000)
        # min(500,000 * 1.1, 1,000,000 * 0.5)
        assert reward == 500_000
        assert liquidatable.get_borrow("bob") == BorrowRecord(750_000, 500_000)
        assert liquidatable.get_protocol_stats().total_borrows == 750_000

        paid = liquidatable.claim_rewards("liquidator", token)
        assert paid == 500_000
        assert token.balance("liquidator") == INITIAL_BALANCE
        assert liquidatable.get_reward("liquidator").accrued_amount == 0

    def test_total_borrows_tracks_liquidated_debt(self, liquidatable, token):
        """total_borrows drops by the repaid amount, keeping it equal to open debt."""
        before = liquidatable.get_protocol_stats().total_borrows
        liquidatable.liquidate("liquidator", token, "bob", 200_000)
        after = liquidatable.get_protocol_stats().total_borrows
        assert before - after == 200_000
        assert liquidatable.verify_accounting()['valid']

    def test_repeated_liquidation_until_cleared(self, liquidatable, token):
        liquidatable.liquidate("liquidator", token, "bob", 500_000)
        # 500,000 / 750,000 = 6,666 bps, still eligible
        reward = liquidatable.liquidate("liquidator", token, "bob", 750_000)
        assert reward == 250_000
        assert liquidatable.get_borrow("bob") == BorrowRecord(0, 250_000)
        assert not liquidatable.is_position_liquidatable("bob")
        with pytest.raises(LiquidationNotEligible):
            liquidatable.liquidate("liquidator", token, "bob", 1)

    def test_rewards_accumulate_across_targets(self, liquidatable, token):
        liquidatable.set_position("carol", debt_amount=1_000_000, collateral_snapshot=700_000)
        liquidatable.liquidate("liquidator", token, "bob", 100_000)
        liquidatable.liquidate("liquidator", token, "carol", 100_000)
        assert liquidatable.get_reward("liquidator").accrued_amount == 220_000


class TestClaimScenario:
    """Claims fail with nothing accrued, pay exactly once after a liquidation."""

    def test_claim_lifecycle(self, liquidatable, token):
        with pytest.raises(InsufficientBalance):
            liquidatable.claim_rewards("liquidator", token)

        reward = liquidatable.liquidate("liquidator", token, "bob", 100_000)
        assert reward == 110_000
        wallet_before = token.balance("liquidator")
        custody_before = token.balance(CUSTODY)

        assert liquidatable.claim_rewards("liquidator", token) == 110_000
        assert liquidatable.get_reward("liquidator").accrued_amount == 0
        assert token.balance("liquidator") - wallet_before == 110_000
        assert custody_before - token.balance(CUSTODY) == 110_000

        with pytest.raises(InsufficientBalance):
            liquidatable.claim_rewards("liquidator", token)
        assert token.balance("liquidator") - wallet_before == 110_000


class TestSnapshotScenario:
    """Deposits after a borrow do not protect the open position."""

    def test_late_deposit_does_not_rescue_position(self, protocol, token):
        protocol.set_position("bob", debt_amount=1_250_000, collateral_snapshot=1_000_000)
        token.issue(CUSTODY, 1_000_000)
        protocol.deposit("bob", token, 5_000_000)

        assert protocol.get_deposit("bob").deposit_amount == 5_000_000
        assert protocol.get_borrow("bob").collateral_snapshot == 1_000_000
        assert protocol.is_position_liquidatable("bob")
        assert protocol.liquidate("liquidator", token, "bob", 100_000) == 110_000

    def test_repay_does_not_release_collateral(self, protocol, token):
        protocol.deposit("alice", token, 1_000_000)
        protocol.borrow("alice", token, 600_000)
        protocol.repay("alice", token, 600_000)
        assert protocol.get_deposit("alice").deposit_amount == 1_000_000
        assert protocol.get_protocol_stats().total_deposits == 1_000_000


class TestEmergencyPauseScenario:
    """Owner pauses, users are blocked, owner reconfigures, then unpauses."""

    def test_pause_reconfigure_resume(self, protocol, token):
        protocol.deposit("alice", token, 1_000_000)
        protocol.pause(OWNER)

        with pytest.raises(ProtocolPaused):
            protocol.borrow("alice", token, 100_000)

        protocol.set_interest_rate(OWNER, 900)
        protocol.set_liquidation_threshold(OWNER, 7_500)
        protocol.unpause(OWNER)

        protocol.borrow("alice", token, 100_000)
        stats = protocol.get_protocol_stats()
        assert stats.interest_rate_bps == 900
        assert stats.total_borrows == 100_000


class TestMultiUserScenario:

    def test_counters_match_records(self, protocol, token):
        protocol.deposit("alice", token, 1_000_000)
        protocol.deposit("bob", token, 300_000)
        protocol.deposit("carol", token, 3_000_000)
        protocol.borrow("alice", token, 500_000)
        protocol.borrow("bob", token, 200_000)
        protocol.borrow("carol", token, 1_000_000)
        protocol.repay("bob", token, 50_000)
        with pytest.raises(InvalidAmount):
            protocol.repay("carol", token, 1_000_001)

        stats = protocol.get_protocol_stats()
        assert stats.total_deposits == 4_300_000
        assert stats.total_borrows == 1_650_000
        assert token.balance(CUSTODY) == stats.total_deposits - stats.total_borrows
        assert protocol.verify_accounting()['valid']
        assert token.verify_conservation()
