#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Lending Ledger Step by Step

This is a pedagogical demonstration of the collateralized lending ledger.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Setup        - Configuration, the asset service, an empty protocol
  4-6:  Borrowing    - Deposits, the 150% rule, repayment
  7-9:  Liquidation  - Unhealthy positions, rewards, claiming
  10:   Governance   - Pause, owner-only parameters
  11:   Proofs       - Accounting and conservation checks

Run:
    python demo.py             # Interactive mode (press Enter for each step)
    python demo.py --quick     # Run all steps without pausing
    python demo.py --verbose   # Show the protocol's log output
"""

from pathlib import Path
import sys

from lending import (
    LendingProtocol, TokenLedger, LendingConfig,
    load_config, configure_logging,
    LendingError, InsufficientBalance, InsufficientCollateral, LiquidationNotEligible,
    ProtocolPaused,
    NotAuthorized, SYSTEM_WALLET,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

CONFIG_PATH = Path(__file__).parent / "lending.yaml"
QUICK_MODE = "--quick" in sys.argv
VERBOSE = "--verbose" in sys.argv

USERS = ("alice", "bob", "liquidator")
INITIAL_BALANCE = 10_000_000


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_position(protocol: LendingProtocol, account: str):
    deposit = protocol.get_deposit(account)
    borrow = protocol.get_borrow(account)
    ratio = protocol.get_collateral_ratio(account)
    print(f"{account:>12}: deposit={deposit.deposit_amount:>10,}  "
          f"debt={borrow.debt_amount:>10,}  snapshot={borrow.collateral_snapshot:>10,}  "
          f"ratio={'-' if ratio is None else f'{ratio:,} bps'}")


# ============================================================================
# PHASE 1: SETUP (Steps 1-3)
# ============================================================================

def step_01_configuration() -> LendingConfig:
    """Load protocol parameters from YAML."""
    step_header(1, "Configuration",
        "Protocol parameters come from a YAML file and are validated on load.")

    if CONFIG_PATH.exists():
        print(f">>> config = load_config('{CONFIG_PATH.name}')")
        config = load_config(CONFIG_PATH)
    else:
        print(">>> config = LendingConfig(owner='admin', allowed_asset='USDX')")
        config = LendingConfig(owner="admin", allowed_asset="USDX")

    section_header("Parameters")
    print(f"Owner:                 {config.owner}")
    print(f"Allowed asset:         {config.allowed_asset}")
    print(f"Custody account:       {config.custody_account}")
    print(f"Interest rate:         {config.interest_rate_bps} bps (stored, never accrued)")
    print(f"Liquidation threshold: {config.liquidation_threshold_bps} bps")
    print(f"Reward multiplier:     {config.reward_multiplier_bps} bps")
    print(f"Max seize fraction:    {config.max_seize_fraction_bps} bps")
    return config


def step_02_asset_service(config: LendingConfig) -> TokenLedger:
    """Create the external asset the protocol takes custody of."""
    step_header(2, "The Asset Service",
        "The protocol never holds funds itself; an asset service moves them.")

    print(f">>> token = TokenLedger('{config.allowed_asset}')")
    token = TokenLedger(config.allowed_asset)
    for wallet in USERS + (config.owner, config.custody_account):
        token.register_wallet(wallet)
    for user in USERS:
        token.issue(user, INITIAL_BALANCE)

    section_header("Balances")
    for wallet in sorted(token.list_wallets()):
        print(f"{wallet:>18}: {token.balance(wallet):>12,}")

    section_header("Key Insight")
    print("""
    Every unit entered through the SYSTEM wallet, whose balance is negative.
    All balances together sum to zero: value is moved, never created.
    """)
    return token


def step_03_empty_protocol(config: LendingConfig) -> LendingProtocol:
    """Create the protocol."""
    step_header(3, "An Empty Protocol",
        "A protocol starts with zero counters and no positions.")

    # test_mode only so step 7 can seed an under-collateralized position
    print(">>> protocol = LendingProtocol(owner=config.owner, ..., test_mode=True)")
    protocol = LendingProtocol(
        owner=config.owner,
        allowed_asset=config.allowed_asset,
        custody_account=config.custody_account,
        interest_rate_bps=config.interest_rate_bps,
        liquidation_threshold_bps=config.liquidation_threshold_bps,
        reward_multiplier_bps=config.reward_multiplier_bps,
        max_seize_fraction_bps=config.max_seize_fraction_bps,
        test_mode=True,
    )
    print(protocol.get_protocol_stats())
    return protocol


# ============================================================================
# PHASE 2: BORROWING (Steps 4-6)
# ============================================================================

def step_04_deposit(protocol: LendingProtocol, token: TokenLedger):
    step_header(4, "Depositing Collateral",
        "A deposit moves funds into custody and raises the depositor's record.")

    print(">>> protocol.deposit('alice', token, 1_000_000)")
    protocol.deposit("alice", token, 1_000_000)
    show_position(protocol, "alice")
    print(f"\nCustody balance: {token.balance(protocol.custody_account):,}")


def step_05_borrow(protocol: LendingProtocol, token: TokenLedger):
    step_header(5, "Borrowing and the 150% Rule",
        "Debt may not exceed 2/3 of deposited collateral.")

    print(">>> protocol.borrow('alice', token, 600_000)")
    protocol.borrow("alice", token, 600_000)
    show_position(protocol, "alice")

    section_header("Over-borrowing")
    print(">>> protocol.borrow('alice', token, 100_000)")
    try:
        protocol.borrow("alice", token, 100_000)
    except InsufficientCollateral as exc:
        print(f"REJECTED: {type(exc).__name__}: {exc}")
    show_position(protocol, "alice")

    section_header("Key Insight")
    print("""
    The borrow copied alice's deposit into collateral_snapshot. Risk checks on
    this debt use the snapshot until alice borrows again; later deposits do
    not update it.
    """)


def step_06_repay(protocol: LendingProtocol, token: TokenLedger):
    step_header(6, "Repaying",
        "Repayment reduces debt; collateral stays deposited.")

    print(">>> protocol.repay('alice', token, 100_000)")
    protocol.repay("alice", token, 100_000)
    show_position(protocol, "alice")
    print(f"\n{protocol.get_protocol_stats()}")


# ============================================================================
# PHASE 3: LIQUIDATION (Steps 7-9)
# ============================================================================

def step_07_unhealthy_position(protocol: LendingProtocol, token: TokenLedger):
    step_header(7, "An Unhealthy Position",
        "A position at or below the liquidation threshold can be liquidated.")

    print("""
    Positions opened through borrow() start at 150% or more, and snapshots
    never shrink outside liquidation, so we seed one directly in test mode.
    """)
    print(">>> protocol.set_position('bob', debt_amount=1_250_000, collateral_snapshot=1_000_000)")
    protocol.set_position("bob", debt_amount=1_250_000, collateral_snapshot=1_000_000)
    token.issue(protocol.custody_account, 1_000_000)
    show_position(protocol, "bob")
    print(f"\nLiquidatable: {protocol.is_position_liquidatable('bob')}")

    section_header("A healthy position is protected")
    try:
        protocol.liquidate("liquidator", token, "alice", 100_000)
    except LiquidationNotEligible as exc:
        print(f"REJECTED: {type(exc).__name__}: {exc}")


def step_08_liquidate(protocol: LendingProtocol, token: TokenLedger):
    step_header(8, "Liquidating",
        "The liquidator repays debt and earns a capped reward.")

    print(">>> protocol.liquidate('liquidator', token, 'bob', 500_000)")
    reward = protocol.liquidate("liquidator", token, "bob", 500_000)
    print(f"Reward: {reward:,}")
    show_position(protocol, "bob")

    section_header("Key Insight")
    print("""
    reward = min(repay * multiplier, snapshot * max seize fraction)
           = min(550,000, 500,000) = 500,000

    The reward is deducted from bob's snapshot and credited to the
    liquidator's reward balance. total_borrows drops by the repaid amount.
    """)


def step_09_claim(protocol: LendingProtocol, token: TokenLedger):
    step_header(9, "Claiming Rewards",
        "Accrued rewards are paid out of custody in one transfer.")

    print(f"Accrued before: {protocol.get_reward('liquidator').accrued_amount:,}")
    print(">>> protocol.claim_rewards('liquidator', token)")
    paid = protocol.claim_rewards("liquidator", token)
    print(f"Paid: {paid:,}")
    print(f"Accrued after:  {protocol.get_reward('liquidator').accrued_amount:,}")
    print(f"Liquidator wallet: {token.balance('liquidator'):,}")

    section_header("Claiming again")
    try:
        protocol.claim_rewards("liquidator", token)
    except InsufficientBalance as exc:
        print(f"REJECTED: {type(exc).__name__}: {exc}")


# ============================================================================
# PHASE 4: GOVERNANCE (Step 10)
# ============================================================================

def step_10_governance(protocol: LendingProtocol, token: TokenLedger):
    owner = protocol.state.owner
    step_header(10, "Pause and Parameters",
        "Only the owner can pause or change parameters.")

    try:
        protocol.pause("alice")
    except NotAuthorized as exc:
        print(f"alice cannot pause: {exc}")

    print(f">>> protocol.pause('{owner}')")
    protocol.pause(owner)
    try:
        protocol.deposit("alice", token, 1)
    except ProtocolPaused as exc:
        print(f"deposit while paused: {type(exc).__name__}")

    print(f">>> protocol.set_liquidation_threshold('{owner}', 7_500)")
    protocol.set_liquidation_threshold(owner, 7_500)
    print(f">>> protocol.unpause('{owner}')")
    protocol.unpause(owner)
    print(protocol.get_config_snapshot())


# ============================================================================
# PHASE 5: PROOFS (Step 11)
# ============================================================================

def step_11_proofs(protocol: LendingProtocol, token: TokenLedger):
    step_header(11, "Accounting and Conservation",
        "Counters equal the sums of records; the asset service conserves value.")

    result = protocol.verify_accounting()
    print(f"Protocol accounting valid: {result['valid']}")
    print(f"  total_deposits = {result['total_deposits']:,}")
    print(f"  total_borrows  = {result['total_borrows']:,}")
    print(f"Token conservation holds:  {token.verify_conservation()}")
    print(f"SYSTEM wallet balance:     {token.balance(SYSTEM_WALLET):,}")

    section_header("Audit Log")
    for entry in protocol.entries:
        print(f"  {entry!r}")


# ============================================================================
# MAIN
# ============================================================================

def main():
    """Run the complete tutorial."""
    configure_logging("DEBUG" if VERBOSE else "WARNING")

    print("=" * 70)
    print("       LENDING LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    try:
        config = step_01_configuration()
        wait_for_enter()
        token = step_02_asset_service(config)
        wait_for_enter()
        protocol = step_03_empty_protocol(config)
        wait_for_enter()

        step_04_deposit(protocol, token)
        wait_for_enter()
        step_05_borrow(protocol, token)
        wait_for_enter()
        step_06_repay(protocol, token)
        wait_for_enter()

        step_07_unhealthy_position(protocol, token)
        wait_for_enter()
        step_08_liquidate(protocol, token)
        wait_for_enter()
        step_09_claim(protocol, token)
        wait_for_enter()

        step_10_governance(protocol, token)
        wait_for_enter()
        step_11_proofs(protocol, token)
    except LendingError as exc:
        print(f"\nTutorial stopped: {type(exc).__name__}: {exc}")
        return 1

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See lending/protocol.py for the operation order (gate, check, transfer, commit)
      - Edit lending.yaml to try other parameters
      - Run tests: pytest tests/
    """)
    return 0


if __name__ == "__main__":
    sys.exit(main())
