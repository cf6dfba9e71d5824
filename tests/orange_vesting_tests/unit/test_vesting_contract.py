"""
Unit tests for VestingContract.

Covers batch schedule writes, claims across directions, the vesting start,
foreign token rescue and whole-call rollback.
"""

import pytest

from orange_vesting.core.contracts.erc20 import ERC20Token
from orange_vesting.core.contracts.vesting import Claimed, VestingContract, VestingCreated, VestingInfo
from orange_vesting.core.contracts.vesting_token import VestingToken
from orange_vesting.core.exceptions import (
    AccessIsDenied,
    ClaimAmountIsZero,
    DataLengthsIsZero,
    DataLengthsNotMatch,
    ForbiddenWithdrawalFromOwnContract,
    IncorrectAmount,
    InsufficientTokens,
    NotStarted,
    StateError,
    TokenError,
    TotalAmountLessThanClaimed,
    VestingAlreadyStarted,
    ZeroAddress,
)
from orange_vesting.core.vesting.directions import HALF_YEAR, YEAR, Direction

ADMIN = "0x" + "ad" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b0" * 20
CAROL = "0x" + "c4" * 20
ZERO = "0x" + "0" * 40

FULL_SUPPLY = 100_000_000_000 * 10**18
E18 = 10**18


def small_deployment(clock, supply=1_000):
    token = VestingToken(name="Orange Token", symbol="OT", decimals=0, admin=ADMIN, fixed_supply=supply)
    vesting = VestingContract(token, ADMIN, time_provider=clock.now, metrics_enabled=False)
    token.execute_tge(ADMIN, vesting.address)
    vesting.set_vesting_start_timestamp(ADMIN)
    return token, vesting


def ledger_state(vesting):
    return vesting.ledger.to_dict(), vesting.token.balance_of(vesting.address), len(vesting.events)


class TestDeployment:
    def test_initial_views(self, vesting):
        assert vesting.admin == ADMIN
        assert vesting.committed_total == 0
        assert vesting.vesting_start_timestamp == 0
        assert vesting.available_amount() == FULL_SUPPLY

    def test_zero_admin_rejected(self, token):
        with pytest.raises(ZeroAddress):
            VestingContract(token, ZERO)

    def test_token_registered(self, vesting, token):
        assert vesting.registry.get_token(token.address) is token


class TestVestingStart:
    def test_start_sets_current_time(self, vesting, clock):
        assert vesting.set_vesting_start_timestamp(ADMIN) == clock.now()
        assert vesting.vesting_start_timestamp == clock.now()

    def test_start_twice_rejected(self, started, clock):
        clock.advance(10)
        with pytest.raises(VestingAlreadyStarted):
            started.set_vesting_start_timestamp(ADMIN)
        assert started.vesting_start_timestamp == clock.now() - 10

    def test_start_admin_only(self, vesting):
        with pytest.raises(AccessIsDenied):
            vesting.set_vesting_start_timestamp(ALICE)
        assert vesting.vesting_start_timestamp == 0


class TestSetVestFor:
    def test_public_round_batch(self, started, clock):
        created = started.set_public_round_vest_for(ADMIN, [ALICE, BOB], [100, 200])
        assert started.committed_total == 300
        assert started.available_amount() == FULL_SUPPLY - 300
        assert [record.account for record in created] == [ALICE, BOB]
        assert all(isinstance(record, VestingCreated) for record in created)
        assert created[0].direction is Direction.PUBLIC_ROUND
        assert created[0].created_at == clock.now()
        assert started.events == created

    def test_records_carry_direction_terms(self, started):
        (record,) = started.set_team_vest_for(ADMIN, [ALICE], [1_000])
        assert record.cliff_seconds == YEAR
        assert record.vesting_seconds == 2 * YEAR
        schedule = started.schedule_of(ALICE, Direction.TEAM)
        assert (schedule.cliff_seconds, schedule.vesting_seconds, schedule.total_amount) == (YEAR, 2 * YEAR, 1_000)

    @pytest.mark.parametrize(
        "setter, direction",
        [
            ("set_public_round_vest_for", Direction.PUBLIC_ROUND),
            ("set_staking_vest_for", Direction.STAKING),
            ("set_team_vest_for", Direction.TEAM),
            ("set_liquidity_vest_for", Direction.LIQUIDITY),
            ("set_marketing_vest_for", Direction.MARKETING),
            ("set_treasury_vest_for", Direction.TREASURY),
        ],
    )
    def test_named_setters(self, started, setter, direction):
        getattr(started, setter)(ADMIN, [ALICE], [7])
        assert started.schedule_of(ALICE, direction).total_amount == 7

    def test_generic_setter_accepts_slug(self, started):
        started.set_vest_for(ADMIN, "liquidity", [ALICE], [10])
        assert started.schedule_of(ALICE, Direction.LIQUIDITY).total_amount == 10

    def test_mixed_case_account_normalized(self, started):
        started.set_public_round_vest_for(ADMIN, ["0x" + "A1" * 20], [10])
        assert started.schedule_of(ALICE, Direction.PUBLIC_ROUND).total_amount == 10

    def test_padded_account_is_claimable(self, started, token):
        (record,) = started.set_public_round_vest_for(ADMIN, [" " + ALICE.upper().replace("0X", "0x") + " "], [100])
        assert record.account == ALICE
        assert started.schedule_of(ALICE, Direction.PUBLIC_ROUND).total_amount == 100
        assert started.claim(ALICE) == 100
        assert token.balance_of(ALICE) == 100
        assert started.committed_total == 0

    def test_top_up_and_reduce(self, started):
        started.set_marketing_vest_for(ADMIN, [ALICE], [100])
        started.set_marketing_vest_for(ADMIN, [ALICE], [250])
        assert started.committed_total == 250
        started.set_marketing_vest_for(ADMIN, [ALICE], [40])
        assert started.committed_total == 40
        assert started.available_amount() == FULL_SUPPLY - 40

    def test_not_started(self, vesting):
        with pytest.raises(NotStarted):
            vesting.set_public_round_vest_for(ADMIN, [ALICE], [1])

    def test_admin_checked_before_start(self, vesting):
        with pytest.raises(AccessIsDenied):
            vesting.set_public_round_vest_for(ALICE, [ALICE], [1])

    def test_non_admin(self, started):
        with pytest.raises(AccessIsDenied):
            started.set_public_round_vest_for(BOB, [ALICE], [1])

    @pytest.mark.parametrize("accounts, amounts", [([], []), ([ALICE], []), ([], [1])])
    def test_empty_batch(self, started, accounts, amounts):
        before = ledger_state(started)
        with pytest.raises(DataLengthsIsZero):
            started.set_public_round_vest_for(ADMIN, accounts, amounts)
        assert ledger_state(started) == before

    def test_mismatched_batch(self, started):
        before = ledger_state(started)
        with pytest.raises(DataLengthsNotMatch):
            started.set_public_round_vest_for(ADMIN, [ALICE, BOB], [1])
        assert ledger_state(started) == before

    @pytest.mark.parametrize("bad_amount", [0, -5, True, 1.5])
    def test_incorrect_amount(self, started, bad_amount):
        with pytest.raises(IncorrectAmount):
            started.set_public_round_vest_for(ADMIN, [ALICE], [bad_amount])

    def test_zero_account(self, started):
        with pytest.raises(ZeroAddress):
            started.set_public_round_vest_for(ADMIN, [ZERO], [1])

    def test_failing_entry_discards_whole_batch(self, started):
        before = ledger_state(started)
        with pytest.raises(ZeroAddress):
            started.set_public_round_vest_for(ADMIN, [ALICE, BOB, ZERO], [1, 2, 3])
        assert ledger_state(started) == before
        assert not started.schedule_of(ALICE, Direction.PUBLIC_ROUND).exists

    def test_insufficient_tokens_uses_running_total(self, clock):
        token, vesting = small_deployment(clock, supply=1_000)
        vesting.set_public_round_vest_for(ADMIN, [ALICE], [600])
        before = ledger_state(vesting)
        with pytest.raises(InsufficientTokens) as exc_info:
            vesting.set_public_round_vest_for(ADMIN, [BOB, CAROL], [300, 200])
        assert exc_info.value.details["index"] == 1
        assert ledger_state(vesting) == before
        assert vesting.committed_total == 600
        assert vesting.available_amount() == 400

    def test_batch_can_spend_exact_capacity(self, clock):
        token, vesting = small_deployment(clock, supply=1_000)
        vesting.set_public_round_vest_for(ADMIN, [ALICE, BOB], [600, 400])
        assert vesting.available_amount() == 0
        with pytest.raises(InsufficientTokens):
            vesting.set_public_round_vest_for(ADMIN, [CAROL], [1])

    def test_reduction_needs_no_capacity(self, clock):
        token, vesting = small_deployment(clock, supply=1_000)
        vesting.set_public_round_vest_for(ADMIN, [ALICE], [1_000])
        vesting.set_public_round_vest_for(ADMIN, [ALICE], [10])
        assert vesting.available_amount() == 990

    def test_duplicate_account_in_batch(self, started):
        started.set_public_round_vest_for(ADMIN, [ALICE, ALICE], [100, 30])
        assert started.schedule_of(ALICE, Direction.PUBLIC_ROUND).total_amount == 30
        assert started.committed_total == 30

    def test_total_below_claimed_rejected(self, started, clock):
        started.set_marketing_vest_for(ADMIN, [ALICE], [100])
        clock.advance(HALF_YEAR)
        assert started.claim(ALICE) == 20
        before = ledger_state(started)
        with pytest.raises(TotalAmountLessThanClaimed):
            started.set_marketing_vest_for(ADMIN, [ALICE], [19])
        assert ledger_state(started) == before

    def test_total_equal_to_claimed_allowed(self, started, clock):
        started.set_marketing_vest_for(ADMIN, [ALICE], [100])
        clock.advance(HALF_YEAR)
        started.claim(ALICE)
        started.set_marketing_vest_for(ADMIN, [ALICE], [20])
        assert started.committed_total == 0
        assert started.get_total_vesting_info(ALICE) == VestingInfo(20, 0, 20, 0)


class TestClaim:
    def test_public_round_claim(self, started, token):
        started.set_public_round_vest_for(ADMIN, [ALICE, BOB], [100, 200])
        assert started.claim(ALICE) == 100
        assert token.balance_of(ALICE) == 100
        assert started.committed_total == 200
        assert started.schedule_of(ALICE, Direction.PUBLIC_ROUND).claimed_amount == 100

    def test_claim_with_nothing_vested(self, started):
        before = ledger_state(started)
        with pytest.raises(ClaimAmountIsZero):
            started.claim(CAROL)
        assert ledger_state(started) == before

    def test_claim_before_start(self, vesting):
        with pytest.raises(ClaimAmountIsZero):
            vesting.claim(ALICE)

    def test_liquidity_half_then_rest(self, started, token, clock):
        started.set_liquidity_vest_for(ADMIN, [ALICE], [100])
        assert started.claim(ALICE) == 50
        with pytest.raises(ClaimAmountIsZero):
            started.claim(ALICE)
        clock.advance(HALF_YEAR)
        assert started.claim(ALICE) == 50
        assert token.balance_of(ALICE) == 100
        assert started.committed_total == 0

    def test_staking_cliff_then_full(self, started, token, clock):
        started.set_staking_vest_for(ADMIN, [ALICE], [100])
        clock.advance(HALF_YEAR - 1)
        with pytest.raises(ClaimAmountIsZero):
            started.claim(ALICE)
        clock.advance(94_608_000 - HALF_YEAR + 1)
        committed = started.committed_total
        assert started.claim(ALICE) == 100
        assert started.committed_total == committed - 100

    def test_marketing_partial_claim(self, started, token, clock):
        started.set_marketing_vest_for(ADMIN, [ALICE], [100 * E18])
        clock.advance(15_768_000)
        assert started.claim(ALICE) == 20 * E18
        assert token.balance_of(ALICE) == 20 * E18
        assert started.get_total_vesting_info(ALICE) == VestingInfo(100 * E18, 0, 20 * E18, 80 * E18)

    def test_claim_aggregates_directions_in_tag_order(self, started, token, clock):
        started.set_marketing_vest_for(ADMIN, [ALICE], [100])
        started.set_public_round_vest_for(ADMIN, [ALICE], [10])
        started.set_liquidity_vest_for(ADMIN, [ALICE], [40])
        created_count = len(started.events)

        assert started.claim(ALICE) == 10 + 20
        records = started.events[created_count:]
        assert [record.direction for record in records] == [Direction.PUBLIC_ROUND, Direction.LIQUIDITY]
        assert all(isinstance(record, Claimed) for record in records)
        assert [record.amount for record in records] == [10, 20]
        assert token.balance_of(ALICE) == 30

    def test_claim_emits_single_transfer(self, started, token):
        started.set_public_round_vest_for(ADMIN, [ALICE], [10])
        started.set_liquidity_vest_for(ADMIN, [ALICE], [40])
        event_count = len(token.events)
        started.claim(ALICE)
        assert len(token.events) == event_count + 1
        assert token.events[-1].value == 30

    def test_reset_after_partial_claim(self, started, clock):
        started.set_marketing_vest_for(ADMIN, [ALICE], [100])
        clock.advance(HALF_YEAR)
        started.claim(ALICE)
        started.set_marketing_vest_for(ADMIN, [ALICE], [200])
        schedule = started.schedule_of(ALICE, Direction.MARKETING)
        assert (schedule.total_amount, schedule.claimed_amount) == (200, 20)
        assert started.committed_total == 180
        # 200 * 1/5 = 40 vested, 20 already claimed
        assert started.claim(ALICE) == 20

    def test_reentrant_claim_sees_updated_ledger(self, started, token):
        started.set_public_round_vest_for(ADMIN, [ALICE], [100])
        nested = []

        def hook(sender, recipient, amount):
            try:
                started.claim(ALICE)
            except ClaimAmountIsZero as exc:
                nested.append(exc)

        token.register_recipient_hook(ALICE, hook)
        assert started.claim(ALICE) == 100
        assert len(nested) == 1
        assert token.balance_of(ALICE) == 100
        assert started.verify_invariants()["is_consistent"]

    def test_failing_transfer_hook_rolls_back(self, started, token):
        started.set_public_round_vest_for(ADMIN, [ALICE], [100])
        before = ledger_state(started)
        token_events = len(token.events)

        def hook(sender, recipient, amount):
            raise RuntimeError("recipient rejected tokens")

        token.register_recipient_hook(ALICE, hook)
        with pytest.raises(RuntimeError):
            started.claim(ALICE)
        assert ledger_state(started) == before
        assert token.balance_of(ALICE) == 0
        assert len(token.events) == token_events

    def test_nested_claim_discarded_when_outer_claim_fails(self, started, token):
        started.set_public_round_vest_for(ADMIN, [ALICE], [100])
        started.set_liquidity_vest_for(ADMIN, [BOB], [100])
        before = ledger_state(started)
        events_before = list(started.events)

        def hook(sender, recipient, amount):
            assert started.claim(BOB) == 50
            raise RuntimeError("recipient rejected tokens")

        token.register_recipient_hook(ALICE, hook)
        with pytest.raises(RuntimeError):
            started.claim(ALICE)
        assert started.events == events_before
        assert ledger_state(started) == before
        assert started.schedule_of(BOB, Direction.LIQUIDITY).claimed_amount == 0
        assert token.balance_of(BOB) == 0

    def test_nested_claim_published_with_outer_claim(self, started, token):
        started.set_public_round_vest_for(ADMIN, [ALICE], [100])
        started.set_liquidity_vest_for(ADMIN, [BOB], [100])
        created_count = len(started.events)
        seen_during_hook = []

        def hook(sender, recipient, amount):
            started.claim(BOB)
            seen_during_hook.append(len(started.events))

        token.register_recipient_hook(ALICE, hook)
        assert started.claim(ALICE) == 100
        assert seen_during_hook == [created_count]
        records = started.events[created_count:]
        assert [(record.account, record.amount) for record in records] == [(ALICE, 100), (BOB, 50)]
        assert token.balance_of(BOB) == 50
        assert started.verify_invariants()["is_consistent"]


class TestViews:
    def test_info_for_unknown_account(self, started):
        assert started.get_total_vesting_info(CAROL) == VestingInfo(0, 0, 0, 0)

    def test_info_before_start(self, vesting):
        assert vesting.get_total_vesting_info(ALICE) == VestingInfo(0, 0, 0, 0)
        assert vesting.unlocked_of(ALICE, Direction.PUBLIC_ROUND) == 0

    def test_info_sums_directions(self, started, clock):
        started.set_public_round_vest_for(ADMIN, [ALICE], [10])
        started.set_team_vest_for(ADMIN, [ALICE], [1_000])
        started.set_liquidity_vest_for(ADMIN, [ALICE], [100])
        info = started.get_total_vesting_info(ALICE)
        assert info == VestingInfo(1_110, 60, 0, 1_050)
        clock.advance(YEAR)
        info = started.get_total_vesting_info(ALICE)
        assert info.unlocked_amount == 10 + 500 + 100
        assert info.locked_amount == 500

    def test_unlocked_of(self, started):
        started.set_liquidity_vest_for(ADMIN, [ALICE], [100])
        assert started.unlocked_of(ALICE, "liquidity") == 50

    def test_verify_invariants(self, started):
        started.set_public_round_vest_for(ADMIN, [ALICE], [10])
        report = started.verify_invariants()
        assert report["is_consistent"]
        assert report["available_amount"] + started.committed_total == report["token_balance"]


class TestRescue:
    @pytest.fixture
    def busd(self, started):
        token = started.registry.create_token(ADMIN, "BUSD Mock", "BUSD")
        token.mint(ADMIN, started.address, 500)
        return token

    def test_rescue_foreign_token(self, started, busd):
        assert started.rescue_erc20(ADMIN, busd.address, BOB, 200)
        assert busd.balance_of(BOB) == 200
        assert busd.balance_of(started.address) == 300

    def test_rescue_more_than_held(self, started, busd):
        with pytest.raises(TokenError):
            started.rescue_erc20(ADMIN, busd.address, BOB, 501)
        assert busd.balance_of(started.address) == 500

    def test_rescue_own_token_forbidden(self, started, token):
        with pytest.raises(ForbiddenWithdrawalFromOwnContract):
            started.rescue_erc20(ADMIN, token.address, BOB, 1)
        assert token.balance_of(BOB) == 0

    def test_rescue_zero_token(self, started):
        with pytest.raises(ZeroAddress):
            started.rescue_erc20(ADMIN, ZERO, BOB, 1)

    def test_rescue_admin_only(self, started, busd):
        with pytest.raises(AccessIsDenied):
            started.rescue_erc20(ALICE, busd.address, ALICE, 1)

    def test_rescue_unknown_token(self, started):
        stray = ERC20Token(name="Stray", symbol="STR", owner=ADMIN)
        with pytest.raises(TokenError):
            started.rescue_erc20(ADMIN, stray.address, BOB, 1)

    def test_rescue_does_not_touch_ledger(self, started, busd):
        started.set_public_round_vest_for(ADMIN, [ALICE], [10])
        committed = started.committed_total
        started.rescue_erc20(ADMIN, busd.address, BOB, 1)
        assert started.committed_total == committed


class TestSerialization:
    def test_round_trip(self, started, token, clock):
        started.set_marketing_vest_for(ADMIN, [ALICE], [100])
        clock.advance(HALF_YEAR)
        started.claim(ALICE)

        restored = VestingContract.from_dict(started.to_dict(), token, time_provider=clock.now, metrics_enabled=False)
        assert restored.address == started.address
        assert restored.committed_total == 80
        assert restored.events == started.events
        assert restored.get_total_vesting_info(ALICE) == started.get_total_vesting_info(ALICE)

    def test_rejects_foreign_token(self, started, clock):
        other = VestingToken(name="Other", symbol="OTH", admin=ADMIN)
        with pytest.raises(StateError):
            VestingContract.from_dict(started.to_dict(), other, time_provider=clock.now)
