"""
Multi-direction Token Vesting Contract.

Holds the fixed token supply minted by the generation event and releases
it to accounts through six allocation directions, each with its own cliff
and vesting duration:

- Batched schedule creation and top-up (admin only)
- One-shot vesting start
- Claims aggregated across every direction with a single transfer
- Rescue of foreign tokens sent to the contract by mistake

Accounting invariants, held at every observable point:
- claimed <= total for every schedule
- committed_total == sum(total - claimed) over all schedules
- available_amount() + committed_total == token balance of the contract

Every public operation is atomic: the ledger and the registered tokens are
snapshotted before the call and restored on any failure, and records are
published only on success.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, NamedTuple, Sequence

from ..exceptions import (
    ClaimAmountIsZero,
    ContractExecutionError,
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
from .. import vesting_metrics
from ..vesting.access import AccessGuard, is_zero_address, normalize_address
from ..vesting.directions import Direction, DirectionTerms, terms_for
from ..vesting.ledger import VestingLedger, VestingSchedule
from ..vesting.unlock import unlocked_amount
from .erc20 import ERC20Token, TokenRegistry

logger = logging.getLogger(__name__)


@dataclass
class VestingCreated:
    """Emitted for every schedule written by a batch."""

    account: str
    amount: int
    cliff_seconds: int
    vesting_seconds: int
    created_at: int
    direction: Direction
    event_type: str = field(default="VestingCreated", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "account": self.account,
            "amount": self.amount,
            "cliff_seconds": self.cliff_seconds,
            "vesting_seconds": self.vesting_seconds,
            "created_at": self.created_at,
            "direction": int(self.direction),
        }


@dataclass
class Claimed:
    """Emitted once per direction with a non-zero unlock in a claim."""

    account: str
    amount: int
    created_at: int
    direction: Direction
    event_type: str = field(default="Claimed", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "account": self.account,
            "amount": self.amount,
            "created_at": self.created_at,
            "direction": int(self.direction),
        }


VestingEvent = VestingCreated | Claimed


def event_from_dict(data: Dict[str, Any]) -> VestingEvent:
    direction = Direction(int(data["direction"]))
    if data["event_type"] == "VestingCreated":
        return VestingCreated(
            account=data["account"],
            amount=int(data["amount"]),
            cliff_seconds=int(data["cliff_seconds"]),
            vesting_seconds=int(data["vesting_seconds"]),
            created_at=int(data["created_at"]),
            direction=direction,
        )
    if data["event_type"] == "Claimed":
        return Claimed(
            account=data["account"],
            amount=int(data["amount"]),
            created_at=int(data["created_at"]),
            direction=direction,
        )
    raise StateError(f"Unknown vesting event type: {data['event_type']!r}")


class VestingInfo(NamedTuple):
    """Per-account totals summed across every direction."""

    total_amount: int
    unlocked_amount: int
    claimed_amount: int
    locked_amount: int


@dataclass
class _CallFrame:
    """Records and operations buffered by one public call until the outermost call commits."""

    records: list[VestingEvent] = field(default_factory=list)
    operations: list[str] = field(default_factory=list)


class VestingContract:
    """
    Token vesting contract with six fixed allocation directions.

    Usage:
        token = VestingToken(name="Orange Token", symbol="OT", admin=admin)
        vesting = VestingContract(token, admin)
        token.execute_tge(admin, vesting.address)
        vesting.set_vesting_start_timestamp(admin)
        vesting.set_public_round_vest_for(admin, [alice], [100])
        vesting.claim(alice)
    """

    def __init__(
        self,
        token: ERC20Token,
        admin: str,
        address: str = "",
        time_provider: Callable[[], int] | None = None,
        registry: TokenRegistry | None = None,
        metrics_enabled: bool = True,
    ) -> None:
        if token is None or is_zero_address(token.address):
            raise ZeroAddress("Vesting token address cannot be the zero address")

        self.token = token
        self._guard = AccessGuard(admin)
        self.ledger = VestingLedger()
        self.events: list[VestingEvent] = []
        self._open_calls: list[_CallFrame] = []
        self._time_provider = time_provider or (lambda: int(time.time()))
        self.registry = registry or TokenRegistry()
        self.registry.register(token)
        self.metrics_enabled = metrics_enabled

        if not address:
            addr_input = f"vesting{token.address}{admin}{time.time()}".encode()
            address = f"0x{hashlib.sha3_256(addr_input).digest()[-20:].hex()}"
        self.address = normalize_address(address)

        logger.info(
            "Vesting contract deployed",
            extra={
                "event": "vesting.deployed",
                "address": self.address,
                "token": token.address[:10],
                "admin": self._guard.admin[:10],
            }
        )

    # ==================== View Functions ====================

    @property
    def admin(self) -> str:
        return self._guard.admin

    @property
    def committed_total(self) -> int:
        return self.ledger.committed_total

    @property
    def vesting_start_timestamp(self) -> int:
        return self.ledger.vesting_start_timestamp

    def available_amount(self) -> int:
        """Token balance held by the contract that no schedule has committed."""
        return self.token.balance_of(self.address) - self.ledger.committed_total

    def schedule_of(self, account: str, direction: Direction | int | str) -> VestingSchedule:
        return self.ledger.get(account, Direction.parse(direction))

    def unlocked_of(self, account: str, direction: Direction | int | str) -> int:
        direction = Direction.parse(direction)
        return self._unlocked(self.ledger.get(account, direction), direction, self._elapsed())

    def get_total_vesting_info(self, account: str) -> VestingInfo:
        """
        Sum an account's position across every direction.

        Returns:
            (total, unlocked, claimed, locked) where
            locked = total - claimed - unlocked
        """
        elapsed = self._elapsed()
        total = unlocked = claimed = 0
        for direction, schedule in self.ledger.schedules_for(account):
            total += schedule.total_amount
            claimed += schedule.claimed_amount
            unlocked += self._unlocked(schedule, direction, elapsed)
        return VestingInfo(total, unlocked, claimed, total - claimed - unlocked)

    def verify_invariants(self) -> Dict[str, Any]:
        """Check the ledger invariants plus the balance/committed relation."""
        report = self.ledger.verify_consistency()
        balance = self.token.balance_of(self.address)
        overcommitted = self.ledger.committed_total > balance
        report.update(
            {
                "token_balance": balance,
                "available_amount": balance - self.ledger.committed_total,
                "overcommitted": overcommitted,
            }
        )
        report["is_consistent"] = report["is_consistent"] and not overcommitted
        return report

    # ==================== Admin Functions ====================

    def set_vesting_start_timestamp(self, caller: str) -> int:
        """
        Start vesting at the current time (admin only, one-shot).

        Returns:
            The recorded start timestamp
        """
        def _start(now: int, pending: list[VestingEvent]) -> int:
            self._guard.require_admin(caller, "set_vesting_start_timestamp")
            if self.ledger.is_started:
                raise VestingAlreadyStarted()
            self.ledger.start(now)
            logger.info(
                "Vesting started",
                extra={"event": "vesting.started", "address": self.address[:10], "timestamp": now},
            )
            return now

        return self._execute("set_vesting_start_timestamp", _start)

    def set_vest_for(
        self,
        caller: str,
        direction: Direction | int | str,
        accounts: Sequence[str],
        amounts: Sequence[int],
    ) -> list[VestingCreated]:
        """
        Create or adjust a batch of schedules in one direction.

        Entries are applied strictly in order; each sees the committed total
        left by the entries before it. Any failing entry rolls back the
        whole batch.

        Args:
            caller: Address calling (must be admin)
            direction: Direction receiving the allocations
            accounts: Beneficiary addresses
            amounts: New schedule totals, one per account

        Returns:
            The VestingCreated records emitted, in entry order

        Raises:
            AccessIsDenied, NotStarted, DataLengthsIsZero, DataLengthsNotMatch,
            IncorrectAmount, ZeroAddress, InsufficientTokens,
            TotalAmountLessThanClaimed
        """
        direction = Direction.parse(direction)

        def _batch(now: int, pending: list[VestingEvent]) -> list[VestingCreated]:
            self._guard.require_admin(caller, "set_vest_for")
            if not self.ledger.is_started:
                raise NotStarted()
            if len(accounts) == 0 or len(amounts) == 0:
                raise DataLengthsIsZero()
            if len(accounts) != len(amounts):
                raise DataLengthsNotMatch(
                    details={"accounts": len(accounts), "amounts": len(amounts)}
                )

            terms = terms_for(direction)
            created: list[VestingCreated] = []
            changes: list[int] = []
            for index, (account, amount) in enumerate(zip(accounts, amounts)):
                record, change = self._write_entry(index, account, amount, direction, terms, now)
                created.append(record)
                changes.append(change)
            pending.extend(created)

            if self.metrics_enabled:
                for change in changes:
                    vesting_metrics.record_schedule_write(direction.name, change)

            logger.info(
                "Vesting batch applied",
                extra={
                    "event": "vesting.batch_applied",
                    "direction": direction.name,
                    "entries": len(created),
                    "committed_total": self.ledger.committed_total,
                },
            )
            return created

        return self._execute("set_vest_for", _batch)

    def set_public_round_vest_for(self, caller: str, accounts: Sequence[str], amounts: Sequence[int]) -> list[VestingCreated]:
        return self.set_vest_for(caller, Direction.PUBLIC_ROUND, accounts, amounts)

    def set_staking_vest_for(self, caller: str, accounts: Sequence[str], amounts: Sequence[int]) -> list[VestingCreated]:
        return self.set_vest_for(caller, Direction.STAKING, accounts, amounts)

    def set_team_vest_for(self, caller: str, accounts: Sequence[str], amounts: Sequence[int]) -> list[VestingCreated]:
        return self.set_vest_for(caller, Direction.TEAM, accounts, amounts)

    def set_liquidity_vest_for(self, caller: str, accounts: Sequence[str], amounts: Sequence[int]) -> list[VestingCreated]:
        return self.set_vest_for(caller, Direction.LIQUIDITY, accounts, amounts)

    def set_marketing_vest_for(self, caller: str, accounts: Sequence[str], amounts: Sequence[int]) -> list[VestingCreated]:
        return self.set_vest_for(caller, Direction.MARKETING, accounts, amounts)

    def set_treasury_vest_for(self, caller: str, accounts: Sequence[str], amounts: Sequence[int]) -> list[VestingCreated]:
        return self.set_vest_for(caller, Direction.TREASURY, accounts, amounts)

    def rescue_erc20(self, caller: str, token_address: str, to: str, amount: int) -> bool:
        """
        Transfer a foreign token held by this contract (admin only).

        Raises:
            AccessIsDenied: If caller is not the admin
            ZeroAddress: If token_address is the zero address
            ForbiddenWithdrawalFromOwnContract: If token_address is the vesting token
        """
        def _rescue(now: int, pending: list[VestingEvent]) -> bool:
            self._guard.require_admin(caller, "rescue_erc20")
            if is_zero_address(token_address):
                raise ZeroAddress()
            if normalize_address(token_address) == self.token.address:
                raise ForbiddenWithdrawalFromOwnContract()

            foreign = self.registry.get_token(token_address)
            if foreign is None:
                raise TokenError(f"Unknown token contract {token_address}")
            foreign.transfer(self.address, to, amount)

            logger.info(
                "Foreign tokens rescued",
                extra={
                    "event": "vesting.rescued",
                    "token": normalize_address(token_address)[:10],
                    "to": normalize_address(to)[:10],
                    "amount": amount,
                },
            )
            return True

        return self._execute("rescue_erc20", _rescue)

    # ==================== Claims ====================

    def claim(self, caller: str) -> int:
        """
        Claim everything unlocked for ``caller`` across all directions.

        The ledger is fully updated before the single outbound transfer, so
        anything called back during the transfer sees the claimed amounts.

        Returns:
            Total amount transferred to the caller

        Raises:
            ClaimAmountIsZero: If nothing is unlocked in any direction
        """
        def _claim(now: int, pending: list[VestingEvent]) -> int:
            account = normalize_address(caller)
            if not self.ledger.is_started:
                raise ClaimAmountIsZero()

            elapsed = now - self.ledger.vesting_start_timestamp
            claimed_now = 0
            records: list[Claimed] = []
            for direction, schedule in self.ledger.schedules_for(account):
                amount = self._unlocked(schedule, direction, elapsed)
                if amount <= 0:
                    continue
                self.ledger.record_claim(account, direction, amount)
                records.append(Claimed(account, amount, now, direction))
                claimed_now += amount

            if claimed_now == 0:
                raise ClaimAmountIsZero()

            self.ledger.release(claimed_now)
            pending.extend(records)

            # Interaction last: the transfer may call back into this contract
            self.token.transfer(self.address, account, claimed_now)

            logger.info(
                "Vesting claimed",
                extra={
                    "event": "vesting.claimed",
                    "account": account[:10],
                    "amount": claimed_now,
                    "directions": [record.direction.name for record in records],
                },
            )
            return claimed_now

        return self._execute("claim", _claim)

    # ==================== Helpers ====================

    def _current_time(self) -> int:
        timestamp = self._time_provider()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc

    def _elapsed(self) -> int | None:
        if not self.ledger.is_started:
            return None
        return self._current_time() - self.ledger.vesting_start_timestamp

    @staticmethod
    def _unlocked(schedule: VestingSchedule, direction: Direction, elapsed: int | None) -> int:
        if elapsed is None:
            return 0
        return unlocked_amount(schedule, direction, elapsed)

    def _write_entry(
        self,
        index: int,
        account: str,
        amount: int,
        direction: Direction,
        terms: DirectionTerms,
        now: int,
    ) -> tuple[VestingCreated, int]:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise IncorrectAmount(details={"index": index, "amount": amount})
        if is_zero_address(account):
            raise ZeroAddress(details={"index": index})

        schedule = self.ledger.get(account, direction)
        prior = schedule.total_amount
        delta = max(0, amount - prior)
        available = self.available_amount()
        if available < delta:
            raise InsufficientTokens(
                details={"index": index, "required": delta, "available": available}
            )
        if prior != 0 and amount < schedule.claimed_amount:
            raise TotalAmountLessThanClaimed(
                details={"index": index, "amount": amount, "claimed": schedule.claimed_amount}
            )

        change = self.ledger.write_schedule(
            account, direction, amount, terms.cliff_seconds, terms.vesting_seconds
        )
        record = VestingCreated(
            account=normalize_address(account),
            amount=amount,
            cliff_seconds=terms.cliff_seconds,
            vesting_seconds=terms.vesting_seconds,
            created_at=now,
            direction=direction,
        )
        return record, change

    def _execute(self, operation: str, func: Callable[[int, list[VestingEvent]], Any]) -> Any:
        """
        Run ``func`` as one atomic call.

        The ledger and every registered token are restored from snapshots if
        anything raises. Records and claim metrics are buffered per call; a
        call made from inside another one (a transfer hook calling back)
        hands its buffer to the enclosing call, so nothing is published until
        the outermost call commits.
        """
        snapshot = self.ledger.snapshot()
        token_snapshots = {
            address: token.snapshot() for address, token in self.registry.deployed_tokens.items()
        }
        frame = _CallFrame()
        self._open_calls.append(frame)
        try:
            result = func(self._current_time(), frame.records)
        except ContractExecutionError as exc:
            self._rollback(snapshot, token_snapshots)
            if self.metrics_enabled:
                vesting_metrics.record_rejection(operation, exc.code)
            logger.info(
                "Vesting operation rejected",
                extra={"event": "vesting.rejected", "operation": operation, "error": exc.code},
            )
            raise
        except Exception:
            self._rollback(snapshot, token_snapshots)
            logger.error(
                "Vesting operation failed",
                extra={"event": "vesting.failed", "operation": operation},
                exc_info=True,
            )
            raise
        finally:
            self._open_calls.pop()

        frame.operations.append(operation)
        if self._open_calls:
            enclosing = self._open_calls[-1]
            enclosing.records.extend(frame.records)
            enclosing.operations.extend(frame.operations)
            return result

        self._publish(frame)
        return result

    def _publish(self, frame: _CallFrame) -> None:
        self.events.extend(frame.records)
        if not self.metrics_enabled:
            return
        for record in frame.records:
            if isinstance(record, Claimed):
                vesting_metrics.record_claim(record.direction.name, record.amount)
        for operation in frame.operations:
            if operation == "claim":
                vesting_metrics.record_claim_call()
        vesting_metrics.update_ledger_gauges(self)

    def _rollback(self, snapshot: Dict[str, Any], token_snapshots: Dict[str, Dict[str, Any]]) -> None:
        self.ledger.restore(snapshot)
        for address, token_snapshot in token_snapshots.items():
            self.registry.deployed_tokens[address].restore(token_snapshot)

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize contract state to dictionary."""
        return {
            "type": "Vesting",
            "address": self.address,
            "admin": self.admin,
            "token": self.token.address,
            "ledger": self.ledger.to_dict(),
            "events": [event.to_dict() for event in self.events],
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        token: ERC20Token,
        time_provider: Callable[[], int] | None = None,
        registry: TokenRegistry | None = None,
        metrics_enabled: bool = True,
    ) -> "VestingContract":
        """Deserialize contract state; ``token`` must match the stored token address."""
        if normalize_address(data["token"]) != token.address:
            raise StateError(
                "Vesting state belongs to a different token",
                details={"stored": data["token"], "given": token.address},
            )
        contract = cls(
            token,
            data["admin"],
            address=data["address"],
            time_provider=time_provider,
            registry=registry,
            metrics_enabled=metrics_enabled,
        )
        contract.ledger = VestingLedger.from_dict(data.get("ledger", {}))
        contract.events = [event_from_dict(e) for e in data.get("events", [])]
        return contract
