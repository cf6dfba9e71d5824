"""
Vesting ledger storage.

Holds every (account, direction) schedule together with the global
committed total and the vesting start timestamp. The ledger itself performs
no authorization or balance checks; it only applies mutations and keeps the
committed total in lock-step with them. Callers wrap each public operation
in ``snapshot()``/``restore()`` to get whole-call rollback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Tuple

from ..exceptions import StateError
from .access import normalize_address
from .directions import Direction

logger = logging.getLogger(__name__)


@dataclass
class VestingSchedule:
    """Vesting position of one account in one direction."""

    cliff_seconds: int = 0
    vesting_seconds: int = 0
    total_amount: int = 0
    claimed_amount: int = 0

    @property
    def exists(self) -> bool:
        return self.total_amount > 0

    @property
    def outstanding(self) -> int:
        return self.total_amount - self.claimed_amount

    def copy(self) -> "VestingSchedule":
        return VestingSchedule(
            cliff_seconds=self.cliff_seconds,
            vesting_seconds=self.vesting_seconds,
            total_amount=self.total_amount,
            claimed_amount=self.claimed_amount,
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "cliff_seconds": self.cliff_seconds,
            "vesting_seconds": self.vesting_seconds,
            "total_amount": self.total_amount,
            "claimed_amount": self.claimed_amount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VestingSchedule":
        return cls(
            cliff_seconds=int(data.get("cliff_seconds", 0)),
            vesting_seconds=int(data.get("vesting_seconds", 0)),
            total_amount=int(data.get("total_amount", 0)),
            claimed_amount=int(data.get("claimed_amount", 0)),
        )


ScheduleKey = Tuple[str, Direction]


class VestingLedger:
    """Authoritative store of vesting schedules and the committed total."""

    def __init__(self) -> None:
        self._schedules: dict[ScheduleKey, VestingSchedule] = {}
        self.committed_total = 0
        self.vesting_start_timestamp = 0

    @staticmethod
    def _key(account: str, direction: Direction | int) -> ScheduleKey:
        return normalize_address(account), Direction(direction)

    @property
    def is_started(self) -> bool:
        return self.vesting_start_timestamp != 0

    def get(self, account: str, direction: Direction | int) -> VestingSchedule:
        """Return a copy of the schedule; absent schedules read as all zeros."""
        schedule = self._schedules.get(self._key(account, direction))
        return schedule.copy() if schedule else VestingSchedule()

    def schedules_for(self, account: str) -> Iterator[tuple[Direction, VestingSchedule]]:
        """Yield every direction's schedule for ``account`` in tag order."""
        for direction in Direction:
            yield direction, self.get(account, direction)

    def accounts(self) -> list[str]:
        return sorted({account for account, _ in self._schedules})

    def items(self) -> Iterator[tuple[ScheduleKey, VestingSchedule]]:
        for key in sorted(self._schedules):
            yield key, self._schedules[key].copy()

    # ==================== Mutations ====================

    def start(self, timestamp: int) -> None:
        if self.is_started:
            raise StateError("Vesting start timestamp is already set")
        if timestamp <= 0:
            raise StateError("Vesting start timestamp must be positive")
        self.vesting_start_timestamp = int(timestamp)

    def write_schedule(
        self,
        account: str,
        direction: Direction | int,
        total_amount: int,
        cliff_seconds: int,
        vesting_seconds: int,
    ) -> int:
        """
        Set a schedule's total and durations, keeping the committed total in step.

        Returns:
            The signed change applied to the committed total
        """
        key = self._key(account, direction)
        schedule = self._schedules.setdefault(key, VestingSchedule())
        if total_amount < schedule.claimed_amount:
            raise StateError(
                "Schedule total cannot drop below the claimed amount",
                details={"total": total_amount, "claimed": schedule.claimed_amount},
            )
        change = total_amount - schedule.total_amount
        schedule.cliff_seconds = int(cliff_seconds)
        schedule.vesting_seconds = int(vesting_seconds)
        schedule.total_amount = int(total_amount)
        self.committed_total += change
        return change

    def record_claim(self, account: str, direction: Direction | int, amount: int) -> None:
        """Increase a schedule's claimed amount. The committed total is settled separately."""
        schedule = self._schedules.get(self._key(account, direction))
        if schedule is None or schedule.claimed_amount + amount > schedule.total_amount:
            raise StateError(
                "Claim exceeds schedule total",
                details={"account": account[:10], "direction": int(direction), "amount": amount},
            )
        schedule.claimed_amount += amount

    def release(self, amount: int) -> None:
        if amount > self.committed_total:
            raise StateError("Release exceeds committed total")
        self.committed_total -= amount

    # ==================== Rollback ====================

    def snapshot(self) -> Dict[str, Any]:
        """Capture a deep copy of the ledger state for rollback."""
        return {
            "schedules": {key: schedule.copy() for key, schedule in self._schedules.items()},
            "committed_total": self.committed_total,
            "vesting_start_timestamp": self.vesting_start_timestamp,
        }

    def restore(self, snapshot: Dict[str, Any]) -> None:
        """Restore ledger state captured by ``snapshot()``."""
        self._schedules = {
            key: schedule.copy() for key, schedule in snapshot["schedules"].items()
        }
        self.committed_total = snapshot["committed_total"]
        self.vesting_start_timestamp = snapshot["vesting_start_timestamp"]
        logger.debug(
            "Vesting ledger restored from snapshot",
            extra={"event": "vesting.ledger_restored", "committed_total": self.committed_total},
        )

    def verify_consistency(self) -> Dict[str, Any]:
        """
        Verify the ledger's accounting invariants.

        Checks:
        1. No schedule has claimed more than its total
        2. The committed total equals the sum of outstanding amounts
        """
        overclaimed = [
            f"{account}:{direction.name}"
            for (account, direction), schedule in self._schedules.items()
            if schedule.claimed_amount > schedule.total_amount
        ]
        actual_committed = sum(s.outstanding for s in self._schedules.values())
        committed_mismatch = actual_committed != self.committed_total
        return {
            "is_consistent": not overclaimed and not committed_mismatch,
            "committed_total_stored": self.committed_total,
            "committed_total_actual": actual_committed,
            "committed_mismatch": committed_mismatch,
            "overclaimed_schedules": overclaimed,
        }

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        schedules: Dict[str, Dict[str, Any]] = {}
        for (account, direction), schedule in sorted(self._schedules.items()):
            schedules.setdefault(account, {})[direction.name] = schedule.to_dict()
        return {
            "committed_total": self.committed_total,
            "vesting_start_timestamp": self.vesting_start_timestamp,
            "schedules": schedules,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VestingLedger":
        ledger = cls()
        ledger.committed_total = int(data.get("committed_total", 0))
        ledger.vesting_start_timestamp = int(data.get("vesting_start_timestamp", 0))
        for account, per_direction in data.get("schedules", {}).items():
            for name, raw in per_direction.items():
                key = cls._key(account, Direction.parse(name))
                ledger._schedules[key] = VestingSchedule.from_dict(raw)
        report = ledger.verify_consistency()
        if not report["is_consistent"]:
            raise StateError("Persisted vesting ledger is inconsistent", details=report)
        return ledger
