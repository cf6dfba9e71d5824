"""
Allocation directions and their fixed cliff/vesting durations.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

HALF_YEAR = 15_768_000
YEAR = 31_536_000


class Direction(IntEnum):
    """Allocation bucket. Numeric values are the on-ledger tags (0..5)."""

    PUBLIC_ROUND = 0
    STAKING = 1
    TEAM = 2
    LIQUIDITY = 3
    MARKETING = 4
    TREASURY = 5

    @classmethod
    def parse(cls, value: "Direction | int | str") -> "Direction":
        """Resolve a direction from its tag, its name or a CLI-style slug."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        key = str(value).strip().upper().replace("-", "_")
        if key.isdigit():
            return cls(int(key))
        try:
            return cls[key]
        except KeyError as exc:
            raise ValueError(f"Unknown vesting direction: {value!r}") from exc

    @property
    def slug(self) -> str:
        return self.name.lower().replace("_", "-")


@dataclass(frozen=True)
class DirectionTerms:
    cliff_seconds: int
    vesting_seconds: int

    @property
    def max_time(self) -> int:
        return self.cliff_seconds + self.vesting_seconds


DIRECTION_TERMS: dict[Direction, DirectionTerms] = {
    Direction.PUBLIC_ROUND: DirectionTerms(0, 0),
    Direction.STAKING: DirectionTerms(HALF_YEAR, 5 * HALF_YEAR),
    Direction.TEAM: DirectionTerms(YEAR, 2 * YEAR),
    Direction.LIQUIDITY: DirectionTerms(0, HALF_YEAR),
    Direction.MARKETING: DirectionTerms(0, 5 * HALF_YEAR),
    Direction.TREASURY: DirectionTerms(HALF_YEAR, 5 * HALF_YEAR),
}


def terms_for(direction: Direction | int | str) -> DirectionTerms:
    return DIRECTION_TERMS[Direction.parse(direction)]
