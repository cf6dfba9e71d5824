"""
Unlock curves for vesting schedules.

Pure functions: given a schedule, its direction and the time elapsed since
vesting started, return the amount unlocked and not yet claimed. Used both
by read-only views and by claims.
"""

from __future__ import annotations

from .directions import Direction
from .ledger import VestingSchedule


def unlocked_amount(schedule: VestingSchedule, direction: Direction | int, elapsed: int) -> int:
    """
    Calculate the claimable amount of a schedule.

    Args:
        schedule: Schedule to evaluate
        direction: Direction the schedule belongs to (selects the curve)
        elapsed: Seconds since the vesting start timestamp

    Returns:
        Amount unlocked and not yet claimed (integer token units)
    """
    total = schedule.total_amount
    claimed = schedule.claimed_amount
    cliff = schedule.cliff_seconds
    vesting = schedule.vesting_seconds

    if total == 0 or elapsed < cliff or claimed >= total:
        return 0

    max_time = cliff + vesting

    if Direction(direction) is Direction.LIQUIDITY:
        return _half_then_rest(total, claimed, elapsed, max_time)

    if elapsed >= max_time:
        return total - claimed

    # Linear release is measured from the vesting start, not the cliff end.
    # With a cliff the ratio passes 1 before max_time, so cap at the total.
    vested = min(total, total * elapsed // vesting)
    return max(0, vested - claimed)


def _half_then_rest(total: int, claimed: int, elapsed: int, max_time: int) -> int:
    """Half of the total right after the cliff, the remainder at maturity."""
    if elapsed >= max_time:
        return total - claimed
    if claimed == 0:
        return total // 2
    return 0
