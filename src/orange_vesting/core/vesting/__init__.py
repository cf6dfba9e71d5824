"""
Vesting ledger building blocks: directions, schedules, unlock curves and access control.
"""

from .access import ZERO_ADDRESS, AccessGuard, is_zero_address, normalize_address
from .directions import DIRECTION_TERMS, Direction, DirectionTerms, terms_for
from .ledger import VestingLedger, VestingSchedule
from .unlock import unlocked_amount

__all__ = [
    "ZERO_ADDRESS",
    "AccessGuard",
    "is_zero_address",
    "normalize_address",
    "DIRECTION_TERMS",
    "Direction",
    "DirectionTerms",
    "terms_for",
    "VestingLedger",
    "VestingSchedule",
    "unlocked_amount",
]
