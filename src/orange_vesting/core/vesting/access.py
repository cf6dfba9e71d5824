"""
Single-admin access control for vesting operations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..exceptions import AccessIsDenied, ZeroAddress

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40


def normalize_address(address: str) -> str:
    """Normalize address to lowercase."""
    return (address or "").strip().lower()


def is_zero_address(address: str) -> bool:
    """True for the empty string and the all-zero address."""
    normalized = normalize_address(address)
    return not normalized or normalized == ZERO_ADDRESS


@dataclass(frozen=True)
class AccessGuard:
    """
    Gate in front of every admin-only operation.

    The caller identity is passed explicitly; there is no ambient sender.
    """

    admin: str

    def __post_init__(self) -> None:
        if is_zero_address(self.admin):
            raise ZeroAddress("Admin address cannot be the zero address")
        object.__setattr__(self, "admin", normalize_address(self.admin))

    def is_admin(self, caller: str) -> bool:
        return normalize_address(caller) == self.admin

    def require_admin(self, caller: str, operation: str = "") -> None:
        """Raise AccessIsDenied unless ``caller`` is the admin."""
        if self.is_admin(caller):
            return
        logger.warning(
            "Access denied: caller is not admin",
            extra={
                "event": "vesting.access_denied",
                "caller": normalize_address(caller)[:10],
                "operation": operation,
            },
        )
        raise AccessIsDenied(details={"caller": caller, "operation": operation})
