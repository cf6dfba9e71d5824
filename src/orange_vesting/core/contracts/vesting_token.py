"""
Fixed-supply vesting token.

The entire supply is minted exactly once, by the admin, directly into the
vesting contract's holding account (the token generation event, TGE).
There is no other minting path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

from ..exceptions import AccessIsDenied, TGEExecuted
from ..vesting.access import normalize_address
from .erc20 import ERC20Token, TokenEvent

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Orange Token"
DEFAULT_SYMBOL = "OT"
DEFAULT_WHOLE_SUPPLY = 100_000_000_000


@dataclass
class VestingToken(ERC20Token):
    """ERC20 token whose fixed supply is released through a single TGE."""

    admin: str = ""
    is_executed: bool = False
    fixed_supply: int = 0

    def __post_init__(self) -> None:
        super().__post_init__()
        self.admin = normalize_address(self.admin)
        if not self.fixed_supply:
            self.fixed_supply = DEFAULT_WHOLE_SUPPLY * 10**self.decimals
        # Admin is the only party that may trigger the generation event
        self.owner = self.admin
        self.max_supply = self.fixed_supply

    def mint(self, minter: str, to: str, amount: int) -> bool:
        raise AccessIsDenied("Vesting token supply is only minted by the generation event")

    def execute_tge(self, caller: str, vesting_address: str) -> bool:
        """
        Mint the whole fixed supply to the vesting contract.

        Args:
            caller: Address executing the TGE (must be admin)
            vesting_address: Holding account of the vesting contract

        Raises:
            AccessIsDenied: If caller is not the admin
            TGEExecuted: If the TGE already ran
        """
        if normalize_address(caller) != self.admin:
            raise AccessIsDenied(details={"caller": caller, "operation": "execute_tge"})
        if self.is_executed:
            raise TGEExecuted()

        self._mint(normalize_address(vesting_address), self.fixed_supply)
        self.is_executed = True

        logger.info(
            "Token generation event executed",
            extra={
                "event": "token.tge_executed",
                "token": self.symbol,
                "vesting": normalize_address(vesting_address)[:10],
                "supply": self.fixed_supply,
            }
        )
        return True

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "type": "VestingToken",
                "admin": self.admin,
                "is_executed": self.is_executed,
                "fixed_supply": self.fixed_supply,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VestingToken":
        token = cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", 18),
            total_supply=int(data.get("total_supply", 0)),
            address=data.get("address", ""),
            admin=data.get("admin", ""),
            is_executed=bool(data.get("is_executed", False)),
            fixed_supply=int(data.get("fixed_supply", 0)),
        )
        token.balances = {k: int(v) for k, v in data.get("balances", {}).items()}
        token.events = [TokenEvent.from_dict(e) for e in data.get("events", [])]
        return token
