"""
Orange Smart Contract Standards.

This module provides the contract implementations used by the vesting ledger:
- ERC20: Fungible token and token registry
- VestingToken: Fixed-supply token released through a one-time generation event
- Vesting: Multi-direction vesting contract
"""

from .erc20 import ERC20Token, TokenEvent, TokenRegistry
from .vesting import Claimed, VestingContract, VestingCreated, VestingInfo
from .vesting_token import VestingToken

__all__ = [
    # Token Standards
    "ERC20Token",
    "TokenEvent",
    "TokenRegistry",
    "VestingToken",
    # Vesting
    "VestingContract",
    "VestingCreated",
    "Claimed",
    "VestingInfo",
]
