"""
ERC20 Token Implementation.

In-memory fungible token used as the vesting ledger's external collaborator:
- Balance lookup and transfers
- Owner-only minting (test and foreign tokens)
- Metadata (name, symbol, decimals)
- Transfer events
- Recipient hooks invoked once a transfer has settled

Security features:
- Overflow protection (256-bit arithmetic)
- Zero address checks
- Balance underflow prevention
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict

from ..exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidRecipientError,
    SupplyCapExceededError,
    TokenError,
)
from ..vesting.access import ZERO_ADDRESS, is_zero_address, normalize_address

logger = logging.getLogger(__name__)

# Called as hook(sender, recipient, amount) after a transfer to recipient settles
RecipientHook = Callable[[str, str, int], None]


@dataclass
class TokenEvent:
    """Represents an ERC20 event."""

    event_type: str  # "Transfer"
    from_address: str
    to_address: str
    value: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "from_address": self.from_address,
            "to_address": self.to_address,
            "value": self.value,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenEvent":
        return cls(
            event_type=data["event_type"],
            from_address=data["from_address"],
            to_address=data["to_address"],
            value=int(data["value"]),
            timestamp=data.get("timestamp", 0.0),
        )


@dataclass
class ERC20Token:
    """
    Fungible token ledger.

    All balances are stored in-memory and serialized with ``to_dict``.
    Amounts are integers in the token's smallest unit.
    """

    # Token metadata
    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0

    # Contract address
    address: str = ""

    # Owner (for minting permissions)
    owner: str = ""

    # State
    balances: dict[str, int] = field(default_factory=dict)

    # Event log
    events: list[TokenEvent] = field(default_factory=list)

    # Supply cap (0 = unlimited)
    max_supply: int = 0

    # Not persisted
    recipient_hooks: dict[str, RecipientHook] = field(default_factory=dict, repr=False)

    # Constants
    UINT256_MAX: int = 2**256 - 1

    def __post_init__(self) -> None:
        """Initialize token after dataclass creation."""
        if not self.address:
            # Generate address from name/symbol hash
            addr_input = f"{self.name}{self.symbol}{time.time()}".encode()
            addr_hash = hashlib.sha3_256(addr_input).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"
        self.address = normalize_address(self.address)
        self.owner = normalize_address(self.owner)

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        """
        Get the token balance of an account.

        Args:
            account: Address to check

        Returns:
            Token balance
        """
        return self.balances.get(normalize_address(account), 0)

    # ==================== State-Changing Functions ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Transfer tokens from sender to recipient.

        Balances and the event log are settled before any recipient hook
        runs, so a hook observes the post-transfer state.

        Args:
            sender: Address sending tokens (msg.sender)
            recipient: Address receiving tokens
            amount: Amount to transfer

        Returns:
            True if successful

        Raises:
            TokenError: If transfer fails
        """
        sender_norm = normalize_address(sender)
        recipient_norm = normalize_address(recipient)

        self._validate_address(recipient_norm, "recipient")
        self._validate_amount(amount)

        sender_balance = self.balances.get(sender_norm, 0)
        if sender_balance < amount:
            raise InsufficientBalanceError(
                f"ERC20: transfer amount exceeds balance "
                f"({amount} > {sender_balance})",
                details={"token": self.symbol, "sender": sender_norm, "amount": amount},
            )

        # Update balances
        self.balances[sender_norm] = sender_balance - amount
        self.balances[recipient_norm] = self.balances.get(recipient_norm, 0) + amount

        # Emit event
        self._emit_transfer(sender_norm, recipient_norm, amount)

        logger.debug(
            "ERC20 transfer",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": sender_norm[:10],
                "to": recipient_norm[:10],
                "amount": amount,
            }
        )

        hook = self.recipient_hooks.get(recipient_norm)
        if hook is not None:
            hook(sender_norm, recipient_norm, amount)

        return True

    # ==================== Minting ====================

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """
        Mint new tokens (owner only).

        Args:
            minter: Address calling mint (must be owner)
            to: Recipient of minted tokens
            amount: Amount to mint

        Returns:
            True if successful

        Raises:
            TokenError: If minting fails
        """
        self._require_owner(minter)
        return self._mint(normalize_address(to), amount)

    def _mint(self, to_norm: str, amount: int) -> bool:
        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        # Check supply cap
        if self.max_supply > 0 and self.total_supply + amount > self.max_supply:
            raise SupplyCapExceededError(
                f"ERC20: mint would exceed max supply "
                f"({self.total_supply + amount} > {self.max_supply})"
            )

        # Update state
        self.total_supply += amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount

        # Emit transfer from zero address
        self._emit_transfer(ZERO_ADDRESS, to_norm, amount)

        logger.info(
            "ERC20 mint",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            }
        )

        return True

    # ==================== Hooks ====================

    def register_recipient_hook(self, recipient: str, hook: RecipientHook) -> None:
        """Invoke ``hook`` after every transfer settling into ``recipient``."""
        self.recipient_hooks[normalize_address(recipient)] = hook

    def remove_recipient_hook(self, recipient: str) -> None:
        self.recipient_hooks.pop(normalize_address(recipient), None)

    # ==================== Rollback ====================

    def snapshot(self) -> Dict[str, Any]:
        """Capture balances, supply and event log length for rollback."""
        return {
            "balances": dict(self.balances),
            "total_supply": self.total_supply,
            "event_count": len(self.events),
        }

    def restore(self, snapshot: Dict[str, Any]) -> None:
        """Restore state captured by ``snapshot()``."""
        self.balances = dict(snapshot["balances"])
        self.total_supply = snapshot["total_supply"]
        del self.events[snapshot["event_count"]:]

    # ==================== Helpers ====================

    def _validate_address(self, address: str, field: str) -> None:
        """Validate address is not zero."""
        if is_zero_address(address):
            raise InvalidRecipientError(f"ERC20: {field} is zero address")

    def _validate_amount(self, amount: int) -> None:
        """Validate amount is valid."""
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise InvalidAmountError("ERC20: amount must be an integer")
        if amount < 0:
            raise InvalidAmountError("ERC20: amount cannot be negative")
        if amount > self.UINT256_MAX:
            raise InvalidAmountError("ERC20: amount exceeds uint256")

    def _require_owner(self, caller: str) -> None:
        """Require caller is owner."""
        if normalize_address(caller) != self.owner:
            raise TokenError("ERC20: caller is not owner")

    def _emit_transfer(self, from_addr: str, to_addr: str, amount: int) -> None:
        """Emit Transfer event."""
        self.events.append(
            TokenEvent(
                event_type="Transfer",
                from_address=from_addr,
                to_address=to_addr,
                value=amount,
            )
        )

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize token state to dictionary."""
        return {
            "type": "ERC20",
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self.total_supply,
            "address": self.address,
            "owner": self.owner,
            "balances": dict(self.balances),
            "max_supply": self.max_supply,
            "events": [event.to_dict() for event in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ERC20Token":
        """Deserialize token state from dictionary."""
        token = cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", 18),
            total_supply=int(data.get("total_supply", 0)),
            address=data.get("address", ""),
            owner=data.get("owner", ""),
            max_supply=int(data.get("max_supply", 0)),
        )
        token.balances = {k: int(v) for k, v in data.get("balances", {}).items()}
        token.events = [TokenEvent.from_dict(e) for e in data.get("events", [])]
        return token


class TokenRegistry:
    """
    Registry of deployed tokens, keyed by contract address.

    Lets the vesting contract resolve foreign tokens by address when
    rescuing funds sent to it by mistake.
    """

    def __init__(self) -> None:
        self.deployed_tokens: dict[str, ERC20Token] = {}

    def register(self, token: ERC20Token) -> ERC20Token:
        self.deployed_tokens[normalize_address(token.address)] = token
        return token

    def create_token(
        self,
        creator: str,
        name: str,
        symbol: str,
        decimals: int = 18,
        initial_supply: int = 0,
        max_supply: int = 0,
        mint_to: str | None = None,
    ) -> ERC20Token:
        """
        Create and register a new owner-mintable token.

        Args:
            creator: Address creating the token (becomes owner)
            name: Token name
            symbol: Token symbol (ticker)
            decimals: Decimal places (default 18)
            initial_supply: Initial supply to mint
            max_supply: Maximum supply cap (0 = unlimited)
            mint_to: Address to mint initial supply to (defaults to creator)

        Raises:
            TokenError: If creation fails
        """
        if not name:
            raise TokenError("ERC20: name cannot be empty")
        if not symbol:
            raise TokenError("ERC20: symbol cannot be empty")
        if decimals < 0 or decimals > 18:
            raise TokenError("ERC20: invalid decimals")
        if initial_supply < 0:
            raise TokenError("ERC20: invalid initial supply")

        token = ERC20Token(
            name=name,
            symbol=symbol,
            decimals=decimals,
            owner=creator,
            max_supply=max_supply,
        )
        if initial_supply > 0:
            token.mint(creator, mint_to or creator, initial_supply)

        self.register(token)
        logger.info(
            "ERC20 token created",
            extra={
                "event": "erc20.created",
                "address": token.address,
                "symbol": symbol,
                "initial_supply": initial_supply,
                "creator": normalize_address(creator)[:10],
            }
        )
        return token

    def get_token(self, address: str) -> ERC20Token | None:
        return self.deployed_tokens.get(normalize_address(address))

    def list_tokens(self) -> list[Dict[str, Any]]:
        return [
            {
                "address": address,
                "name": token.name,
                "symbol": token.symbol,
                "decimals": token.decimals,
                "total_supply": token.total_supply,
            }
            for address, token in self.deployed_tokens.items()
        ]
