"""
JSON persistence for a vesting deployment.

A deployment is the vesting token, the vesting contract and any foreign
tokens registered alongside them. The whole deployment is written to one
JSON file atomically (temp file + ``os.replace``).
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict

from .config import VestingConfig
from .contracts.erc20 import ERC20Token, TokenRegistry
from .contracts.vesting import VestingContract
from .contracts.vesting_token import VestingToken
from .exceptions import StateError

logger = logging.getLogger(__name__)

STATE_VERSION = 1


@dataclass
class Deployment:
    registry: TokenRegistry
    token: VestingToken
    vesting: VestingContract

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": STATE_VERSION,
            "token": self.token.address,
            "tokens": {
                address: token.to_dict() for address, token in self.registry.deployed_tokens.items()
            },
            "vesting": self.vesting.to_dict(),
            "persisted_at": time.time(),
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        time_provider: Callable[[], int] | None = None,
        metrics_enabled: bool = True,
    ) -> "Deployment":
        if data.get("version") != STATE_VERSION:
            raise StateError(f"Unsupported state version: {data.get('version')!r}")

        registry = TokenRegistry()
        for raw in data.get("tokens", {}).values():
            if raw.get("type") == "VestingToken":
                registry.register(VestingToken.from_dict(raw))
            else:
                registry.register(ERC20Token.from_dict(raw))

        token = registry.get_token(data["token"])
        if not isinstance(token, VestingToken):
            raise StateError("State file does not contain the vesting token")

        vesting = VestingContract.from_dict(
            data["vesting"],
            token,
            time_provider=time_provider,
            registry=registry,
            metrics_enabled=metrics_enabled,
        )
        return cls(registry=registry, token=token, vesting=vesting)


def deploy(
    admin: str,
    config: VestingConfig | None = None,
    time_provider: Callable[[], int] | None = None,
) -> Deployment:
    """
    Create the vesting token and contract, then run the generation event.

    Args:
        admin: Admin of both the token and the vesting contract
        config: Token metadata and supply (defaults from the environment)
        time_provider: Clock used by the vesting contract
    """
    config = config or VestingConfig.from_env()
    registry = TokenRegistry()
    token = VestingToken(
        name=config.token_name,
        symbol=config.token_symbol,
        decimals=config.token_decimals,
        admin=admin,
        fixed_supply=config.total_supply_units,
    )
    vesting = VestingContract(
        token,
        admin,
        time_provider=time_provider,
        registry=registry,
        metrics_enabled=config.metrics_enabled,
    )
    token.execute_tge(admin, vesting.address)
    return Deployment(registry=registry, token=token, vesting=vesting)


class StateStore:
    """Reads and writes a deployment to a JSON state file."""

    def __init__(self, path: str) -> None:
        self.path = path

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def load(
        self,
        time_provider: Callable[[], int] | None = None,
        metrics_enabled: bool = True,
    ) -> Deployment:
        if not self.exists():
            raise StateError(f"No vesting deployment found at {self.path}")
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise StateError(f"Failed to read vesting state: {exc}") from exc
        return Deployment.from_dict(data, time_provider=time_provider, metrics_enabled=metrics_enabled)

    def save(self, deployment: Deployment) -> None:
        """Persist the deployment atomically."""
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(deployment.to_dict(), handle, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, self.path)
        logger.debug(
            "Vesting state persisted",
            extra={"event": "state.persisted", "path": self.path},
        )
