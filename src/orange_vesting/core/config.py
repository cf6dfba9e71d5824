"""
Orange Vesting Configuration

Supports testnet and mainnet with separate defaults.

All settings are read from environment variables:
- ORANGE_NETWORK: testnet (default) or mainnet
- ORANGE_ADMIN_ADDRESS: vesting/token admin, required on mainnet
- ORANGE_TOKEN_NAME / ORANGE_TOKEN_SYMBOL / ORANGE_TOKEN_DECIMALS
- ORANGE_TOTAL_SUPPLY: fixed supply in whole tokens
- ORANGE_STATE_FILE: JSON state file used by the CLI
- ORANGE_LOG_LEVEL: root log level
- ORANGE_METRICS_ENABLED: 1/0, record Prometheus metrics
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

logger = logging.getLogger(__name__)


class NetworkType(Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


DEFAULT_STATE_FILE = os.path.join(os.getcwd(), "data", "vesting_state.json")


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw.replace("_", ""))
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _get_admin(env: Mapping[str, str], network: NetworkType) -> str:
    """Get the admin address, with mainnet enforcement.

    On mainnet, a missing admin raises ConfigurationError.
    On testnet, an empty admin is allowed and must be supplied per command.
    """
    value = env.get("ORANGE_ADMIN_ADDRESS", "").strip().lower()
    if value or network is not NetworkType.MAINNET:
        return value
    raise ConfigurationError(
        "CRITICAL: ORANGE_ADMIN_ADDRESS environment variable required for mainnet."
    )


@dataclass(frozen=True)
class VestingConfig:
    network: NetworkType = NetworkType.TESTNET
    admin_address: str = ""
    token_name: str = "Orange Token"
    token_symbol: str = "OT"
    token_decimals: int = 18
    total_supply: int = 100_000_000_000
    state_file: str = DEFAULT_STATE_FILE
    log_level: str = "WARNING"
    metrics_enabled: bool = True

    @property
    def total_supply_units(self) -> int:
        """Fixed supply in the token's smallest unit."""
        return self.total_supply * 10**self.token_decimals

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "VestingConfig":
        env = os.environ if env is None else env

        raw_network = env.get("ORANGE_NETWORK", "testnet").strip().lower()
        try:
            network = NetworkType(raw_network)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown ORANGE_NETWORK {raw_network!r}") from exc

        decimals = _get_int(env, "ORANGE_TOKEN_DECIMALS", 18)
        if decimals < 0 or decimals > 18:
            raise ConfigurationError("ORANGE_TOKEN_DECIMALS must be between 0 and 18")
        supply = _get_int(env, "ORANGE_TOTAL_SUPPLY", 100_000_000_000)
        if supply <= 0:
            raise ConfigurationError("ORANGE_TOTAL_SUPPLY must be positive")

        config = cls(
            network=network,
            admin_address=_get_admin(env, network),
            token_name=env.get("ORANGE_TOKEN_NAME", "Orange Token").strip() or "Orange Token",
            token_symbol=env.get("ORANGE_TOKEN_SYMBOL", "OT").strip() or "OT",
            token_decimals=decimals,
            total_supply=supply,
            state_file=env.get("ORANGE_STATE_FILE", "").strip() or DEFAULT_STATE_FILE,
            log_level=env.get("ORANGE_LOG_LEVEL", "WARNING").strip().upper() or "WARNING",
            metrics_enabled=env.get("ORANGE_METRICS_ENABLED", "1").strip() == "1",
        )
        logger.debug(
            "Vesting configuration loaded",
            extra={"event": "config.loaded", "network": network.value, "symbol": config.token_symbol},
        )
        return config
