from __future__ import annotations

"""
Logging Standards and Configuration for Orange Vesting

Defines standardized logging levels across the codebase. Modules log with
``logging.getLogger(__name__)`` and structured context in ``extra``; this
module decides the default verbosity per module category and installs the
root handler for command-line use.

Usage:
    from orange_vesting.core.logging_standards import configure_module_logging

    logger = configure_module_logging(__name__, 'vesting')
"""

import logging

# Module-level log level standards
LOG_LEVELS: dict[str, str] = {
    # Vesting ledger - INFO for schedule writes and claims
    "vesting": "INFO",
    "ledger": "INFO",
    "access": "WARNING",
    "unlock": "INFO",

    # Token collaborator - INFO for generation event and mints
    "contracts": "INFO",
    "erc20": "INFO",
    "vesting_token": "INFO",

    # Monitoring and metrics
    "vesting_metrics": "INFO",

    # Storage and persistence - WARNING to reduce I/O logging
    "state_store": "WARNING",

    # Configuration
    "config": "INFO",

    # CLI - WARNING so command output stays readable
    "cli": "WARNING",
}

# Default level for modules not in the map
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_module_category(module_name: str) -> str | None:
    """
    Determine the category for a module name.

    Args:
        module_name: Full module path (e.g., 'orange_vesting.core.vesting.ledger')

    Returns:
        Category name or None if no match
    """
    for part in reversed(module_name.split('.')):
        if part in LOG_LEVELS:
            return part
    return None


def get_log_level(module_name: str, override: str | None = None) -> str:
    """
    Get the appropriate log level for a module.

    Args:
        module_name: Full module path
        override: Optional override level (e.g., from environment variable)

    Returns:
        Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    if override:
        return override.upper()

    category = get_module_category(module_name)
    if category:
        return LOG_LEVELS[category]

    return DEFAULT_LOG_LEVEL


def configure_module_logging(
    module_name: str,
    category: str | None = None,
    override_level: str | None = None,
) -> logging.Logger:
    """
    Configure and return a logger for a module with standardized settings.

    Example:
        logger = configure_module_logging(__name__, 'vesting')
    """
    logger = logging.getLogger(module_name)

    if category:
        level_str = LOG_LEVELS.get(category, DEFAULT_LOG_LEVEL)
    else:
        level_str = get_log_level(module_name, override_level)

    logger.setLevel(getattr(logging, level_str, logging.INFO))
    return logger


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """
    Install the root handler and apply category levels to package loggers.

    The handler level bounds output; category levels only decide what each
    module emits.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.setLevel(numeric_level)
        root.addHandler(handler)
    root.setLevel(numeric_level)
    for module_name in (
        "orange_vesting.core.contracts.vesting",
        "orange_vesting.core.contracts.erc20",
        "orange_vesting.core.contracts.vesting_token",
        "orange_vesting.core.vesting.ledger",
        "orange_vesting.core.vesting.access",
        "orange_vesting.core.state_store",
        "orange_vesting.cli",
    ):
        configure_module_logging(module_name)
