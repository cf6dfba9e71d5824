"""
Main CLI entry point for Orange Vesting.
"""

import logging
import sys

from rich.console import Console

from orange_vesting.cli.vesting_commands import _handle_cli_error, cli
from orange_vesting.core.exceptions import ContractExecutionError

logger = logging.getLogger(__name__)
console = Console()


def main():
    """Main CLI entry point"""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/]")
        sys.exit(130)
    except (ContractExecutionError, ValueError, KeyError, TypeError) as exc:
        _handle_cli_error(exc)


if __name__ == "__main__":
    main()
