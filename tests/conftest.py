"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add src to Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

import pytest

from orange_vesting.core.contracts.vesting import VestingContract
from orange_vesting.core.contracts.vesting_token import VestingToken

ADMIN = "0x" + "ad" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b0" * 20
CAROL = "0x" + "c4" * 20
ZERO = "0x" + "0" * 40

GENESIS_TIME = 1_700_000_000


class ManualClock:
    def __init__(self, start_time: int):
        self.current_time = start_time

    def now(self) -> int:
        return self.current_time

    def advance(self, seconds: int):
        self.current_time += seconds


@pytest.fixture
def clock():
    return ManualClock(start_time=GENESIS_TIME)


@pytest.fixture
def token():
    return VestingToken(name="Orange Token", symbol="OT", admin=ADMIN)


@pytest.fixture
def vesting(token, clock):
    """Vesting contract holding the full supply (TGE executed), not yet started."""
    contract = VestingContract(token, ADMIN, time_provider=clock.now)
    token.execute_tge(ADMIN, contract.address)
    return contract


@pytest.fixture
def started(vesting):
    """Vesting contract with the start timestamp set at GENESIS_TIME."""
    vesting.set_vesting_start_timestamp(ADMIN)
    return vesting
