"""
Unit tests for admin access control.
"""

import logging

import pytest

from orange_vesting.core.exceptions import AccessIsDenied, ZeroAddress
from orange_vesting.core.vesting.access import (
    ZERO_ADDRESS,
    AccessGuard,
    is_zero_address,
    normalize_address,
)

ADMIN = "0x" + "AD" * 20
OTHER = "0x" + "b0" * 20


def test_normalize_address():
    assert normalize_address("  0xABC ") == "0xabc"
    assert normalize_address(None) == ""


@pytest.mark.parametrize("address", ["", ZERO_ADDRESS, "0x" + "0" * 40 + " ", "0X" + "0" * 40])
def test_zero_addresses(address):
    assert is_zero_address(address)


def test_non_zero_address():
    assert not is_zero_address(OTHER)


def test_guard_normalizes_admin():
    guard = AccessGuard(ADMIN)
    assert guard.admin == ADMIN.lower()
    assert guard.is_admin(ADMIN)
    assert guard.is_admin(ADMIN.lower())


def test_guard_rejects_zero_admin():
    with pytest.raises(ZeroAddress):
        AccessGuard(ZERO_ADDRESS)


def test_require_admin_passes_for_admin():
    AccessGuard(ADMIN).require_admin(ADMIN, "start")


def test_require_admin_denies_and_logs(caplog):
    guard = AccessGuard(ADMIN)
    with caplog.at_level(logging.WARNING, logger="orange_vesting.core.vesting.access"):
        with pytest.raises(AccessIsDenied) as exc_info:
            guard.require_admin(OTHER, "set_vest_for")
    assert exc_info.value.code == "AccessIsDenied"
    assert exc_info.value.details["operation"] == "set_vest_for"
    assert any(getattr(r, "event", None) == "vesting.access_denied" for r in caplog.records)
