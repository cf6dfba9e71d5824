"""
Vesting ledger instrumentation.

Provides Prometheus metrics that track how much of the token supply is
committed to schedules and how much has been claimed, with helper functions
that are safe to call from the claim and schedule-write paths.
"""

from __future__ import annotations

from typing import Any

from prometheus_client import Counter, Gauge

schedules_written_counter = Counter(
    "orange_vesting_schedules_written_total",
    "Total vesting schedule writes (creations and adjustments)",
    ["direction"],
)

tokens_committed_counter = Counter(
    "orange_vesting_tokens_committed_total",
    "Total token units newly committed to vesting schedules",
    ["direction"],
)

tokens_claimed_counter = Counter(
    "orange_vesting_tokens_claimed_total",
    "Total token units claimed from vesting schedules",
    ["direction"],
)

claim_calls_counter = Counter(
    "orange_vesting_claim_calls_total",
    "Number of successful claim calls",
)

rejected_operations_counter = Counter(
    "orange_vesting_rejected_operations_total",
    "Vesting operations rejected and rolled back",
    ["operation", "error"],
)

committed_total_gauge = Gauge(
    "orange_vesting_committed_total",
    "Token units committed to schedules and not yet claimed",
    ["contract"],
)

available_amount_gauge = Gauge(
    "orange_vesting_available_amount",
    "Token units held by the vesting contract and not committed",
    ["contract"],
)


def record_schedule_write(direction: str, committed_delta: int) -> None:
    """Count a schedule write and any newly committed amount."""
    schedules_written_counter.labels(direction=direction).inc()
    if committed_delta <= 0:
        return
    tokens_committed_counter.labels(direction=direction).inc(committed_delta)


def record_claim(direction: str, amount: int) -> None:
    if amount <= 0:
        return
    tokens_claimed_counter.labels(direction=direction).inc(amount)


def record_claim_call() -> None:
    claim_calls_counter.inc()


def record_rejection(operation: str, error: str) -> None:
    rejected_operations_counter.labels(operation=operation, error=error).inc()


def update_ledger_gauges(contract: Any) -> None:
    """Refresh the committed/available gauges from a vesting contract."""
    if contract is None:
        return

    label = contract.address
    committed_total_gauge.labels(contract=label).set(contract.committed_total)
    available_amount_gauge.labels(contract=label).set(contract.available_amount())
