"""Shared pytest fixtures for generator and service tests."""

from __future__ import annotations

from collections.abc import Iterable

import pytest

from flakeid.utils.snowflake import (
    SnowflakeIDGenerator,
    new_generator,
    with_epoch,
    with_worker_id_source,
)
from flakeid.utils.worker_id import fixed_worker_id

EPOCH = 1577808000000


@pytest.fixture()
def make_generator():
    """Build a generator with worker ID 5 and the default epoch unless overridden."""

    def factory(*options, worker_id: int = 5) -> SnowflakeIDGenerator:
        return new_generator(
            with_epoch(EPOCH),
            with_worker_id_source(fixed_worker_id(worker_id)),
            *options,
        )

    return factory


@pytest.fixture()
def use_clock(monkeypatch: pytest.MonkeyPatch):
    """Replace a generator's clock with a fixed series of millisecond readings."""

    def install(generator: SnowflakeIDGenerator, readings: Iterable[int]) -> None:
        readings = iter(readings)
        monkeypatch.setattr(generator, "_current_timestamp", lambda: next(readings))

    return install


@pytest.fixture()
def recorded_waits(monkeypatch: pytest.MonkeyPatch):
    """Record rollback waits on a generator instead of sleeping."""

    waits: list[SnowflakeIDGenerator] = []

    def install(generator: SnowflakeIDGenerator) -> list[SnowflakeIDGenerator]:
        monkeypatch.setattr(
            generator, "_wait_for_clock_recovery", lambda: waits.append(generator)
        )
        return waits

    return install
