"""
Snowflake ID Generator Module

A Python implementation of the Snowflake algorithm for generating unique,
distributed, and time-ordered 64-bit identifiers. Each process owns one
generator and issues IDs locally, without a central counter or global lock.

Algorithm Overview:
    With the default configuration an ID is laid out as:

    |1 bit|         41 bits         |  12 bits  |  10 bits  |
    |sign |       timestamp         | worker_id | sequence  |
    | 0   | ms since custom epoch   |  0-4095   |  0-1023   |

    - Sign bit: Always 0, the value fits a signed 64-bit integer
    - Timestamp: 41 bits = ~69 years of milliseconds from the epoch
    - Worker ID: 12 bits = 4096 concurrently running generators
    - Sequence: 10 bits = 1024 IDs per millisecond per generator

    The three widths are configurable with ``with_bit_lengths``. The
    non-increasing layout swaps the worker and sequence fields:

    | sign | timestamp | sequence | worker_id |

    IDs stay unique but are no longer numerically ordered across workers.

Clock Considerations:
    - Same millisecond: the sequence is incremented; when it wraps around the
      generator spins until the clock reaches the next millisecond
    - Clock moved backward: the generator sleeps one second, holding its lock,
      and checks again. If the clock is still behind, the call fails:
      ``generate_id`` raises ``ClockRollbackError`` and ``next_id`` returns 0

Thread Safety:
    - A single ``threading.Lock`` serialises the whole read-modify-write
    - The rollback sleep holds that lock, stalling every other caller
    - Plain accessors are unsynchronised; use ``snapshot()`` for a consistent
      view of the last issued ID

Usage:
    >>> generator = new_generator(with_worker_id_source(lambda: 5))
    >>> snowflake_id = generator.next_id()
    >>> parse(snowflake_id)[1]
    5
"""

import threading
import time
from datetime import datetime, timezone
from typing import Callable, Tuple

from flakeid.core.exceptions import ClockRollbackError, InvalidLayoutError
from flakeid.services.logger import setup_logger
from flakeid.utils.worker_id import WorkerIdSource, default_worker_id

logger = setup_logger(__name__)

EPOCH = 1577808000000
TIME_BITS = 41
SEQUENCE_BITS = 10
WORKER_BITS = 63 - TIME_BITS - SEQUENCE_BITS
MAX_ID = (1 << 64) - 1

ROLLBACK_WAIT_SECONDS = 1

Option = Callable[["SnowflakeIDGenerator"], None]


def _mask(bits: int) -> int:
    return (1 << bits) - 1


def with_epoch(epoch: int) -> Option:
    """Overrides the epoch, in milliseconds since the Unix epoch."""

    def option(generator: "SnowflakeIDGenerator") -> None:
        generator._epoch = epoch

    return option


def with_worker_id_source(source: WorkerIdSource) -> Option:
    """Overrides how the worker ID is resolved."""

    def option(generator: "SnowflakeIDGenerator") -> None:
        generator._worker_id_source = source

    return option


def with_non_increasing() -> Option:
    """Swaps the worker ID and sequence fields."""

    def option(generator: "SnowflakeIDGenerator") -> None:
        generator._non_increasing = True

    return option


def with_bit_lengths(time_bits: int, worker_bits: int, sequence_bits: int) -> Option:
    """Overrides the three field widths together."""

    def option(generator: "SnowflakeIDGenerator") -> None:
        generator.set_bit_lengths(time_bits, worker_bits, sequence_bits)

    return option


class SnowflakeIDGenerator:
    """A thread-safe Snowflake ID generator for creating unique identifiers.

    Configuration starts from the module defaults, then every option is
    applied in order, then the worker ID source is called exactly once.

    Args:
        *options: Callables built by the ``with_*`` helpers.

    Raises:
        InvalidLayoutError: If the widths exceed 63 bits or the resolved worker
            ID does not fit in ``worker_bits``.
        Exception: Whatever the worker ID source raises, unchanged.
    """

    def __init__(self, *options: Option):
        self._epoch = EPOCH
        self._time_bits = TIME_BITS
        self._worker_bits = WORKER_BITS
        self._sequence_bits = SEQUENCE_BITS
        self._sequence_mask = _mask(SEQUENCE_BITS)
        self._non_increasing = False
        self._worker_id_source: WorkerIdSource = default_worker_id

        for option in options:
            option(self)

        self._last_time = self._epoch
        self._time = 0
        self._sequence = 0
        self._lock = threading.Lock()

        self._worker_id = self._worker_id_source()
        self._validate_layout()

        logger.info(
            f"Snowflake generator ready: worker_id={self._worker_id}, "
            f"epoch={self._epoch}, bits={self._time_bits}/{self._worker_bits}/"
            f"{self._sequence_bits}, non_increasing={self._non_increasing}"
        )

    def _validate_layout(self) -> None:
        widths = (self._time_bits, self._worker_bits, self._sequence_bits)
        if any(width < 0 for width in widths):
            raise InvalidLayoutError(f"Bit lengths must be non-negative, got {widths}")
        if sum(widths) > 63:
            raise InvalidLayoutError(
                f"Bit lengths must sum to at most 63, got {sum(widths)}"
            )
        if not isinstance(self._worker_id, int):
            raise InvalidLayoutError(
                f"Worker ID must be an integer, got {type(self._worker_id).__name__}"
            )
        if not 0 <= self._worker_id <= _mask(self._worker_bits):
            raise InvalidLayoutError(
                f"Worker ID must be between 0 and {_mask(self._worker_bits)}, "
                f"got {self._worker_id}"
            )

    def _current_timestamp(self) -> int:
        """Returns the current timestamp in milliseconds."""
        return time.time_ns() // 1_000_000

    def _wait_for_next_millis(self, last_timestamp: int) -> int:
        """Spins until the clock passes ``last_timestamp`` and returns it."""
        timestamp = self._current_timestamp()
        while timestamp <= last_timestamp:
            timestamp = self._current_timestamp()
        return timestamp

    def _wait_for_clock_recovery(self) -> None:
        time.sleep(ROLLBACK_WAIT_SECONDS)

    def _pack(self, time_part: int, sequence: int) -> int:
        time_shift = self._worker_bits + self._sequence_bits
        if self._non_increasing:
            return (
                (time_part << time_shift)
                | (sequence << self._worker_bits)
                | self._worker_id
            )
        return (
            (time_part << time_shift)
            | (self._worker_id << self._sequence_bits)
            | sequence
        )

    def generate_id(self) -> int:
        """Generates a new unique Snowflake ID.

        Returns:
            A non-negative integer that fits in 63 bits.

        Raises:
            ClockRollbackError: If the clock is still behind the last issued
                timestamp after waiting one second. State is left untouched.
        """
        with self._lock:
            now = self._current_timestamp()

            if now < self._last_time:
                logger.warning(
                    f"Clock moved backward by {self._last_time - now} ms, "
                    f"waiting {ROLLBACK_WAIT_SECONDS}s before retrying"
                )
                self._wait_for_clock_recovery()
                now = self._current_timestamp()

                if now < self._last_time:
                    logger.error(
                        f"Clock still behind after waiting: last={self._last_time}, "
                        f"now={now}"
                    )
                    raise ClockRollbackError(self._last_time, now)

            if now > self._last_time:
                self._last_time = now
                self._sequence = 0
            else:
                self._sequence = (self._sequence + 1) & self._sequence_mask

                # Sequence exhausted for this millisecond
                if self._sequence == 0:
                    now = self._wait_for_next_millis(self._last_time)
                    self._last_time = now

            self._time = now - self._epoch

            return self._pack(self._time, self._sequence)

    def next_id(self) -> int:
        """Generates a new ID, returning 0 when the clock rolled back.

        ``0`` cannot be told apart from a legitimately encoded ID by type
        alone; prefer ``generate_id`` where an exception can be handled.
        """
        try:
            return self.generate_id()
        except ClockRollbackError:
            return 0

    def decompose(self, snowflake_id: int) -> Tuple[int, int, int]:
        """Splits an ID using this generator's widths and layout.

        Returns:
            ``(time, worker_id, sequence)``
        """
        time_part = snowflake_id >> (self._worker_bits + self._sequence_bits)
        worker_mask = _mask(self._worker_bits)

        if self._non_increasing:
            sequence = (snowflake_id >> self._worker_bits) & self._sequence_mask
            worker_id = snowflake_id & worker_mask
        else:
            worker_id = (snowflake_id >> self._sequence_bits) & worker_mask
            sequence = snowflake_id & self._sequence_mask

        return time_part, worker_id, sequence

    def created_at(self, snowflake_id: int) -> datetime:
        """Returns the UTC instant encoded in ``snowflake_id``."""
        time_part = snowflake_id >> (self._worker_bits + self._sequence_bits)
        return datetime.fromtimestamp(
            (self._epoch + time_part) / 1000, tz=timezone.utc
        )

    def snapshot(self) -> Tuple[int, int, int, int]:
        """Returns ``(last_time, time, worker_id, sequence)`` under the lock."""
        with self._lock:
            return self._last_time, self._time, self._worker_id, self._sequence

    @property
    def time(self) -> int:
        return self._time

    @property
    def worker_id(self) -> int:
        return self._worker_id

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def sequence_mask(self) -> int:
        return self._sequence_mask

    @property
    def non_increasing(self) -> bool:
        return self._non_increasing

    @non_increasing.setter
    def non_increasing(self, value: bool) -> None:
        self._non_increasing = value

    @property
    def epoch(self) -> int:
        return self._epoch

    @epoch.setter
    def epoch(self, value: int) -> None:
        self._epoch = value

    @property
    def time_bits(self) -> int:
        return self._time_bits

    @time_bits.setter
    def time_bits(self, value: int) -> None:
        self._time_bits = value

    @property
    def worker_bits(self) -> int:
        return self._worker_bits

    @worker_bits.setter
    def worker_bits(self, value: int) -> None:
        self._worker_bits = value

    @property
    def sequence_bits(self) -> int:
        return self._sequence_bits

    @sequence_bits.setter
    def sequence_bits(self, value: int) -> None:
        self._sequence_bits = value
        self._sequence_mask = _mask(value)

    @property
    def last_time(self) -> int:
        return self._last_time

    @last_time.setter
    def last_time(self, value: int) -> None:
        self._last_time = value

    @property
    def worker_id_source(self) -> WorkerIdSource:
        """The source used at construction. Replacing it does not re-resolve."""
        return self._worker_id_source

    @worker_id_source.setter
    def worker_id_source(self, source: WorkerIdSource) -> None:
        self._worker_id_source = source

    def set_bit_lengths(self, time_bits: int, worker_bits: int, sequence_bits: int) -> None:
        self._time_bits = time_bits
        self._worker_bits = worker_bits
        self.sequence_bits = sequence_bits

    def __str__(self) -> str:
        return (
            f'{{"time":"{self._time}","workd_id":"{self._worker_id}",'
            f'"sequenceID":"{self._sequence}"}}'
        )


def new_generator(*options: Option) -> SnowflakeIDGenerator:
    """Creates a generator from the defaults plus ``options``."""
    return SnowflakeIDGenerator(*options)


def parse(snowflake_id: int) -> Tuple[int, int, int]:
    """Splits an ID built with the default widths and increasing layout.

    Generators configured with other widths or the non-increasing layout
    must use ``SnowflakeIDGenerator.decompose`` instead.

    Args:
        snowflake_id: An unsigned 64-bit value.

    Returns:
        ``(time, worker_id, sequence)``

    Raises:
        ValueError: If ``snowflake_id`` is outside the unsigned 64-bit range.
    """
    if not 0 <= snowflake_id <= MAX_ID:
        raise ValueError(f"ID must be between 0 and {MAX_ID}, got {snowflake_id}")

    time_part = snowflake_id >> (SEQUENCE_BITS + WORKER_BITS)
    worker_id = (snowflake_id >> SEQUENCE_BITS) & _mask(WORKER_BITS)
    sequence = snowflake_id & _mask(SEQUENCE_BITS)

    return time_part, worker_id, sequence

