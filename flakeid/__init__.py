from flakeid.core.exceptions import ClockRollbackError, InvalidLayoutError, WorkerIdError
from flakeid.utils.snowflake import (
    SnowflakeIDGenerator,
    new_generator,
    parse,
    with_bit_lengths,
    with_epoch,
    with_non_increasing,
    with_worker_id_source,
)
from flakeid.utils.worker_id import default_worker_id, fixed_worker_id

__all__ = [
    "ClockRollbackError",
    "InvalidLayoutError",
    "SnowflakeIDGenerator",
    "WorkerIdError",
    "default_worker_id",
    "fixed_worker_id",
    "new_generator",
    "parse",
    "with_bit_lengths",
    "with_epoch",
    "with_non_increasing",
    "with_worker_id_source",
]
