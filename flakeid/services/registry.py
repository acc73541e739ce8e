"""
Process-wide generator registry.

A worker ID is only unique if a single generator owns it, so the service keeps
exactly one ``SnowflakeIDGenerator`` per process. ``init_generator`` builds it
from configuration during application startup and ``get_generator`` hands it
to route handlers through FastAPI's dependency injection.
"""

from flakeid.core.config import Settings
from flakeid.services.logger import setup_logger
from flakeid.utils.snowflake import (
    Option,
    SnowflakeIDGenerator,
    new_generator,
    with_bit_lengths,
    with_epoch,
    with_non_increasing,
    with_worker_id_source,
)
from flakeid.utils.worker_id import fixed_worker_id

# Global generator instance
generator: SnowflakeIDGenerator = None

logger = setup_logger(__name__)


def generator_options(config: Settings) -> list[Option]:
    """Translates settings into generator options.

    An unset ``WORKER_ID`` keeps the default network-interface source.
    """
    options = [
        with_epoch(config.EPOCH),
        with_bit_lengths(config.TIME_BITS, config.WORKER_BITS, config.SEQUENCE_BITS),
    ]

    if config.WORKER_ID is not None:
        options.append(with_worker_id_source(fixed_worker_id(config.WORKER_ID)))

    if config.NON_INCREASING:
        options.append(with_non_increasing())

    return options


def init_generator(config: Settings) -> SnowflakeIDGenerator:
    """Builds the process-wide generator from ``config``.

    Raises:
        WorkerIdError: If the default worker ID source cannot resolve an ID.
        InvalidLayoutError: If the configured widths or worker ID are invalid.
    """
    global generator

    logger.info(f"Initializing Snowflake generator (ENV: {config.ENV})...")

    generator = new_generator(*generator_options(config))

    return generator


def get_generator() -> SnowflakeIDGenerator:
    """Returns the generator built by ``init_generator``.

    Raises:
        RuntimeError: If called before ``init_generator``.
    """
    if generator is None:
        logger.error("Generator not initialized. Call init_generator() first.")
        raise RuntimeError("Generator not initialized")

    return generator


def reset_generator() -> None:
    global generator
    generator = None
