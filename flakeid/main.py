"""
FastAPI Snowflake ID Service

A thin HTTP wrapper around a single process-wide Snowflake ID generator. Every
worker process running this service must be configured with its own worker ID
(or rely on the default network-interface derived one).

Key Features:
    - Single and batch ID issuance
    - Decoding of existing IDs with the running generator's own layout
    - Introspection of the generator configuration and last issued ID
    - Clock rollback surfaced as 503 so callers can retry elsewhere

Architecture:
    - FastAPI for the web framework and automatic API documentation
    - pydantic-settings for environment driven configuration
    - Snowflake ID generator shared by all requests behind one lock

Route handlers are plain ``def`` functions: ID generation may sleep for a second
on clock rollback while holding the generator lock, so it runs in FastAPI's
threadpool instead of on the event loop.
"""

from contextlib import asynccontextmanager

from fastapi import Body, Depends, FastAPI, HTTPException, Path, status

from flakeid.core.config import settings
from flakeid.core.exceptions import (
    ClockRollbackError,
    InvalidLayoutError,
    WorkerIdError,
)
from flakeid.core.schema import BatchRequest, GeneratorState, ParsedID, SnowflakeID
from flakeid.services.logger import setup_logger
from flakeid.services.registry import get_generator, init_generator, reset_generator
from flakeid.utils.snowflake import MAX_ID, SnowflakeIDGenerator

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan event handler that builds the Snowflake generator.

    The worker ID is resolved once here, before the first request is served.

    Raises:
        HTTPException: 503 Service Unavailable if the worker ID cannot be
            resolved or the configured layout is invalid
    """
    logger.info("Starting application and initializing Snowflake generator...")

    try:
        init_generator(settings)
    except WorkerIdError as e:
        logger.error(f"Worker ID resolution failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Worker ID resolution failed",
        )
    except InvalidLayoutError as e:
        logger.error(f"Invalid generator configuration: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Invalid generator configuration",
        )

    yield

    logger.info("Application is shutting down.")
    reset_generator()


app = FastAPI(lifespan=lifespan)


def _issue(generator: SnowflakeIDGenerator) -> SnowflakeID:
    snowflake_id = generator.generate_id()
    time_part, worker_id, sequence = generator.decompose(snowflake_id)
    return SnowflakeID(
        id=snowflake_id, time=time_part, worker_id=worker_id, sequence=sequence
    )


@app.post(
    "/ids",
    status_code=status.HTTP_201_CREATED,
    response_model=SnowflakeID,
    summary="Issue a Snowflake ID",
    responses={
        201: {
            "description": "ID issued successfully",
            "content": {
                "application/json": {
                    "example": {
                        "id": 1048534062080,
                        "time": 249990,
                        "worker_id": 5,
                        "sequence": 0,
                    }
                }
            },
        },
        503: {
            "description": "System clock moved backward and did not recover",
            "content": {
                "application/json": {
                    "example": {"detail": "Clock moved backward, retry later"}
                }
            },
        },
    },
)
def create_id(generator: SnowflakeIDGenerator = Depends(get_generator)):
    """Issue one ID from the process-wide generator.

    Returns:
        SnowflakeID: The ID and its time, worker and sequence fields.
    """
    try:
        return _issue(generator)
    except ClockRollbackError as e:
        logger.error("ID generation failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Clock moved backward, retry later",
        )


@app.post(
    "/ids/batch",
    status_code=status.HTTP_201_CREATED,
    response_model=list[SnowflakeID],
    summary="Issue several Snowflake IDs",
)
def create_ids(
    batch: BatchRequest = Body(...),
    generator: SnowflakeIDGenerator = Depends(get_generator),
):
    """Issue ``count`` IDs in order.

    Args:
        batch (BatchRequest): The number of IDs to issue.

    Returns:
        list[SnowflakeID]: The issued IDs, in generation order.
    """
    if batch.count > settings.MAX_BATCH_SIZE:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Batch size must not exceed {settings.MAX_BATCH_SIZE}",
        )

    try:
        return [_issue(generator) for _ in range(batch.count)]
    except ClockRollbackError as e:
        logger.error("Batch ID generation failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Clock moved backward, retry later",
        )


@app.get(
    "/ids/{snowflake_id}",
    response_model=ParsedID,
    summary="Decode a Snowflake ID",
)
def read_id(
    snowflake_id: int = Path(
        ...,
        ge=0,
        le=MAX_ID,
        description="An ID issued by a generator with this service's layout",
        examples=[1048534062080],
    ),
    generator: SnowflakeIDGenerator = Depends(get_generator),
):
    """Decode an ID with the running generator's widths and layout.

    Returns:
        ParsedID: The time, worker and sequence fields plus the UTC instant.
    """
    time_part, worker_id, sequence = generator.decompose(snowflake_id)
    return ParsedID(
        id=snowflake_id,
        time=time_part,
        worker_id=worker_id,
        sequence=sequence,
        created_at=generator.created_at(snowflake_id),
    )


@app.get("/state", response_model=GeneratorState, summary="Inspect the generator")
def read_state(generator: SnowflakeIDGenerator = Depends(get_generator)):
    last_time, time_part, worker_id, sequence = generator.snapshot()
    return GeneratorState(
        epoch=generator.epoch,
        time_bits=generator.time_bits,
        worker_bits=generator.worker_bits,
        sequence_bits=generator.sequence_bits,
        sequence_mask=generator.sequence_mask,
        non_increasing=generator.non_increasing,
        worker_id=worker_id,
        last_time=last_time,
        time=time_part,
        sequence=sequence,
        text=str(generator),
    )
