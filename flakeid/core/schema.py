from datetime import datetime

from pydantic import BaseModel, Field


class BatchRequest(BaseModel):
    """Request model for issuing several IDs at once.

    Args:
        count (int): Number of IDs to issue, capped by ``MAX_BATCH_SIZE``.
    """

    count: int = Field(
        ...,
        ge=1,
        description="Number of IDs to issue",
        examples=[10],
    )


class SnowflakeID(BaseModel):
    """A freshly issued ID together with the fields packed into it."""

    id: int = Field(..., description="The 63-bit Snowflake ID")
    time: int = Field(..., description="Milliseconds since the generator epoch")
    worker_id: int
    sequence: int


class ParsedID(BaseModel):
    """The decoded components of an existing ID."""

    id: int
    time: int
    worker_id: int
    sequence: int
    created_at: datetime = Field(..., description="UTC instant encoded in the ID")


class GeneratorState(BaseModel):
    """Configuration and last-issued snapshot of the running generator."""

    epoch: int
    time_bits: int
    worker_bits: int
    sequence_bits: int
    sequence_mask: int
    non_increasing: bool
    worker_id: int
    last_time: int
    time: int
    sequence: int
    text: str = Field(..., description="Textual form of the last issued ID")
