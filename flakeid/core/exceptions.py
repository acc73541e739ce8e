class WorkerIdError(Exception):
    """Raised when a worker ID cannot be resolved for this process."""

    pass


class InvalidLayoutError(ValueError):
    """Raised when bit widths or the worker ID do not fit a 63-bit layout."""

    pass


class ClockRollbackError(Exception):
    """Raised when the system clock is still behind the last issued timestamp."""

    def __init__(self, last_time: int, now: int):
        self.last_time = last_time
        self.now = now
        super().__init__(
            f"Clock moved backward by {last_time - now} ms. Refusing to generate ID."
        )
