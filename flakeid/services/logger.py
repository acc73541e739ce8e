import logging

from flakeid.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logger(name: str = "flakeid") -> logging.Logger:
    """Returns a logger under the ``flakeid`` namespace.

    The package logger level follows ``LOG_LEVEL``.
    """
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )

    logging.getLogger("flakeid").setLevel(settings.LOG_LEVEL.upper())

    return logging.getLogger(name)
