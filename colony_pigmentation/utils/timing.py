import logging
import time
from contextlib import contextmanager

logger = logging.getLogger(__name__)


@contextmanager
def log_duration(name: str, enabled: bool = True):
    """
    Log start and elapsed time of the enclosed block.

    Example:
        >>> with log_duration("Mask Colony: plate_01.jpg"):
        ...     mask = masker.create_mask(image)
    """
    if not enabled:
        yield
        return

    logger.info(f"Starting {name}")
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.info(f"Finished {name} in {(time.perf_counter() - start) * 1000:.1f}ms")
