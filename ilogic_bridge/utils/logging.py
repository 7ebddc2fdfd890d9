import sys
import time
from functools import wraps

from loguru import logger
from rich.logging import RichHandler

from ilogic_bridge.config import BridgeSettings, get_settings


def configure_logging(settings: BridgeSettings | None = None) -> None:
    """
    Route loguru records through a rich handler, plus a file sink in debug mode.
    """
    settings = settings or get_settings()
    logger.remove()
    if sys.stderr is not None:
        logger.add(
            RichHandler(rich_tracebacks=True, show_path=False),
            level=settings.LOG_LEVEL,
            format="{message}",
        )
    if settings.DEBUG:
        try:
            logger.add(
                settings.LOG_FILE,
                level="DEBUG",
                format="{time:YYYY-MM-DD HH:mm:ss} - {name} - {level} - {message}",
                enqueue=True,
            )
        except OSError as error:
            logger.error(f"Failed to set up file logging: {error}")


def timeit(func):  # pragma: no cover
    """
    Decorator that logs the execution time of the decorated function.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start
        logger.debug(f"{func.__qualname__} executed in {elapsed:.6f}s")
        return result
    return wrapper
