import logging
import time
from functools import wraps
from typing import Callable, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

def setup_logger(name: str, level: int = logging.INFO, fmt: str = LOG_FORMAT) -> logging.Logger:
    """
    Attaches a single stream handler to the named logger.
    Calling it again only updates the level.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger

def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Configures the root 'src' logger so every module logger inherits the handler.
    """
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    return setup_logger("src", numeric_level)

def _city_of(args, kwargs) -> Optional[str]:
    if "city" in kwargs:
        return kwargs["city"]
    # Bound methods: (self, city, ...)
    for arg in args[1:2]:
        if isinstance(arg, str):
            return arg
    return None

def log_execution_time(logger: logging.Logger, slow_seconds: float = 0.25):
    """
    Logs how long a per-city query took.
    Calls slower than `slow_seconds` are logged at INFO, the rest at DEBUG.
    Failures are logged with the city and re-raised.
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            city = _city_of(args, kwargs) or "-"
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{func.__name__}[{city}] failed after {time.perf_counter() - start:.3f}s: {e}")
                raise
            elapsed = time.perf_counter() - start
            level = logging.INFO if elapsed > slow_seconds else logging.DEBUG
            logger.log(level, f"{func.__name__}[{city}] took {elapsed * 1000:.1f}ms")
            return result
        return wrapper
    return decorator
