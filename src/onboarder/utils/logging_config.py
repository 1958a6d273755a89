"""Logging configuration for the onboarding engine.

Provides:
- Console output plus a rotating log file
- A separate performance logger that records how long each applier takes

Environment Variables:
    ONBOARDER_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    ONBOARDER_LOG_FILE: Path to log file (default: ~/.onboarder/onboarder.log)
    ONBOARDER_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    ONBOARDER_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from onboarder.utils.logging_config import setup_logging, timed_section

    setup_logging()  # once, at startup

    async with timed_section("apply:Network", device_id="bigip-1"):
        await applier.process(context)
"""
import asyncio
import functools
import logging
import os
import time
from contextlib import asynccontextmanager, contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

perf_logger = logging.getLogger("onboarder.perf")

LOG_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-30s | %(levelname)-7s | %(message)s"
PERF_FORMAT = "%(asctime)s.%(msecs)03d | PERF | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def get_log_level() -> int:
    """Console log level from ONBOARDER_LOG_LEVEL."""
    name = os.environ.get("ONBOARDER_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_log_file() -> Path:
    default = Path.home() / ".onboarder" / "onboarder.log"
    return Path(os.environ.get("ONBOARDER_LOG_FILE", str(default)))


def _rotating_handler(path: Path, fmt: str) -> RotatingFileHandler:
    max_size_mb = int(os.environ.get("ONBOARDER_LOG_MAX_SIZE", "10"))
    backups = int(os.environ.get("ONBOARDER_LOG_BACKUPS", "5"))
    handler = RotatingFileHandler(
        path,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backups,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    return handler


def setup_logging(log_file: Optional[Path] = None) -> None:
    """Configure the ``onboarder`` logger hierarchy.

    The console follows ONBOARDER_LOG_LEVEL; the log file takes everything
    down to DEBUG. Perf records go to ``onboarder-perf.log`` next to it.
    Calling it more than once is a no-op.
    """
    global _configured
    if _configured:
        return

    level = get_log_level()
    log_file = log_file or get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    package_logger = logging.getLogger("onboarder")
    package_logger.setLevel(logging.DEBUG)
    package_logger.addHandler(console)
    package_logger.addHandler(_rotating_handler(log_file, LOG_FORMAT))

    # perf records stay out of the main log file
    perf_logger.propagate = False
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(_rotating_handler(log_file.parent / "onboarder-perf.log", PERF_FORMAT))
    perf_logger.addHandler(console)

    _configured = True
    package_logger.info(f"Logging initialized: level={logging.getLevelName(level)}, file={log_file}")


class _Stopwatch:
    """Times one operation and writes a single perf line for it."""

    def __init__(self, operation: str, device_id: Optional[str]):
        self.operation = operation
        self.device_id = device_id
        self.start = time.perf_counter()

    def _line(self, outcome: str) -> str:
        elapsed = (time.perf_counter() - self.start) * 1000
        return f"{self.operation:24s} | {self.device_id or 'N/A':15s} | {elapsed:8.2f}ms | {outcome}"

    def ok(self) -> None:
        perf_logger.info(self._line("OK"))

    def failed(self, error: Exception) -> None:
        perf_logger.warning(self._line(f"FAIL: {error}"))


def timed(operation: str, device_id: Optional[str] = None):
    """Decorator that logs how long a sync or async function takes.

    Without ``device_id`` the decorated method's ``self.device_id`` is used,
    if it has one.

    Usage:
        @timed("telemetry:report")
        async def report(self, record):
            ...
    """
    def decorator(func: Callable) -> Callable:
        def start(args) -> _Stopwatch:
            dev_id = device_id
            if dev_id is None and args:
                dev_id = getattr(args[0], "device_id", None)
            return _Stopwatch(operation, dev_id)

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                watch = start(args)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    watch.failed(e)
                    raise
                watch.ok()
                return result

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            watch = start(args)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                watch.failed(e)
                raise
            watch.ok()
            return result

        return sync_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, device_id: Optional[str] = None):
    """Time the body of an ``async with`` block."""
    watch = _Stopwatch(operation, device_id)
    try:
        yield
    except Exception as e:
        watch.failed(e)
        raise
    watch.ok()


@contextmanager
def timed_section_sync(operation: str, device_id: Optional[str] = None):
    watch = _Stopwatch(operation, device_id)
    try:
        yield
    except Exception as e:
        watch.failed(e)
        raise
    watch.ok()
