"""Logging configuration for the GRAccess client.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Performance timing of GRAccess calls, which are slow COM round trips

Environment Variables:
    GRACCESS_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    GRACCESS_LOG_FILE: Path to log file (default: ~/.graccess/graccess.log)
    GRACCESS_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    GRACCESS_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from graccess_client.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("login")
    def login(self, username, password):
        ...

    # Or use the context manager for sections:
    with timed_section("ensure", target="MyGalaxy", instance="MainTank"):
        ...
"""
import functools
import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("graccess.perf")
main_logger = logging.getLogger("graccess")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("GRACCESS_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".graccess" / "graccess.log"
    path_str = os.environ.get("GRACCESS_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging(level: Optional[int] = None) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects GRACCESS_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance logger for timing metrics

    Calling it again replaces the handlers installed by the previous call.
    """
    log_level = level if level is not None else get_log_level()
    log_file = get_log_file()
    max_size_mb = int(os.environ.get("GRACCESS_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("GRACCESS_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-30s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    perf_log_file = log_file.parent / "graccess-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    root_logger = logging.getLogger("graccess")
    pkg_logger = logging.getLogger("graccess_client")
    for lg in (root_logger, pkg_logger, perf_logger):
        for handler in list(lg.handlers):
            lg.removeHandler(handler)
            handler.close()
        lg.setLevel(logging.DEBUG)  # Capture all, handlers filter

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Package module loggers share the same handlers
    pkg_logger.addHandler(console_handler)
    pkg_logger.addHandler(file_handler)

    perf_logger.addHandler(perf_handler)
    perf_logger.addHandler(console_handler)
    perf_logger.propagate = False

    root_logger.debug(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")
    perf_logger.debug(f"Performance logging to: {perf_log_file}")


def _format_line(operation: str, target: Optional[str], elapsed: float, status: str, extra_str: str = "") -> str:
    msg = f"{operation:20s} | {target or 'N/A':15s} | {elapsed:8.2f}ms | {status}"
    if extra_str:
        msg += f" | {extra_str}"
    return msg


def timed(operation: str, target: Optional[str] = None):
    """Decorator to log execution time of a GRAccess call.

    Args:
        operation: Name of the operation (e.g., "login", "create_instance")
        target: Optional object name (inferred from self.name when omitted)

    Usage:
        @timed("query_galaxies")
        def query_galaxies(self, node=None):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            name = target
            if name is None and args:
                name = getattr(args[0], "name", None)
                if not isinstance(name, str):
                    name = None

            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                global_stats.record(operation, elapsed)
                perf_logger.warning(_format_line(operation, name, elapsed, f"FAIL: {e}"))
                raise
            elapsed = (time.perf_counter() - start) * 1000
            global_stats.record(operation, elapsed)
            perf_logger.info(_format_line(operation, name, elapsed, "OK"))
            return result

        return wrapper

    return decorator


@contextmanager
def timed_section(operation: str, target: Optional[str] = None, **extra):
    """Context manager for timing code sections.

    Usage:
        with timed_section("ensure", target="MyGalaxy", instance="MainTank"):
            ensurer.ensure("MainTank", "$UserDefined")
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        global_stats.record(operation, elapsed)
        perf_logger.warning(_format_line(operation, target, elapsed, f"FAIL: {e}", extra_str))
        raise
    elapsed = (time.perf_counter() - start) * 1000
    global_stats.record(operation, elapsed)
    perf_logger.info(_format_line(operation, target, elapsed, "OK", extra_str))


class PerfStats:
    """Collect and report performance statistics.

    Usage:
        stats = PerfStats()
        stats.record("login", 150.5)
        stats.record("create_instance", 50.3)
        print(stats.summary())
    """

    def __init__(self):
        self._data: dict[str, list[float]] = {}

    def record(self, operation: str, duration_ms: float) -> None:
        """Record a timing measurement."""
        if operation not in self._data:
            self._data[operation] = []
        self._data[operation].append(duration_ms)

    def count(self, operation: str) -> int:
        return len(self._data.get(operation, []))

    def summary(self) -> str:
        """Generate summary statistics."""
        lines = ["Performance Summary", "=" * 60]

        for op, times in sorted(self._data.items()):
            if not times:
                continue
            count = len(times)
            total = sum(times)
            avg = total / count
            min_t = min(times)
            max_t = max(times)

            lines.append(
                f"{op:20s} | count={count:4d} | "
                f"avg={avg:8.2f}ms | min={min_t:8.2f}ms | max={max_t:8.2f}ms"
            )

        return "\n".join(lines)

    def clear(self) -> None:
        """Clear all recorded data."""
        self._data.clear()


# Global stats instance for convenience
global_stats = PerfStats()
