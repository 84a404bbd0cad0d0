"""Logging, timing and audit helpers."""
from .audit_log import ChangeRecord, ChangeTracker, get_recent_changes, setup_audit_logging
from .logging_config import (
    setup_logging,
    timed,
    timed_section,
    perf_logger,
    PerfStats,
    global_stats,
)

__all__ = [
    "ChangeRecord",
    "ChangeTracker",
    "get_recent_changes",
    "setup_audit_logging",
    "setup_logging",
    "timed",
    "timed_section",
    "perf_logger",
    "PerfStats",
    "global_stats",
]
