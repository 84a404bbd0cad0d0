"""Audit logging for galaxy changes.

Every instance creation and parent assignment is written as one JSON line to
a dedicated audit file so a provisioning run can be reviewed afterwards.
"""
import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Create dedicated audit logger
audit_logger = logging.getLogger("graccess.audit")


def default_audit_file() -> str:
    return os.path.expanduser("~/.graccess/audit.log")


def setup_audit_logging(log_dir: Optional[str] = None) -> str:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.graccess/

    Returns:
        Path of the audit log file
    """
    if log_dir is None:
        log_dir = os.path.dirname(default_audit_file())

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    audit_file = os.path.join(log_dir, "audit.log")

    audit_logger.setLevel(logging.INFO)

    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)

    # Don't propagate to root logger
    audit_logger.propagate = False
    return audit_file


@dataclass
class ChangeRecord:
    """Record of a galaxy change."""
    timestamp: str
    galaxy: str
    operation: str  # create_instance, assign_area, assign_host
    user: str
    success: bool
    parameters: dict
    error: Optional[str] = None

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        """Parse from JSON string."""
        data = json.loads(json_str)
        return cls(**data)


class ChangeTracker:
    """Track and log changes made to one galaxy."""

    def __init__(self, galaxy: str, user: str = ""):
        self.galaxy = galaxy
        self.user = user or "anonymous"
        self.records: list[ChangeRecord] = []

    def log_change(
        self,
        operation: str,
        parameters: dict,
        success: bool = True,
        error: Optional[str] = None,
    ) -> ChangeRecord:
        """Log a galaxy change.

        Args:
            operation: The operation performed (e.g., "create_instance")
            parameters: Parameters passed to the operation
            success: Whether the operation succeeded
            error: Error message if failed

        Returns:
            The ChangeRecord that was logged
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            galaxy=self.galaxy,
            operation=operation,
            user=self.user,
            success=success,
            parameters=parameters,
            error=error,
        )
        self.records.append(record)
        audit_logger.info(record.to_json())
        return record


def get_recent_changes(
    log_file: Optional[str] = None,
    galaxy: Optional[str] = None,
    operation: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.graccess/audit.log
        galaxy: Filter by galaxy name
        operation: Filter by operation type
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    if limit <= 0:
        return []
    if log_file is None:
        log_file = default_audit_file()

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if galaxy and record.galaxy != galaxy:
                continue
            if operation and record.operation != operation:
                continue
            records.append(record)

    return list(reversed(records[-limit:]))
