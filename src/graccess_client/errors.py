"""Exception hierarchy for galaxy operations."""
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .galaxy.base import CommandResult


class GalaxyError(Exception):
    """Base class for all galaxy errors."""


class ExternalOperationFailed(GalaxyError):
    """A GRAccess call reported an unsuccessful CommandResult.

    Both ``text`` and ``custom_message`` are carried in the message since
    GRAccess does not document which of them is populated.
    """

    def __init__(self, result: "CommandResult", operation: Optional[str] = None):
        self.result = result
        self.operation = operation
        detail = f"{result.text}, {result.custom_message}"
        if operation:
            super().__init__(f"{operation} failed: {detail}")
        else:
            super().__init__(detail)


class NotFoundError(GalaxyError, LookupError):
    """A galaxy, template or object that was required does not exist."""
