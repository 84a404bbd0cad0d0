"""Client for the ArchestrA GRAccess automation API."""
from .errors import ExternalOperationFailed, GalaxyError, NotFoundError
from .provisioning import ensure_instance

__version__ = "0.1.0"

__all__ = [
    "ExternalOperationFailed",
    "GalaxyError",
    "NotFoundError",
    "ensure_instance",
    "__version__",
]
