"""GRAccess object model and backends."""
from .base import (
    AREA_TEMPLATE,
    DEFAULT_EXPORT_FORMAT,
    CommandResult,
    ConditionType,
    Found,
    Galaxy,
    GalaxyBackend,
    GalaxyObject,
    Instance,
    Lookup,
    NamedCollection,
    NotFound,
    ObjectCollection,
    ObjectKind,
    Template,
    assert_success,
)
from .com import ComBackend
from .memory import MemoryBackend

__all__ = [
    "AREA_TEMPLATE",
    "DEFAULT_EXPORT_FORMAT",
    "CommandResult",
    "ConditionType",
    "Found",
    "Galaxy",
    "GalaxyBackend",
    "GalaxyObject",
    "Instance",
    "Lookup",
    "NamedCollection",
    "NotFound",
    "ObjectCollection",
    "ObjectKind",
    "Template",
    "assert_success",
    "ComBackend",
    "MemoryBackend",
    "create_backend",
]

# Backend type registry
BACKEND_TYPES = {
    "com": ComBackend,
    "memory": MemoryBackend,
}


def create_backend(config: dict) -> GalaxyBackend:
    """Factory function to create a backend from the ``backend`` config section."""
    backend_type = str(config.get("type", "com")).lower()
    if backend_type not in BACKEND_TYPES:
        raise ValueError(f"Unknown backend type: {backend_type}")

    node = config.get("node") or ""
    if backend_type == "memory":
        seed = config.get("seed")
        if seed:
            return MemoryBackend.from_file(seed, node=node)
        return MemoryBackend(config.get("galaxies") or {}, node=node)
    return ComBackend(node=node)
