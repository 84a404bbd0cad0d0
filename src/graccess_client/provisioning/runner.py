"""Provisioning run against one galaxy.

Steps:
1. SELECT  - Query galaxies on the node and pick one
2. LOGIN   - Log in (needed even with galaxy security disabled)
3. ENSURE  - Ensure each configured instance in order, with parents
4. EXPORT  - Export the configured objects to a package file

The run stops at the first failure. Nothing done before it is undone.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ..config.settings import ExportSettings, Settings
from ..errors import NotFoundError
from ..galaxy.base import Found, Galaxy, GalaxyBackend, Instance, ObjectKind
from ..utils.audit_log import ChangeTracker
from ..utils.logging_config import timed_section
from .ensure import EnsureOutcome, InstanceEnsurer

logger = logging.getLogger(__name__)


@dataclass
class ProvisionReport:
    """Result of a provisioning run."""
    timestamp: str
    galaxy: str
    outcomes: list[EnsureOutcome] = field(default_factory=list)
    export_path: Optional[str] = None
    exported: list[str] = field(default_factory=list)

    @property
    def created(self) -> list[str]:
        return [o.instance_name for o in self.outcomes if o.created]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp,
            "galaxy": self.galaxy,
            "summary": {
                "ensured": len(self.outcomes),
                "created": len(self.created),
                "reused": len(self.outcomes) - len(self.created),
            },
            "instances": [o.to_dict() for o in self.outcomes],
            "export": {"path": self.export_path, "objects": self.exported} if self.export_path else None,
        }


def select_galaxy(backend: GalaxyBackend, name: Optional[str] = None, node: Optional[str] = None) -> Galaxy:
    """Return the galaxy called ``name``, or the first one when no name is given."""
    galaxies = backend.query_galaxies(node)
    lookup = galaxies.get(name) if name else galaxies.first()
    if not isinstance(lookup, Found):
        if name:
            raise NotFoundError(f"Galaxy '{name}' could not be found (available: {galaxies.names()})")
        raise NotFoundError("A galaxy could not be found")
    logger.info(f"Found galaxy \"{lookup.value.name}\"")
    return lookup.value


def export_objects(galaxy: Galaxy, export: ExportSettings) -> list[str]:
    """Export the named instances. Fails if any of them is missing."""
    collection = galaxy.query_objects_by_name(ObjectKind.INSTANCE, export.objects)
    missing = [name for name in export.objects if name not in collection]
    if missing:
        raise NotFoundError(f"Objects to export could not be found: {missing}")
    collection.export(export.format, export.path)
    return collection.names()


class ProvisionRunner:
    """Runs the configured provisioning steps."""

    def __init__(self, backend: GalaxyBackend, settings: Settings, galaxy_name: Optional[str] = None):
        self.backend = backend
        self.settings = settings
        self.galaxy_name = galaxy_name or settings.galaxy.name

    def connect(self) -> Galaxy:
        """Select the galaxy and log in."""
        with timed_section("select_galaxy", target=self.galaxy_name or "first"):
            galaxy = select_galaxy(self.backend, self.galaxy_name)
        with timed_section("login", target=galaxy.name):
            galaxy.login(self.settings.galaxy.username, self.settings.galaxy.get_password())
        return galaxy

    def run(self) -> ProvisionReport:
        galaxy = self.connect()
        report = ProvisionReport(
            timestamp=datetime.now(timezone.utc).isoformat(),
            galaxy=galaxy.name,
        )

        tracker = ChangeTracker(galaxy.name, self.settings.galaxy.username)
        ensurer = InstanceEnsurer(galaxy, tracker)
        ensured: dict[str, Instance] = {}

        if self.settings.instances:
            logger.info("Ensuring that configured instances exist")
        for spec in self.settings.instances:
            parent = None
            if spec.parent:
                parent = ensured.get(spec.parent) or ensurer.find_instance(spec.parent)
                if parent is None:
                    raise NotFoundError(f"Parent '{spec.parent}' of '{spec.name}' could not be found")
            with timed_section("ensure", target=galaxy.name, instance=spec.name):
                ensured[spec.name] = ensurer.ensure(spec.name, spec.template, parent)

        report.outcomes = list(ensurer.outcomes)

        export = self.settings.export
        if export is not None:
            logger.info(f"Exporting {len(export.objects)} objects to {export.path}")
            with timed_section("export", target=galaxy.name, path=export.path):
                report.exported = export_objects(galaxy, export)
            report.export_path = export.path

        return report
