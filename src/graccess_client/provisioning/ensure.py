"""Idempotent "ensure instance exists" helper.

Re-running against the same galaxy never creates a second instance with the
same name: an existing instance is reused as-is, and only a missing one is
derived from its template. When a parent is given, the instance is assigned
to it either as its Area (parent derived from $Area) or as its Host
(anything else). Not safe against concurrent callers ensuring the same name.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import GalaxyError, NotFoundError
from ..galaxy.base import (
    AREA_TEMPLATE,
    Found,
    Galaxy,
    Instance,
    ObjectKind,
    Template,
)
from ..utils.audit_log import ChangeTracker

logger = logging.getLogger(__name__)


@dataclass
class EnsureOutcome:
    """What ensuring one instance did."""
    instance_name: str
    template_name: str
    created: bool
    parent: Optional[str] = None
    relation: Optional[str] = None  # "area" or "host"

    def to_dict(self) -> dict:
        return {
            "instance": self.instance_name,
            "template": self.template_name,
            "created": self.created,
            "parent": self.parent,
            "relation": self.relation,
        }


class InstanceEnsurer:
    """Ensure instances exist in one galaxy, optionally under a parent."""

    def __init__(self, galaxy: Galaxy, tracker: Optional[ChangeTracker] = None):
        self.galaxy = galaxy
        self.tracker = tracker
        self.outcomes: list[EnsureOutcome] = []

    def find_instance(self, instance_name: str) -> Optional[Instance]:
        instances = self.galaxy.query_objects_by_name(ObjectKind.INSTANCE, [instance_name])
        lookup = instances.get(instance_name)
        if isinstance(lookup, Found):
            return lookup.value
        return None

    def find_template(self, template_name: str) -> Optional[Template]:
        templates = self.galaxy.query_objects_by_name(ObjectKind.TEMPLATE, [template_name])
        lookup = templates.get(template_name)
        if isinstance(lookup, Found):
            return lookup.value
        return None

    def ensure(self, instance_name: str, template_name: str, parent: Optional[Instance] = None) -> Instance:
        """Return the instance named ``instance_name``, creating it if needed.

        Args:
            instance_name: Tagname to look up or create
            template_name: Template to derive from when the instance is missing
            parent: Optional area or host to assign the instance to

        Raises:
            NotFoundError: The instance is missing and so is the template
            ExternalOperationFailed: Any GRAccess call failed
        """
        if not instance_name:
            raise ValueError("instance_name must not be empty")
        if not template_name:
            raise ValueError("template_name must not be empty")

        created = False
        instance = self.find_instance(instance_name)
        if instance is None:
            template = self.find_template(template_name)
            if template is None:
                raise NotFoundError(f"The {template_name} template could not be found")

            parameters = {"instance": instance_name, "template": template_name}
            try:
                instance = template.create_instance(instance_name)
            except GalaxyError as e:
                self._audit("create_instance", parameters, success=False, error=str(e))
                raise
            created = True
            logger.info(f"Created {instance_name} from {template_name} in {self.galaxy.name}")
            self._audit("create_instance", parameters)
        else:
            logger.info(f"{instance_name} already exists in {self.galaxy.name}")
            if instance.based_on != template_name:
                logger.warning(
                    f"Reusing {instance_name} based on {instance.based_on}, "
                    f"not {template_name}"
                )

        outcome = EnsureOutcome(instance_name, template_name, created)
        if parent is not None:
            outcome.parent = parent.tagname
            outcome.relation = "area" if parent.based_on == AREA_TEMPLATE else "host"
            operation = f"assign_{outcome.relation}"
            parameters = {"instance": instance_name, outcome.relation: parent.tagname}
            try:
                if outcome.relation == "area":
                    instance.assign_area(parent.tagname)
                else:
                    instance.assign_host(parent.tagname)
            except GalaxyError as e:
                self._audit(operation, parameters, success=False, error=str(e))
                raise
            logger.info(f"Assigned {instance_name} to {outcome.relation} {parent.tagname}")
            self._audit(operation, parameters)

        self.outcomes.append(outcome)
        return instance

    def _audit(
        self,
        operation: str,
        parameters: dict,
        success: bool = True,
        error: Optional[str] = None,
    ) -> None:
        if self.tracker is not None:
            self.tracker.log_change(operation, parameters, success=success, error=error)


def ensure_instance(
    galaxy: Galaxy,
    instance_name: str,
    template_name: str,
    parent: Optional[Instance] = None,
) -> Instance:
    """Ensure ``instance_name`` exists in ``galaxy``. See InstanceEnsurer.ensure."""
    return InstanceEnsurer(galaxy).ensure(instance_name, template_name, parent)
