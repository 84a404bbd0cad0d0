"""Ensuring instances exist and running a full provisioning pass."""
from .ensure import EnsureOutcome, InstanceEnsurer, ensure_instance
from .runner import ProvisionReport, ProvisionRunner, export_objects, select_galaxy

__all__ = [
    "EnsureOutcome",
    "InstanceEnsurer",
    "ensure_instance",
    "ProvisionReport",
    "ProvisionRunner",
    "export_objects",
    "select_galaxy",
]
