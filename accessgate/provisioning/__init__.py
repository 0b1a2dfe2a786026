"""Provisioning: reconcile stored access-control records with a desired state."""

from .report import EntityCounts, ReconcileReport, RecordFailure
from .engine import ProvisioningEngine
from .cleanup import AccessCleanup

__all__ = [
    "EntityCounts",
    "ReconcileReport",
    "RecordFailure",
    "ProvisioningEngine",
    "AccessCleanup",
]
