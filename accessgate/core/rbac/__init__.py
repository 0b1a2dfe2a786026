"""RBAC (Role-Based Access Control) module for AccessGate.

This module defines the permission vocabularies, system role definitions,
and the authorization evaluator.
"""

from .permissions import Grant, Resource, Action, PERMISSION_ACTIONS, ROLE_ACTIONS
from .checker import (
    PermissionChecker,
    authorize,
    has_permission,
    RoleBasedStrategy,
    AssignmentBasedStrategy,
    UnionStrategy,
)

__all__ = [
    "Grant",
    "Resource",
    "Action",
    "PERMISSION_ACTIONS",
    "ROLE_ACTIONS",
    "PermissionChecker",
    "authorize",
    "has_permission",
    "RoleBasedStrategy",
    "AssignmentBasedStrategy",
    "UnionStrategy",
]
