"""Removal of permissions and principals together with their assignments.

The store cascades on foreign keys where it can; these helpers delete the
assignment rows explicitly first so no store is left with dangling grants.
"""

import logging
from typing import Optional

from accessgate.db.repositories import (
    AssignmentRepository,
    PermissionRepository,
    PrincipalDirectory,
)

logger = logging.getLogger(__name__)


class AccessCleanup:
    def __init__(
        self,
        permissions: PermissionRepository,
        assignments: AssignmentRepository,
        principals: PrincipalDirectory,
    ):
        self.permissions = permissions
        self.assignments = assignments
        self.principals = principals

    def remove_permission(self, name: str) -> Optional[int]:
        """Delete a permission and its assignments.

        Returns the number of assignments removed, or None if no permission
        has that name.
        """
        permission = self.permissions.get_by_name(name)
        if permission is None:
            return None
        removed = self.assignments.delete_for_permission(permission.id)
        self.permissions.delete(permission)
        logger.info("Removed permission %r and %d assignment(s)", name, removed)
        return removed

    def remove_principal(self, email: str) -> Optional[int]:
        """Delete a user and its assignments. Returns None if the user is unknown."""
        principal = self.principals.get_by_email(email)
        if principal is None:
            return None
        removed = self.assignments.delete_for_user(principal.id)
        self.principals.delete(principal)
        logger.info("Removed user %s and %d assignment(s)", email, removed)
        return removed

    def purge_dangling_assignments(self) -> int:
        """Delete assignments whose user or permission is gone."""
        removed = self.assignments.delete_dangling()
        if removed:
            logger.info("Purged %d dangling assignment(s)", removed)
        return removed
