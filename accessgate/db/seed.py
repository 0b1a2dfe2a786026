"""Bootstrap of the built-in system roles.

``ensure_system_roles`` is safe to run on every process start: a role that
already exists under the same name is never modified, so operator edits to
a system role survive repeated bootstraps.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from accessgate.core.errors import DuplicateKeyConflict, ValidationError
from accessgate.core.rbac.roles import DEFAULT_ROLES
from accessgate.db.models import Role
from accessgate.db.repositories import RoleRepository
from accessgate.provisioning.report import ReconcileReport
from accessgate.provisioning.specs import RoleSpec, parse_spec

logger = logging.getLogger(__name__)


def ensure_system_roles(
    roles: RoleRepository,
    desired: Iterable[Any] = DEFAULT_ROLES,
    *,
    report: Optional[ReconcileReport] = None,
) -> ReconcileReport:
    """
    Create the system roles that do not exist yet.

    Args:
        roles: Role repository
        desired: Role definitions, created in order
        report: Report to extend (a new one is created by default)

    Returns:
        Report with created / skipped / failed role counts
    """
    report = report if report is not None else ReconcileReport()
    counts = report.counts_for("roles")

    for index, raw in enumerate(desired):
        try:
            spec = parse_spec(RoleSpec, raw, index)
        except ValidationError as exc:
            logger.warning("%s", exc)
            report.record_failure("roles", raw, exc.field, str(exc))
            continue

        if roles.get_by_name(spec.name) is not None:
            logger.info("Role %s already exists, leaving it untouched", spec.name)
            counts.skipped += 1
            continue

        try:
            roles.create(
                name=spec.name,
                display_name=spec.display_name,
                description=spec.description,
                permissions=spec.permissions,
                is_active=spec.is_active,
                is_system_role=True,
            )
        except DuplicateKeyConflict:
            # Another bootstrap created it between our lookup and insert
            logger.info("Role %s already exists, leaving it untouched", spec.name)
            counts.skipped += 1
            continue

        logger.info("Created system role %s", spec.name)
        counts.created += 1

    return report


def get_roles_by_name(roles: RoleRepository) -> Dict[str, Role]:
    """Map every stored role name to its record."""
    return {role.name: role for role in roles.find()}
