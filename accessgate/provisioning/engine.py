"""Provisioning engine: converge stored permissions and assignments.

``reconcile`` brings the permission catalog in line with a desired set and
grants newly created permissions to a target principal:

1. desired records are validated; invalid ones are reported and dropped
2. the rest are grouped by resource
3. a resource that already has any stored permission is skipped as a whole
4. other groups are bulk-created
5. a target principal is resolved (configured admin emails, then the
   earliest active user) and receives the newly created permissions

Step 3 is a coarse check: a permission deleted by hand from an already
provisioned resource is not recreated by a re-run. A duplicate key on
the same (resource, action) is benign, so concurrent or repeated runs
converge to the same state.
"""

import logging
from collections import OrderedDict
from typing import Any, Iterable, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError

from accessgate.core.errors import DuplicateKeyConflict, MissingCollaborator, ValidationError
from accessgate.db.models import Permission, User
from accessgate.db.repositories import (
    AssignmentRepository,
    PermissionRepository,
    PortfolioRepository,
    PrincipalDirectory,
)
from accessgate.provisioning.report import ReconcileReport
from accessgate.provisioning.specs import PermissionSpec, PortfolioSpec, parse_spec

logger = logging.getLogger(__name__)

FORCE_NOT_SUPPORTED = "--force is not yet supported; running a normal reconciliation"


def note_force_not_supported(report: ReconcileReport) -> None:
    """Record that --force was requested but recreation is not implemented."""
    logger.warning(FORCE_NOT_SUPPORTED)
    report.notices.append(FORCE_NOT_SUPPORTED)


class ProvisioningEngine:
    """
    Reconciles desired permissions, assignments and portfolios with the store.

    Handles:
    - Per-resource idempotent permission seeding
    - Target principal resolution and assignment
    - Granting the whole catalog to one principal
    - Portfolio seeding with optional attribution
    """

    def __init__(
        self,
        permissions: PermissionRepository,
        assignments: AssignmentRepository,
        principals: PrincipalDirectory,
        *,
        portfolios: Optional[PortfolioRepository] = None,
        admin_emails: Sequence[str] = (),
    ):
        """
        Initialize the engine.

        Args:
            permissions: Permission catalog repository
            assignments: Principal to permission assignment repository
            principals: Lookup side of the credential store
            portfolios: Portfolio repository, needed by ``ensure_portfolios``
            admin_emails: Preferred provisioning targets, tried in order
        """
        self.permissions = permissions
        self.assignments = assignments
        self.principals = principals
        self.portfolios = portfolios
        self.admin_emails = [email.strip().lower() for email in admin_emails if email.strip()]

    @classmethod
    def for_session(cls, db, *, admin_emails: Sequence[str] = ()) -> "ProvisioningEngine":
        """Build an engine with repositories bound to one session."""
        return cls(
            PermissionRepository(db),
            AssignmentRepository(db),
            PrincipalDirectory(db),
            portfolios=PortfolioRepository(db),
            admin_emails=admin_emails,
        )

    # ------------------------------------------------------------------
    # Permission catalog
    # ------------------------------------------------------------------

    def reconcile(
        self,
        desired: Iterable[Any],
        *,
        force: bool = False,
        report: Optional[ReconcileReport] = None,
    ) -> ReconcileReport:
        """
        Converge the permission catalog and assignments to ``desired``.

        Args:
            desired: Permission records ({name, description, resource, action})
            force: Accepted for compatibility; recreation is not supported
            report: Report to extend (a new one is created by default)

        Returns:
            The run report
        """
        report = report if report is not None else ReconcileReport()
        report.track("permissions", "assignments")
        counts = report.counts_for("permissions")
        if force:
            note_force_not_supported(report)

        specs = self._validate_permissions(desired, report)
        created: List[Permission] = []

        for resource, group in self._group_by_resource(specs).items():
            existing = self.permissions.find_by_resource(resource)
            if existing:
                logger.info(
                    "Resource %r already has %d permission(s), skipping %d desired",
                    resource, len(existing), len(group),
                )
                for permission in existing:
                    logger.debug("  existing: %s (%s.%s)", permission.name, permission.resource, permission.action)
                counts.skipped += len(group)
                report.skipped_resources.append(resource)
                continue

            batch = self.permissions.create_many([spec.as_record() for spec in group])
            for permission in batch.created:
                counts.created += 1
                report.created_permissions.append(permission.name)
            for record, error in batch.failed:
                self._batch_failure(record, error, report)
            logger.info(
                "Resource %r: created %d permission(s), %d not created",
                resource, len(batch.created), len(batch.failed),
            )
            created.extend(batch.created)

        if not created:
            logger.info("No new permissions created; nothing to assign")
            return report

        try:
            principal = self.require_target_principal()
        except MissingCollaborator as exc:
            logger.warning("No users found; assignment of %d permission(s) skipped", len(created))
            report.skip_assignments(str(exc))
            return report

        self._assign(principal, created, report)
        return report

    def resolve_target_principal(self) -> Optional[User]:
        """Configured admin emails first, then the earliest created active user."""
        for email in self.admin_emails:
            principal = self.principals.get_by_email(email)
            if principal is not None:
                logger.info("Found admin user: %s", principal.email)
                return principal

        principal = self.principals.earliest_active()
        if principal is not None:
            logger.info("Using first user: %s", principal.email)
        return principal

    def require_target_principal(self) -> User:
        """Like ``resolve_target_principal`` but raises ``MissingCollaborator``."""
        principal = self.resolve_target_principal()
        if principal is None:
            raise MissingCollaborator("no principal")
        return principal

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def assign_all(
        self, email: str, *, report: Optional[ReconcileReport] = None
    ) -> ReconcileReport:
        """Grant every catalog permission to the principal with ``email``."""
        report = report if report is not None else ReconcileReport()
        report.track("assignments")

        try:
            principal = self._principal_by_email(email)
        except MissingCollaborator as exc:
            logger.warning("User with email %s not found", email)
            report.skip_assignments(str(exc))
            return report

        permissions = self.permissions.all()
        if not permissions:
            report.notices.append("No permissions found in the catalog.")
            return report

        held = self.assignments.permission_ids_for(principal.id)
        missing = [p for p in permissions if p.id not in held]
        report.counts_for("assignments").skipped += len(permissions) - len(missing)
        if not missing:
            report.notices.append(f"User {principal.email} already has all permissions.")
            return report

        self._assign(principal, missing, report)
        return report

    def _principal_by_email(self, email: str) -> User:
        principal = self.principals.get_by_email(email)
        if principal is None:
            raise MissingCollaborator(f"no principal with email {email}")
        return principal

    def _assign(self, principal: User, permissions: List[Permission], report: ReconcileReport) -> None:
        report.target_principal = principal.email
        created = already = 0
        for permission in permissions:
            try:
                self.assignments.assign(principal.id, permission.id)
                created += 1
            except DuplicateKeyConflict:
                logger.info("Permission %r already assigned to %s", permission.name, principal.email)
                already += 1
            except IntegrityError as exc:
                logger.error("Could not assign %r to %s: %s", permission.name, principal.email, exc.orig)
                report.record_failure(
                    "assignments", {"user": principal.email, "permission": permission.name},
                    None, str(exc.orig),
                )
        logger.info(
            "Assigned %d permission(s) to %s (%d already held)",
            created, principal.email, already,
        )
        counts = report.counts_for("assignments")
        counts.created += created
        counts.skipped += already

    # ------------------------------------------------------------------
    # Portfolios
    # ------------------------------------------------------------------

    def ensure_portfolios(
        self,
        desired: Iterable[Any],
        *,
        actor: Optional[User] = None,
        report: Optional[ReconcileReport] = None,
    ) -> ReconcileReport:
        """
        Create portfolios that do not exist yet; never touch existing ones.

        ``created_by``/``updated_by`` are set from ``actor`` when one is given
        and left empty otherwise.
        """
        if self.portfolios is None:
            raise ValueError("ProvisioningEngine was built without a portfolio repository")
        report = report if report is not None else ReconcileReport()
        counts = report.counts_for("portfolios")

        actor_id = actor.id if actor is not None else None
        for index, raw in enumerate(desired):
            try:
                spec = parse_spec(PortfolioSpec, raw, index)
            except ValidationError as exc:
                logger.warning("%s", exc)
                report.record_failure("portfolios", raw, exc.field, str(exc))
                continue

            if self.portfolios.get_by_name(spec.name) is not None:
                logger.info("Portfolio %r already exists", spec.name)
                counts.skipped += 1
                continue
            try:
                self.portfolios.create(
                    name=spec.name,
                    description=spec.description,
                    created_by=actor_id,
                    updated_by=actor_id,
                )
                counts.created += 1
            except DuplicateKeyConflict:
                logger.info("Portfolio %r already exists", spec.name)
                counts.skipped += 1
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _batch_failure(self, record: dict, error: Exception, report: ReconcileReport) -> None:
        """Classify a record the bulk insert could not create.

        A name conflict with a stored permission for the same (resource,
        action) means a concurrent run got there first and is counted as
        skipped. A name taken by a different pair, or any other integrity
        error, fails the record.
        """
        if isinstance(error, DuplicateKeyConflict):
            stored = self.permissions.get_by_name(record["name"])
            if (
                stored is not None
                and stored.resource == record["resource"]
                and stored.action == record["action"]
            ):
                logger.info("Permission %r already exists", record["name"])
                report.counts_for("permissions").skipped += 1
                return
            logger.warning("Permission %r not created: %s", record["name"], error)
            report.record_failure("permissions", record, "name", str(error))
            return

        reason = str(getattr(error, "orig", error))
        logger.error("Permission %r not created: %s", record["name"], reason)
        report.record_failure("permissions", record, None, reason)

    def _validate_permissions(
        self, desired: Iterable[Any], report: ReconcileReport
    ) -> List[PermissionSpec]:
        specs = []
        for index, raw in enumerate(desired):
            try:
                specs.append(parse_spec(PermissionSpec, raw, index))
            except ValidationError as exc:
                logger.warning("%s", exc)
                report.record_failure("permissions", raw, exc.field, str(exc))
        return specs

    @staticmethod
    def _group_by_resource(specs: List[PermissionSpec]) -> "OrderedDict[str, List[PermissionSpec]]":
        groups: "OrderedDict[str, List[PermissionSpec]]" = OrderedDict()
        for spec in specs:
            groups.setdefault(spec.resource.value, []).append(spec)
        return groups
