"""Command line entry points for provisioning runs.

Every command connects, brings the schema to the latest migration, runs
to completion, prints a summary and disconnects. The exit status is 0 whenever the run completes (including
"nothing to do") and 1 when the store cannot be reached.
"""

import argparse
import logging
import sys
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from accessgate.common.logger import configure_from_settings
from accessgate.core.config import Settings, get_settings
from accessgate.core.errors import StorageConnectionError
from accessgate.db.repositories import (
    AssignmentRepository,
    PermissionRepository,
    PrincipalDirectory,
    RoleRepository,
)
from accessgate.db.schema import upgrade_schema
from accessgate.db.seed import ensure_system_roles, get_roles_by_name
from accessgate.db.session import Database, safe_url
from accessgate.provisioning.catalogs import CATALOGS, DEFAULT_PORTFOLIOS, get_catalog
from accessgate.provisioning.cleanup import AccessCleanup
from accessgate.provisioning.engine import ProvisioningEngine, note_force_not_supported
from accessgate.provisioning.report import ReconcileReport

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--force",
        action="store_true",
        help="recreate already provisioned records (not yet supported)",
    )
    common.add_argument(
        "--database-url",
        help="override DATABASE_URL for this run",
    )

    parser = argparse.ArgumentParser(
        prog="accessgate",
        description="Provision roles, permissions and assignments.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    seed_permissions = commands.add_parser(
        "seed-permissions", parents=[common], help="reconcile a permission catalog"
    )
    seed_permissions.add_argument(
        "--catalog", default="all", choices=sorted(CATALOGS), help="catalog to provision"
    )

    commands.add_parser("seed-roles", parents=[common], help="create missing system roles")

    assign_all = commands.add_parser(
        "assign-all", parents=[common], help="grant every catalog permission to a user"
    )
    assign_all.add_argument("email", help="email of the user to grant permissions to")

    seed_portfolios = commands.add_parser(
        "seed-portfolios", parents=[common], help="provision portfolio permissions and portfolios"
    )
    seed_portfolios.add_argument(
        "--as",
        dest="actor_email",
        help="email of the user recorded as creator (left empty when omitted)",
    )

    commands.add_parser(
        "prune-assignments", parents=[common], help="delete assignments of removed users/permissions"
    )
    return parser


def _seed_permissions(db: Session, args, settings: Settings) -> ReconcileReport:
    engine = ProvisioningEngine.for_session(db, admin_emails=settings.admin_emails_list)
    return engine.reconcile(get_catalog(args.catalog), force=args.force)


def _seed_roles(db: Session, args, settings: Settings) -> ReconcileReport:
    report = ReconcileReport()
    if args.force:
        note_force_not_supported(report)
    roles = RoleRepository(db)
    ensure_system_roles(roles, report=report)
    for name, role in get_roles_by_name(roles).items():
        kind = "system" if role.is_system_role else "custom"
        report.notices.append(f"  - {name} ({kind}): {len(role.permissions or [])} resource(s)")
    return report


def _assign_all(db: Session, args, settings: Settings) -> ReconcileReport:
    report = ReconcileReport()
    if args.force:
        note_force_not_supported(report)
    engine = ProvisioningEngine.for_session(db)
    return engine.assign_all(args.email, report=report)


def _seed_portfolios(db: Session, args, settings: Settings) -> ReconcileReport:
    engine = ProvisioningEngine.for_session(db, admin_emails=settings.admin_emails_list)
    report = engine.reconcile(get_catalog("portfolios"), force=args.force)

    actor = None
    if args.actor_email:
        actor = engine.principals.get_by_email(args.actor_email)
        if actor is None:
            report.notices.append(
                f"User {args.actor_email} not found; portfolios are created without attribution."
            )
    return engine.ensure_portfolios(DEFAULT_PORTFOLIOS, actor=actor, report=report)


def _prune_assignments(db: Session, args, settings: Settings) -> ReconcileReport:
    report = ReconcileReport()
    cleanup = AccessCleanup(
        PermissionRepository(db), AssignmentRepository(db), PrincipalDirectory(db)
    )
    removed = cleanup.purge_dangling_assignments()
    report.notices.append(f"Removed {removed} dangling assignment(s).")
    return report


COMMANDS: Dict[str, Callable[[Session, argparse.Namespace, Settings], ReconcileReport]] = {
    "seed-permissions": _seed_permissions,
    "seed-roles": _seed_roles,
    "assign-all": _assign_all,
    "seed-portfolios": _seed_portfolios,
    "prune-assignments": _prune_assignments,
}


def print_report(command: str, report: ReconcileReport) -> None:
    print("=" * 40)
    print(f"{command} completed")
    print("=" * 40)
    lines = report.summary_lines()
    if not lines:
        print("Nothing to do.")
    for line in lines:
        print(line)


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    """Main entry point for the provisioning CLI."""
    args = build_parser().parse_args(argv)
    settings = settings or get_settings()

    configure_from_settings(settings)

    database = Database(args.database_url or settings.database_url, echo=settings.echo_sql)
    try:
        database.connect()
        upgrade_schema(database)
        with database.session() as db:
            report = COMMANDS[args.command](db, args, settings)
    except StorageConnectionError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OperationalError as e:
        logger.error("Lost connection to %s: %s", safe_url(database.url), e.orig)
        print(f"Error: lost connection to the database: {e.orig}", file=sys.stderr)
        return 1
    finally:
        database.disconnect()

    print_report(args.command, report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
