"""Repository objects over the AccessGate tables.

Repositories are built per session and passed explicitly to the
provisioning engine and the grant strategies. Every successful write is
committed immediately, so an aborted run leaves a committed-so-far store.

A unique-constraint violation on insert surfaces as ``DuplicateKeyConflict``;
any other integrity failure propagates unchanged.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accessgate.core.errors import DuplicateKeyConflict, ValidationError
from accessgate.db.models import Permission, Portfolio, Role, User, UserPermission

logger = logging.getLogger(__name__)


def is_duplicate_key(exc: IntegrityError) -> bool:
    """Tell a unique-constraint violation apart from other integrity errors."""
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == "23505":
        return True
    message = str(orig if orig is not None else exc).lower()
    return (
        "unique constraint" in message
        or "duplicate key" in message
        or "duplicate entry" in message
    )


@dataclass
class BatchResult:
    """Outcome of a bulk insert: created rows and (record, error) failures.

    The error is a ``DuplicateKeyConflict`` for a unique-key collision and the
    original ``IntegrityError`` otherwise.
    """

    created: List[Any] = field(default_factory=list)
    failed: List[Tuple[Dict[str, Any], Exception]] = field(default_factory=list)


class _Repository:
    model: Any = None
    entity: str = ""

    def __init__(self, db: Session):
        self.db = db

    def find(self, **filters) -> list:
        """Find rows matching equality filters, oldest first."""
        return (
            self.db.query(self.model)
            .filter_by(**filters)
            .order_by(self.model.created_at)
            .all()
        )

    def count(self, **filters) -> int:
        return self.db.query(self.model).filter_by(**filters).count()

    def update_many(self, filters: Dict[str, Any], values: Dict[str, Any]) -> int:
        """Apply ``values`` to every row matching ``filters``; returns the row count."""
        updated = (
            self.db.query(self.model)
            .filter_by(**filters)
            .update(values, synchronize_session="fetch")
        )
        self.db.commit()
        return updated

    def _insert(self, row, key: Any):
        try:
            self.db.add(row)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if is_duplicate_key(exc):
                raise DuplicateKeyConflict(self.entity, key) from exc
            raise
        return row

    def _insert_many(self, records: List[Dict[str, Any]], key_field: str) -> BatchResult:
        """Insert all records in one transaction.

        If the transaction hits an integrity error it is rolled back and the
        records are retried one at a time, so the result says exactly which
        ones made it and why the others did not.
        """
        if not records:
            return BatchResult()

        rows = [self.model(**record) for record in records]
        try:
            self.db.add_all(rows)
            self.db.commit()
            return BatchResult(created=rows)
        except IntegrityError as exc:
            self.db.rollback()
            logger.info(
                "Batch of %d %s records failed (%s), retrying one by one",
                len(records), self.entity, exc.orig,
            )

        result = BatchResult()
        for record in records:
            try:
                result.created.append(self._insert(self.model(**record), record[key_field]))
            except DuplicateKeyConflict as conflict:
                result.failed.append((record, conflict))
            except IntegrityError as exc:
                logger.warning("%s record %r rejected: %s", self.entity, record.get(key_field), exc.orig)
                result.failed.append((record, exc))
        return result


class PermissionRepository(_Repository):
    """Discrete (resource, action) permissions of the catalog."""

    model = Permission
    entity = "permission"

    def get_by_name(self, name: str) -> Optional[Permission]:
        return self.db.query(Permission).filter(Permission.name == name).first()

    def find_by_resource(self, resource: str) -> List[Permission]:
        return self.find(resource=resource)

    def all(self) -> List[Permission]:
        return self.db.query(Permission).order_by(Permission.resource, Permission.created_at).all()

    def create(self, **fields) -> Permission:
        return self._insert(Permission(**fields), fields.get("name"))

    def create_many(self, records: List[Dict[str, Any]]) -> BatchResult:
        return self._insert_many(records, "name")

    def update_description(self, name: str, description: str) -> bool:
        """The description is the only mutable attribute of a permission."""
        return self.update_many({"name": name}, {"description": description}) > 0

    def delete(self, permission: Permission) -> None:
        self.db.delete(permission)
        self.db.commit()


class RoleRepository(_Repository):
    """Roles keyed by their upper-cased name."""

    model = Role
    entity = "role"

    def get_by_name(self, name: str) -> Optional[Role]:
        return self.db.query(Role).filter(Role.name == name.strip().upper()).first()

    def create(self, **fields) -> Role:
        fields["name"] = fields["name"].strip().upper()
        return self._insert(Role(**fields), fields["name"])

    def set_active(self, names: Iterable[str], active: bool) -> int:
        updated = 0
        for name in names:
            updated += self.update_many({"name": name.strip().upper()}, {"is_active": active})
        return updated

    def rename(self, role: Role, new_name: str) -> Role:
        if role.is_system_role:
            raise ValidationError(
                f"System role {role.name} cannot be renamed", record=role.name, field="name"
            )
        new_name = new_name.strip().upper()
        role.name = new_name
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if is_duplicate_key(exc):
                raise DuplicateKeyConflict(self.entity, new_name) from exc
            raise
        return role

    def delete(self, role: Role) -> None:
        if role.is_system_role:
            raise ValidationError(
                f"System role {role.name} cannot be deleted", record=role.name, field="is_system_role"
            )
        self.db.delete(role)
        self.db.commit()


class AssignmentRepository(_Repository):
    """Direct principal to permission grants, unique per pair."""

    model = UserPermission
    entity = "assignment"

    def assign(self, user_id: UUID, permission_id: UUID) -> UserPermission:
        return self._insert(
            UserPermission(user_id=user_id, permission_id=permission_id),
            (user_id, permission_id),
        )

    def permission_ids_for(self, user_id: UUID) -> Set[UUID]:
        rows = self.db.query(UserPermission.permission_id).filter(
            UserPermission.user_id == user_id
        )
        return {permission_id for (permission_id,) in rows}

    def permissions_for(self, user_id: UUID) -> List[Permission]:
        return (
            self.db.query(Permission)
            .join(UserPermission, UserPermission.permission_id == Permission.id)
            .filter(UserPermission.user_id == user_id)
            .all()
        )

    def delete_for_permission(self, permission_id: UUID) -> int:
        return self._delete_where(UserPermission.permission_id == permission_id)

    def delete_for_user(self, user_id: UUID) -> int:
        return self._delete_where(UserPermission.user_id == user_id)

    def delete_dangling(self) -> int:
        """Remove assignments whose user or permission no longer exists."""
        return self._delete_where(
            ~UserPermission.user_id.in_(select(User.id))
            | ~UserPermission.permission_id.in_(select(Permission.id))
        )

    def _delete_where(self, criterion) -> int:
        deleted = (
            self.db.query(UserPermission)
            .filter(criterion)
            .delete(synchronize_session="fetch")
        )
        self.db.commit()
        return deleted


class PrincipalDirectory(_Repository):
    """Read side of the credential store: lookups only, never credentials."""

    model = User
    entity = "user"

    def get(self, user_id: UUID) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def earliest_active(self) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.is_active == True)  # noqa: E712
            .order_by(User.created_at.asc())
            .first()
        )

    def delete(self, user: User) -> None:
        self.db.delete(user)
        self.db.commit()


class PortfolioRepository(_Repository):
    model = Portfolio
    entity = "portfolio"

    def get_by_name(self, name: str) -> Optional[Portfolio]:
        return self.db.query(Portfolio).filter(Portfolio.name == name).first()

    def create(self, **fields) -> Portfolio:
        return self._insert(Portfolio(**fields), fields.get("name"))
