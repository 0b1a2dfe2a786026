"""Permission model for AccessGate.

Defines the closed vocabularies of resources and actions and the
``Grant`` pair that authorization decisions are made on.

Two action vocabularies coexist:
  - discrete catalog permissions use view/create/update/delete
  - role entries use create/read/update/delete/export/approve

Grant string format: "resource:action"
Examples:
  - doctors:view
  - payments:approve
"""

import logging
from enum import Enum
from typing import Any, Iterable, List, NamedTuple, FrozenSet, Optional

from accessgate.core.errors import UnknownActionError, UnknownResourceError, ValidationError

logger = logging.getLogger(__name__)


class Resource(str, Enum):
    """Resources that can be protected by permissions."""

    # Catalog modules
    STATES = "states"
    USERS = "users"
    CANDIDATES = "candidates"
    HOSPITALS = "hospitals"
    PRINCIPLES = "principles"
    PRODUCTS = "products"
    EMPLOYEE_TRAVEL_LOGS = "employee-travel-logs"
    PORTFOLIOS = "portfolios"
    TRAININGS = "trainings"
    PAYMENTS = "payments"
    CLIENT_PROFILE = "client-profile"
    ANALYTICS = "analytics"
    NOTIFICATIONS = "notifications"
    EXPORTS = "exports"
    DASHBOARD = "dashboard"
    FILES = "files"
    DOCTORS = "doctors"

    # Only referenced by role entries
    ROLES = "roles"
    REPORTS = "reports"
    CLIENT_PROFILES = "client_profiles"
    SETTINGS = "settings"


class Action(str, Enum):
    """Actions that can be performed on resources."""

    VIEW = "view"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
    APPROVE = "approve"


# Actions a discrete catalog Permission may carry
PERMISSION_ACTIONS: FrozenSet[Action] = frozenset([
    Action.VIEW, Action.CREATE, Action.UPDATE, Action.DELETE,
])

# Actions a role entry may carry
ROLE_ACTIONS: FrozenSet[Action] = frozenset([
    Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE,
    Action.EXPORT, Action.APPROVE,
])

# Resources a role entry may reference
ROLE_RESOURCES: FrozenSet[Resource] = frozenset([
    Resource.CANDIDATES, Resource.TRAININGS, Resource.PAYMENTS,
    Resource.ANALYTICS, Resource.USERS, Resource.ROLES, Resource.REPORTS,
    Resource.CLIENT_PROFILES, Resource.DASHBOARD, Resource.NOTIFICATIONS,
    Resource.SETTINGS,
])


class Grant(NamedTuple):
    """A single (resource, action) pair held by a principal."""
    resource: Resource
    action: Action

    def __str__(self) -> str:
        return f"{self.resource.value}:{self.action.value}"

    @classmethod
    def from_string(cls, grant_str: str) -> "Grant":
        """Parse a grant string like 'doctors:view'."""
        parts = grant_str.split(":")
        if len(parts) != 2:
            raise ValidationError(f"Invalid grant format: {grant_str}", record=grant_str)
        return cls(parse_resource(parts[0]), parse_action(parts[1]))


def parse_resource(value: Any, record: Any = None) -> Resource:
    """Coerce ``value`` into a ``Resource`` or raise ``UnknownResourceError``."""
    if isinstance(value, Resource):
        return value
    try:
        return Resource(value)
    except ValueError:
        raise UnknownResourceError(
            f"Unknown resource: {value!r}", record=record, field="resource"
        ) from None


def parse_action(
    value: Any,
    record: Any = None,
    allowed: Optional[FrozenSet[Action]] = None,
) -> Action:
    """Coerce ``value`` into an ``Action``, optionally restricted to a vocabulary."""
    if isinstance(value, Action):
        action = value
    else:
        try:
            action = Action(value)
        except ValueError:
            raise UnknownActionError(
                f"Unknown action: {value!r}", record=record, field="action"
            ) from None
    if allowed is not None and action not in allowed:
        raise UnknownActionError(
            f"Action {action.value!r} is not allowed here", record=record, field="action"
        )
    return action


def merge_entries(entries: Iterable[Any]) -> List[dict]:
    """Collapse role entries so each resource appears once.

    Actions of repeated resources are unioned; first-seen order of both
    resources and actions is kept. Entries may be dicts or objects with
    ``resource``/``actions`` attributes. Values are validated against the
    role vocabularies.
    """
    merged: dict[Resource, List[Action]] = {}
    for entry in entries:
        if isinstance(entry, dict):
            raw_resource = entry.get("resource")
            raw_actions = entry.get("actions") or []
        else:
            raw_resource = entry.resource
            raw_actions = entry.actions or []

        resource = parse_resource(raw_resource, record=entry)
        if resource not in ROLE_RESOURCES:
            raise UnknownResourceError(
                f"Resource {resource.value!r} cannot be used in a role",
                record=entry,
                field="resource",
            )
        actions = merged.setdefault(resource, [])
        for raw_action in raw_actions:
            action = parse_action(raw_action, record=entry, allowed=ROLE_ACTIONS)
            if action not in actions:
                actions.append(action)

    return [
        {"resource": resource.value, "actions": [a.value for a in actions]}
        for resource, actions in merged.items()
    ]


def grants_from_entries(entries: Iterable[Any]) -> FrozenSet[Grant]:
    """Expand stored role entries ({resource, actions}) into grants.

    Stored entries naming an unknown resource or action are skipped with a
    warning; they can never match a validated request.
    """
    grants = set()
    for entry in entries or []:
        raw_resource = entry.get("resource") if isinstance(entry, dict) else entry.resource
        raw_actions = entry.get("actions", []) if isinstance(entry, dict) else entry.actions
        try:
            resource = parse_resource(raw_resource)
        except UnknownResourceError:
            logger.warning("Ignoring stored role entry with unknown resource %r", raw_resource)
            continue
        for raw_action in raw_actions or []:
            try:
                grants.add(Grant(resource, parse_action(raw_action)))
            except UnknownActionError:
                logger.warning(
                    "Ignoring unknown action %r on stored resource %r", raw_action, raw_resource
                )
    return frozenset(grants)


def grants_from_permissions(permissions: Iterable[Any]) -> FrozenSet[Grant]:
    """Convert discrete permission records (``resource``/``action``) into grants."""
    grants = set()
    for permission in permissions or []:
        try:
            grants.add(Grant(parse_resource(permission.resource), parse_action(permission.action)))
        except (UnknownResourceError, UnknownActionError):
            logger.warning(
                "Ignoring stored permission %r with unknown resource/action",
                getattr(permission, "name", permission),
            )
    return frozenset(grants)


def get_all_resources() -> list[str]:
    """Get all valid resource names."""
    return [resource.value for resource in Resource]
