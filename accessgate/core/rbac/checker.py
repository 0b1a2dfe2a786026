"""Permission checking utilities for AccessGate.

``authorize`` is the pure decision function: a request is allowed iff the
requested (resource, action) pair is among the principal's grants. There is
no hierarchy or wildcard expansion; ``update`` does not imply ``read``.

Grants come from one of two strategies, which can be combined:
  - RoleBasedStrategy: the principal's coarse ``role`` name
  - AssignmentBasedStrategy: discrete permissions assigned to the principal
  - UnionStrategy: union of the grants of several strategies
"""

from abc import ABC, abstractmethod
from typing import Any, FrozenSet, Iterable, List, Mapping, Tuple, Union

from accessgate.core.errors import ValidationError

from .permissions import (
    Action,
    Grant,
    Resource,
    grants_from_entries,
    grants_from_permissions,
    parse_action,
    parse_resource,
)

GrantLike = Union[Grant, str, Tuple[Any, Any]]


def _as_grant(item: Any) -> Grant:
    if isinstance(item, Grant):
        return item
    if isinstance(item, str):
        return Grant.from_string(item)
    if isinstance(item, Mapping):
        raise ValidationError(
            f"Expected a (resource, action) pair, got a role entry {item!r}; "
            "expand role entries with grants_from_entries",
            record=item,
        )
    try:
        resource, action = item
    except (TypeError, ValueError):
        raise ValidationError(
            f"Expected a (resource, action) pair, got {item!r}", record=item
        ) from None
    return Grant(parse_resource(resource, item), parse_action(action, item))


def _as_grant_set(grants: Iterable[GrantLike]) -> FrozenSet[Grant]:
    if isinstance(grants, Mapping):
        raise ValidationError(
            f"Expected (resource, action) pairs, got a role entry {grants!r}", record=grants
        )
    if isinstance(grants, frozenset) and all(isinstance(g, Grant) for g in grants):
        return grants
    return frozenset(_as_grant(item) for item in grants)


def authorize(grants: Iterable[GrantLike], resource: Any, action: Any) -> bool:
    """
    Decide whether ``grants`` allow ``action`` on ``resource``.

    Args:
        grants: (resource, action) pairs derived from a role or direct assignments
        resource: Requested resource (enum member or its string value)
        action: Requested action (enum member or its string value)

    Returns:
        True if the exact pair is granted

    Raises:
        UnknownResourceError / UnknownActionError: the request names something
            outside the closed vocabularies. This is a configuration error,
            not a denial.
    """
    requested = Grant(parse_resource(resource), parse_action(action))
    return requested in _as_grant_set(grants)


class PermissionChecker:
    """Checks requests against a point-in-time snapshot of grants."""

    def __init__(self, grants: Iterable[GrantLike]):
        self.grants = _as_grant_set(grants)

    def has_permission(self, resource: Any, action: Any) -> bool:
        """Check if the snapshot allows action on resource."""
        return authorize(self.grants, resource, action)

    def has_any_permission(self, requests: List[GrantLike]) -> bool:
        """Check if any of the (resource, action) requests is allowed."""
        return any(self.has_permission(r, a) for r, a in requests)

    def has_all_permissions(self, requests: List[GrantLike]) -> bool:
        """Check if all of the (resource, action) requests are allowed."""
        return all(self.has_permission(r, a) for r, a in requests)

    def get_accessible_resources(self, action: Any) -> list[Resource]:
        """Get list of resources the snapshot allows the action on."""
        action = parse_action(action)
        return [resource for resource in Resource if Grant(resource, action) in self.grants]


class GrantStrategy(ABC):
    """Resolves the grants a principal holds."""

    @abstractmethod
    def grants_for(self, principal) -> FrozenSet[Grant]:
        """Return the grants of ``principal``."""

    def checker_for(self, principal) -> PermissionChecker:
        return PermissionChecker(self.grants_for(principal))


class RoleBasedStrategy(GrantStrategy):
    """Grants from the role named by ``principal.role``.

    Principals without a role, or whose role is missing or inactive, hold
    no grants.
    """

    def __init__(self, roles):
        self.roles = roles

    def grants_for(self, principal) -> FrozenSet[Grant]:
        role_name = getattr(principal, "role", None)
        if not role_name:
            return frozenset()
        role = self.roles.get_by_name(role_name)
        if role is None or not role.is_active:
            return frozenset()
        return grants_from_entries(role.permissions)


class AssignmentBasedStrategy(GrantStrategy):
    """Grants from discrete permissions assigned directly to the principal."""

    def __init__(self, assignments):
        self.assignments = assignments

    def grants_for(self, principal) -> FrozenSet[Grant]:
        return grants_from_permissions(self.assignments.permissions_for(principal.id))


class UnionStrategy(GrantStrategy):
    """A principal holds a grant if any of the wrapped strategies yields it."""

    def __init__(self, *strategies: GrantStrategy):
        if not strategies:
            raise ValueError("UnionStrategy needs at least one strategy")
        self.strategies = strategies

    def grants_for(self, principal) -> FrozenSet[Grant]:
        grants: FrozenSet[Grant] = frozenset()
        for strategy in self.strategies:
            grants = grants | strategy.grants_for(principal)
        return grants


def has_permission(principal, strategy: GrantStrategy, resource: Any, action: Any) -> bool:
    """
    Check if a principal holds a specific permission.

    Args:
        principal: User record (needs ``id`` and/or ``role``)
        strategy: How the principal's grants are resolved
        resource: Requested resource
        action: Requested action

    Returns:
        True if the principal has the permission
    """
    if principal is None:
        return False
    return authorize(strategy.grants_for(principal), resource, action)
