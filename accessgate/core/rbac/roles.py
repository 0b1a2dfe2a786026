"""Default system role definitions for AccessGate.

Defines the 4 built-in roles with their permission entries:
1. ADMIN - Full system access
2. TRAINER - Training progress, performance and skills
3. FINANCE_HR - Stipend, salary and financial tracking
4. CANDIDATE - Own profile, progress and payments

Each entry is {"resource": ..., "actions": [...]}; a resource appears at
most once per role.
"""

from typing import Dict, List
from .permissions import Resource, Action


def _entry(resource: Resource, *actions: Action) -> dict:
    """Build a role permission entry from a resource and its actions."""
    return {"resource": resource.value, "actions": [a.value for a in actions]}


CRUD = (Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE)

# Administrator: everything the role vocabulary allows
ADMIN_PERMISSIONS = [
    _entry(Resource.CANDIDATES, *CRUD, Action.EXPORT),
    _entry(Resource.TRAININGS, *CRUD, Action.EXPORT),
    _entry(Resource.PAYMENTS, *CRUD, Action.EXPORT, Action.APPROVE),
    _entry(Resource.ANALYTICS, Action.READ, Action.EXPORT),
    _entry(Resource.USERS, *CRUD),
    _entry(Resource.ROLES, *CRUD),
    _entry(Resource.REPORTS, Action.READ, Action.EXPORT),
    _entry(Resource.CLIENT_PROFILES, Action.READ, Action.EXPORT),
    _entry(Resource.DASHBOARD, Action.READ),
    _entry(Resource.NOTIFICATIONS, *CRUD),
    _entry(Resource.SETTINGS, Action.READ, Action.UPDATE),
]

# Trainer/Manager: update training progress, view candidates
TRAINER_PERMISSIONS = [
    _entry(Resource.CANDIDATES, Action.READ, Action.UPDATE),
    _entry(Resource.TRAININGS, Action.CREATE, Action.READ, Action.UPDATE),
    _entry(Resource.PAYMENTS, Action.READ),
    _entry(Resource.ANALYTICS, Action.READ),
    _entry(Resource.REPORTS, Action.READ),
    _entry(Resource.DASHBOARD, Action.READ),
]

# Finance/HR: full payments workflow including approval
FINANCE_HR_PERMISSIONS = [
    _entry(Resource.CANDIDATES, Action.READ),
    _entry(Resource.TRAININGS, Action.READ),
    _entry(Resource.PAYMENTS, *CRUD, Action.EXPORT, Action.APPROVE),
    _entry(Resource.ANALYTICS, Action.READ, Action.EXPORT),
    _entry(Resource.REPORTS, Action.READ, Action.EXPORT),
    _entry(Resource.DASHBOARD, Action.READ),
]

# Candidate: read-only view of their own records
CANDIDATE_PERMISSIONS = [
    _entry(Resource.CANDIDATES, Action.READ),
    _entry(Resource.TRAININGS, Action.READ),
    _entry(Resource.PAYMENTS, Action.READ),
    _entry(Resource.DASHBOARD, Action.READ),
]


# Bootstrap order matters only for log output
DEFAULT_ROLES: List[Dict] = [
    {
        "name": "ADMIN",
        "display_name": "Administrator",
        "description": "Full system access with all permissions",
        "permissions": ADMIN_PERMISSIONS,
    },
    {
        "name": "TRAINER",
        "display_name": "Trainer/Manager",
        "description": "Update training progress, performance, and skills",
        "permissions": TRAINER_PERMISSIONS,
    },
    {
        "name": "FINANCE_HR",
        "display_name": "Finance/HR",
        "description": "Manage stipend, salary, and financial tracking",
        "permissions": FINANCE_HR_PERMISSIONS,
    },
    {
        "name": "CANDIDATE",
        "display_name": "Candidate",
        "description": "View own profile, progress, and payments",
        "permissions": CANDIDATE_PERMISSIONS,
    },
]


def get_default_role_permissions(role_name: str) -> List[dict]:
    """Get permission entries for a default role."""
    for role in DEFAULT_ROLES:
        if role["name"] == role_name.upper():
            return role["permissions"]
    raise ValueError(f"Unknown default role: {role_name}")
