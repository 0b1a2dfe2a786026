"""Built-in desired permission sets.

Each module contributes the CRUD permissions it guards. ``CATALOGS`` maps a
catalog name (as accepted by the CLI) to its desired permission records;
``all`` is the full application catalog.
"""

from typing import Dict, List

from accessgate.core.rbac.permissions import Resource


def _module_permissions(
    resource: Resource,
    label: str,
    actions: tuple = ("view", "create", "update", "delete"),
    descriptions: Dict[str, str] = None,
) -> List[dict]:
    """Build the permission records for one module."""
    verbs = {
        "view": ("View", f"Can view {label.lower()} list and details"),
        "create": ("Create", f"Can create new {label.lower()}"),
        "update": ("Update", f"Can update existing {label.lower()}"),
        "delete": ("Delete", f"Can delete {label.lower()}"),
    }
    records = []
    for action in actions:
        verb, description = verbs[action]
        records.append({
            "name": f"{verb} {label}",
            "description": (descriptions or {}).get(action, description),
            "resource": resource.value,
            "action": action,
        })
    return records


DOCTOR_PERMISSIONS = _module_permissions(Resource.DOCTORS, "Doctors")
PRINCIPLE_PERMISSIONS = _module_permissions(Resource.PRINCIPLES, "Principles")
EMPLOYEE_TRAVEL_LOG_PERMISSIONS = _module_permissions(
    Resource.EMPLOYEE_TRAVEL_LOGS, "Employee Travel Logs"
)
PORTFOLIO_PERMISSIONS = _module_permissions(Resource.PORTFOLIOS, "Portfolios")

ALL_PERMISSIONS = (
    _module_permissions(Resource.STATES, "States")
    + _module_permissions(Resource.USERS, "Users")
    + _module_permissions(Resource.CANDIDATES, "Candidates")
    + _module_permissions(Resource.HOSPITALS, "Hospitals")
    + PRINCIPLE_PERMISSIONS
    + _module_permissions(Resource.PRODUCTS, "Products")
    + EMPLOYEE_TRAVEL_LOG_PERMISSIONS
    + PORTFOLIO_PERMISSIONS
    + _module_permissions(Resource.TRAININGS, "Trainings")
    + _module_permissions(Resource.PAYMENTS, "Payments")
    + _module_permissions(Resource.CLIENT_PROFILE, "Client Profile")
    + _module_permissions(Resource.ANALYTICS, "Analytics", actions=("view",))
    + _module_permissions(Resource.NOTIFICATIONS, "Notifications")
    + _module_permissions(Resource.EXPORTS, "Exports", actions=("create",))
    + _module_permissions(Resource.DASHBOARD, "Dashboard", actions=("view",))
    + _module_permissions(
        Resource.FILES,
        "Files",
        actions=("view", "create", "delete"),
        descriptions={"create": "Can upload files"},
    )
    + DOCTOR_PERMISSIONS
)

CATALOGS: Dict[str, List[dict]] = {
    "all": ALL_PERMISSIONS,
    "doctors": DOCTOR_PERMISSIONS,
    "principles": PRINCIPLE_PERMISSIONS,
    "employee-travel-logs": EMPLOYEE_TRAVEL_LOG_PERMISSIONS,
    "portfolios": PORTFOLIO_PERMISSIONS,
}

DEFAULT_PORTFOLIOS: List[dict] = [
    {
        "name": "Cardiology Devices",
        "description": "Portfolio for heart-related equipment",
    },
    {
        "name": "Orthopedic Solutions",
        "description": "Orthopedic implants and tools",
    },
]


def get_catalog(name: str) -> List[dict]:
    """Get the desired permission records of a named catalog."""
    try:
        return CATALOGS[name]
    except KeyError:
        raise ValueError(
            f"Unknown catalog: {name}. Choose from: {', '.join(sorted(CATALOGS))}"
        ) from None
