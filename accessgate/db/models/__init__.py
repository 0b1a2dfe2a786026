"""Database models for AccessGate."""

from accessgate.db.models.permission import Permission
from accessgate.db.models.role import Role
from accessgate.db.models.user import User
from accessgate.db.models.user_permission import UserPermission
from accessgate.db.models.portfolio import Portfolio

__all__ = [
    "Permission",
    "Role",
    "User",
    "UserPermission",
    "Portfolio",
]
