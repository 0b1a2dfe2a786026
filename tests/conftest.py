"""Pytest configuration and shared fixtures.

Database tests run against a private in-memory SQLite store per test, built
from the same models and repositories used in production.
"""

import pytest
from sqlalchemy.pool import StaticPool

from accessgate.db.repositories import (
    AssignmentRepository,
    PermissionRepository,
    PortfolioRepository,
    PrincipalDirectory,
    RoleRepository,
)
from accessgate.db.session import Database
from accessgate.provisioning.engine import ProvisioningEngine
from tests import factories


DOCTOR_PAIR = [
    {"name": "View Doctors", "description": "Can view doctors", "resource": "doctors", "action": "view"},
    {"name": "Create Doctors", "description": "Can create doctors", "resource": "doctors", "action": "create"},
]


@pytest.fixture
def database():
    """Connected in-memory database with the schema created."""
    db = Database(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db.connect()
    db.create_schema()
    yield db
    db.disconnect()


@pytest.fixture
def db_session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def repos(db_session):
    """All repositories bound to the test session."""

    class Repos:
        permissions = PermissionRepository(db_session)
        roles = RoleRepository(db_session)
        assignments = AssignmentRepository(db_session)
        principals = PrincipalDirectory(db_session)
        portfolios = PortfolioRepository(db_session)

    return Repos


@pytest.fixture
def engine(repos):
    """Provisioning engine without preferred admin emails."""
    return ProvisioningEngine(
        repos.permissions,
        repos.assignments,
        repos.principals,
        portfolios=repos.portfolios,
    )


@pytest.fixture
def desired_doctors():
    return [dict(record) for record in DOCTOR_PAIR]


@pytest.fixture
def user_factory(db_session):
    def _create(**kwargs):
        return factories.create_user(db_session, **kwargs)
    return _create


@pytest.fixture
def permission_factory(db_session):
    def _create(**kwargs):
        return factories.create_permission(db_session, **kwargs)
    return _create


@pytest.fixture
def role_factory(db_session):
    def _create(**kwargs):
        return factories.create_role(db_session, **kwargs)
    return _create


@pytest.fixture
def assignment_factory(db_session):
    def _create(**kwargs):
        return factories.create_assignment(db_session, **kwargs)
    return _create
