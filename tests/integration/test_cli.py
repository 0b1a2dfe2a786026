"""End-to-end tests for the provisioning CLI against a SQLite file."""

from unittest import mock

import pytest
from alembic import command

from accessgate.cli import main
from accessgate.common.logger import reset_logger
from accessgate.core.config import Settings
from accessgate.core.errors import StorageConnectionError
from accessgate.db.models import Portfolio
from accessgate.db.schema import alembic_config, current_revision, upgrade_schema
from accessgate.db.session import Database
from tests import factories


pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def reset_cli_logger():
    """The CLI attaches a console handler bound to the captured stderr."""
    yield
    reset_logger()


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'access.db'}"


@pytest.fixture
def settings(database_url):
    return Settings(_env_file=None, database_url=database_url, admin_emails="")


@pytest.fixture
def seeded_user(database_url):
    """Migrate the store and add one user before the CLI runs."""
    with Database(database_url) as database:
        upgrade_schema(database)
        with database.session() as session:
            factories.create_user(session, email="ops@example.com")
    return "ops@example.com"


class TestSeedPermissions:
    def test_first_run_without_users(self, settings, capsys):
        assert main(["seed-permissions", "--catalog", "doctors"], settings) == 0

        out = capsys.readouterr().out
        assert "seed-permissions completed" in out
        assert "permissions: created=4, skipped=0, failed=0" in out
        assert "assignment skipped: no principal" in out
        assert "assignments: created=0, skipped=0, failed=0" in out

    def test_rerun_reports_skipped(self, settings, capsys):
        main(["seed-permissions", "--catalog", "doctors"], settings)
        capsys.readouterr()

        assert main(["seed-permissions", "--catalog", "doctors"], settings) == 0

        out = capsys.readouterr().out
        assert "permissions: created=0, skipped=4, failed=0" in out
        assert "assignments: created=0, skipped=0, failed=0" in out
        assert "already provisioned (skipped): doctors" in out

    def test_assigns_to_first_user(self, settings, seeded_user, capsys):
        assert main(["seed-permissions", "--catalog", "principles"], settings) == 0

        out = capsys.readouterr().out
        assert f"assigned to: {seeded_user}" in out
        assert "assignments: created=4" in out

    def test_force_prints_notice(self, settings, capsys):
        assert main(["seed-permissions", "--catalog", "doctors", "--force"], settings) == 0
        assert "--force is not yet supported" in capsys.readouterr().out

    def test_database_url_option(self, database_url, capsys):
        settings = Settings(
            _env_file=None, database_url="sqlite:////nonexistent-dir/x.db", admin_emails=""
        )
        args = ["seed-permissions", "--catalog", "doctors", "--database-url", database_url]
        assert main(args, settings) == 0

    def test_unknown_catalog(self, settings):
        with pytest.raises(SystemExit) as exc_info:
            main(["seed-permissions", "--catalog", "spaceships"], settings)
        assert exc_info.value.code == 2


class TestOtherCommands:
    def test_seed_roles(self, settings, capsys):
        assert main(["seed-roles"], settings) == 0

        out = capsys.readouterr().out
        assert "roles: created=4, skipped=0, failed=0" in out
        assert "  - ADMIN (system): 11 resource(s)" in out

    def test_assign_all(self, settings, seeded_user, capsys):
        main(["seed-permissions", "--catalog", "doctors"], settings)
        main(["seed-permissions", "--catalog", "portfolios"], settings)
        capsys.readouterr()

        assert main(["assign-all", seeded_user], settings) == 0
        assert f"User {seeded_user} already has all permissions." in capsys.readouterr().out

    def test_assign_all_unknown_user(self, settings, capsys):
        assert main(["assign-all", "ghost@example.com"], settings) == 0
        assert "assignment skipped: no principal with email ghost@example.com" in capsys.readouterr().out

    def test_seed_portfolios(self, settings, seeded_user, database_url, capsys):
        assert main(["seed-portfolios", "--as", seeded_user], settings) == 0

        out = capsys.readouterr().out
        assert "portfolios: created=2, skipped=0, failed=0" in out
        with Database(database_url) as database, database.session() as session:
            assert all(p.created_by is not None for p in session.query(Portfolio))

    def test_seed_portfolios_unknown_actor(self, settings, capsys):
        assert main(["seed-portfolios", "--as", "ghost@example.com"], settings) == 0
        assert "portfolios are created without attribution" in capsys.readouterr().out

    def test_prune_assignments(self, settings, capsys):
        assert main(["prune-assignments"], settings) == 0
        assert "Removed 0 dangling assignment(s)." in capsys.readouterr().out


class TestConnectionFailures:
    def test_unreachable_store(self, capsys):
        settings = Settings(
            _env_file=None, database_url="sqlite:////nonexistent-dir/x.db", admin_emails=""
        )

        assert main(["seed-roles"], settings) == 1
        assert "Error:" in capsys.readouterr().err

    def test_disconnects_on_failure(self, settings):
        with mock.patch.object(
            Database, "connect", side_effect=StorageConnectionError("store is down")
        ), mock.patch.object(Database, "disconnect") as disconnect:
            assert main(["seed-roles"], settings) == 1
        disconnect.assert_called_once_with()


class TestSchemaMigrations:
    """The CLI manages the schema through the alembic revisions."""

    def test_store_stays_upgradeable(self, settings, database_url):
        assert main(["seed-roles"], settings) == 0

        cfg = alembic_config(database_url)
        command.upgrade(cfg, "head")
        with Database(database_url) as database, database.engine.connect() as conn:
            assert current_revision(conn) == "0001"

    def test_rerun_leaves_schema_alone(self, settings, database_url):
        main(["seed-roles"], settings)

        with Database(database_url) as database:
            assert upgrade_schema(database) == "up_to_date"

    def test_unversioned_tables_are_stamped(self, settings, database_url, capsys):
        with Database(database_url) as database:
            database.create_schema()

        assert main(["seed-roles"], settings) == 0
        assert "roles: created=4" in capsys.readouterr().out
        with Database(database_url) as database, database.engine.connect() as conn:
            assert current_revision(conn) == "0001"

    def test_in_memory_store_uses_model_metadata(self, database):
        assert upgrade_schema(database) == "metadata_created"
