"""Tests for desired-state validation."""

import pytest

from accessgate.core.errors import ValidationError
from accessgate.core.rbac.permissions import Action, Resource
from accessgate.provisioning.specs import PermissionSpec, PortfolioSpec, RoleSpec, parse_spec


class TestPermissionSpec:
    """Tests for catalog permission records."""

    def test_valid_record(self):
        spec = parse_spec(PermissionSpec, {
            "name": "  View Doctors ",
            "description": "Can view doctors",
            "resource": "doctors",
            "action": "view",
        })
        assert spec.name == "View Doctors"
        assert spec.resource == Resource.DOCTORS
        assert spec.action == Action.VIEW
        assert spec.as_record() == {
            "name": "View Doctors",
            "description": "Can view doctors",
            "resource": "doctors",
            "action": "view",
        }

    def test_missing_description(self):
        raw = {"name": "View Doctors", "resource": "doctors", "action": "view"}
        with pytest.raises(ValidationError) as exc_info:
            parse_spec(PermissionSpec, raw, 3)
        assert exc_info.value.field == "description"
        assert exc_info.value.record is raw
        assert "#3" in str(exc_info.value)

    def test_blank_name(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_spec(PermissionSpec, {
                "name": "   ", "description": "x", "resource": "doctors", "action": "view",
            })
        assert exc_info.value.field == "name"

    def test_unknown_resource(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_spec(PermissionSpec, {
                "name": "Fly", "description": "x", "resource": "spaceships", "action": "view",
            })
        assert exc_info.value.field == "resource"

    def test_role_only_action_is_rejected(self):
        """Catalog permissions use view, not read."""
        with pytest.raises(ValidationError) as exc_info:
            parse_spec(PermissionSpec, {
                "name": "Read Doctors", "description": "x", "resource": "doctors", "action": "read",
            })
        assert exc_info.value.field == "action"

    def test_model_instance_passes_through(self):
        spec = PermissionSpec(
            name="Delete Files", description="Can delete files",
            resource=Resource.FILES, action=Action.DELETE,
        )
        assert parse_spec(PermissionSpec, spec) is spec


class TestRoleSpec:
    """Tests for role records."""

    def test_name_is_upper_cased_and_entries_merged(self):
        spec = parse_spec(RoleSpec, {
            "name": "auditor",
            "display_name": "Auditor",
            "permissions": [
                {"resource": "reports", "actions": ["read"]},
                {"resource": "reports", "actions": ["export"]},
            ],
        })
        assert spec.name == "AUDITOR"
        assert spec.permissions == [{"resource": "reports", "actions": ["read", "export"]}]
        assert spec.is_active is True

    def test_invalid_entry(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_spec(RoleSpec, {
                "name": "auditor",
                "display_name": "Auditor",
                "permissions": [{"resource": "reports", "actions": ["view"]}],
            })
        assert exc_info.value.field == "permissions"


class TestPortfolioSpec:
    def test_description_is_optional(self):
        spec = parse_spec(PortfolioSpec, {"name": "Cardiology Devices"})
        assert spec.description is None

    def test_name_required(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_spec(PortfolioSpec, {"description": "no name"})
        assert exc_info.value.field == "name"
        assert "unnamed" in str(exc_info.value)
