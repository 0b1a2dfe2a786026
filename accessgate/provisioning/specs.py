"""Desired-state schemas for provisioning.

Raw desired records (dicts from catalogs or operators) are validated into
these models before anything touches the store. A record that fails is
reported with the first offending field and the rest of the run goes on.
"""

from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from accessgate.core.errors import ValidationError
from accessgate.core.rbac.permissions import (
    PERMISSION_ACTIONS,
    Action,
    Resource,
    merge_entries,
)

SpecT = TypeVar("SpecT", bound=BaseModel)


class PermissionSpec(BaseModel):
    """A discrete catalog permission."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=500)
    resource: Resource
    action: Action

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("action")
    @classmethod
    def catalog_action(cls, v: Action) -> Action:
        if v not in PERMISSION_ACTIONS:
            allowed = ", ".join(sorted(a.value for a in PERMISSION_ACTIONS))
            raise ValueError(f"catalog permissions only allow: {allowed}")
        return v

    def as_record(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "resource": self.resource.value,
            "action": self.action.value,
        }


class RoleSpec(BaseModel):
    """A role with its {resource, actions} entries."""

    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    permissions: List[dict] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def upper_name(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("role name must not be blank")
        return v

    @field_validator("permissions")
    @classmethod
    def one_entry_per_resource(cls, v: List[dict]) -> List[dict]:
        return merge_entries(v)


class PortfolioSpec(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


def parse_spec(model: Type[SpecT], raw: Any, index: int = 0) -> SpecT:
    """
    Validate one desired record.

    Args:
        model: Schema to validate against
        raw: Dict or model instance
        index: Position of the record in its desired list (for messages)

    Returns:
        Validated model instance

    Raises:
        ValidationError: with ``record`` set to ``raw`` and ``field`` to the
            first failing field
    """
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        field_name = ".".join(str(part) for part in error.get("loc", ())) or None
        label = raw.get("name") if isinstance(raw, dict) else None
        raise ValidationError(
            f"{model.__name__} #{index} ({label or 'unnamed'}): "
            f"{field_name or 'record'}: {error.get('msg')}",
            record=raw,
            field=field_name,
        ) from exc
