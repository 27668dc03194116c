"""Command (workflow-step) models.

A command is one step of an automation. Every command shares the base
fields on Command; the nine built-in variants add their own. Records travel
to and from the store in camelCase.

Structural rules (non-empty title, at least one condition, ...) are not
enforced here: construction only rejects data of the wrong shape, and the
validators in neurongate.commands.validators report rule violations.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CommandType(str, Enum):
    ROOT = "root"
    FRONTEND = "frontend"
    SCRIPT = "script"
    AI = "ai"
    IF = "if"
    TIMER = "timer"
    GOTO = "goto"
    ALERT = "alert"
    DATABASE = "database"


# Fields callers cannot overwrite through an update.
IMMUTABLE_FIELDS = ("id", "created_at", "created_by", "command_type", "is_system")


class Command(BaseModel):
    """Base command. Also used for command types nobody registered.

    Unknown keys are kept so records of unregistered types survive a
    read-modify-write cycle unchanged.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: Optional[str] = None
    name: str = ""
    command_type: str = ""
    description: str = ""
    parent_id: Optional[str] = None
    order: int = 0
    config: dict[str, Any] = Field(default_factory=dict)
    children: list[Any] = Field(default_factory=list)
    timeout: Optional[float] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    updated_by: Optional[str] = None
    is_system: bool = False
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def dedupe_tags(cls, v: Any) -> Any:
        """Tags are a set; keep first-seen order for stable output."""
        if isinstance(v, (list, tuple, set, frozenset)):
            return list(dict.fromkeys(v))
        return v

    def to_record(self) -> dict[str, Any]:
        """Serialize for the store (camelCase, JSON-compatible)."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)

    def with_tag(self, tag: str) -> "Command":
        if tag in self.tags:
            return self
        return self.model_copy(update={"tags": [*self.tags, tag]})

    def without_tag(self, tag: str) -> "Command":
        return self.model_copy(update={"tags": [t for t in self.tags if t != tag]})


class _Variant(Command):
    model_config = ConfigDict(extra="ignore")


class RootCommand(_Variant):
    """Entry point of a workflow."""

    parameters: Any = Field(default_factory=list)
    bags: Any = Field(default_factory=list)


class FrontendCommand(_Variant):
    """Asks a user to fill in a form; each field lands in a bag."""

    title: str = ""
    fields: Any = Field(default_factory=list)


class ScriptCommand(_Variant):
    code: str = ""
    output_bag: str = "latest"


class AICommand(_Variant):
    prompt_template: str = ""
    model: Optional[str] = None
    output_bag: str = "latest"
    behavior: Optional[Any] = None


class IfCommand(_Variant):
    """Branches on bag values; logic_type combines the conditions."""

    conditions: Any = Field(default_factory=list)
    logic_type: str = "and"
    true_path: Any = Field(default_factory=list)
    false_path: Any = Field(default_factory=list)


class TimerCommand(_Variant):
    duration: Any = 0
    unit: str = "seconds"


class GotoCommand(_Variant):
    target_step: str = ""


class AlertCommand(_Variant):
    who: str = "self"
    target: str = ""
    message: str = ""
    options: Any = Field(default_factory=lambda: ["ok"])


class DatabaseCommand(_Variant):
    """A store-mutation step. database/namespace here are the step's target, not where it is stored."""

    snl_template: str = ""
    database: str = ""
    namespace: str = ""
    entity: str = ""
    operation: str = "view"
    field_mappings: Any = Field(default_factory=list)
    output_bag: str = "latest"


__all__ = [
    "AICommand",
    "AlertCommand",
    "Command",
    "CommandType",
    "DatabaseCommand",
    "FrontendCommand",
    "GotoCommand",
    "IMMUTABLE_FIELDS",
    "IfCommand",
    "RootCommand",
    "ScriptCommand",
    "TimerCommand",
]
