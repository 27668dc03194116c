"""Command type registry: discriminator -> (model, validator).

construct() builds the right model for a commandType and falls back to the
base Command for types nobody registered. validate() runs the base rules,
the type's own rules and the tag-name rules, and never raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import pydantic

from ..exceptions import ValidationError
from ..naming import NameGuard, NameKind
from .models import (
    AICommand,
    AlertCommand,
    Command,
    CommandType,
    DatabaseCommand,
    FrontendCommand,
    GotoCommand,
    IfCommand,
    RootCommand,
    ScriptCommand,
    TimerCommand,
)
from .validators import (
    Validator,
    validate_ai,
    validate_alert,
    validate_base,
    validate_database,
    validate_frontend,
    validate_goto,
    validate_if,
    validate_nothing,
    validate_root,
    validate_script,
    validate_timer,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandTypeEntry:
    model: type[Command]
    validator: Validator


class CommandTypeRegistry:
    """Maps command types to their model and validator."""

    def __init__(self, guard: NameGuard | None = None) -> None:
        self._entries: dict[str, CommandTypeEntry] = {}
        self._guard = guard or NameGuard()

    def register(self, command_type: str, model: type[Command], validator: Validator = validate_nothing) -> None:
        if not command_type:
            raise ValueError("command_type must be non-empty")
        self._entries[command_type] = CommandTypeEntry(model, validator)

    def is_registered(self, command_type: str) -> bool:
        return command_type in self._entries

    def types(self) -> list[str]:
        return list(self._entries)

    def construct(self, command_type: str | None, data: Mapping[str, Any]) -> Command:
        """Build the command model for ``command_type`` from ``data``.

        Unregistered types build the base Command, keeping every extra field.
        Data of the wrong shape raises ValidationError listing each problem.
        """
        command_type = command_type or str(data.get("commandType") or data.get("command_type") or "")
        entry = self._entries.get(command_type)
        payload = {k: v for k, v in data.items() if k not in ("commandType", "command_type")}
        payload["commandType"] = command_type

        if entry is None:
            # Open by default: unknown types are stored as plain commands.
            logger.debug("No registered model for command type %r; using base command", command_type)
            model: type[Command] = Command
        else:
            model = entry.model

        try:
            return model.model_validate(payload)
        except pydantic.ValidationError as e:
            violations = [f"{'.'.join(str(p) for p in err['loc']) or 'command'}: {err['msg']}" for err in e.errors()]
            raise ValidationError(violations=violations, command_type=command_type) from None

    def validate(self, command: Command) -> list[str]:
        """Return every violation for ``command``; empty means valid."""
        errors = validate_base(command)
        entry = self._entries.get(command.command_type)
        if entry is not None and isinstance(command, entry.model):
            errors.extend(entry.validator(command))
        for tag in command.tags:
            violation = self._guard.check(NameKind.TAG, tag)
            if violation is not None:
                errors.append(violation.message)
        return errors


def build_default_registry(guard: NameGuard | None = None) -> CommandTypeRegistry:
    """Registry holding the nine built-in command types."""
    registry = CommandTypeRegistry(guard)
    registry.register(CommandType.ROOT.value, RootCommand, validate_root)
    registry.register(CommandType.FRONTEND.value, FrontendCommand, validate_frontend)
    registry.register(CommandType.SCRIPT.value, ScriptCommand, validate_script)
    registry.register(CommandType.AI.value, AICommand, validate_ai)
    registry.register(CommandType.IF.value, IfCommand, validate_if)
    registry.register(CommandType.TIMER.value, TimerCommand, validate_timer)
    registry.register(CommandType.GOTO.value, GotoCommand, validate_goto)
    registry.register(CommandType.ALERT.value, AlertCommand, validate_alert)
    registry.register(CommandType.DATABASE.value, DatabaseCommand, validate_database)
    return registry


command_registry = build_default_registry()


__all__ = [
    "CommandTypeEntry",
    "CommandTypeRegistry",
    "build_default_registry",
    "command_registry",
]
