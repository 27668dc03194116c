"""Command (workflow-step) models, validators and the type registry."""

from .models import (
    IMMUTABLE_FIELDS,
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
from .registry import CommandTypeEntry, CommandTypeRegistry, build_default_registry, command_registry

__all__ = [
    "IMMUTABLE_FIELDS",
    "AICommand",
    "AlertCommand",
    "Command",
    "CommandType",
    "CommandTypeEntry",
    "CommandTypeRegistry",
    "DatabaseCommand",
    "FrontendCommand",
    "GotoCommand",
    "IfCommand",
    "RootCommand",
    "ScriptCommand",
    "TimerCommand",
    "build_default_registry",
    "command_registry",
]
