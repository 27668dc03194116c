"""Structural validators for each command type.

Each validator takes a constructed command and returns a list of violation
messages; an empty list means the command is valid. Validators never raise.
"""

from __future__ import annotations

from typing import Any, Callable

from .models import (
    AICommand,
    AlertCommand,
    Command,
    DatabaseCommand,
    FrontendCommand,
    GotoCommand,
    IfCommand,
    RootCommand,
    ScriptCommand,
    TimerCommand,
)

Validator = Callable[[Any], list[str]]

TIMER_UNITS = ("seconds", "minutes", "hours", "days")
LOGIC_TYPES = ("and", "or")
ALERT_RECIPIENTS = ("self", "group", "user")
ALERT_OPTIONS = ("ok", "late", "cancel")
STORE_OPERATIONS = ("set", "remove", "drop", "view", "list", "search", "match", "audit")


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_base(command: Command) -> list[str]:
    errors: list[str] = []
    if _blank(command.name):
        errors.append("Command name is required")
    if _blank(command.command_type):
        errors.append("Command type is required")
    if command.order < 0:
        errors.append("Order must be non-negative")
    if command.timeout is not None and command.timeout <= 0:
        errors.append("Timeout must be greater than 0")
    return errors


def validate_root(command: RootCommand) -> list[str]:
    errors = []
    if not isinstance(command.parameters, list):
        errors.append("Parameters must be an array")
    if not isinstance(command.bags, list):
        errors.append("Bags must be an array")
    return errors


def validate_frontend(command: FrontendCommand) -> list[str]:
    errors = []
    if _blank(command.title):
        errors.append("Frontend title is required")
    if not isinstance(command.fields, list):
        errors.append("Fields must be an array")
        return errors
    for index, field in enumerate(command.fields):
        if not isinstance(field, dict):
            errors.append(f"Field {index}: must be an object")
            continue
        for key in ("name", "type", "bagName"):
            if not field.get(key):
                errors.append(f"Field {index}: {key} is required")
    return errors


def validate_script(command: ScriptCommand) -> list[str]:
    errors = []
    if _blank(command.code):
        errors.append("Script code is required")
    if _blank(command.output_bag):
        errors.append("Output bag name is required")
    return errors


def validate_ai(command: AICommand) -> list[str]:
    errors = []
    if _blank(command.prompt_template):
        errors.append("Prompt template is required")
    if _blank(command.output_bag):
        errors.append("Output bag name is required")
    return errors


def validate_if(command: IfCommand) -> list[str]:
    errors = []
    if not isinstance(command.conditions, list) or not command.conditions:
        errors.append("At least one condition is required")
    if command.logic_type not in LOGIC_TYPES:
        errors.append('Logic type must be "and" or "or"')
    if not isinstance(command.true_path, list):
        errors.append("True path must be an array")
    if not isinstance(command.false_path, list):
        errors.append("False path must be an array")

    for index, condition in enumerate(command.conditions if isinstance(command.conditions, list) else []):
        if not isinstance(condition, dict):
            errors.append(f"Condition {index}: must be an object")
            continue
        if not condition.get("bagName"):
            errors.append(f"Condition {index}: bag name is required")
        if condition.get("value") is None:
            errors.append(f"Condition {index}: value is required")
    return errors


def validate_timer(command: TimerCommand) -> list[str]:
    errors = []
    duration = command.duration
    if isinstance(duration, bool) or not isinstance(duration, (int, float)) or duration <= 0:
        errors.append("Duration must be greater than 0")
    if command.unit not in TIMER_UNITS:
        errors.append(f"Unit must be one of: {', '.join(TIMER_UNITS)}")
    return errors


def validate_goto(command: GotoCommand) -> list[str]:
    if _blank(command.target_step):
        return ["Target step is required"]
    return []


def validate_alert(command: AlertCommand) -> list[str]:
    """Alerts need nothing beyond the base; the values they do carry must be known."""
    errors = []
    if command.who not in ALERT_RECIPIENTS:
        errors.append(f"Who must be one of: {', '.join(ALERT_RECIPIENTS)}")
    elif command.who != "self" and _blank(command.target):
        errors.append("Target is required when who is not self")
    if not isinstance(command.options, list):
        errors.append("Options must be an array")
    else:
        invalid = [str(o) for o in command.options if o not in ALERT_OPTIONS]
        if invalid:
            errors.append(f"Invalid options: {', '.join(invalid)}")
    return errors


def validate_database(command: DatabaseCommand) -> list[str]:
    errors = []
    if command.operation and command.operation not in STORE_OPERATIONS:
        errors.append(f"Invalid operation. Must be one of: {', '.join(STORE_OPERATIONS)}")
    if command.field_mappings is not None and not isinstance(command.field_mappings, list):
        errors.append("Field mappings must be an array")
    return errors


def validate_nothing(command: Command) -> list[str]:
    return []


__all__ = [
    "ALERT_OPTIONS",
    "ALERT_RECIPIENTS",
    "LOGIC_TYPES",
    "STORE_OPERATIONS",
    "TIMER_UNITS",
    "Validator",
    "validate_ai",
    "validate_alert",
    "validate_base",
    "validate_database",
    "validate_frontend",
    "validate_goto",
    "validate_if",
    "validate_nothing",
    "validate_root",
    "validate_script",
    "validate_timer",
]
