"""Mapping from field types to input controls.

Every FieldType must map to exactly one ControlKind. control_for() raises
for a type it does not know, so adding a new field type fails loudly
until each control-dependent code path handles it.
"""

from __future__ import annotations

import re
from enum import Enum

from formtree.lib.conditions import to_text
from formtree.lib.fields import FieldConfig, FieldType, FieldValue

__all__ = ["ControlKind", "coerce_input", "control_for", "display_value"]

_INTEGER = re.compile(r"^[+-]?\d+$")
_FLOAT = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


class ControlKind(str, Enum):
    """Input controls a renderer has to provide."""

    TEXT_INPUT = "text_input"
    EMAIL_INPUT = "email_input"
    PASSWORD_INPUT = "password_input"
    NUMBER_INPUT = "number_input"
    RADIO_GROUP = "radio_group"


def control_for(field_type: FieldType) -> ControlKind:
    """Get the control used to edit a field type."""
    if field_type is FieldType.TEXT:
        return ControlKind.TEXT_INPUT
    elif field_type is FieldType.EMAIL:
        return ControlKind.EMAIL_INPUT
    elif field_type is FieldType.PASSWORD:
        return ControlKind.PASSWORD_INPUT
    elif field_type is FieldType.NUMBER:
        return ControlKind.NUMBER_INPUT
    elif field_type is FieldType.RADIO:
        return ControlKind.RADIO_GROUP
    raise ValueError(f"No control for field type: {field_type!r}")


def coerce_input(config: FieldConfig, text: str) -> FieldValue:
    """Convert text typed into a control into a snapshot value.

    Number inputs produce int or float (an empty input stays ""), radio
    groups accept an option value or, case-insensitively, an option label,
    and text-like inputs keep the text unchanged.

    Raises:
        ValueError: If the text is not acceptable for the control
    """
    kind = control_for(config.type)

    if kind is ControlKind.NUMBER_INPUT:
        stripped = text.strip()
        if not stripped:
            return ""
        if _INTEGER.match(stripped):
            return int(stripped)
        if _FLOAT.match(stripped):
            return float(stripped)
        raise ValueError(f"'{text}' is not a number")

    if kind is ControlKind.RADIO_GROUP:
        stripped = text.strip()
        for option in config.options:
            if option.value == stripped:
                return option.value
        for option in config.options:
            if option.label.lower() == stripped.lower():
                return option.value
        raise ValueError(
            f"'{text}' is not one of: {', '.join(config.option_values())}"
        )

    return text


def display_value(config: FieldConfig, value: object) -> str:
    """Render a stored value for display next to its field."""
    if value is None:
        return ""
    kind = control_for(config.type)
    if kind is ControlKind.PASSWORD_INPUT:
        return "*" * len(to_text(value))
    if kind is ControlKind.RADIO_GROUP:
        for option in config.options:
            if option.value == value:
                return f"{option.label} ({option.value})"
    return to_text(value)
