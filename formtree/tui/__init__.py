"""prompt_toolkit front end for filling forms in a terminal.

Usage:
    python -m formtree fill forms/contact.yaml
"""

from __future__ import annotations

from formtree.tui.controls import ControlKind, coerce_input, control_for, display_value

__all__ = [
    "ControlKind",
    "FormFiller",
    "coerce_input",
    "control_for",
    "display_value",
]


def __getattr__(name: str):
    """Lazy import of the prompt_toolkit filler."""
    if name == "FormFiller":
        from formtree.tui.app import FormFiller
        return FormFiller
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
