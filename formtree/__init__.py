"""Conditional form field resolution.

Given field definitions and a structure tree of conditional branches,
formtree works out which fields are visible for the current values, in
display order, and keeps a value store consistent as values change.

Usage:
    from formtree import load_form

    form = load_form("forms/contact.yaml")
    state = form.new_state()
    visible = state.set_value("contact", "phone")
"""

from formtree.lib import (
    Branch,
    Condition,
    DuplicateFieldError,
    FieldConfig,
    FieldType,
    FormDefinition,
    FormError,
    FormState,
    Leaf,
    UnknownFieldError,
    VisibleField,
    build_configs,
    evaluate,
    load_form,
    load_form_from_dict,
    parse_structure,
    resolve_structure,
)

__version__ = "1.0.0"

__all__ = [
    "Branch",
    "Condition",
    "DuplicateFieldError",
    "FieldConfig",
    "FieldType",
    "FormDefinition",
    "FormError",
    "FormState",
    "Leaf",
    "UnknownFieldError",
    "VisibleField",
    "build_configs",
    "evaluate",
    "load_form",
    "load_form_from_dict",
    "parse_structure",
    "resolve_structure",
]
