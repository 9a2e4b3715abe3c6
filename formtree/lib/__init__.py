"""Form resolution library modules.

This package contains the resolution engine (conditions, structure,
state) and the glue that feeds it (definition loading, static checks,
settings and logging).
"""

from formtree.lib.conditions import Condition, Rule, evaluate, strictly_equal, to_number, to_text
from formtree.lib.config_loader import FormDefinition, load_form, load_form_from_dict, validate_form_file
from formtree.lib.errors import (
    DefinitionError,
    DuplicateFieldError,
    FormError,
    UnknownFieldError,
    ValidationError,
)
from formtree.lib.fields import FieldConfig, FieldOption, FieldType, FieldValue, build_configs
from formtree.lib.observability import FormContextFilter, JSONFormatter, bind_form, current_form, setup_logging
from formtree.lib.settings import FormSettings, LoggingConfig, get_settings
from formtree.lib.state import FieldSource, FormState
from formtree.lib.structure import (
    Branch,
    Leaf,
    Node,
    Resolution,
    Structure,
    VisibleField,
    iter_field_names,
    parse_node,
    parse_structure,
    resolve_structure,
    top_level_names,
)
from formtree.lib.validate import (
    ValidationIssue,
    ValidationSeverity,
    format_validation_report,
    validate_and_raise,
    validate_definition,
)

__all__ = [
    # Conditions
    "Condition",
    "Rule",
    "evaluate",
    "strictly_equal",
    "to_number",
    "to_text",
    # Fields
    "FieldConfig",
    "FieldOption",
    "FieldType",
    "FieldValue",
    "build_configs",
    # Structure
    "Branch",
    "Leaf",
    "Node",
    "Resolution",
    "Structure",
    "VisibleField",
    "iter_field_names",
    "parse_node",
    "parse_structure",
    "resolve_structure",
    "top_level_names",
    # State
    "FieldSource",
    "FormState",
    # Loading and validation
    "FormDefinition",
    "load_form",
    "load_form_from_dict",
    "validate_form_file",
    "ValidationIssue",
    "ValidationSeverity",
    "format_validation_report",
    "validate_and_raise",
    "validate_definition",
    # Errors
    "DefinitionError",
    "DuplicateFieldError",
    "FormError",
    "UnknownFieldError",
    "ValidationError",
    # Settings and logging
    "FormContextFilter",
    "FormSettings",
    "JSONFormatter",
    "LoggingConfig",
    "bind_form",
    "current_form",
    "get_settings",
    "setup_logging",
]
