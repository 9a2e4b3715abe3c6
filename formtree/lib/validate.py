"""Static checks for form definitions.

Resolution only detects unknown and duplicate fields on the paths that are
visible for the current values, so a broken branch can sit unnoticed until
a user happens to open it. These checks walk the whole tree up front and
report what resolution would eventually trip over, plus conditions that
can never match.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from formtree.lib.conditions import EQUALITY_RULES, Condition
from formtree.lib.config_loader import FormDefinition
from formtree.lib.errors import ValidationError
from formtree.lib.fields import FieldType
from formtree.lib.structure import Branch, Structure, iter_field_names

logger = logging.getLogger(__name__)

__all__ = [
    "ValidationIssue",
    "ValidationSeverity",
    "format_validation_report",
    "validate_and_raise",
    "validate_definition",
]


class ValidationSeverity(Enum):
    """Severity of validation issues."""

    ERROR = "error"  # Resolution will fail for some values
    WARNING = "warning"  # Suspicious, but resolution works


@dataclass
class ValidationIssue:
    """A validation issue found in a form definition."""

    severity: ValidationSeverity
    message: str
    field: str
    suggestion: Optional[str] = None

    def __str__(self) -> str:
        prefix = "ERROR" if self.severity == ValidationSeverity.ERROR else "WARNING"
        result = f"[{prefix}] {self.field}: {self.message}"
        if self.suggestion:
            result += f"\n  Fix: {self.suggestion}"
        return result


def _iter_branches(structure: Structure) -> Iterator[Branch]:
    for node in structure:
        if isinstance(node, Branch):
            yield node
            yield from _iter_branches(node.children)


def _is_prefix(shorter: Tuple[str, ...], longer: Tuple[str, ...]) -> bool:
    return len(shorter) <= len(longer) and longer[:len(shorter)] == shorter


def _check_names(definition: FormDefinition) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    occurrences: Dict[str, List[Tuple[str, ...]]] = defaultdict(list)

    for name, gates in iter_field_names(definition.structure):
        occurrences[name].append(gates)

    for name, paths in occurrences.items():
        if name not in definition.configs:
            where = " > ".join(paths[0]) or "top level"
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    field=name,
                    message=f"Used in the structure ({where}) but not defined in fields",
                    suggestion=f"Add a field config named '{name}'",
                )
            )

        if len(paths) < 2:
            continue

        # Two occurrences collide for sure when one path's gates lead to the other
        collides = any(
            _is_prefix(a, b) or _is_prefix(b, a)
            for i, a in enumerate(paths)
            for b in paths[i + 1:]
        )
        if collides:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    field=name,
                    message=f"Appears {len(paths)} times and two occurrences are visible together",
                    suggestion="Keep a single occurrence of the field on each visible path",
                )
            )
        else:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    field=name,
                    message=f"Appears on {len(paths)} branches",
                    suggestion="Make sure those branches can never be open at the same time",
                )
            )

    for name in definition.configs:
        if name not in occurrences:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    field=name,
                    message="Defined in fields but never used in the structure",
                )
            )

    return issues


def _check_condition(branch: Branch, definition: FormDefinition) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    condition: Condition = branch.condition
    gate = definition.configs.get(branch.gate)

    if not condition.is_known:
        issues.append(
            ValidationIssue(
                severity=ValidationSeverity.WARNING,
                field=branch.gate,
                message=f"Unknown rule '{condition.rule}' is evaluated as 'contains'",
            )
        )

    if gate is None:
        return issues

    if condition.is_numeric and gate.type not in (FieldType.NUMBER, FieldType.RADIO):
        issues.append(
            ValidationIssue(
                severity=ValidationSeverity.WARNING,
                field=branch.gate,
                message=f"Numeric rule '{condition.rule}' on a {gate.type.value} field",
                suggestion="Non-numeric input never matches numeric rules",
            )
        )

    if condition.rule in EQUALITY_RULES:
        if gate.is_choice and condition.value not in gate.option_values():
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    field=branch.gate,
                    message=f"Compares with {condition.value!r}, which is not one of its options",
                    suggestion=f"Use one of: {gate.option_values()}",
                )
            )
        elif gate.type == FieldType.NUMBER and isinstance(condition.value, str):
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    field=branch.gate,
                    message=f"Number field compared with the string {condition.value!r}",
                    suggestion="Equality is strict: use a numeric value",
                )
            )

    return issues


def validate_definition(definition: FormDefinition) -> List[ValidationIssue]:
    """Validate a form definition.

    Returns a list of validation issues. Empty list means valid.

    Example:
        >>> issues = validate_definition(load_form("contact.yaml"))
        >>> if issues:
        ...     print(format_validation_report(issues))
    """
    issues = _check_names(definition)
    for branch in _iter_branches(definition.structure):
        issues.extend(_check_condition(branch, definition))
    return issues


def validate_and_raise(definition: FormDefinition) -> None:
    """Validate a definition, logging warnings and raising on errors.

    Raises:
        ValidationError: If any validation errors are found
    """
    issues = validate_definition(definition)
    errors = [i for i in issues if i.severity == ValidationSeverity.ERROR]
    warnings = [i for i in issues if i.severity == ValidationSeverity.WARNING]

    for warning in warnings:
        logger.warning(str(warning))

    if errors:
        raise ValidationError(
            "Form definition validation failed",
            form=definition.name,
            issues=[str(e) for e in errors],
        )


def format_validation_report(issues: List[ValidationIssue]) -> str:
    """Format validation issues as a readable report."""
    if not issues:
        return "Form definition is valid."

    errors = [i for i in issues if i.severity == ValidationSeverity.ERROR]
    warnings = [i for i in issues if i.severity == ValidationSeverity.WARNING]

    lines = []

    if errors:
        lines.append(f"Found {len(errors)} error(s):")
        lines.append("-" * 40)
        for error in errors:
            lines.append(str(error))
            lines.append("")

    if warnings:
        lines.append(f"Found {len(warnings)} warning(s):")
        lines.append("-" * 40)
        for warning in warnings:
            lines.append(str(warning))
            lines.append("")

    return "\n".join(lines)
