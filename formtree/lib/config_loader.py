"""YAML/JSON loader for form definitions.

Turns a definition file into the configs dictionary and structure the
engine consumes. The engine itself never reads files; this module is the
collaborator that supplies its inputs.

Example YAML (contact.yaml):
    name: contact
    fields:
      - name: full_name
        type: text
        label: Full name
      - name: contact
        type: radio
        label: Preferred contact
        defaultValue: email
        options:
          - {value: email, label: E-mail}
          - {value: phone, label: Phone}
      - name: phone_number
        type: text
        label: Phone number

    structure:
      - full_name
      - gate: contact
        condition: {rule: is_equal, value: phone}
        children: phone_number

Usage:
    # Command line
    formtree resolve ./forms/contact.yaml --set contact=phone

    # Python API
    from formtree.lib.config_loader import load_form
    form = load_form("./forms/contact.yaml")
    state = form.new_state()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from formtree.lib.errors import DefinitionError, FormError
from formtree.lib.fields import FieldConfig, FieldValue, build_configs
from formtree.lib.state import FormState
from formtree.lib.structure import Branch, Structure, parse_structure

logger = logging.getLogger(__name__)

__all__ = [
    "FormDefinition",
    "load_form",
    "load_form_from_dict",
    "validate_form_file",
]


@dataclass(frozen=True)
class FormDefinition:
    """Configs and structure for one form session.

    Attributes:
        configs: Field configs by name, in declaration order
        structure: Parsed structure tree
        name: Optional form name
        description: Optional human-readable description
        source_path: File the definition was loaded from, if any
    """

    configs: Dict[str, FieldConfig]
    structure: Structure
    name: Optional[str] = None
    description: str = ""
    source_path: Optional[Path] = None

    def new_state(self, values: Optional[Mapping[str, FieldValue]] = None) -> FormState:
        """Start a FormState session for this definition."""
        return FormState(self.configs, self.structure, values, form_name=self.name)

    def explain(self) -> str:
        """Human-readable outline of the structure."""
        lines = [f"Form: {self.name or '(unnamed)'}"]
        if self.description:
            lines.append(f"  {self.description}")
        lines.append("")
        lines.extend(_outline(self.structure, indent=1))
        return "\n".join(lines)


def _outline(structure: Structure, indent: int) -> List[str]:
    lines: List[str] = []
    pad = "  " * indent
    for node in structure:
        if isinstance(node, Branch):
            lines.append(f"{pad}{node.gate}  (when {node.condition})")
            lines.extend(_outline(node.children, indent + 1))
        else:
            lines.append(f"{pad}{node.name}")
    return lines


def load_form_from_dict(
    data: Mapping[str, Any],
    *,
    source_path: Optional[Path] = None,
) -> FormDefinition:
    """Build a FormDefinition from an already-parsed mapping.

    Raises:
        DefinitionError: If required sections are missing or malformed
    """
    if not isinstance(data, Mapping):
        raise DefinitionError(
            f"Form definition must be a mapping, got {type(data).__name__}",
            location=str(source_path) if source_path else None,
        )

    if "fields" not in data:
        raise DefinitionError("Form definition requires a 'fields' section")
    if "structure" not in data:
        raise DefinitionError("Form definition requires a 'structure' section")

    fields = data["fields"]
    if not isinstance(fields, (Mapping, list)):
        raise DefinitionError(
            "'fields' must be a list of field configs or a mapping of name to config",
            location="fields",
        )

    configs = build_configs(fields)
    structure = parse_structure(data["structure"])

    definition = FormDefinition(
        configs=configs,
        structure=structure,
        name=data.get("name"),
        description=data.get("description", "") or "",
        source_path=source_path,
    )
    logger.debug(
        "Loaded form %s: %d field config(s), %d root node(s)",
        definition.name or "(unnamed)",
        len(configs),
        len(structure),
    )
    return definition


def load_form(config_path: Union[str, Path]) -> FormDefinition:
    """Load a form definition from a YAML (or JSON) file.

    Args:
        config_path: Path to the definition file

    Returns:
        FormDefinition ready to start a session

    Raises:
        DefinitionError: If the definition is invalid
        FileNotFoundError: If the file doesn't exist
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Form definition not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise DefinitionError(
                "Invalid YAML syntax",
                location=str(config_path),
                cause=e,
            ) from e

    if not data:
        raise DefinitionError("Empty form definition", location=str(config_path))

    definition = load_form_from_dict(data, source_path=config_path)
    if definition.name is None:
        definition = replace(definition, name=config_path.stem)
    return definition


def validate_form_file(config_path: Union[str, Path]) -> List[str]:
    """Load a definition file and report problems without raising.

    Returns:
        List of error messages (empty if the file loads and passes the
        static checks)
    """
    from formtree.lib.validate import ValidationSeverity, validate_definition

    try:
        definition = load_form(config_path)
    except (FormError, FileNotFoundError) as e:
        return [str(e)]

    return [
        str(issue)
        for issue in validate_definition(definition)
        if issue.severity == ValidationSeverity.ERROR
    ]
