"""Shared fixtures for formtree tests."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Generator

import pytest

from formtree.lib.fields import FieldConfig, build_configs
from formtree.lib.structure import Structure, parse_structure


@pytest.fixture
def abc_configs() -> Dict[str, FieldConfig]:
    """Three text fields A, B, C with distinct defaults."""
    return build_configs([
        {"name": "A", "type": "text", "label": "A", "defaultValue": "a"},
        {"name": "B", "type": "text", "label": "B", "defaultValue": "b"},
        {"name": "C", "type": "text", "label": "C", "defaultValue": "c"},
    ])


@pytest.fixture
def abc_structure() -> Structure:
    """[A, (B, is_equal "x" -> C)]."""
    return parse_structure([
        "A",
        ["B", {"condition": {"rule": "is_equal", "value": "x"}, "children": "C"}],
    ])


@pytest.fixture
def contact_configs() -> Dict[str, FieldConfig]:
    """A contact form with a radio gate, a number gate and nested branches."""
    return build_configs([
        {"name": "full_name", "type": "text", "label": "Full name", "required": True},
        {
            "name": "contact",
            "type": "radio",
            "label": "Preferred contact",
            "defaultValue": "email",
            "options": [
                {"value": "email", "label": "E-mail"},
                {"value": "phone", "label": "Phone"},
            ],
        },
        {"name": "email", "type": "email", "label": "E-mail address"},
        {"name": "phone_number", "type": "text", "label": "Phone number"},
        {"name": "age", "type": "number", "label": "Age", "defaultValue": 0},
        {"name": "guardian", "type": "text", "label": "Guardian name"},
        {"name": "guardian_phone", "type": "text", "label": "Guardian phone"},
    ])


@pytest.fixture
def contact_structure() -> Structure:
    return parse_structure([
        "full_name",
        ["contact", {
            "condition": {"rule": "is_equal", "value": "phone"},
            "children": "phone_number",
        }],
        {
            "gate": "age",
            "condition": {"rule": "is_less_than", "value": 18},
            "children": [
                ["guardian", {
                    "condition": {"rule": "contains", "pattern": "\\w"},
                    "children": "guardian_phone",
                }],
            ],
        },
    ])


@pytest.fixture
def contact_yaml(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a form definition file on disk."""
    yaml_file = tmp_path / "contact.yaml"
    yaml_file.write_text(
        """
name: contact
description: Contact details
fields:
  - name: full_name
    type: text
    label: Full name
    required: true
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
    placeholder: "+1 555 0100"
  - name: age
    type: number
    label: Age
    defaultValue: 30
  - name: guardian
    type: text
    label: Guardian name

structure:
  - full_name
  - - contact
    - condition: {rule: is_equal, value: phone}
      children: phone_number
  - gate: age
    condition: {rule: is_less_than, value: 18}
    children: [guardian]
""",
        encoding="utf-8",
    )
    yield yaml_file


@pytest.fixture
def broken_yaml(tmp_path: Path) -> Generator[Path, None, None]:
    """A definition whose hidden branch references an undefined field."""
    yaml_file = tmp_path / "broken.yaml"
    yaml_file.write_text(
        """
fields:
  toggle:
    type: radio
    label: Toggle
    defaultValue: "off"
    options:
      - {value: "off", label: "Off"}
      - {value: "on", label: "On"}
structure:
  - gate: toggle
    condition: {rule: is_equal, value: "on"}
    children: missing_field
""",
        encoding="utf-8",
    )
    yield yaml_file
