"""Tests for structure parsing and visible-field resolution."""

from __future__ import annotations

import logging

import pytest

from formtree.lib.conditions import Condition
from formtree.lib.errors import DefinitionError, DuplicateFieldError, UnknownFieldError
from formtree.lib.fields import build_configs
from formtree.lib.structure import (
    Branch,
    Leaf,
    iter_field_names,
    parse_node,
    parse_structure,
    resolve_structure,
    top_level_names,
)


class TestParseStructure:
    """Tests for the accepted node shapes."""

    def test_leaf(self) -> None:
        assert parse_node("email") == Leaf("email")

    def test_pair_and_mapping_shapes_are_equivalent(self) -> None:
        """[gate, {...}] and {gate, ...} parse to the same Branch."""
        pair = parse_node(["B", {"condition": {"rule": "is_equal", "value": "x"}, "children": "C"}])
        mapping = parse_node({"gate": "B", "condition": {"rule": "is_equal", "value": "x"}, "children": ["C"]})

        assert pair == mapping
        assert pair == Branch("B", Condition.equals("x"), (Leaf("C"),))

    def test_single_pair_child_is_wrapped(self) -> None:
        """A lone [gate, {...}] child is one nested branch, not a list of two nodes."""
        node = parse_node([
            "A",
            {
                "condition": {"rule": "is_equal", "value": "a"},
                "children": ["B", {"condition": {"rule": "is_equal", "value": "b"}, "children": "C"}],
            },
        ])

        assert isinstance(node, Branch)
        assert len(node.children) == 1
        assert node.children[0] == Branch("B", Condition.equals("b"), (Leaf("C"),))

    def test_leaf_then_mapping_branch_are_siblings(self) -> None:
        """A two-item children list of a leaf and a {gate, ...} branch is not a pair."""
        node = parse_node({
            "gate": "student",
            "condition": {"rule": "is_equal", "value": "yes"},
            "children": [
                "school",
                {
                    "gate": "study_year",
                    "condition": {"rule": "is_between", "min": 1, "max": 4},
                    "children": "student_card",
                },
            ],
        })

        assert node.children == (
            Leaf("school"),
            Branch("study_year", Condition.between(1, 4), (Leaf("student_card"),)),
        )

    def test_list_of_children(self) -> None:
        node = parse_node({
            "gate": "A",
            "condition": {"rule": "contains", "value": "x"},
            "children": ["B", "C"],
        })
        assert node.children == (Leaf("B"), Leaf("C"))

    def test_missing_children(self) -> None:
        with pytest.raises(DefinitionError, match="has no children"):
            parse_node({"gate": "A", "condition": {"rule": "is_equal", "value": 1}})

    def test_empty_children(self) -> None:
        with pytest.raises(DefinitionError, match="must not be empty"):
            parse_node({"gate": "A", "condition": {"rule": "is_equal", "value": 1}, "children": []})

    def test_unrecognised_node(self) -> None:
        with pytest.raises(DefinitionError, match="Unrecognised structure node"):
            parse_structure([42])

    def test_empty_name(self) -> None:
        with pytest.raises(DefinitionError, match="must not be empty"):
            parse_structure([""])

    def test_structure_must_be_a_list(self) -> None:
        with pytest.raises(DefinitionError, match="must be a list"):
            parse_structure("A")  # type: ignore[arg-type]

    def test_error_location(self) -> None:
        """Errors carry the path of the offending node."""
        with pytest.raises(DefinitionError) as exc_info:
            parse_structure(["A", {"gate": "B", "condition": {"rule": "is_less_than"}, "children": "C"}])

        assert exc_info.value.location == "structure[1].B.condition"


class TestInspection:
    """Tests for top_level_names and iter_field_names."""

    def test_top_level_names_include_gates(self, abc_structure) -> None:
        assert top_level_names(abc_structure) == ["A", "B"]

    def test_iter_field_names(self, contact_structure) -> None:
        names = list(iter_field_names(contact_structure))

        assert ("phone_number", ("contact",)) in names
        assert ("guardian_phone", ("age", "guardian")) in names
        assert names[0] == ("full_name", ())


class TestResolveStructure:
    """Tests for resolve_structure."""

    def test_branch_open(self, abc_configs, abc_structure) -> None:
        """The matching gate reveals its children, with the walk-counter ids."""
        fields, visited = resolve_structure(abc_structure, abc_configs, {"B": "x"})

        assert [f.name for f in fields] == ["A", "B", "C"]
        assert [f.id for f in fields] == ["A2", "B3", "C5"]
        assert [f.position for f in fields] == [0, 1, 2]
        assert visited == ["A", "B", "C"]

    def test_branch_closed(self, abc_configs, abc_structure) -> None:
        resolution = resolve_structure(abc_structure, abc_configs, {"B": "y"})
        assert resolution.names == ["A", "B"]

    def test_missing_gate_value_hides_children(self, abc_configs, abc_structure) -> None:
        """An undefined gate value never evaluates the condition."""
        structure = (Branch("B", Condition.not_equals("x"), (Leaf("C"),)),)

        assert resolve_structure(structure, abc_configs, {}).names == ["B"]
        assert resolve_structure(structure, abc_configs, {"B": None}).names == ["B"]
        assert resolve_structure(structure, abc_configs, {"B": ""}).names == ["B", "C"]

    def test_gate_always_visible(self, abc_configs) -> None:
        """A branch's gate is emitted whether or not the condition holds."""
        structure = parse_structure([{"gate": "A", "condition": {"rule": "is_equal", "value": "x"}, "children": "B"}])

        assert resolve_structure(structure, abc_configs, {"A": "nope"}).names == ["A"]

    def test_leaves_only_keep_declared_order(self, abc_configs) -> None:
        structure = parse_structure(["C", "A", "B"])
        fields, _ = resolve_structure(structure, abc_configs)

        assert [f.id for f in fields] == ["C2", "A3", "B4"]

    def test_ids_unique_across_nesting(self, abc_configs) -> None:
        """Generated ids stay unique when branches are nested."""
        structure = parse_structure([
            ["A", {
                "condition": {"rule": "is_equal", "value": "a"},
                "children": ["B", {"condition": {"rule": "is_equal", "value": "b"}, "children": "C"}],
            }],
        ])
        fields, _ = resolve_structure(structure, abc_configs, {"A": "a", "B": "b"})

        ids = [f.id for f in fields]
        assert ids == ["A2", "B4", "C6"]
        assert len(set(ids)) == len(ids)

    def test_visible_field_to_dict(self, abc_configs, abc_structure) -> None:
        fields, _ = resolve_structure(abc_structure, abc_configs)

        assert fields[0].to_dict() == {
            "name": "A",
            "type": "text",
            "label": "A",
            "placeholder": "",
            "required": False,
            "defaultValue": "a",
            "id": "A2",
        }

    def test_pure(self, contact_configs, contact_structure) -> None:
        """Same inputs resolve to the same output."""
        values = {"contact": "phone", "age": 12, "guardian": "Kim"}

        first = resolve_structure(contact_structure, contact_configs, values)
        second = resolve_structure(contact_structure, contact_configs, dict(values))

        assert first == second
        assert first.names == ["full_name", "contact", "phone_number", "age", "guardian", "guardian_phone"]

    def test_unknown_field(self, abc_configs) -> None:
        """A reached node without a config raises UnknownFieldError."""
        structure = parse_structure(["A", "Z"])

        with pytest.raises(UnknownFieldError) as exc_info:
            resolve_structure(structure, abc_configs)

        assert exc_info.value.field_name == "Z"
        assert exc_info.value.message == "Config not found for field: Z"

    def test_unknown_field_in_hidden_branch_is_not_reached(self, abc_configs) -> None:
        structure = parse_structure([{"gate": "A", "condition": {"rule": "is_equal", "value": "x"}, "children": "Z"}])

        assert resolve_structure(structure, abc_configs, {"A": "y"}).names == ["A"]

        with pytest.raises(UnknownFieldError) as exc_info:
            resolve_structure(structure, abc_configs, {"A": "x"})
        assert exc_info.value.path == ["A", "Z"]

    def test_duplicate_field(self, abc_configs) -> None:
        """A field reached twice in one pass raises DuplicateFieldError."""
        structure = parse_structure([
            "A",
            {"gate": "B", "condition": {"rule": "contains", "value": ""}, "children": "A"},
        ])

        with pytest.raises(DuplicateFieldError) as exc_info:
            resolve_structure(structure, abc_configs, {"B": "b"})

        assert exc_info.value.field_name == "A"
        assert exc_info.value.details["path"] == "B > A"

    def test_duplicate_on_exclusive_branches_is_allowed(self, abc_configs) -> None:
        """A name may repeat on branches that are never open together."""
        structure = parse_structure([
            {"gate": "A", "condition": {"rule": "is_equal", "value": "1"}, "children": "C"},
            {"gate": "B", "condition": {"rule": "is_equal", "value": "2"}, "children": "C"},
        ])

        assert resolve_structure(structure, abc_configs, {"A": "1", "B": "3"}).names == ["A", "C", "B"]
        assert resolve_structure(structure, abc_configs, {"A": "0", "B": "2"}).names == ["A", "B", "C"]

    def test_logs_at_debug(self, abc_configs, abc_structure, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="formtree.lib.structure"):
            resolve_structure(abc_structure, abc_configs)

        assert "Resolved 2 visible field(s)" in caplog.text

    def test_configs_built_from_list(self) -> None:
        """Configs not referenced in the structure are simply ignored."""
        configs = build_configs([{"name": "A", "type": "text"}, {"name": "unused", "type": "text"}])

        assert resolve_structure(parse_structure(["A"]), configs).names == ["A"]
