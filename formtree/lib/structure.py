"""Form structure tree and visible-field resolution.

The structure declares field order and conditional branches. Each node is
either a Leaf (a bare field name) or a Branch: a gate field plus a
condition and the children shown when the gate's current value satisfies
it. Children may themselves be leaves or branches, so a form can nest
arbitrarily deep.

Resolution is a pre-order, left-to-right walk that emits every field
reached, in order, together with a generated id. It is pure: the same
structure, configs and values always resolve to the same output.

Example:
    >>> from formtree.lib.fields import build_configs
    >>> configs = build_configs([
    ...     {"name": "name", "type": "text"},
    ...     {"name": "contact", "type": "text"},
    ...     {"name": "phone_number", "type": "text"},
    ... ])
    >>> structure = parse_structure([
    ...     "name",
    ...     ["contact", {
    ...         "condition": {"rule": "is_equal", "value": "phone"},
    ...         "children": "phone_number",
    ...     }],
    ... ])
    >>> fields, visited = resolve_structure(structure, configs, {"contact": "phone"})
    >>> [f.id for f in fields]
    ['name2', 'contact3', 'phone_number5']
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Set, Tuple, Union

from formtree.lib.conditions import Condition, evaluate
from formtree.lib.errors import DefinitionError, DuplicateFieldError, UnknownFieldError
from formtree.lib.fields import FieldConfig

logger = logging.getLogger(__name__)

__all__ = [
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
]


@dataclass(frozen=True)
class Leaf:
    """A field that is shown whenever its parent is shown."""

    name: str


@dataclass(frozen=True)
class Branch:
    """A gate field whose value decides whether its children are shown."""

    gate: str
    condition: Condition
    children: Tuple["Node", ...]

    @property
    def name(self) -> str:
        return self.gate


Node = Union[Leaf, Branch]
Structure = Tuple[Node, ...]


@dataclass(frozen=True)
class VisibleField:
    """A field included in the current resolution.

    Attributes:
        config: The field's definition
        id: Generated identifier, the name followed by the walk counter
        position: Index in the resolved output
    """

    config: FieldConfig
    id: str
    position: int

    @property
    def name(self) -> str:
        return self.config.name

    def to_dict(self) -> Dict[str, Any]:
        """Render as ``{config fields..., id}`` for the rendering side."""
        return {**self.config.to_dict(), "id": self.id}


class Resolution(NamedTuple):
    """Output of one resolution pass.

    Unpacks as ``fields, visited = resolve_structure(...)``.
    """

    fields: List[VisibleField]
    visited: List[str]

    @property
    def names(self) -> List[str]:
        return [field.name for field in self.fields]


# =============================================================================
# Parsing
# =============================================================================


def _is_branch_pair(raw: Any) -> bool:
    # ["leaf", {gate: ...}] is two sibling nodes, not a pair
    return (
        isinstance(raw, (list, tuple))
        and len(raw) == 2
        and isinstance(raw[0], str)
        and isinstance(raw[1], Mapping)
        and "condition" in raw[1]
        and "gate" not in raw[1]
    )


def parse_node(raw: Any, *, location: str = "structure") -> Node:
    """Parse one structure node.

    Accepted shapes:
        - ``"field"``: a Leaf
        - ``["gate", {"condition": {...}, "children": ...}]``: a Branch
        - ``{"gate": "gate", "condition": {...}, "children": ...}``: a Branch

    ``children`` may be a single node or a list of nodes.
    """
    if isinstance(raw, (Leaf, Branch)):
        return raw

    if isinstance(raw, str):
        if not raw:
            raise DefinitionError("Field name must not be empty", location=location)
        return Leaf(raw)

    if _is_branch_pair(raw):
        gate, body = raw
        return _parse_branch(gate, body, location)

    if isinstance(raw, Mapping) and "gate" in raw:
        gate = raw["gate"]
        if not isinstance(gate, str) or not gate:
            raise DefinitionError("Branch 'gate' must be a field name", location=location)
        return _parse_branch(gate, raw, location)

    raise DefinitionError(
        f"Unrecognised structure node: {raw!r}",
        location=location,
        suggestion=(
            "Use a field name, a [gate, {condition, children}] pair, "
            "or a {gate, condition, children} mapping."
        ),
    )


def _parse_branch(gate: str, body: Mapping[str, Any], location: str) -> Branch:
    here = f"{location}.{gate}"
    if "children" not in body:
        raise DefinitionError(f"Branch on '{gate}' has no children", location=here)
    condition = Condition.from_dict(body["condition"], location=f"{here}.condition")
    children = _parse_children(body["children"], f"{here}.children")
    return Branch(gate=gate, condition=condition, children=children)


def _parse_children(raw: Any, location: str) -> Structure:
    # A single node, including a bare [gate, {...}] pair, is wrapped as a one-element sequence
    if isinstance(raw, (list, tuple)) and not _is_branch_pair(raw):
        if not raw:
            raise DefinitionError("Branch children must not be empty", location=location)
        return tuple(
            parse_node(item, location=f"{location}[{index}]")
            for index, item in enumerate(raw)
        )
    return (parse_node(raw, location=location),)


def parse_structure(raw: Sequence[Any]) -> Structure:
    """Parse a whole structure (a sequence of nodes).

    Raises:
        DefinitionError: If the structure or any node is malformed
    """
    if isinstance(raw, (str, Mapping)) or not isinstance(raw, (list, tuple)):
        raise DefinitionError(
            f"Structure must be a list of nodes, got {type(raw).__name__}",
            location="structure",
        )
    return tuple(
        parse_node(item, location=f"structure[{index}]")
        for index, item in enumerate(raw)
    )


# =============================================================================
# Inspection helpers
# =============================================================================


def top_level_names(structure: Structure) -> List[str]:
    """Names reachable without evaluating any condition (root leaves and gates)."""
    return [node.name for node in structure]


def iter_field_names(structure: Structure) -> Iterator[Tuple[str, Tuple[str, ...]]]:
    """Yield every field name in the tree with the gates leading to it.

    Hidden or not, every occurrence is yielded, so a name that appears on
    two branches is yielded twice.
    """
    for node in structure:
        yield node.name, ()
        if isinstance(node, Branch):
            for name, gates in iter_field_names(node.children):
                yield name, (node.gate, *gates)


# =============================================================================
# Resolution
# =============================================================================


class _Walk:
    """Accumulates one resolution pass."""

    def __init__(self, configs: Mapping[str, FieldConfig], values: Mapping[str, Any]) -> None:
        self.configs = configs
        self.values = values
        self.fields: List[VisibleField] = []
        self.visited: List[str] = []
        self._seen: Set[str] = set()

    def add(self, name: str, depth: int, path: List[str]) -> None:
        config = self.configs.get(name)
        if config is None:
            raise UnknownFieldError(name, path=path)
        if name in self._seen:
            raise DuplicateFieldError(name, path=path)

        self.fields.append(VisibleField(config=config, id=f"{name}{depth}", position=len(self.fields)))
        self.visited.append(name)
        self._seen.add(name)

    def walk(self, nodes: Structure, depth: int, path: List[str]) -> None:
        # depth only disambiguates ids; each level keeps its own counter
        for node in nodes:
            depth += 1
            here = [*path, node.name]
            self.add(node.name, depth, here)

            if isinstance(node, Leaf):
                continue

            value = self.values.get(node.gate)
            if value is None:
                continue

            if evaluate(node.condition, value):
                depth += 1
                self.walk(node.children, depth, here)


def resolve_structure(
    structure: Structure,
    configs: Mapping[str, FieldConfig],
    values: Optional[Mapping[str, Any]] = None,
) -> Resolution:
    """Resolve the ordered list of currently visible fields.

    Args:
        structure: Parsed structure (see parse_structure)
        configs: Field configs by name
        values: Current value snapshot; a missing or None gate value hides
            the gate's children

    Returns:
        Resolution with the visible fields in display order and the names
        visited, in the same order

    Raises:
        UnknownFieldError: A reached node names a field with no config
        DuplicateFieldError: A field is reached twice in this pass
    """
    walk = _Walk(configs, values or {})
    walk.walk(structure, 1, [])

    logger.debug(
        "Resolved %d visible field(s) from %d root node(s)",
        len(walk.fields),
        len(structure),
    )
    return Resolution(fields=walk.fields, visited=walk.visited)
