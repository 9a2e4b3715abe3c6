"""Form value store.

FormState owns the current value snapshot of a form session and keeps it
consistent with the structure: every mutation re-resolves the visible
fields and seeds defaults for fields that became visible without a value.

Values of fields that become hidden are deliberately kept. If the field
is shown again later it comes back with the value the user last gave it,
not with its default.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional

from formtree.lib.errors import UnknownFieldError
from formtree.lib.fields import FieldConfig, FieldValue
from formtree.lib.structure import Resolution, Structure, VisibleField, resolve_structure, top_level_names

logger = logging.getLogger(__name__)

__all__ = ["FieldSource", "FormState", "Listener"]

Listener = Callable[[List[VisibleField]], None]


class FieldSource(str, Enum):
    """Source of a field's value."""

    DEFAULT = "default"  # Seeded from the field config
    LOCAL = "local"  # Set through set_value()


class FormState:
    """Value snapshot plus the visible fields it currently implies.

    The store is single-writer and synchronous: set_value() mutates the
    snapshot and re-resolves before returning. Callers that render the
    form either use the returned list or subscribe() to be told about
    every re-resolution.

    Example:
        >>> state = FormState(configs, structure)
        >>> visible = state.set_value("contact", "phone")
        >>> [field.name for field in visible]
        ['name', 'contact', 'phone_number']
    """

    def __init__(
        self,
        configs: Mapping[str, FieldConfig],
        structure: Structure,
        values: Optional[Mapping[str, FieldValue]] = None,
        *,
        form_name: Optional[str] = None,
    ) -> None:
        """Start a session and seed top-level defaults.

        Args:
            configs: Field configs by name
            structure: Parsed structure
            values: Initial values (e.g. a previously captured snapshot);
                these are treated as locally set
            form_name: Optional name used in log messages
        """
        self.form_name = form_name
        self._configs: Dict[str, FieldConfig] = dict(configs)
        self._structure: Structure = structure
        self._values: Dict[str, FieldValue] = {}
        self._sources: Dict[str, FieldSource] = {}
        self._listeners: List[Listener] = []
        self._version = 0
        self._resolution: Optional[Resolution] = None
        self._resolved_version = -1

        for name, value in (values or {}).items():
            self._check_known(name)
            if value is not None:
                self._values[name] = value
                self._sources[name] = FieldSource.LOCAL

        self._seed(top_level_names(structure))
        self._refresh()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def configs(self) -> Dict[str, FieldConfig]:
        return dict(self._configs)

    @property
    def structure(self) -> Structure:
        return self._structure

    @property
    def values(self) -> Dict[str, FieldValue]:
        """Copy of the full snapshot, hidden fields included."""
        return dict(self._values)

    def get_value(self, name: str) -> Optional[FieldValue]:
        """Get the current value of a field (None if it has none yet)."""
        return self._values.get(name)

    def source(self, name: str) -> Optional[FieldSource]:
        """Where the field's current value came from."""
        return self._sources.get(name)

    def current_visible(self) -> List[VisibleField]:
        """Visible fields for the current snapshot, in display order."""
        return list(self._resolve().fields)

    def is_visible(self, name: str) -> bool:
        return name in self._resolve().visited

    def visible_values(self) -> Dict[str, FieldValue]:
        """Snapshot restricted to visible fields, in display order."""
        return {
            name: self._values[name]
            for name in self._resolve().visited
            if name in self._values
        }

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_value(self, name: str, value: FieldValue) -> List[VisibleField]:
        """Set a field value and re-resolve.

        Args:
            name: Field name
            value: New value (string, number or boolean)

        Returns:
            The visible fields after the change

        Raises:
            UnknownFieldError: If no config exists for name
            ValueError: If value is None (use unset_value instead)
        """
        self._check_known(name)
        if value is None:
            raise ValueError(f"Cannot set '{name}' to None; use unset_value() to clear it")

        logger.debug("Setting %s=%r", name, value)
        self._values[name] = value
        self._sources[name] = FieldSource.LOCAL
        return self._refresh()

    def unset_value(self, name: str) -> List[VisibleField]:
        """Remove a field's value and re-resolve.

        A field that is still visible afterwards is re-seeded with its
        default by reconciliation.
        """
        self._check_known(name)
        self._values.pop(name, None)
        self._sources.pop(name, None)
        return self._refresh()

    def replace_definition(
        self,
        configs: Mapping[str, FieldConfig],
        structure: Structure,
    ) -> List[VisibleField]:
        """Swap in new configs and structure, keeping existing values.

        Only top-level fields without a value are seeded; nested fields get
        their default when their branch first resolves as visible.
        """
        self._configs = dict(configs)
        self._structure = structure
        self._seed(top_level_names(structure))
        logger.info(
            "Replaced form definition: %d field config(s), %d root node(s)",
            len(self._configs),
            len(structure),
        )
        return self._refresh()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback invoked with the visible fields after every change.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_known(self, name: str) -> None:
        if name not in self._configs:
            raise UnknownFieldError(name, form=self.form_name)

    def _seed(self, names: List[str]) -> int:
        """Insert defaults for names without a value; returns how many were added."""
        added = 0
        for name in names:
            if name in self._values:
                continue
            config = self._configs.get(name)
            if config is None:
                raise UnknownFieldError(name, form=self.form_name)
            self._values[name] = config.default_value
            self._sources[name] = FieldSource.DEFAULT
            added += 1
        if added:
            self._version += 1
        return added

    def _resolve(self) -> Resolution:
        if self._resolution is None or self._resolved_version != self._version:
            self._resolution = resolve_structure(self._structure, self._configs, self._values)
            self._resolved_version = self._version
        return self._resolution

    def _refresh(self) -> List[VisibleField]:
        """Re-resolve and reconcile until no new default is seeded.

        A freshly seeded gate default can satisfy its own condition and
        reveal more fields, so a single pass is not always enough. Each
        extra pass seeds at least one field, which bounds the loop by the
        number of configs.
        """
        self._version += 1
        resolution = self._resolve()
        while self._seed(resolution.visited):
            resolution = self._resolve()

        visible = list(resolution.fields)
        for listener in list(self._listeners):
            listener(visible)
        return visible

    def __repr__(self) -> str:
        label = f" {self.form_name!r}" if self.form_name else ""
        return f"<FormState{label} values={len(self._values)} visible={len(self._resolve().fields)}>"
