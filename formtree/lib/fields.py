"""Field definitions.

A form is declared as a dictionary of FieldConfig keyed by field name.
The name is the primary key: it must be unique across the dictionary and
must match the key it is stored under.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from formtree.lib.errors import DefinitionError

__all__ = [
    "FieldConfig",
    "FieldOption",
    "FieldType",
    "FieldValue",
    "build_configs",
]

FieldValue = Union[str, int, float, bool]


class FieldType(str, Enum):
    """Closed set of control kinds a field can declare."""

    TEXT = "text"
    EMAIL = "email"
    PASSWORD = "password"
    NUMBER = "number"
    RADIO = "radio"

    @property
    def is_choice(self) -> bool:
        return self is FieldType.RADIO


class FieldOption(BaseModel):
    """One selectable option of a choice field."""

    model_config = ConfigDict(frozen=True)

    value: str
    label: str


class FieldConfig(BaseModel):
    """Pydantic model for a single field definition.

    Example:
        >>> config = FieldConfig(
        ...     name="contact",
        ...     type="radio",
        ...     label="Preferred contact",
        ...     defaultValue="email",
        ...     options=[
        ...         {"value": "email", "label": "E-mail"},
        ...         {"value": "phone", "label": "Phone"},
        ...     ],
        ... )
        >>> config.default_value
        'email'
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Unique field name")
    type: FieldType = Field(..., description="Control kind")
    label: str = Field(default="", description="Human-readable label")
    placeholder: str = Field(default="", description="Placeholder text for empty inputs")
    required: bool = Field(default=False, description="Whether the control is marked required")
    default_value: FieldValue = Field(
        default="",
        alias="defaultValue",
        description="Value seeded when the field first becomes visible",
    )
    options: Tuple[FieldOption, ...] = Field(
        default=(),
        description="Ordered options for choice fields",
    )

    @model_validator(mode="after")
    def validate_options(self) -> "FieldConfig":
        """Choice fields need options and a default that is one of them."""
        if self.type.is_choice:
            if not self.options:
                raise ValueError(f"{self.type.value} field '{self.name}' requires at least one option")
            option_values = [option.value for option in self.options]
            if len(set(option_values)) != len(option_values):
                raise ValueError(f"{self.type.value} field '{self.name}' has duplicate option values")
            if self.default_value not in option_values:
                raise ValueError(
                    f"defaultValue {self.default_value!r} of '{self.name}' "
                    f"must be one of its option values: {option_values}"
                )
        elif self.options:
            raise ValueError(f"{self.type.value} field '{self.name}' does not take options")
        return self

    @property
    def is_choice(self) -> bool:
        return self.type.is_choice

    @property
    def display_label(self) -> str:
        """Label to show, falling back to a title-cased name."""
        return self.label or self.name.replace("_", " ").title()

    def option_values(self) -> list[str]:
        return [option.value for option in self.options]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase mapping the rendering side consumes."""
        data = self.model_dump(by_alias=True, mode="json", exclude={"options"})
        if self.is_choice:
            data["options"] = [option.model_dump() for option in self.options]
        return data


def _parse_config(raw: Any, location: str) -> FieldConfig:
    if isinstance(raw, FieldConfig):
        return raw
    if not isinstance(raw, Mapping):
        raise DefinitionError(
            f"Field config must be a mapping, got {type(raw).__name__}",
            location=location,
        )
    try:
        return FieldConfig.model_validate(raw)
    except ValidationError as e:
        raise DefinitionError(
            f"Invalid field config: {e.error_count()} error(s)",
            location=location,
            cause=e,
        ) from e


def build_configs(
    raw: Union[Mapping[str, Any], Iterable[Any]],
) -> Dict[str, FieldConfig]:
    """Build the configs dictionary from a mapping or a list of configs.

    Args:
        raw: Either ``{name: config}`` (the config may omit ``name``) or a
            list of configs that each carry their own ``name``

    Returns:
        Dict of field name -> FieldConfig, in declaration order

    Raises:
        DefinitionError: If a config is invalid, a mapping key disagrees
            with the config's name, or a name is declared twice
    """
    configs: Dict[str, FieldConfig] = {}

    if isinstance(raw, Mapping):
        for key, value in raw.items():
            location = f"fields.{key}"
            if isinstance(value, Mapping) and "name" not in value:
                value = {**value, "name": key}
            config = _parse_config(value, location)
            if config.name != key:
                raise DefinitionError(
                    f"Field stored under '{key}' is named '{config.name}'",
                    location=location,
                    suggestion="Keys of the fields mapping must equal each field's name.",
                )
            configs[key] = config
        return configs

    for index, value in enumerate(raw):
        config = _parse_config(value, f"fields[{index}]")
        if config.name in configs:
            raise DefinitionError(
                f"Field '{config.name}' is declared more than once",
                location=f"fields[{index}]",
            )
        configs[config.name] = config
    return configs
