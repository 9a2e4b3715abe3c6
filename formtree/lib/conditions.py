"""Condition rules and their evaluation.

A condition is declared once as part of a branch in the form structure and
evaluated against the live value of the branch's gate field. Evaluation is
a total function: malformed operands never raise, numeric rules simply fail
to match when the value does not parse as a number.

Two behaviours are kept exactly as deployed forms rely on them:

- ``is_greater_or_equal_than`` compares with ``>``, so a value equal to the
  threshold does NOT match. This is very likely a defect in the rule set,
  but changing it would silently change which fields existing forms show.
- Any rule tag outside the known set is evaluated with ``contains``
  semantics. A warning is logged when such a condition is parsed.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from formtree.lib.errors import DefinitionError

logger = logging.getLogger(__name__)

__all__ = [
    "Condition",
    "Rule",
    "evaluate",
    "strictly_equal",
    "to_number",
    "to_text",
]

Scalar = Union[str, int, float, bool]
Operand = Union[str, int, float, bool, re.Pattern]


class Rule(str, Enum):
    """Known condition rules."""

    IS_EQUAL = "is_equal"
    IS_NOT_EQUAL = "is_not_equal"
    IS_BETWEEN = "is_between"
    IS_NOT_BETWEEN = "is_not_between"
    IS_GREATER_THAN = "is_greater_than"
    IS_GREATER_OR_EQUAL_THAN = "is_greater_or_equal_than"
    IS_LESS_THAN = "is_less_than"
    IS_LESS_OR_EQUAL_THAN = "is_less_or_equal_than"
    CONTAINS = "contains"


KNOWN_RULES = frozenset(rule.value for rule in Rule)
RANGE_RULES = frozenset({Rule.IS_BETWEEN.value, Rule.IS_NOT_BETWEEN.value})
THRESHOLD_RULES = frozenset({
    Rule.IS_GREATER_THAN.value,
    Rule.IS_GREATER_OR_EQUAL_THAN.value,
    Rule.IS_LESS_THAN.value,
    Rule.IS_LESS_OR_EQUAL_THAN.value,
})
EQUALITY_RULES = frozenset({Rule.IS_EQUAL.value, Rule.IS_NOT_EQUAL.value})

# Regex flags accepted in definitions, e.g. {rule: contains, pattern: abc, flags: i}
_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}

_DECIMAL = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_PREFIXED = re.compile(r"^0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$")
_INFINITY = {"Infinity": math.inf, "+Infinity": math.inf, "-Infinity": -math.inf}


@dataclass(frozen=True)
class Condition:
    """A single branch rule.

    Attributes:
        rule: Rule tag. Usually a ``Rule`` value; unknown tags are kept as-is
            and evaluated like ``contains``.
        value: Operand for equality, threshold and ``contains`` rules. For
            ``contains`` it is either a plain string or a compiled pattern.
        min: Lower bound for range rules (inclusive).
        max: Upper bound for range rules (inclusive).
    """

    rule: str
    value: Optional[Operand] = None
    min: Optional[float] = None
    max: Optional[float] = None

    @classmethod
    def equals(cls, value: Scalar) -> "Condition":
        return cls(Rule.IS_EQUAL.value, value=value)

    @classmethod
    def not_equals(cls, value: Scalar) -> "Condition":
        return cls(Rule.IS_NOT_EQUAL.value, value=value)

    @classmethod
    def between(cls, min: float, max: float) -> "Condition":
        return cls(Rule.IS_BETWEEN.value, min=min, max=max)

    @classmethod
    def not_between(cls, min: float, max: float) -> "Condition":
        return cls(Rule.IS_NOT_BETWEEN.value, min=min, max=max)

    @classmethod
    def greater_than(cls, threshold: float) -> "Condition":
        return cls(Rule.IS_GREATER_THAN.value, value=threshold)

    @classmethod
    def greater_or_equal_than(cls, threshold: float) -> "Condition":
        return cls(Rule.IS_GREATER_OR_EQUAL_THAN.value, value=threshold)

    @classmethod
    def less_than(cls, threshold: float) -> "Condition":
        return cls(Rule.IS_LESS_THAN.value, value=threshold)

    @classmethod
    def less_or_equal_than(cls, threshold: float) -> "Condition":
        return cls(Rule.IS_LESS_OR_EQUAL_THAN.value, value=threshold)

    @classmethod
    def contains(cls, operand: Union[str, re.Pattern]) -> "Condition":
        return cls(Rule.CONTAINS.value, value=operand)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, location: str = "condition") -> "Condition":
        """Build a condition from a definition mapping.

        Args:
            data: Mapping with a ``rule`` key and its operands
                (``value``, ``min``/``max`` or ``pattern``/``flags``)
            location: Where the mapping came from, for error messages

        Returns:
            Parsed Condition

        Raises:
            DefinitionError: If the mapping is missing its rule or a known
                rule has unusable operands
        """
        if not isinstance(data, Mapping):
            raise DefinitionError(
                f"Condition must be a mapping, got {type(data).__name__}",
                location=location,
            )

        rule = data.get("rule")
        if not isinstance(rule, str) or not rule:
            raise DefinitionError("Condition is missing its 'rule'", location=location)

        if rule in RANGE_RULES:
            low = data.get("min")
            high = data.get("max")
            if not _is_number(low) or not _is_number(high):
                raise DefinitionError(
                    f"Rule '{rule}' requires numeric 'min' and 'max'",
                    location=location,
                    details={"min": low, "max": high},
                )
            return cls(rule, min=low, max=high)

        if rule in THRESHOLD_RULES:
            threshold = data.get("value")
            if not _is_number(threshold):
                raise DefinitionError(
                    f"Rule '{rule}' requires a numeric 'value'",
                    location=location,
                    details={"value": threshold},
                )
            return cls(rule, value=threshold)

        if rule in EQUALITY_RULES:
            if "value" not in data or not isinstance(data["value"], (str, int, float, bool)):
                raise DefinitionError(
                    f"Rule '{rule}' requires a string or number 'value'",
                    location=location,
                    details={"value": data.get("value")},
                )
            return cls(rule, value=data["value"])

        if rule not in KNOWN_RULES:
            logger.warning(
                "Unknown condition rule '%s' at %s; evaluating with 'contains' semantics",
                rule,
                location,
            )

        if "pattern" in data:
            return cls(rule, value=_compile_pattern(data["pattern"], data.get("flags", ""), location))
        return cls(rule, value=data.get("value"))

    @property
    def is_known(self) -> bool:
        """Whether the rule tag is one of the known rules."""
        return self.rule in KNOWN_RULES

    @property
    def is_numeric(self) -> bool:
        """Whether the rule compares the value as a number."""
        return self.rule in RANGE_RULES or self.rule in THRESHOLD_RULES

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the mapping form accepted by from_dict()."""
        if self.rule in RANGE_RULES:
            return {"rule": self.rule, "min": self.min, "max": self.max}
        if isinstance(self.value, re.Pattern):
            flags = "".join(
                letter for letter, flag in _REGEX_FLAGS.items() if self.value.flags & flag
            )
            result: Dict[str, Any] = {"rule": self.rule, "pattern": self.value.pattern}
            if flags:
                result["flags"] = flags
            return result
        return {"rule": self.rule, "value": self.value}

    def __str__(self) -> str:
        if self.rule in RANGE_RULES:
            return f"{self.rule} [{self.min}, {self.max}]"
        if isinstance(self.value, re.Pattern):
            return f"{self.rule} /{self.value.pattern}/"
        return f"{self.rule} {self.value!r}"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _compile_pattern(pattern: Any, flags: Any, location: str) -> re.Pattern:
    if not isinstance(pattern, str):
        raise DefinitionError("'pattern' must be a string", location=location)
    compiled_flags = 0
    for letter in str(flags or ""):
        if letter not in _REGEX_FLAGS:
            raise DefinitionError(
                f"Unsupported regex flag '{letter}'",
                location=location,
                suggestion=f"Use any of: {', '.join(sorted(_REGEX_FLAGS))}",
            )
        compiled_flags |= _REGEX_FLAGS[letter]
    try:
        return re.compile(pattern, compiled_flags)
    except re.error as e:
        raise DefinitionError(
            f"Invalid regular expression: {pattern!r}",
            location=location,
            cause=e,
        ) from e


def _int_to_float(number: Union[int, float]) -> float:
    try:
        return float(number)
    except OverflowError:
        # Integers beyond float range saturate like other numeric parsing
        return math.inf if number > 0 else -math.inf


def to_number(value: Any) -> float:
    """Coerce a field value to a number using standard string parsing.

    Booleans become 1/0, numbers pass through, strings are stripped and
    parsed as decimal, exponent, ``0x``/``0o``/``0b`` or ``Infinity``
    literals; the empty string is 0. Integers too large for a float become
    +/-Infinity. Anything else is NaN.
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return _int_to_float(value)
    if not isinstance(value, str):
        return math.nan

    text = value.strip()
    if not text:
        return 0.0
    if text in _INFINITY:
        return _INFINITY[text]
    if _DECIMAL.match(text):
        return float(text)
    if _PREFIXED.match(text):
        return _int_to_float(int(text, 0))
    return math.nan


def to_text(value: Any) -> str:
    """Render a field value as text for ``contains`` matching."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def strictly_equal(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion.

    ``"1"`` never equals ``1`` and ``True`` never equals ``1``; ``1`` and
    ``1.0`` are the same number.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if _is_number(left) and _is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return False


def _is_between(condition: Condition, value: Any) -> bool:
    number = to_number(value)
    return condition.min <= number <= condition.max


def _contains(condition: Condition, value: Any) -> bool:
    operand = condition.value
    if isinstance(operand, re.Pattern):
        return operand.search(to_text(value)) is not None
    if isinstance(operand, str):
        return operand in to_text(value)
    return False


_EVALUATORS: Dict[str, Callable[[Condition, Any], bool]] = {
    Rule.IS_EQUAL.value: lambda c, v: strictly_equal(v, c.value),
    Rule.IS_NOT_EQUAL.value: lambda c, v: not strictly_equal(v, c.value),
    Rule.IS_BETWEEN.value: _is_between,
    Rule.IS_NOT_BETWEEN.value: lambda c, v: not _is_between(c, v),
    Rule.IS_GREATER_THAN.value: lambda c, v: to_number(v) > c.value,
    # Same comparison as is_greater_than; see module docstring.
    Rule.IS_GREATER_OR_EQUAL_THAN.value: lambda c, v: to_number(v) > c.value,
    Rule.IS_LESS_THAN.value: lambda c, v: to_number(v) < c.value,
    Rule.IS_LESS_OR_EQUAL_THAN.value: lambda c, v: to_number(v) <= c.value,
    Rule.CONTAINS.value: _contains,
}


def evaluate(condition: Condition, value: Any) -> bool:
    """Check whether a gate value satisfies a condition.

    Args:
        condition: Condition declared on the branch
        value: Current value of the gate field

    Returns:
        True if the branch children should be shown
    """
    evaluator = _EVALUATORS.get(condition.rule, _contains)
    return bool(evaluator(condition, value))
