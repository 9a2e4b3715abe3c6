"""Interactive terminal form filler built on prompt_toolkit.

Walks the visible fields of a FormState in display order and prompts for
each one. Every answer goes back through FormState.set_value(), so a gate
answer that opens a branch makes the newly visible children the next
prompts.
"""

from __future__ import annotations

import html
import logging
from typing import Any, Callable, Dict, Optional, Set

from prompt_toolkit import PromptSession, print_formatted_text
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.validation import Validator

from formtree.lib.conditions import to_text
from formtree.lib.fields import FieldConfig, FieldValue
from formtree.lib.state import FormState
from formtree.lib.structure import VisibleField
from formtree.tui.controls import ControlKind, coerce_input, control_for

logger = logging.getLogger(__name__)

__all__ = ["FormFiller"]

PromptFn = Callable[..., str]
OutputFn = Callable[[Any], None]


def _is_valid(config: FieldConfig, text: str) -> bool:
    try:
        coerce_input(config, text)
    except ValueError:
        return False
    return True


def _validator_for(config: FieldConfig) -> Optional[Validator]:
    kind = control_for(config.type)
    if kind is ControlKind.NUMBER_INPUT:
        return Validator.from_callable(
            lambda text: _is_valid(config, text),
            error_message="Enter a number",
            move_cursor_to_end=True,
        )
    if kind is ControlKind.RADIO_GROUP:
        return Validator.from_callable(
            lambda text: _is_valid(config, text),
            error_message=f"Choose one of: {', '.join(config.option_values())}",
            move_cursor_to_end=True,
        )
    return None


class FormFiller:
    """Prompt for every visible field until none is left unanswered.

    Attributes:
        state: The form session being filled
    """

    def __init__(
        self,
        state: FormState,
        *,
        prompt: Optional[PromptFn] = None,
        output: Optional[OutputFn] = None,
    ) -> None:
        """Initialize the filler.

        Args:
            state: Form session to fill
            prompt: Callable with PromptSession.prompt's signature; defaults
                to a new PromptSession
            output: Callable used to print option lists and headers;
                defaults to print_formatted_text
        """
        self.state = state
        self._prompt = prompt or PromptSession().prompt
        self._output = output or print_formatted_text
        self.answered: Set[str] = set()

    def next_field(self) -> Optional[VisibleField]:
        """First visible field that has not been prompted yet."""
        for field in self.state.current_visible():
            if field.name not in self.answered:
                return field
        return None

    def ask(self, field: VisibleField) -> FieldValue:
        """Prompt for one field and store the answer."""
        config = field.config
        kind = control_for(config.type)
        current = self.state.get_value(config.name)

        if kind is ControlKind.RADIO_GROUP:
            for option in config.options:
                self._output(HTML(f"  <b>{html.escape(option.value)}</b>  {html.escape(option.label)}"))

        marker = " *" if config.required else ""
        message = HTML(f"<b>{html.escape(config.display_label)}</b>{marker}: ")

        kwargs: Dict[str, Any] = {
            "default": "" if current is None or kind is ControlKind.PASSWORD_INPUT else to_text(current),
            "is_password": kind is ControlKind.PASSWORD_INPUT,
            "validator": _validator_for(config),
            "validate_while_typing": False,
        }
        if config.placeholder:
            kwargs["placeholder"] = HTML(f"<i>{html.escape(config.placeholder)}</i>")
        if kind is ControlKind.RADIO_GROUP:
            kwargs["completer"] = WordCompleter(config.option_values())

        text = self._prompt(message, **kwargs)
        if kind is ControlKind.PASSWORD_INPUT and not text and current is not None:
            # Empty answer keeps an existing password
            value = current
        else:
            value = coerce_input(config, text)

        self.answered.add(config.name)
        self.state.set_value(config.name, value)
        logger.debug("Answered %s (%s)", config.name, field.id)
        return value

    def run(self) -> Dict[str, FieldValue]:
        """Prompt until every visible field has been answered.

        Returns:
            Values of the fields visible at the end, in display order
        """
        field = self.next_field()
        while field is not None:
            self.ask(field)
            field = self.next_field()
        return self.state.visible_values()
