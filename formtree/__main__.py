"""CLI entry point for formtree.

Usage:
    python -m formtree resolve forms/contact.yaml
    python -m formtree resolve forms/contact.yaml --set contact=phone --json
    python -m formtree check forms/contact.yaml
    python -m formtree outline forms/contact.yaml
    python -m formtree fill forms/contact.yaml

Assignments given with --set are converted the same way typed input is:
number fields take numbers, radio fields take an option value or label.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml
from pydantic import ValidationError as SettingsError

from formtree.lib.config_loader import FormDefinition, load_form
from formtree.lib.errors import FormError, UnknownFieldError
from formtree.lib.observability import bind_form, setup_logging
from formtree.lib.settings import get_settings
from formtree.lib.state import FieldSource, FormState
from formtree.lib.validate import ValidationSeverity, format_validation_report, validate_definition
from formtree.tui.controls import coerce_input, display_value

logger = logging.getLogger(__name__)


def _parse_assignment(raw: str) -> Tuple[str, str]:
    name, sep, value = raw.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Expected NAME=VALUE, got '{raw}'")
    return name.strip(), value


def apply_assignments(state: FormState, assignments: Sequence[Tuple[str, str]]) -> None:
    """Apply NAME=VALUE assignments in order, converting text per field type."""
    configs = state.configs
    for name, text in assignments:
        config = configs.get(name)
        if config is None:
            raise UnknownFieldError(name, form=state.form_name)
        try:
            value = coerce_input(config, text)
        except ValueError as e:
            raise FormError(f"Invalid value for '{name}': {e}") from e
        state.set_value(name, value)


def _resolved_rows(state: FormState) -> List[Dict[str, Any]]:
    rows = []
    for field in state.current_visible():
        value = state.get_value(field.name)
        row = field.to_dict()
        row["value"] = value
        row["source"] = (state.source(field.name) or FieldSource.DEFAULT).value
        rows.append(row)
    return rows


def print_resolution(state: FormState, as_json: bool = False) -> None:
    """Print the visible fields of a session."""
    if as_json:
        payload = {"form": state.form_name, "fields": _resolved_rows(state)}
        print(json.dumps(payload, indent=2, default=str))
        return

    fields = state.current_visible()
    if not fields:
        print("No visible fields.")
        return

    max_id = max(max(len(f.id) for f in fields), 2)
    max_label = max(max(len(f.config.display_label) for f in fields), 5)

    print(f"  {'#':>3}  {'ID':<{max_id}}  {'Label':<{max_label}}  {'Type':<8}  Value")
    print(f"  {'-' * 3}  {'-' * max_id}  {'-' * max_label}  {'-' * 8}  {'-' * 20}")
    for field in fields:
        config = field.config
        value = display_value(config, state.get_value(field.name))
        if state.source(field.name) == FieldSource.DEFAULT:
            value = f"{value} (default)".strip()
        print(
            f"  {field.position + 1:>3}  {field.id:<{max_id}}  "
            f"{config.display_label:<{max_label}}  {config.type.value:<8}  {value}"
        )


def cmd_resolve(definition: FormDefinition, args: argparse.Namespace) -> int:
    state = definition.new_state()
    apply_assignments(state, args.assignments or [])
    print_resolution(state, as_json=args.json)
    return 0


def cmd_check(definition: FormDefinition, args: argparse.Namespace) -> int:
    issues = validate_definition(definition)
    print(format_validation_report(issues))
    has_errors = any(issue.severity == ValidationSeverity.ERROR for issue in issues)
    return 1 if has_errors else 0


def cmd_outline(definition: FormDefinition, args: argparse.Namespace) -> int:
    print(definition.explain())
    return 0


def cmd_fill(definition: FormDefinition, args: argparse.Namespace) -> int:
    from formtree.tui.app import FormFiller

    state = definition.new_state()
    apply_assignments(state, args.assignments or [])
    try:
        values = FormFiller(state).run()
    except (KeyboardInterrupt, EOFError):
        print("Aborted.", file=sys.stderr)
        return 130

    print(yaml.safe_dump(values, sort_keys=False, allow_unicode=True), end="")
    return 0


COMMANDS = {
    "resolve": cmd_resolve,
    "check": cmd_check,
    "outline": cmd_outline,
    "fill": cmd_fill,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="formtree",
        description="Resolve the visible fields of a conditional form definition",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default=None,
        help="Log output format (default: FORMTREE_LOG_FORMAT or console)",
    )
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Print the visible fields for given values")
    resolve.add_argument("definition", help="Path to the form definition (YAML or JSON)")
    resolve.add_argument(
        "--set",
        dest="assignments",
        metavar="NAME=VALUE",
        action="append",
        type=_parse_assignment,
        help="Set a field value before resolving (repeatable, applied in order)",
    )
    resolve.add_argument("--json", action="store_true", help="Output JSON instead of a table")

    check = subparsers.add_parser("check", help="Validate a form definition")
    check.add_argument("definition", help="Path to the form definition (YAML or JSON)")

    outline = subparsers.add_parser("outline", help="Print the structure tree")
    outline.add_argument("definition", help="Path to the form definition (YAML or JSON)")

    fill = subparsers.add_parser("fill", help="Fill the form interactively and print the values as YAML")
    fill.add_argument("definition", help="Path to the form definition (YAML or JSON)")
    fill.add_argument(
        "--set",
        dest="assignments",
        metavar="NAME=VALUE",
        action="append",
        type=_parse_assignment,
        help="Pre-set a field value (repeatable)",
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the formtree CLI and return the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        logging_config = get_settings().logging_config(
            level="DEBUG" if args.verbose else None,
            format=args.log_format,
            file=args.log_file,
        )
    except SettingsError as e:
        print(f"Invalid FORMTREE_* settings:\n{e}", file=sys.stderr)
        return 2

    setup_logging(
        verbose=logging_config.level == "DEBUG",
        json_format=logging_config.format == "json",
        log_file=logging_config.file,
        level=logging_config.level,
    )

    bind_form(None)

    try:
        definition = load_form(args.definition)
        bind_form(definition.name)
        logger.debug("Running %s on %s", args.command, args.definition)
        return COMMANDS[args.command](definition, args)
    except FileNotFoundError as e:
        logger.debug("Definition file missing: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except FormError as e:
        logger.debug("%s failed", args.command, extra={"error": e.to_dict()})
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
