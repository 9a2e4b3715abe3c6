"""Structured exception hierarchy for form resolution.

Resolution has exactly two fatal conditions, both configuration mistakes
that should be surfaced to the developer rather than recovered from:
an unknown field name and a field reached twice in one pass. Definition
loading adds a third class for malformed payloads.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

__all__ = [
    "FormError",
    "UnknownFieldError",
    "DuplicateFieldError",
    "DefinitionError",
    "ValidationError",
]


class FormError(Exception):
    """Base exception for all form errors.

    Provides structured error information for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        form: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.form = form
        self.details = details or {}
        self.suggestion = suggestion

        parts = [message]

        if form:
            parts.insert(0, f"[{form}]")

        if details:
            detail_lines = [f"  {k}: {v}" for k, v in details.items()]
            parts.append("\nDetails:")
            parts.extend(detail_lines)

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts) if len(parts) > 1 else message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "form": self.form,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class UnknownFieldError(FormError):
    """A structure node or value update names a field with no config."""

    def __init__(
        self,
        field_name: str,
        *,
        path: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        self.field_name = field_name
        self.path = list(path or [])

        details = kwargs.pop("details", {})
        details["field"] = field_name
        if self.path:
            details["path"] = " > ".join(self.path)

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = f"Add a config named '{field_name}' or remove it from the structure."

        super().__init__(
            f"Config not found for field: {field_name}",
            details=details,
            suggestion=suggestion,
            **kwargs,
        )


class DuplicateFieldError(FormError):
    """The same field was reached twice within a single resolution pass."""

    def __init__(
        self,
        field_name: str,
        *,
        path: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        self.field_name = field_name
        self.path = list(path or [])

        details = kwargs.pop("details", {})
        details["field"] = field_name
        if self.path:
            details["path"] = " > ".join(self.path)

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "A field may appear on several branches only if those "
                "branches can never be visible at the same time."
            )

        super().__init__(
            f"Field '{field_name}' is reachable twice in the visible structure",
            details=details,
            suggestion=suggestion,
            **kwargs,
        )


class DefinitionError(FormError):
    """Malformed form definition (fields, conditions or structure)."""

    def __init__(
        self,
        message: str,
        *,
        location: Optional[str] = None,
        cause: Optional[Exception] = None,
        **kwargs: Any,
    ) -> None:
        self.location = location
        self.cause = cause

        details = kwargs.pop("details", {})
        if location:
            details["location"] = location
        if cause:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__

        super().__init__(message, details=details, **kwargs)


class ValidationError(FormError):
    """Static validation found errors in a form definition.

    Raised by validate_and_raise() when a definition cannot be used.
    """

    def __init__(
        self,
        message: str,
        *,
        issues: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        self.issues = issues or []

        details = kwargs.pop("details", {})
        if issues:
            details["issue_count"] = len(issues)

        if issues:
            issue_lines = "\n".join(f"  - {issue}" for issue in issues)
            message = f"{message}\n\nIssues found:\n{issue_lines}"

        super().__init__(message, details=details, **kwargs)
