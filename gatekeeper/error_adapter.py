# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Conversion of pydantic validation errors into violations and ApiErrors.

Responsibilities:
  1. Flatten pydantic error dicts into Violation objects with dotted paths
  2. Mask messages for sensitive paths (passwords, tokens, ...)
  3. Build the VALIDATION_ERROR ApiError that carries the violation list

Input values are never copied into violations, so a rejected password can
not leak back to the client through an error response.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from gatekeeper.config import SENSITIVE_FIELDS
from gatekeeper.errors import ApiError, ErrorCodes, make_api_error
from gatekeeper.schema_contract import Violation

SENSITIVE_FIELD_MESSAGE = "Invalid value provided for sensitive field"

# Pydantic context keys that are safe and useful to return to clients.
_CONTEXT_KEYS = (
    "min_length",
    "max_length",
    "gt",
    "ge",
    "lt",
    "le",
    "multiple_of",
    "expected",
    "pattern",
)


def _path_string(loc: Iterable[Any]) -> str:
    return ".".join(str(part) for part in loc)


def _violation_details(error: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Pick client-safe facts from a pydantic error dict."""
    details: Dict[str, Any] = {}

    ctx = error.get("ctx") or {}
    for key in _CONTEXT_KEYS:
        if key in ctx:
            value = ctx[key]
            details[key] = value if isinstance(value, (int, float, str, bool)) else str(value)

    error_type = str(error.get("type", ""))
    if error_type.endswith("_type") or error_type.endswith("_parsing"):
        details["expectedType"] = error_type.rsplit("_", 1)[0]
        if "input" in error:
            details["receivedType"] = type(error["input"]).__name__

    return details or None


def format_validation_errors(
    errors: Sequence[Dict[str, Any]],
    root_path: str = "$",
) -> List[Violation]:
    """
    Convert pydantic ``ValidationError.errors()`` output into violations.

    Args:
        errors: Error dicts as produced by pydantic
        root_path: Path used for errors located at the fragment root

    Returns:
        Violations in pydantic's order, each with a non-empty path and message
    """
    violations: List[Violation] = []
    for error in errors:
        path = _path_string(error.get("loc", ())) or root_path
        message = str(error.get("msg") or "Invalid value")
        violations.append(
            Violation(
                path=path,
                message=message,
                code=str(error.get("type", "custom")),
                details=_violation_details(error),
            )
        )
    return violations


def is_sensitive_path(path: str, sensitive_fields: Sequence[str] = SENSITIVE_FIELDS) -> bool:
    """
    Check whether a dotted path names a sensitive field.

    Matching is a case-insensitive substring match on the whole path.
    """
    if not path:
        return False
    lowered = path.lower()
    return any(field.lower() in lowered for field in sensitive_fields)


def sanitize_violations(
    violations: Sequence[Violation],
    sensitive_fields: Sequence[str] = SENSITIVE_FIELDS,
    include_path_in_message: bool = True,
    sanitize_sensitive_fields: bool = True,
) -> List[Violation]:
    """
    Prepare violations for a client-facing response.

    Args:
        violations: Raw violations from a schema
        sensitive_fields: Path fragments considered sensitive
        include_path_in_message: Prefix messages with "path: "
        sanitize_sensitive_fields: Replace messages and drop details on sensitive paths

    Returns:
        New list of violations
    """
    prepared: List[Violation] = []
    for violation in violations:
        message = violation.message
        details = violation.details

        if sanitize_sensitive_fields and is_sensitive_path(violation.path, sensitive_fields):
            message = SENSITIVE_FIELD_MESSAGE
            details = None

        if include_path_in_message and violation.path:
            message = f"{violation.path}: {message}"

        prepared.append(
            Violation(path=violation.path, message=message, code=violation.code, details=details)
        )
    return prepared


def violations_to_api_error(
    violations: Sequence[Violation],
    message: str = "Validation failed",
    status_code: int = 400,
) -> ApiError:
    """
    Wrap violations into a VALIDATION_ERROR.

    Args:
        violations: Client-ready violations
        message: Top-level error message
        status_code: HTTP status (default: 400)

    Returns:
        ApiError with details {"validationErrors": [...]}
    """
    return make_api_error(
        ErrorCodes.VALIDATION_ERROR,
        message,
        {"validationErrors": [v.to_dict() for v in violations]},
        status_code,
    )


def create_error_message(violations: Sequence[Violation]) -> str:
    """Create a single-line summary: "path: message; path: message"."""
    parts = []
    for violation in violations:
        prefix = f"{violation.path}: " if violation.path else ""
        parts.append(f"{prefix}{violation.message}")
    return "; ".join(parts)
