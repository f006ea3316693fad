# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Schema contract consumed by the validation stages.

A schema is anything with a ``name`` and a ``validate(value)`` method that
returns a ValidationOutcome. It must be deterministic (same input, same
outcome) and total: malformed input always produces a failure outcome,
never an exception. An exception escaping ``validate`` means the schema
itself is broken and is reported as SchemaContractError.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Sequence, Tuple, runtime_checkable


@dataclass(frozen=True)
class Violation:
    """
    One reason a fragment does not satisfy its schema.

    Attributes:
        path: Dotted field path (e.g. "deviceInfo.deviceType")
        message: Human-readable description
        code: Machine-readable violation kind (e.g. "missing", "string_too_short")
        details: Optional extra facts (limits, expected values, received type)
    """

    path: str
    message: str
    code: str = "custom"
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "path": self.path,
            "message": self.message,
            "code": self.code,
        }
        if self.details:
            data["details"] = self.details
        return data


@dataclass(frozen=True)
class ValidationOutcome:
    """
    Tagged result of a schema evaluation.

    Exactly one side is meaningful: ``value`` when ``ok`` is True,
    ``violations`` (non-empty) otherwise.
    """

    ok: bool
    value: Any = None
    violations: Tuple[Violation, ...] = field(default_factory=tuple)

    @classmethod
    def success(cls, value: Any) -> "ValidationOutcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, violations: Sequence[Violation]) -> "ValidationOutcome":
        if not violations:
            raise ValueError("A failed outcome needs at least one violation")
        return cls(ok=False, violations=tuple(violations))


@runtime_checkable
class SchemaContract(Protocol):
    """Pluggable schema capability."""

    name: str

    def validate(self, value: Any) -> ValidationOutcome:
        ...


class SchemaContractError(Exception):
    """
    Raised when a schema fails for reasons unrelated to the input.

    Attributes:
        schema_name: Name of the broken schema
        original: Underlying exception
    """

    def __init__(self, schema_name: str, original: BaseException):
        super().__init__(
            f"Schema '{schema_name}' failed: {type(original).__name__}: {original}"
        )
        self.schema_name = schema_name
        self.original = original
