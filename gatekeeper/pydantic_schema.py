# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Pydantic implementation of the schema contract.

Any pydantic model or type annotation can be used as a schema:

    >>> schema = PydanticSchema(LoginRequest)
    >>> outcome = schema.validate({"email": "a@b.com", "password": "x"})
    >>> outcome.ok, outcome.value.email
    (True, 'a@b.com')
"""

from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from gatekeeper.error_adapter import format_validation_errors
from gatekeeper.schema_contract import SchemaContractError, ValidationOutcome


class PydanticSchema:
    """
    Schema contract backed by a pydantic TypeAdapter.

    Attributes:
        name: Schema name used in logs, cache keys and the registry
    """

    def __init__(self, schema: Any, name: Optional[str] = None):
        """
        Args:
            schema: Pydantic model class or any type pydantic can validate
            name: Optional explicit name (default: the type's __name__)
        """
        self._schema = schema
        self._adapter = TypeAdapter(schema)
        self.name = name or getattr(schema, "__name__", repr(schema))

    @property
    def schema(self) -> Any:
        """Underlying pydantic type."""
        return self._schema

    def validate(self, value: Any) -> ValidationOutcome:
        """
        Validate and coerce a value.

        Returns:
            Success with the coerced value, or failure with violations

        Raises:
            SchemaContractError: If the schema raised something other than
                a pydantic ValidationError
        """
        try:
            result = self._adapter.validate_python(value)
        except ValidationError as exc:
            return ValidationOutcome.failure(
                format_validation_errors(exc.errors(include_url=False))
            )
        except Exception as exc:
            raise SchemaContractError(self.name, exc) from exc
        return ValidationOutcome.success(result)

    def __repr__(self) -> str:
        return f"PydanticSchema({self.name})"
