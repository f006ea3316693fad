# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Schema registry.

Named storage for schema contracts so that routes can refer to a schema by id
("api.auth.login") instead of importing it. Thread-safe.
"""

import re
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

from loguru import logger

from gatekeeper.schema_contract import SchemaContract, ValidationOutcome

SchemaCategory = Literal["api", "common", "internal", "custom"]

_SCHEMA_ID_RE = re.compile(r"^[a-zA-Z0-9._-]+$")
MAX_SCHEMA_ID_LENGTH = 100


class SchemaRegistryError(ValueError):
    """Raised for invalid ids, duplicate registrations and unknown schemas."""


@dataclass(frozen=True)
class SchemaRegistryEntry:
    """Registered schema with its metadata."""

    id: str
    schema: SchemaContract
    category: SchemaCategory = "custom"
    description: Optional[str] = None
    version: Optional[str] = None


def validate_schema_id(schema_id: Any) -> None:
    """
    Reject ids that are empty, too long or contain unexpected characters.

    Raises:
        SchemaRegistryError: If the id is invalid
    """
    if not schema_id or not isinstance(schema_id, str):
        raise SchemaRegistryError("Schema ID must be a non-empty string")
    if len(schema_id) > MAX_SCHEMA_ID_LENGTH:
        raise SchemaRegistryError(
            f"Schema ID exceeds maximum length ({MAX_SCHEMA_ID_LENGTH} characters)"
        )
    if not _SCHEMA_ID_RE.match(schema_id):
        raise SchemaRegistryError(
            "Schema ID contains invalid characters "
            "(only alphanumeric, dots, underscores, and hyphens are allowed)"
        )


class SchemaRegistry:
    """
    Thread-safe registry of schema contracts.

    Example:
        >>> registry = SchemaRegistry()
        >>> registry.register("api.auth.login", PydanticSchema(LoginRequest), "api")
        >>> registry.get_schema("api.auth.login").name
        'LoginRequest'
    """

    def __init__(self):
        self._entries: Dict[str, SchemaRegistryEntry] = {}
        self._lock = threading.Lock()

    def register(
        self,
        schema_id: str,
        schema: SchemaContract,
        category: SchemaCategory = "custom",
        description: Optional[str] = None,
        version: Optional[str] = None,
        allow_overwrite: bool = False,
    ) -> SchemaRegistryEntry:
        """
        Register a schema under an id.

        Raises:
            SchemaRegistryError: If the id is invalid, or already taken and
                allow_overwrite is False
        """
        validate_schema_id(schema_id)
        entry = SchemaRegistryEntry(
            id=schema_id,
            schema=schema,
            category=category,
            description=description,
            version=version,
        )
        with self._lock:
            if schema_id in self._entries and not allow_overwrite:
                message = (
                    f'Schema with ID "{schema_id}" already exists and overwriting is not allowed'
                )
                logger.error("[SchemaRegistry] {}", message)
                raise SchemaRegistryError(message)
            self._entries[schema_id] = entry
        logger.debug("[SchemaRegistry] Registered schema: {} ({})", schema_id, category)
        return entry

    def get_schema(self, schema_id: str) -> Optional[SchemaContract]:
        entry = self._entries.get(schema_id)
        return entry.schema if entry else None

    def get_entry(self, schema_id: str) -> Optional[SchemaRegistryEntry]:
        return self._entries.get(schema_id)

    def has_schema(self, schema_id: str) -> bool:
        return schema_id in self._entries

    def remove_schema(self, schema_id: str) -> bool:
        with self._lock:
            return self._entries.pop(schema_id, None) is not None

    def get_by_category(self, category: SchemaCategory) -> List[SchemaRegistryEntry]:
        return [e for e in list(self._entries.values()) if e.category == category]

    def all_ids(self) -> List[str]:
        return list(self._entries.keys())

    def validate(self, schema_id: str, data: Any) -> ValidationOutcome:
        """
        Validate data against a registered schema.

        Raises:
            SchemaRegistryError: If the id is invalid or not registered
        """
        validate_schema_id(schema_id)
        schema = self.get_schema(schema_id)
        if schema is None:
            raise SchemaRegistryError(f'Schema with ID "{schema_id}" not found')
        return schema.validate(data)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
