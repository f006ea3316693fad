# -*- coding: utf-8 -*-

"""
Unit tests for the schema registry.
"""

import pytest

from gatekeeper.pydantic_schema import PydanticSchema
from gatekeeper.registry import SchemaRegistry, SchemaRegistryError, validate_schema_id
from gatekeeper.schemas import LoginRequest, Pagination, register_default_schemas


@pytest.fixture
def registry():
    return SchemaRegistry()


class TestSchemaIds:
    """Tests for validate_schema_id()."""

    @pytest.mark.parametrize("schema_id", ["auth.login.request", "user_v2", "a-b.c_d"])
    def test_valid_ids(self, schema_id):
        """
        What it does: Validates well-formed ids.
        Purpose: Dots, underscores and hyphens are allowed.
        """
        validate_schema_id(schema_id)

    @pytest.mark.parametrize("schema_id", ["", "has space", "semi;colon", "a" * 101, None])
    def test_invalid_ids(self, schema_id):
        """
        What it does: Validates malformed ids.
        Purpose: Ids are bounded and restricted to a safe alphabet.
        """
        with pytest.raises(SchemaRegistryError):
            validate_schema_id(schema_id)


class TestSchemaRegistry:
    """Tests for SchemaRegistry."""

    def test_register_and_get(self, registry):
        """
        What it does: Registers a schema and reads it back.
        Purpose: Routes can refer to schemas by id.
        """
        schema = PydanticSchema(LoginRequest)
        entry = registry.register("auth.login.request", schema, "api", "Login")

        print(f"Entry: {entry}")
        assert registry.get_schema("auth.login.request") is schema
        assert registry.get_entry("auth.login.request").category == "api"
        assert registry.has_schema("auth.login.request")
        assert len(registry) == 1

    def test_duplicate_without_overwrite_fails(self, registry):
        """
        What it does: Registers the same id twice.
        Purpose: Silent replacement of a schema is refused.
        """
        registry.register("common.pagination", PydanticSchema(Pagination))
        with pytest.raises(SchemaRegistryError):
            registry.register("common.pagination", PydanticSchema(Pagination))

    def test_overwrite_allowed(self, registry):
        """
        What it does: Registers the same id with allow_overwrite.
        Purpose: Explicit replacement works.
        """
        registry.register("common.pagination", PydanticSchema(Pagination))
        replacement = PydanticSchema(Pagination, name="Pagination2")
        registry.register("common.pagination", replacement, allow_overwrite=True)
        assert registry.get_schema("common.pagination") is replacement

    def test_category_filter_and_removal(self, registry):
        """
        What it does: Filters by category, then removes an entry.
        Purpose: Listing and removal reflect the current registrations.
        """
        registry.register("a.one", PydanticSchema(Pagination), "common")
        registry.register("a.two", PydanticSchema(LoginRequest), "api")

        assert [e.id for e in registry.get_by_category("api")] == ["a.two"]
        assert registry.remove_schema("a.two")
        assert not registry.remove_schema("a.two")
        assert registry.all_ids() == ["a.one"]

    def test_validate_by_id(self, registry):
        """
        What it does: Validates data through the registry.
        Purpose: Registry validation returns the schema's outcome.
        """
        registry.register("common.pagination", PydanticSchema(Pagination))
        outcome = registry.validate("common.pagination", {"page": "3"})

        print(f"Outcome: {outcome}")
        assert outcome.ok
        assert outcome.value.page == 3

    def test_validate_unknown_id(self, registry):
        """
        What it does: Validates against an unregistered id.
        Purpose: Unknown ids are configuration errors.
        """
        with pytest.raises(SchemaRegistryError):
            registry.validate("missing.schema", {})

    def test_default_schemas(self, registry):
        """
        What it does: Registers the bundled schemas.
        Purpose: The login route resolves its schema by id.
        """
        register_default_schemas(registry)
        print(f"Ids: {registry.all_ids()}")
        assert registry.has_schema("auth.login.request")
        assert registry.has_schema("internal.headers.security")
