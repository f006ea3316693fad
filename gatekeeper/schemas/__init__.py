# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Example business schemas and their registry ids.
"""

from gatekeeper.pydantic_schema import PydanticSchema
from gatekeeper.registry import SchemaRegistry
from gatekeeper.schemas.auth import DeviceInfo, LoginRequest, RefreshTokenRequest
from gatekeeper.schemas.common import (
    MeasurementBody,
    Pagination,
    UserIdParams,
    UserProfileBody,
)
from gatekeeper.schemas.headers import SecurityHeaders

DEFAULT_SCHEMAS = (
    ("auth.login.request", LoginRequest, "api", "Login request"),
    ("auth.refreshToken.request", RefreshTokenRequest, "api", "Refresh token request"),
    ("common.pagination", Pagination, "common", "Pagination query"),
    ("common.userId.params", UserIdParams, "common", "User id path parameter"),
    ("user.profile.body", UserProfileBody, "api", "User profile body"),
    ("internal.headers.security", SecurityHeaders, "internal", "Security headers"),
)


def register_default_schemas(registry: SchemaRegistry, allow_overwrite: bool = False) -> None:
    """Register the bundled schemas under their ids."""
    for schema_id, model, category, description in DEFAULT_SCHEMAS:
        registry.register(
            schema_id,
            PydanticSchema(model),
            category=category,
            description=description,
            version="1.0",
            allow_overwrite=allow_overwrite,
        )


__all__ = [
    "DEFAULT_SCHEMAS",
    "DeviceInfo",
    "LoginRequest",
    "MeasurementBody",
    "Pagination",
    "RefreshTokenRequest",
    "SecurityHeaders",
    "UserIdParams",
    "UserProfileBody",
    "register_default_schemas",
]
