# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Shared field rules and the pagination/path-parameter schemas."""

import re
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def check_uuid(value: str) -> str:
    if not UUID_RE.match(value):
        raise ValueError("Invalid UUID format")
    return value


def check_email(value: str) -> str:
    value = value.strip()
    if len(value) > 254 or not EMAIL_RE.match(value):
        raise ValueError("Invalid email address")
    return value.lower()


class Pagination(BaseModel):
    """Query parameters of list endpoints. Numeric strings are coerced."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort: Literal["asc", "desc"] = "asc"


class UserIdParams(BaseModel):
    """Path parameters carrying a user id."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")

    @field_validator("user_id")
    @classmethod
    def _uuid(cls, value: str) -> str:
        return check_uuid(value)


class UserProfileBody(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    email: str
    tags: List[str] = Field(min_length=1, max_length=5)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip()

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return check_email(value)


class MeasurementBody(BaseModel):
    id: str
    value: float = Field(gt=0)

    @field_validator("id")
    @classmethod
    def _uuid(cls, value: str) -> str:
        return check_uuid(value)
