# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Default security-headers schema.

Rejects oversized or malformed values of the headers most often abused for
injection. Other headers pass through untouched. Header names are expected
lower-cased, as Starlette delivers them.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

CONTENT_TYPE_RE = re.compile(r"^[a-zA-Z0-9/.\-+]+(?:; .*)?$")
HOST_RE = re.compile(r"^[a-zA-Z0-9.\-:]+$")
# Token length is bounded to keep the match linear.
AUTHORIZATION_RE = re.compile(r"^(Bearer|Basic|Digest|Token) [a-zA-Z0-9._\-/+=]{1,1024}$")


class SecurityHeaders(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    content_type: Optional[str] = Field(default=None, alias="content-type")
    host: Optional[str] = None
    user_agent: Optional[str] = Field(default=None, alias="user-agent")
    authorization: Optional[str] = None

    @field_validator("content_type")
    @classmethod
    def _content_type(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return value
        if len(value) >= 100:
            raise ValueError("Content-Type header too long")
        if not CONTENT_TYPE_RE.match(value):
            raise ValueError("Invalid Content-Type header format")
        return value

    @field_validator("host")
    @classmethod
    def _host(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return value
        if len(value) >= 255:
            raise ValueError("Host header too long")
        if not HOST_RE.match(value):
            raise ValueError("Invalid Host header format")
        return value

    @field_validator("user_agent")
    @classmethod
    def _user_agent(cls, value: Optional[str]) -> Optional[str]:
        if value and len(value) >= 1000:
            raise ValueError("User-Agent header too long")
        return value

    @field_validator("authorization")
    @classmethod
    def _authorization(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return value
        if len(value) >= 2000:
            raise ValueError("Authorization header too long")
        if not AUTHORIZATION_RE.match(value):
            raise ValueError("Invalid Authorization header format")
        return value
