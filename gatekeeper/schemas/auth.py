# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Authentication request schemas.

Wire names are camelCase (``rememberMe``, ``deviceInfo``); attributes are
snake_case. Dump with ``by_alias=True`` to get the wire form back.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gatekeeper.schemas.common import check_email


class DeviceInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: Optional[str] = Field(default=None, alias="deviceId")
    device_type: Optional[Literal["mobile", "tablet", "desktop", "other"]] = Field(
        default=None, alias="deviceType"
    )
    os_name: Optional[str] = Field(default=None, alias="osName")
    os_version: Optional[str] = Field(default=None, alias="osVersion")
    browser_name: Optional[str] = Field(default=None, alias="browserName")
    browser_version: Optional[str] = Field(default=None, alias="browserVersion")


class LoginRequest(BaseModel):
    """Login body: email and password required, the rest optional."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str = Field(min_length=1)
    remember_me: bool = Field(default=False, alias="rememberMe")
    device_info: Optional[DeviceInfo] = Field(default=None, alias="deviceInfo")

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return check_email(value)


class RefreshTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(min_length=1, alias="refreshToken")
    device_info: Optional[DeviceInfo] = Field(default=None, alias="deviceInfo")
