# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Pydantic models for the JSON response envelope.

Success: {"success": true, "data": ...}
Failure: {"success": false, "error": {"code", "message", "details"?, "endpoint"?, "timestamp"?}}
"""

import time
from typing import Any, Dict, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel

from gatekeeper.errors import ApiError, public_view

T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    """Envelope for a handler result."""

    success: Literal[True] = True
    data: T


class ErrorBody(BaseModel):
    """Error part of the failure envelope."""

    code: int
    message: str
    details: Optional[Any] = None
    endpoint: Optional[str] = None
    timestamp: Optional[int] = None


class ErrorResponse(BaseModel):
    """Envelope for a taxonomy error."""

    success: Literal[False] = False
    error: ErrorBody


def success_envelope(data: Any) -> Dict[str, Any]:
    """Builds the JSON-ready success envelope."""
    return SuccessResponse[Any](data=data).model_dump(mode="json")


def error_envelope(
    error: ApiError,
    endpoint: Optional[str] = None,
    include_timestamp: bool = True,
) -> Dict[str, Any]:
    """
    Builds the JSON-ready failure envelope.

    System-caused errors are reduced to their public view first, so no
    internal message or detail ever leaves the service.

    Args:
        error: Error to render
        endpoint: Request path, attached when known
        include_timestamp: Attach epoch-milliseconds timestamp

    Returns:
        Dictionary ready for JSON serialization
    """
    shown = public_view(error)
    body = ErrorBody(
        code=int(shown.code),
        message=shown.message,
        details=shown.details,
        endpoint=endpoint,
        timestamp=int(time.time() * 1000) if include_timestamp else None,
    )
    envelope = ErrorResponse(error=body).model_dump(mode="json")
    for optional_key in ("details", "endpoint", "timestamp"):
        if envelope["error"][optional_key] is None:
            del envelope["error"][optional_key]
    return envelope
