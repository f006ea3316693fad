# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

"""
Error taxonomy for the validation gate.

This module is the single vocabulary for everything that can go wrong while
a request passes through the gate.

Architecture:
- ErrorCodes: Closed set of numeric failure codes (stable, never renumbered)
- ApiError: Error value carrying code, message, optional details and HTTP status
- make_api_error(): The one factory for ApiError values
- coerce_to_api_error(): Boundary mapping of arbitrary exceptions to ApiError
- public_view(): Strips internal text from system-caused errors before rendering

Example:
    >>> error = make_api_error(ErrorCodes.VALIDATION_ERROR, "Validation failed for body")
    >>> error.status_code
    400
    >>> make_api_error(ErrorCodes.RATE_LIMIT_EXCEEDED, "Slow down").status_code
    429
"""

from enum import IntEnum
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from gatekeeper.config import APP_ENV


class ErrorCodes(IntEnum):
    """
    Numeric failure codes.

    External clients depend on these values - never renumber them.
    """

    AUTHENTICATION_FAILED = 1001
    RATE_LIMIT_EXCEEDED = 1002
    VALIDATION_ERROR = 1003
    VALIDATION_TIMEOUT = 1004
    VALIDATION_DEPTH_EXCEEDED = 1005
    VALIDATION_SIZE_EXCEEDED = 1006
    SCHEMA_ERROR = 1007
    API_ERROR = 1008
    NETWORK_ERROR = 1009
    UNKNOWN_ERROR = 9999

    @property
    def is_caller_fault(self) -> bool:
        """True for faults the client can fix by changing its request."""
        return self in _CALLER_FAULTS

    @property
    def is_system_fault(self) -> bool:
        """True for faults caused by the service or its upstreams."""
        return not self.is_caller_fault


_CALLER_FAULTS = frozenset(
    {
        ErrorCodes.VALIDATION_ERROR,
        ErrorCodes.VALIDATION_TIMEOUT,
        ErrorCodes.VALIDATION_DEPTH_EXCEEDED,
        ErrorCodes.VALIDATION_SIZE_EXCEEDED,
        ErrorCodes.RATE_LIMIT_EXCEEDED,
        ErrorCodes.AUTHENTICATION_FAILED,
    }
)

# Validation family, including SCHEMA_ERROR which is a system fault
# but still belongs to the validation step.
VALIDATION_FAMILY = frozenset(
    {
        ErrorCodes.VALIDATION_ERROR,
        ErrorCodes.VALIDATION_TIMEOUT,
        ErrorCodes.VALIDATION_DEPTH_EXCEEDED,
        ErrorCodes.VALIDATION_SIZE_EXCEEDED,
        ErrorCodes.SCHEMA_ERROR,
    }
)

_DEFAULT_STATUS: Dict[ErrorCodes, int] = {
    ErrorCodes.AUTHENTICATION_FAILED: 401,
    ErrorCodes.RATE_LIMIT_EXCEEDED: 429,
    ErrorCodes.API_ERROR: 502,
    ErrorCodes.NETWORK_ERROR: 502,
    ErrorCodes.UNKNOWN_ERROR: 500,
}

# Generic client-facing messages for system-caused faults.
_GENERIC_MESSAGES: Dict[ErrorCodes, str] = {
    ErrorCodes.SCHEMA_ERROR: "Request could not be validated",
    ErrorCodes.API_ERROR: "Upstream service error",
    ErrorCodes.NETWORK_ERROR: "Network error, no response received",
    ErrorCodes.UNKNOWN_ERROR: "An unexpected error occurred",
}


def default_status_for(code: ErrorCodes) -> int:
    """
    Returns the HTTP status used when an error is built without one.

    Args:
        code: Error code

    Returns:
        400 for the validation family, 401/429/502/500 for the rest
    """
    if code in VALIDATION_FAMILY:
        return 400
    return _DEFAULT_STATUS.get(code, 500)


class ApiError(Exception):
    """
    Error value of the taxonomy.

    Travels as a plain value through the pipeline. It is also an exception
    so that handlers and the HTTP boundary may raise it.

    Attributes:
        code: Code from ErrorCodes
        message: Human-readable message
        details: Optional structured payload (violations, limits, reset time)
        status_code: HTTP status used when rendering
    """

    def __init__(
        self,
        code: ErrorCodes,
        message: str,
        details: Any = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.code = ErrorCodes(code)
        self.message = message
        self.details = details
        self.status_code = (
            status_code if status_code is not None else default_status_for(self.code)
        )

    def __repr__(self) -> str:
        return (
            f"ApiError(code={self.code.name}, status_code={self.status_code}, "
            f"message={self.message!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ApiError):
            return NotImplemented
        return (
            self.code == other.code
            and self.message == other.message
            and self.details == other.details
            and self.status_code == other.status_code
        )

    __hash__ = None  # type: ignore[assignment]

    def to_dict(self) -> Dict[str, Any]:
        """Client-facing error body (without endpoint/timestamp)."""
        body: Dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


def make_api_error(
    code: ErrorCodes,
    message: str,
    details: Any = None,
    status_code: Optional[int] = None,
) -> ApiError:
    """
    Builds an ApiError.

    Args:
        code: Error code (must belong to ErrorCodes)
        message: Human-readable message
        details: Optional structured payload
        status_code: Explicit HTTP status; defaults by code class

    Returns:
        ApiError value

    Raises:
        ValueError: If code is not a member of ErrorCodes
    """
    return ApiError(ErrorCodes(code), message, details, status_code)


def coerce_to_api_error(exc: BaseException) -> ApiError:
    """
    Maps any exception raised behind the boundary to an ApiError.

    Known upstream failures (httpx) are mapped by kind and status.
    Everything unrecognized becomes UNKNOWN_ERROR/500 with a generic message;
    the original exception is logged, never rendered.

    Args:
        exc: Exception caught at the boundary

    Returns:
        ApiError safe to render
    """
    if isinstance(exc, ApiError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 401:
            code = ErrorCodes.AUTHENTICATION_FAILED
        elif status == 429:
            code = ErrorCodes.RATE_LIMIT_EXCEEDED
        elif status == 400:
            code = ErrorCodes.VALIDATION_ERROR
        else:
            code = ErrorCodes.API_ERROR
        logger.warning("[Errors] Upstream returned HTTP {}: {}", status, exc)
        return make_api_error(code, _upstream_message(exc.response))

    if isinstance(exc, httpx.RequestError):
        log_system_fault(exc, "Upstream request failed")
        return make_api_error(
            ErrorCodes.NETWORK_ERROR, _GENERIC_MESSAGES[ErrorCodes.NETWORK_ERROR]
        )

    log_system_fault(exc, "Unhandled error reached the boundary")
    return make_api_error(
        ErrorCodes.UNKNOWN_ERROR, _GENERIC_MESSAGES[ErrorCodes.UNKNOWN_ERROR]
    )


def _upstream_message(response: httpx.Response) -> str:
    """Extract an error message from common upstream error body shapes."""
    try:
        data = response.json()
    except ValueError:
        return "API Error"

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, str) and error:
            return error
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(data.get("message"), str) and data["message"]:
            return data["message"]
    return "API Error"


def public_view(error: ApiError) -> ApiError:
    """
    Returns the version of an error that may be shown to a client.

    Caller-caused errors are returned unchanged: their messages and details
    tell the client how to fix the request. System-caused errors keep only
    their code and status; message becomes generic and details are dropped.
    """
    if error.code.is_caller_fault:
        return error
    return ApiError(
        error.code,
        _GENERIC_MESSAGES.get(error.code, _GENERIC_MESSAGES[ErrorCodes.UNKNOWN_ERROR]),
        None,
        error.status_code,
    )


def log_system_fault(exc: BaseException, context: str) -> None:
    """
    Logs a system-caused fault for operators.

    Stack traces are only attached outside production.
    """
    if APP_ENV == "production":
        logger.error("{}: {}: {}", context, type(exc).__name__, exc)
    else:
        logger.opt(exception=exc).error("{}: {}: {}", context, type(exc).__name__, exc)
