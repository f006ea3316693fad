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
Gatekeeper Configuration.

Centralized storage for all settings and limits.
Loads environment variables and provides typed access to them.
"""

import os
from typing import List

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

_TRUTHY_VALUES = ("true", "1", "yes", "enabled", "on")


def _get_bool_env(var_name: str, default: str) -> bool:
    """
    Read a boolean flag from the environment.

    Args:
        var_name: Environment variable name
        default: Raw default used when the variable is not set

    Returns:
        True if the value is one of the accepted truthy spellings
    """
    return os.getenv(var_name, default).lower() in _TRUTHY_VALUES


# ==================================================================================================
# Server Settings
# ==================================================================================================

# Server host (default: 0.0.0.0 - listen on all interfaces)
# Use "127.0.0.1" to only allow local connections
DEFAULT_SERVER_HOST: str = "0.0.0.0"
SERVER_HOST: str = os.getenv("SERVER_HOST", DEFAULT_SERVER_HOST)

# Server port (default: 8000)
# Can be overridden by CLI: python main.py --port 9000
DEFAULT_SERVER_PORT: int = 8000
SERVER_PORT: int = int(os.getenv("SERVER_PORT", str(DEFAULT_SERVER_PORT)))

# Deployment environment.
# In "production" error logs never carry stack traces.
APP_ENV: str = os.getenv("APP_ENV", "development").lower()

# ==================================================================================================
# Payload Limits (applied before any schema runs)
# ==================================================================================================

# Maximum nesting depth of a request fragment.
# The fragment itself is depth 0, its direct children depth 1, and so on.
VALIDATION_MAX_DEPTH: int = int(os.getenv("VALIDATION_MAX_DEPTH", "10"))

# Maximum list length. Also bounds the number of keys in a single mapping.
VALIDATION_MAX_ARRAY_LENGTH: int = int(
    os.getenv("VALIDATION_MAX_ARRAY_LENGTH", "1000")
)

# Maximum length of any single string value (100KB by default).
VALIDATION_MAX_STRING_LENGTH: int = int(
    os.getenv("VALIDATION_MAX_STRING_LENGTH", "100000")
)

# Time budget for one schema evaluation (milliseconds).
# A schema that does not finish in time yields VALIDATION_TIMEOUT.
# The pipeline budget is bounded by (number of stages) * VALIDATION_TIMEOUT_MS.
VALIDATION_TIMEOUT_MS: int = int(os.getenv("VALIDATION_TIMEOUT_MS", "1000"))

# Worker threads for schema evaluation.
# A schema that overruns its budget holds its thread until it returns.
VALIDATION_WORKER_THREADS: int = int(os.getenv("VALIDATION_WORKER_THREADS", "8"))

# Replace messages for password/token/... paths with a generic text.
SANITIZE_SENSITIVE_FIELDS: bool = _get_bool_env("SANITIZE_SENSITIVE_FIELDS", "true")

# ==================================================================================================
# Validation Failure Rate Limiting
# ==================================================================================================

# Track validation failures per (origin, endpoint) and block abusive clients.
# Default: true
VALIDATION_RATE_LIMITING_ENABLED: bool = _get_bool_env(
    "VALIDATION_RATE_LIMITING_ENABLED", "true"
)

# Failures allowed inside the trailing 60 seconds before the origin is blocked.
VALIDATION_MAX_FAILURES_PER_MINUTE: int = int(
    os.getenv("VALIDATION_MAX_FAILURES_PER_MINUTE", "10")
)

# Failures allowed inside the trailing hour before the origin is blocked.
VALIDATION_MAX_FAILURES_PER_HOUR: int = int(
    os.getenv("VALIDATION_MAX_FAILURES_PER_HOUR", "30")
)

# How long a blocked origin stays blocked, counted from the triggering failure.
# Default: 15 minutes
VALIDATION_BLOCK_DURATION_MS: int = int(
    os.getenv("VALIDATION_BLOCK_DURATION_MS", str(15 * 60 * 1000))
)

# Whether a successful validation clears the failure count of its origin.
# Default: false - the abuse signal survives a single valid request,
# so a client probing one field at a time can not wash its record clean.
VALIDATION_RESET_ON_SUCCESS: bool = _get_bool_env(
    "VALIDATION_RESET_ON_SUCCESS", "false"
)

# ==================================================================================================
# Validation Result Cache
# ==================================================================================================

# Memoize outcomes of identical (schema, input) pairs.
VALIDATION_CACHE_ENABLED: bool = _get_bool_env("VALIDATION_CACHE_ENABLED", "true")

# Cache entry time-to-live in seconds (5 minutes)
VALIDATION_CACHE_TTL: int = int(os.getenv("VALIDATION_CACHE_TTL", "300"))

# Maximum number of memoized outcomes. Oldest entries are evicted first.
VALIDATION_CACHE_MAX_KEYS: int = int(os.getenv("VALIDATION_CACHE_MAX_KEYS", "10000"))

# ==================================================================================================
# Sensitive Fields
# ==================================================================================================

# Path fragments treated as sensitive in violation messages (case-insensitive).
SENSITIVE_FIELDS: List[str] = [
    "password",
    "token",
    "secret",
    "apiKey",
    "key",
    "auth",
    "credential",
    "pin",
    "otp",
    "cvv",
    "ssn",
    "hash",
    "salt",
]

# ==================================================================================================
# Logging Settings
# ==================================================================================================

# Log level for the application
# Available levels: TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL
# Default: INFO (recommended for production)
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# Mask e-mails, phone numbers, tokens and ids in log output.
LOG_REDACTION_ENABLED: bool = _get_bool_env("LOG_REDACTION_ENABLED", "true")

# ==================================================================================================
# Application Version
# ==================================================================================================

APP_VERSION: str = "1.0"
APP_TITLE: str = "Gatekeeper"
APP_DESCRIPTION: str = (
    "Per-request validation gate: schema checks for body, query and path "
    "parameters with uniform errors and validation-failure throttling."
)
