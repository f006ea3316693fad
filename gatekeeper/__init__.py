# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Gatekeeper - per-request validation gate for FastAPI services.

Checks body, query, path parameters and headers against schemas before
handler logic runs, renders failures in one error taxonomy, and throttles
origins that keep sending invalid requests.

Modules:
    - config: Configuration and constants
    - errors: Error taxonomy (ErrorCodes, ApiError) and boundary coercion
    - responses: Success and failure envelopes
    - schema_contract: Schema contract and validation outcomes
    - pydantic_schema: Pydantic implementation of the contract
    - error_adapter: Violation formatting and sensitive-field masking
    - payload_limits: Nesting depth and size limits
    - registry: Named schema storage
    - cache: Outcome memoization and hit/miss counters
    - failure_tracker: Failure tracking and the rate guard
    - stage: Stage validator
    - pipeline: Stage composition and handler invocation
    - boundary: FastAPI request extraction and rendering
    - redaction: Personal-data masking for logs
    - state: Process-wide validation state
    - routes_examples: Example and operational routes
"""

from gatekeeper.config import APP_VERSION as __version__

__author__ = "Jwadow"

from gatekeeper.errors import (
    ApiError,
    ErrorCodes,
    coerce_to_api_error,
    make_api_error,
)
from gatekeeper.schema_contract import SchemaContract, ValidationOutcome, Violation
from gatekeeper.pydantic_schema import PydanticSchema
from gatekeeper.registry import SchemaRegistry
from gatekeeper.cache import CacheStats, StatsCache
from gatekeeper.failure_tracker import (
    FailureTracker,
    Origin,
    ValidationRateGuard,
    ValidationRateLimits,
)
from gatekeeper.stage import (
    FragmentKind,
    StageValidator,
    ValidationOptions,
    validate_body,
    validate_headers,
    validate_params,
    validate_query,
)
from gatekeeper.pipeline import (
    PipelineResult,
    RequestContext,
    ValidationPipeline,
    build_pipeline,
)
from gatekeeper.boundary import register_exception_handlers, validated_endpoint
from gatekeeper.state import GateState

__all__ = [
    # Version
    "__version__",

    # Errors
    "ApiError",
    "ErrorCodes",
    "coerce_to_api_error",
    "make_api_error",

    # Schemas
    "SchemaContract",
    "ValidationOutcome",
    "Violation",
    "PydanticSchema",
    "SchemaRegistry",

    # Shared state
    "CacheStats",
    "StatsCache",
    "FailureTracker",
    "Origin",
    "ValidationRateGuard",
    "ValidationRateLimits",
    "GateState",

    # Stages and pipeline
    "FragmentKind",
    "StageValidator",
    "ValidationOptions",
    "validate_body",
    "validate_headers",
    "validate_params",
    "validate_query",
    "PipelineResult",
    "RequestContext",
    "ValidationPipeline",
    "build_pipeline",

    # Boundary
    "register_exception_handlers",
    "validated_endpoint",
]
