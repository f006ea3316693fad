# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Stage validator: one schema bound to one request fragment.

Checks applied, in order:
  1. Schema resolution (registry ids are resolved at request time)
  2. Size limits       -> VALIDATION_SIZE_EXCEEDED
  3. Depth limits      -> VALIDATION_DEPTH_EXCEEDED
  4. Memoized outcome  (counted as a cache hit)
  5. Schema evaluation under a time budget
       - violations    -> VALIDATION_ERROR
       - over budget   -> VALIDATION_TIMEOUT
       - schema broken -> SCHEMA_ERROR

A stage never reports failures to the tracker itself; that is the
pipeline's job.
"""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Union

from loguru import logger

from gatekeeper import config
from gatekeeper.cache import StatsCache, make_cache_key
from gatekeeper.config import (
    SANITIZE_SENSITIVE_FIELDS,
    VALIDATION_CACHE_ENABLED,
    VALIDATION_MAX_ARRAY_LENGTH,
    VALIDATION_MAX_DEPTH,
    VALIDATION_MAX_STRING_LENGTH,
    VALIDATION_RATE_LIMITING_ENABLED,
    VALIDATION_TIMEOUT_MS,
)
from gatekeeper.error_adapter import sanitize_violations, violations_to_api_error
from gatekeeper.errors import ApiError, ErrorCodes, log_system_fault, make_api_error
from gatekeeper.payload_limits import check_nesting_depth, find_size_violation
from gatekeeper.pydantic_schema import PydanticSchema
from gatekeeper.registry import SchemaRegistry
from gatekeeper.schema_contract import SchemaContract, SchemaContractError, ValidationOutcome

# Schemas run on their own bounded pool. A schema that overruns its budget
# keeps its worker until it returns; it can stall other schema evaluations
# (which then time out) but never the event loop's default executor.
_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def _schema_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=config.VALIDATION_WORKER_THREADS,
                thread_name_prefix="gatekeeper-schema",
            )
        return _executor


def depth_exceeded_error(max_depth: int) -> ApiError:
    """VALIDATION_DEPTH_EXCEEDED for a payload nested deeper than max_depth."""
    return make_api_error(
        ErrorCodes.VALIDATION_DEPTH_EXCEEDED,
        f"Input exceeds maximum nesting depth of {max_depth}",
        {"maxDepth": max_depth},
    )


class FragmentKind(str, Enum):
    """Structurally distinct parts of a request."""

    BODY = "body"
    QUERY = "query"
    PARAMS = "params"
    HEADERS = "headers"


@dataclass(frozen=True)
class ValidationOptions:
    """
    Per-stage validation settings.

    Defaults come from config; override per stage with ``replace()`` or
    keyword arguments.
    """

    max_depth: int = VALIDATION_MAX_DEPTH
    max_array_length: int = VALIDATION_MAX_ARRAY_LENGTH
    max_string_length: int = VALIDATION_MAX_STRING_LENGTH
    timeout_ms: int = VALIDATION_TIMEOUT_MS
    enable_rate_limiting: bool = VALIDATION_RATE_LIMITING_ENABLED
    use_cache: bool = VALIDATION_CACHE_ENABLED
    sanitize_sensitive_fields: bool = SANITIZE_SENSITIVE_FIELDS
    include_path_in_message: bool = True

    @classmethod
    def from_config(cls) -> "ValidationOptions":
        """Options from the current values of the config module."""
        return cls(
            max_depth=config.VALIDATION_MAX_DEPTH,
            max_array_length=config.VALIDATION_MAX_ARRAY_LENGTH,
            max_string_length=config.VALIDATION_MAX_STRING_LENGTH,
            timeout_ms=config.VALIDATION_TIMEOUT_MS,
            enable_rate_limiting=config.VALIDATION_RATE_LIMITING_ENABLED,
            use_cache=config.VALIDATION_CACHE_ENABLED,
            sanitize_sensitive_fields=config.SANITIZE_SENSITIVE_FIELDS,
        )

    def merged(self, **overrides: Any) -> "ValidationOptions":
        return replace(self, **overrides)


@dataclass(frozen=True)
class StageResult:
    """Outcome of one stage: the validated value or a taxonomy error."""

    value: Any = None
    error: Optional[ApiError] = None
    cache_hit: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


SchemaRef = Union[SchemaContract, str]


class StageValidator:
    """
    Validates one fragment kind against one schema.

    Args:
        kind: Fragment the stage reads and replaces
        schema: Schema contract, pydantic type, or registry id
        options: Validation options (default: from config)
        registry: Registry used to resolve string ids
    """

    def __init__(
        self,
        kind: FragmentKind,
        schema: Any,
        options: Optional[ValidationOptions] = None,
        registry: Optional[SchemaRegistry] = None,
    ):
        self.kind = FragmentKind(kind)
        if isinstance(schema, str) or isinstance(schema, SchemaContract):
            self._schema: SchemaRef = schema
        else:
            self._schema = PydanticSchema(schema)
        self.options = options or ValidationOptions()
        self._registry = registry

    @property
    def schema_name(self) -> str:
        if isinstance(self._schema, str):
            return self._schema
        return self._schema.name

    def _resolve_schema(self) -> Optional[SchemaContract]:
        if not isinstance(self._schema, str):
            return self._schema
        if self._registry is None:
            return None
        return self._registry.get_schema(self._schema)

    async def run(self, raw: Any, cache: Optional[StatsCache] = None) -> StageResult:
        """
        Validate a raw fragment.

        Every call counts as exactly one attempt in the cache statistics:
        a hit when the outcome came from the memo store, a miss otherwise
        (limit rejections and schema faults included).

        Args:
            raw: Fragment as received
            cache: Optional memo store and hit/miss counters

        Returns:
            StageResult with the coerced value or an ApiError
        """
        result = await self._evaluate(raw, cache)
        if cache is not None:
            cache.record_attempt(hit=result.cache_hit)
        return result

    async def _evaluate(self, raw: Any, cache: Optional[StatsCache]) -> StageResult:
        schema = self._resolve_schema()
        if schema is None:
            logger.error(
                "[StageValidator] Schema '{}' for {} not found", self.schema_name, self.kind.value
            )
            return StageResult(
                error=make_api_error(
                    ErrorCodes.SCHEMA_ERROR,
                    f'Validation schema "{self.schema_name}" not found',
                    status_code=500,
                )
            )

        opts = self.options

        oversized = find_size_violation(raw, opts.max_array_length, opts.max_string_length)
        if oversized is not None:
            logger.debug("[StageValidator] {} rejected: {}", self.kind.value, oversized)
            return StageResult(
                error=make_api_error(
                    ErrorCodes.VALIDATION_SIZE_EXCEEDED,
                    "Input data exceeds size limits",
                    {
                        "maxArrayLength": opts.max_array_length,
                        "maxStringLength": opts.max_string_length,
                    },
                )
            )

        if not check_nesting_depth(raw, opts.max_depth):
            return StageResult(error=depth_exceeded_error(opts.max_depth))

        cache_key = None
        if cache is not None and opts.use_cache:
            cache_key = make_cache_key(f"{schema.name}#{id(schema):x}", raw)
            if cache_key is not None:
                cached = cache.get(cache_key)
                if cached is not None:
                    return self._to_result(cached, cache_hit=True)

        loop = asyncio.get_running_loop()
        try:
            outcome = await asyncio.wait_for(
                loop.run_in_executor(_schema_executor(), schema.validate, raw),
                timeout=opts.timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "[StageValidator] Schema '{}' exceeded {}ms on {}",
                schema.name,
                opts.timeout_ms,
                self.kind.value,
            )
            return StageResult(
                error=make_api_error(
                    ErrorCodes.VALIDATION_TIMEOUT,
                    f"Validation timeout exceeded ({opts.timeout_ms}ms)",
                )
            )
        except SchemaContractError as exc:
            log_system_fault(exc.original, f"[StageValidator] Schema '{exc.schema_name}' failed")
            return StageResult(error=self._schema_error())
        except Exception as exc:
            # Contract implementations outside this package may raise anything.
            log_system_fault(exc, f"[StageValidator] Schema '{schema.name}' failed")
            return StageResult(error=self._schema_error())

        if not isinstance(outcome, ValidationOutcome):
            logger.error(
                "[StageValidator] Schema '{}' returned {} instead of ValidationOutcome",
                schema.name,
                type(outcome).__name__,
            )
            return StageResult(error=self._schema_error())

        if cache_key is not None:
            cache.set(cache_key, outcome)

        return self._to_result(outcome)

    def _to_result(self, outcome: ValidationOutcome, cache_hit: bool = False) -> StageResult:
        if outcome.ok:
            return StageResult(value=outcome.value, cache_hit=cache_hit)

        # Root-level violations are reported under the fragment name
        named = [
            replace(v, path=self.kind.value) if v.path in ("", "$") else v
            for v in outcome.violations
        ]
        violations = sanitize_violations(
            named,
            include_path_in_message=self.options.include_path_in_message,
            sanitize_sensitive_fields=self.options.sanitize_sensitive_fields,
        )
        return StageResult(
            error=violations_to_api_error(violations, f"Validation failed for {self.kind.value}"),
            cache_hit=cache_hit,
        )

    def _schema_error(self) -> ApiError:
        return make_api_error(
            ErrorCodes.SCHEMA_ERROR,
            f"Schema '{self.schema_name}' failed while validating {self.kind.value}",
        )

    def __repr__(self) -> str:
        return f"StageValidator({self.kind.value}, {self.schema_name})"


def validate_body(schema: Any, options: Optional[ValidationOptions] = None, **kwargs: Any) -> StageValidator:
    """Stage validating the request body."""
    return StageValidator(FragmentKind.BODY, schema, options, **kwargs)


def validate_query(schema: Any, options: Optional[ValidationOptions] = None, **kwargs: Any) -> StageValidator:
    """Stage validating query parameters."""
    return StageValidator(FragmentKind.QUERY, schema, options, **kwargs)


def validate_params(schema: Any, options: Optional[ValidationOptions] = None, **kwargs: Any) -> StageValidator:
    """Stage validating path parameters."""
    return StageValidator(FragmentKind.PARAMS, schema, options, **kwargs)


def validate_headers(schema: Any, options: Optional[ValidationOptions] = None, **kwargs: Any) -> StageValidator:
    """Stage validating request headers."""
    return StageValidator(FragmentKind.HEADERS, schema, options, **kwargs)
