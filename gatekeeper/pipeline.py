# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Validation pipeline.

Runs the rate guard, the stage validators and the terminal handler for one
request. This is the single entry point called by the HTTP boundary.

Execution order matters:
  1. ValidationRateGuard - Rejects blocked origins before any schema runs
  2. Stages              - In declaration order; the first failure aborts the
                           chain, so later stages and the handler never run
  3. Handler             - Exactly once, after the last stage succeeded

Caller-caused stage failures are reported to the failure tracker as soon as
they are determined. Cancellation (client disconnect) is checked before each
stage and before the handler; nothing is tracked after it.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from loguru import logger

from gatekeeper.cache import StatsCache
from gatekeeper.config import VALIDATION_RATE_LIMITING_ENABLED
from gatekeeper.errors import ApiError
from gatekeeper.failure_tracker import Origin, ValidationRateGuard
from gatekeeper.schemas.headers import SecurityHeaders
from gatekeeper.stage import FragmentKind, StageValidator, ValidationOptions, validate_headers


@dataclass
class RequestContext:
    """
    Request fragments as seen by stages and the handler.

    Before a stage runs its fragment holds the raw value; afterwards it holds
    the validated value (the raw value is discarded, not merged).
    """

    body: Any = None
    query: Any = field(default_factory=dict)
    params: Any = field(default_factory=dict)
    headers: Any = field(default_factory=dict)
    origin: Origin = field(default_factory=Origin)
    endpoint: str = ""

    def get_fragment(self, kind: FragmentKind) -> Any:
        return getattr(self, FragmentKind(kind).value)

    def set_fragment(self, kind: FragmentKind, value: Any) -> None:
        setattr(self, FragmentKind(kind).value, value)


@dataclass(frozen=True)
class PipelineResult:
    """Handler result or the taxonomy error that stopped the request."""

    data: Any = None
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PipelineCancelled(Exception):
    """Raised when the request was aborted before the pipeline finished."""

    def __init__(self, endpoint: str):
        super().__init__(f"Request to {endpoint} cancelled")
        self.endpoint = endpoint


Handler = Callable[[RequestContext], Any]
CancelCheck = Callable[[], Union[bool, Awaitable[bool]]]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class ValidationPipeline:
    """
    Ordered composition of stages plus a terminal handler.

    Args:
        stages: Stage validators in execution order
        handler: Sync or async callable receiving the validated RequestContext
        guard: Rate guard (and its tracker); None disables abuse tracking
        cache: Stats cache shared by all stages; None disables memoization
        rate_limiting: Master switch for guard and tracker
        include_security_headers: Prepend the default security-headers stage
    """

    def __init__(
        self,
        stages: Sequence[StageValidator],
        handler: Handler,
        guard: Optional[ValidationRateGuard] = None,
        cache: Optional[StatsCache] = None,
        rate_limiting: bool = VALIDATION_RATE_LIMITING_ENABLED,
        include_security_headers: bool = False,
    ):
        stages = list(stages)
        if include_security_headers and not any(
            s.kind == FragmentKind.HEADERS for s in stages
        ):
            stages.insert(0, validate_headers(SecurityHeaders, ValidationOptions(use_cache=False)))
        self._stages: List[StageValidator] = stages
        self._handler = handler
        self._guard = guard
        self._cache = cache
        self._rate_limiting = rate_limiting and guard is not None

    @property
    def stages(self) -> List[StageValidator]:
        return list(self._stages)

    async def run(
        self, ctx: RequestContext, is_cancelled: Optional[CancelCheck] = None
    ) -> PipelineResult:
        """
        Run guard, stages and handler for one request.

        Args:
            ctx: Raw request fragments, origin and endpoint (mutated in place)
            is_cancelled: Optional sync or async callable; True aborts the run

        Returns:
            PipelineResult with handler data, or the first error

        Raises:
            PipelineCancelled: If the request was aborted
            Exception: Anything the handler raises other than ApiError
        """
        if self._rate_limiting:
            blocked = self._guard.check(ctx.origin, ctx.endpoint)
            if blocked is not None:
                return PipelineResult(error=blocked)

        for stage in self._stages:
            if is_cancelled is not None and await _maybe_await(is_cancelled()):
                logger.debug("[Pipeline] {} cancelled before {}", ctx.endpoint, stage)
                raise PipelineCancelled(ctx.endpoint)

            result = await stage.run(ctx.get_fragment(stage.kind), cache=self._cache)
            if not result.ok:
                self._report_failure(ctx, stage, result.error)
                return PipelineResult(error=result.error)

            ctx.set_fragment(stage.kind, result.value)

        if self._stages:
            logger.debug("[Pipeline] {} validated: {}", ctx.endpoint, fragment_summary(ctx))

        if self._rate_limiting:
            self._guard.tracker.record_success(ctx.origin, ctx.endpoint)

        if is_cancelled is not None and await _maybe_await(is_cancelled()):
            logger.debug("[Pipeline] {} cancelled before handler", ctx.endpoint)
            raise PipelineCancelled(ctx.endpoint)

        try:
            data = await _maybe_await(self._handler(ctx))
        except ApiError as exc:
            logger.debug("[Pipeline] Handler for {} returned {}", ctx.endpoint, exc.code.name)
            return PipelineResult(error=exc)

        return PipelineResult(data=data)

    def reject(self, origin: Origin, endpoint: str, error: ApiError) -> PipelineResult:
        """
        Account for a request refused before its context could be built,
        e.g. a body that is not JSON or is nested too deeply to parse.

        The guard still answers first for a blocked origin; otherwise a
        caller fault counts as a failure like any stage failure.

        Args:
            origin: Client identity
            endpoint: Tracking key of the route
            error: Why the request was refused

        Returns:
            PipelineResult carrying the block error or the given error
        """
        if self._rate_limiting:
            blocked = self._guard.check(origin, endpoint)
            if blocked is not None:
                return PipelineResult(error=blocked)
        if error.code.is_caller_fault:
            logger.info(
                "[Pipeline] {} refused for {}: {}", endpoint, origin.identifier, error.message
            )
            if self._rate_limiting:
                self._guard.tracker.track_failure(origin, endpoint)
        return PipelineResult(error=error)

    def _report_failure(self, ctx: RequestContext, stage: StageValidator, error: ApiError) -> None:
        if error.code.is_caller_fault:
            logger.info(
                "[Pipeline] {} failed on {} for {}: {}",
                ctx.endpoint,
                stage.kind.value,
                ctx.origin.identifier,
                error.message,
            )
        if (
            self._rate_limiting
            and stage.options.enable_rate_limiting
            and error.code.is_caller_fault
        ):
            self._guard.tracker.track_failure(ctx.origin, ctx.endpoint)


def build_pipeline(
    handler: Handler,
    body: Any = None,
    query: Any = None,
    params: Any = None,
    headers: Any = None,
    options: Optional[ValidationOptions] = None,
    **kwargs: Any,
) -> ValidationPipeline:
    """
    Convenience builder: one stage per given schema, in the order
    headers, params, query, body.

    Extra keyword arguments go to ValidationPipeline.
    """
    stages: List[StageValidator] = []
    registry = kwargs.pop("registry", None)
    for kind, schema in (
        (FragmentKind.HEADERS, headers),
        (FragmentKind.PARAMS, params),
        (FragmentKind.QUERY, query),
        (FragmentKind.BODY, body),
    ):
        if schema is not None:
            stages.append(StageValidator(kind, schema, options, registry=registry))
    return ValidationPipeline(stages, handler, **kwargs)


def fragment_summary(ctx: RequestContext) -> Dict[str, str]:
    """Fragment types after validation, for debug logging."""
    return {kind.value: type(ctx.get_fragment(kind)).__name__ for kind in FragmentKind}
