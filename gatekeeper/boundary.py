# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
HTTP boundary between FastAPI and the validation pipeline.

Responsibilities:
  1. Build a RequestContext from a Starlette request
  2. Run the pipeline with client-disconnect cancellation
  3. Render PipelineResult as the JSON envelope with the error's status
  4. Coerce anything that escaped into a taxonomy error (never re-raise)
"""

import json
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from loguru import logger

from gatekeeper import config
from gatekeeper.error_adapter import (
    format_validation_errors,
    sanitize_violations,
    violations_to_api_error,
)
from gatekeeper.errors import ApiError, ErrorCodes, coerce_to_api_error, make_api_error
from gatekeeper.failure_tracker import Origin
from gatekeeper.pipeline import PipelineCancelled, PipelineResult, RequestContext, ValidationPipeline
from gatekeeper.responses import error_envelope, success_envelope
from gatekeeper.stage import depth_exceeded_error

# Non-standard status logged for requests whose client went away (nginx convention).
CLIENT_CLOSED_REQUEST = 499


def request_origin(request: Request) -> Origin:
    """
    Client identity of a request.

    The user id is read from ``request.state.user_id`` when an upstream
    authentication layer has set it.
    """
    ip_address = request.client.host if request.client else None
    user_id = getattr(request.state, "user_id", None)
    return Origin(ip_address=ip_address, user_id=str(user_id) if user_id else None)


def request_endpoint(request: Request) -> str:
    """
    Route template of the request ("/api/examples/users/{user_id}"), falling
    back to the raw path. Tracking by template keeps varying path parameters
    from splitting one endpoint into many records.
    """
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or request.url.path


def _query_dict(request: Request) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        query[key] = values[0] if len(values) == 1 else values
    return query


async def _read_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, ValueError):
        raise make_api_error(ErrorCodes.VALIDATION_ERROR, "Malformed JSON body") from None
    except RecursionError:
        # Nesting beyond what the parser can represent is beyond any depth limit
        raise depth_exceeded_error(config.VALIDATION_MAX_DEPTH) from None


async def extract_context(request: Request) -> RequestContext:
    """
    Build the raw request context.

    Raises:
        ApiError: VALIDATION_ERROR if the body is not valid JSON,
            VALIDATION_DEPTH_EXCEEDED if it is nested too deeply to parse
    """
    return RequestContext(
        body=await _read_body(request),
        query=_query_dict(request),
        params=dict(request.path_params),
        headers={key.lower(): value for key, value in request.headers.items()},
        origin=request_origin(request),
        endpoint=request_endpoint(request),
    )


def render_error(error: ApiError, path: Optional[str] = None) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error_envelope(error, endpoint=path))


def render_result(result: PipelineResult, path: Optional[str] = None) -> JSONResponse:
    """
    Render a pipeline result.

    Args:
        result: Handler data or taxonomy error
        path: Request path attached to error envelopes

    Returns:
        200 with the success envelope, or the error's status with the failure envelope
    """
    if result.ok:
        return JSONResponse(status_code=200, content=success_envelope(result.data))
    return render_error(result.error, path)


def validated_endpoint(
    pipeline: ValidationPipeline,
    check_disconnect: bool = True,
) -> Callable[[Request], Awaitable[Response]]:
    """
    Wrap a pipeline into a FastAPI endpoint.

    Example:
        >>> pipeline = ValidationPipeline([validate_body(LoginRequest)], login_handler)
        >>> router.add_api_route("/login", validated_endpoint(pipeline), methods=["POST"])
    """

    async def endpoint(request: Request) -> Response:
        path = request.url.path
        try:
            try:
                ctx = await extract_context(request)
            except ApiError as exc:
                result = pipeline.reject(request_origin(request), request_endpoint(request), exc)
            else:
                result = await pipeline.run(
                    ctx, is_cancelled=request.is_disconnected if check_disconnect else None
                )
        except PipelineCancelled:
            logger.info("[Boundary] Client disconnected: {} {}", request.method, path)
            return Response(status_code=CLIENT_CLOSED_REQUEST)
        except Exception as exc:
            error = coerce_to_api_error(exc)
            return render_error(error, path)
        return render_result(result, path)

    return endpoint


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return render_error(exc, request.url.path)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """FastAPI's own parameter validation, rendered in the taxonomy."""
    violations = sanitize_violations(format_validation_errors(exc.errors(), root_path="request"))
    logger.info("[Boundary] Request validation failed on {}: {} violations", request.url.path, len(violations))
    return render_error(violations_to_api_error(violations), request.url.path)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return render_error(coerce_to_api_error(exc), request.url.path)


def register_exception_handlers(app: FastAPI) -> None:
    """Install taxonomy rendering for every error that can reach FastAPI."""
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
