# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Example routes for Gatekeeper.

Each route is a ValidationPipeline wrapped by the boundary:

    POST /api/examples/login              body (registry id "auth.login.request")
    GET  /api/examples/users              query (pagination defaults)
    GET  /api/examples/users/{user_id}    params
    POST /api/examples/complex/{user_id}  headers, params, query, body
    POST /api/examples/error-handling     manual validation inside the handler

Plus the operational GET /health and GET /stats.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from gatekeeper.boundary import validated_endpoint
from gatekeeper.config import APP_VERSION
from gatekeeper.error_adapter import sanitize_violations
from gatekeeper.errors import ErrorCodes, make_api_error
from gatekeeper.pipeline import RequestContext, ValidationPipeline
from gatekeeper.pydantic_schema import PydanticSchema
from gatekeeper.schemas import MeasurementBody, Pagination, UserIdParams, UserProfileBody
from gatekeeper.stage import validate_body, validate_params, validate_query
from gatekeeper.state import GateState

_measurement_schema = PydanticSchema(MeasurementBody)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def login(ctx: RequestContext) -> dict:
    body = ctx.body
    return {
        "message": "Validation passed",
        "email": body.email,
        "rememberMe": body.remember_me,
        "timestamp": _now_iso(),
    }


def list_users(ctx: RequestContext) -> dict:
    query = ctx.query
    return {
        "page": query.page,
        "limit": query.limit,
        "sort": query.sort,
        "results": [],
        "timestamp": _now_iso(),
    }


def get_user(ctx: RequestContext) -> dict:
    return {"userId": ctx.params.user_id, "timestamp": _now_iso()}


def update_user(ctx: RequestContext) -> dict:
    return {
        "message": "All validations passed",
        "userId": ctx.params.user_id,
        "pagination": ctx.query.model_dump(),
        "user": ctx.body.model_dump(),
        "timestamp": _now_iso(),
    }


def error_handling(ctx: RequestContext) -> dict:
    """Validates by hand and raises the taxonomy error itself."""
    outcome = _measurement_schema.validate(ctx.body)
    if not outcome.ok:
        raise make_api_error(
            ErrorCodes.VALIDATION_ERROR,
            "Validation failed",
            {"errors": [v.to_dict() for v in sanitize_violations(outcome.violations)]},
        )
    return outcome.value.model_dump()


def create_examples_router(state: GateState) -> APIRouter:
    """
    Build the example routes on the given state.

    Args:
        state: Shared tracker, cache, registry and options

    Returns:
        Router mounted under /api/examples
    """
    router = APIRouter(prefix="/api/examples", tags=["examples"])
    opts = state.options

    def pipeline(stages, handler, **kwargs) -> ValidationPipeline:
        return ValidationPipeline(stages, handler, guard=state.guard, cache=state.cache, **kwargs)

    # Credentials never enter the memo store
    login_opts = opts.merged(use_cache=False)
    router.add_api_route(
        "/login",
        validated_endpoint(
            pipeline(
                [validate_body("auth.login.request", login_opts, registry=state.registry)], login
            )
        ),
        methods=["POST"],
        name="login",
    )
    router.add_api_route(
        "/users",
        validated_endpoint(pipeline([validate_query(Pagination, opts)], list_users)),
        methods=["GET"],
    )
    router.add_api_route(
        "/users/{user_id}",
        validated_endpoint(pipeline([validate_params(UserIdParams, opts)], get_user)),
        methods=["GET"],
    )
    router.add_api_route(
        "/complex/{user_id}",
        validated_endpoint(
            pipeline(
                [
                    validate_params(UserIdParams, opts),
                    validate_query(Pagination, opts),
                    validate_body(UserProfileBody, opts),
                ],
                update_user,
                include_security_headers=True,
            )
        ),
        methods=["POST"],
    )
    router.add_api_route(
        "/error-handling",
        validated_endpoint(pipeline([], error_handling)),
        methods=["POST"],
    )
    return router


def create_ops_router(state: GateState) -> APIRouter:
    """Health and statistics endpoints."""
    router = APIRouter(tags=["ops"])

    @router.get("/health")
    async def health():
        return {"status": "healthy", "version": APP_VERSION, "timestamp": _now_iso()}

    @router.get("/stats")
    async def stats():
        return {
            "success": True,
            "data": {
                "cache": state.cache.snapshot().to_dict(),
                "trackedOrigins": len(state.tracker),
                "schemas": sorted(state.registry.all_ids()),
            },
        }

    return router
