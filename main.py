# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Gatekeeper - per-request validation gate.

Application entry point. Builds the FastAPI app, configures logging and
runs uvicorn.

Usage:
    # Using default settings (host: 0.0.0.0, port: 8000)
    python main.py

    # With CLI arguments (highest priority)
    python main.py --port 9000
    python main.py --host 127.0.0.1 --port 9000

    # With environment variables (medium priority)
    SERVER_PORT=9000 python main.py

    # Using uvicorn directly (uvicorn handles its own args)
    uvicorn main:app --host 0.0.0.0 --port 8000

Priority: CLI args > Environment variables > Default values
"""

import argparse
import asyncio
import sys
from contextlib import asynccontextmanager
from typing import Optional, Tuple

import uvicorn
from fastapi import FastAPI
from loguru import logger

from gatekeeper.boundary import register_exception_handlers
from gatekeeper.config import (
    APP_DESCRIPTION,
    APP_TITLE,
    APP_VERSION,
    DEFAULT_SERVER_HOST,
    DEFAULT_SERVER_PORT,
    LOG_LEVEL,
    LOG_REDACTION_ENABLED,
    SERVER_HOST,
    SERVER_PORT,
    VALIDATION_MAX_DEPTH,
    VALIDATION_MAX_FAILURES_PER_HOUR,
    VALIDATION_MAX_FAILURES_PER_MINUTE,
    VALIDATION_TIMEOUT_MS,
    VALIDATION_WORKER_THREADS,
)
from gatekeeper.redaction import redact_record
from gatekeeper.routes_examples import create_examples_router, create_ops_router
from gatekeeper.state import GateState

# Seconds between tracker sweeps.
SWEEP_INTERVAL_SECONDS = 60


def setup_logging(level: str = LOG_LEVEL, redact: bool = LOG_REDACTION_ENABLED) -> None:
    """
    Configure the loguru sink.

    Args:
        level: Minimum level
        redact: Mask personal data in every record
    """
    logger.remove()
    logger.configure(patcher=redact_record if redact else None)
    logger.add(
        sys.stderr,
        level=level,
        colorize=True,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
    )


def validate_configuration() -> None:
    """
    Refuse to start with limits that would disable validation.

    Exits with code 1 listing every problem found.
    """
    errors = []
    if VALIDATION_TIMEOUT_MS <= 0:
        errors.append("VALIDATION_TIMEOUT_MS must be positive")
    if VALIDATION_WORKER_THREADS <= 0:
        errors.append("VALIDATION_WORKER_THREADS must be positive")
    if VALIDATION_MAX_DEPTH < 0:
        errors.append("VALIDATION_MAX_DEPTH must not be negative")
    if VALIDATION_MAX_FAILURES_PER_MINUTE <= 0:
        errors.append("VALIDATION_MAX_FAILURES_PER_MINUTE must be positive")
    if VALIDATION_MAX_FAILURES_PER_HOUR <= 0:
        errors.append("VALIDATION_MAX_FAILURES_PER_HOUR must be positive")

    if errors:
        for message in errors:
            logger.error("[Config] {}", message)
        sys.exit(1)


async def _sweep_periodically(state: GateState) -> None:
    while True:
        await asyncio.sleep(SWEEP_INTERVAL_SECONDS)
        state.tracker.sweep()


def create_app(state: Optional[GateState] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        state: Shared validation state (default: built from config)

    Returns:
        Configured application; the state is available as app.state.gate
    """
    gate = state or GateState.create()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("[Startup] {} v{} ready", APP_TITLE, APP_VERSION)
        sweeper = asyncio.create_task(_sweep_periodically(gate))
        try:
            yield
        finally:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
            logger.info("[Shutdown] {} stopped", APP_TITLE)

    app = FastAPI(
        title=APP_TITLE,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.gate = gate
    register_exception_handlers(app)
    app.include_router(create_ops_router(gate))
    app.include_router(create_examples_router(gate))
    return app


def parse_cli_args() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Namespace with host and port (None when not given)
    """
    parser = argparse.ArgumentParser(
        prog="gatekeeper",
        description=f"{APP_TITLE} - {APP_DESCRIPTION}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                          # Use defaults (0.0.0.0:8000)
  python main.py --port 9000              # Custom port
  python main.py --host 127.0.0.1         # Local connections only
  python main.py -H 0.0.0.0 -p 8080       # Short form

Environment Variables:
  SERVER_HOST     Server host address (default: 0.0.0.0)
  SERVER_PORT     Server port (default: 8000)

Priority: CLI args > Environment variables > Default values
        """,
    )
    parser.add_argument(
        "-H",
        "--host",
        type=str,
        default=None,
        metavar="HOST",
        help=f"Server host address (default: {DEFAULT_SERVER_HOST})",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=None,
        metavar="PORT",
        help=f"Server port (default: {DEFAULT_SERVER_PORT})",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )
    return parser.parse_args()


def resolve_server_config(args: argparse.Namespace) -> Tuple[str, int]:
    """
    Resolve host and port: CLI args, then environment, then defaults.

    Args:
        args: Parsed CLI arguments

    Returns:
        (host, port)
    """
    if args.host is not None:
        host = args.host
    elif SERVER_HOST != DEFAULT_SERVER_HOST:
        host = SERVER_HOST
    else:
        host = DEFAULT_SERVER_HOST

    if args.port is not None:
        port = args.port
    elif SERVER_PORT != DEFAULT_SERVER_PORT:
        port = SERVER_PORT
    else:
        port = DEFAULT_SERVER_PORT

    return host, port


def print_startup_banner(host: str, port: int) -> None:
    """Print the server URLs."""
    display_host = "localhost" if host == "0.0.0.0" else host
    url = f"http://{display_host}:{port}"

    print()
    print(f"  {APP_TITLE} v{APP_VERSION}")
    print()
    print(f"  Server running at: {url}")
    print(f"  API Docs:          {url}/docs")
    print(f"  Health Check:      {url}/health")
    print(f"  Statistics:        {url}/stats")
    print()


app = create_app()


if __name__ == "__main__":
    args = parse_cli_args()
    setup_logging()
    validate_configuration()

    final_host, final_port = resolve_server_config(args)
    print_startup_banner(final_host, final_port)

    uvicorn.run(app, host=final_host, port=final_port, log_config=None)
