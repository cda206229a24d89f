"""tracedebug FastAPI application."""

from __future__ import annotations

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tracedebug.config import TracedebugConfig
from tracedebug.server.routes.traces import router as traces_router


def create_app(
    config: TracedebugConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="tracedebug",
        description="OpenWhisk call trees rebuilt from Epsagon traces",
        version="0.1.0",
    )

    # Backend settings and optional httpx transport for route access
    app.state.config = config or TracedebugConfig()
    app.state.transport = transport

    # CORS: allow local dev
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(traces_router, prefix="/api")

    return app
