"""
tracedebug: rebuild OpenWhisk call trees from Epsagon trace data.

Usage::

    import asyncio
    import tracedebug

    view = asyncio.run(tracedebug.get_trace("3f2a...", token="..."))
    for span in view.spans:
        print("  " * span.level, span.name, span.status)
"""

from __future__ import annotations

import logging

import httpx

from tracedebug.client import EpsagonClient, TraceFetchError
from tracedebug.config import TracedebugConfig
from tracedebug.models import FetchStep, OrphanPolicy, Span, SpanTreeNode, TraceView
from tracedebug.normalizer import construct_spans, normalize_containers
from tracedebug.tree import build_tree, find_orphans, nest_spans

__version__ = "0.1.0"
__all__ = [
    "get_trace",
    "build_tree",
    "construct_spans",
    "nest_spans",
    "EpsagonClient",
    "FetchStep",
    "OrphanPolicy",
    "Span",
    "SpanTreeNode",
    "TraceFetchError",
    "TraceView",
    "TracedebugConfig",
]

logger = logging.getLogger("tracedebug")


async def get_trace(
    request_id: str,
    config: TracedebugConfig | None = None,
    token: str | None = None,
    orphans: OrphanPolicy | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> TraceView:
    """Fetch the trace of ``request_id`` and return its ordered spans.

    Args:
        request_id: Request (activation) id to search for.
        config: Backend settings; defaults to ``TracedebugConfig()``.
        token: Bearer token; falls back to ``config.api_token``.
        orphans: Overrides ``config.orphan_policy``.
        transport: Optional httpx transport, mainly for tests.

    Raises:
        TraceFetchError: If a backend request fails.
    """
    config = config or TracedebugConfig()
    policy = OrphanPolicy(orphans or config.orphan_policy)

    async with EpsagonClient(config, token=token, transport=transport) as client:
        result = await client.get_data(request_id)

    view = TraceView(request_id=request_id, step=result.step, wrapper=result.wrapper)
    if result.step == FetchStep.SPANS_ATTACHED and result.spans:
        spans = normalize_containers(result.spans)
        view.orphan_count = len(find_orphans(spans))
        view.spans = build_tree(spans, orphans=policy)
    return view
