"""Trace API routes."""

from __future__ import annotations

from fastapi import APIRouter, Header, HTTPException, Query, Request

from tracedebug import get_trace
from tracedebug.client import TraceFetchError
from tracedebug.models import OrphanPolicy, SpanTreeNode, TraceView
from tracedebug.tree import nest_spans

router = APIRouter(tags=["traces"])


def _bearer_token(request: Request, authorization: str | None) -> str:
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[len("bearer "):].strip()
        if token:
            return token
    token = request.app.state.config.api_token
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return token


async def _load_trace(
    request: Request,
    request_id: str,
    authorization: str | None,
    orphans: OrphanPolicy | None,
) -> TraceView:
    token = _bearer_token(request, authorization)
    try:
        return await get_trace(
            request_id,
            config=request.app.state.config,
            token=token,
            orphans=orphans,
            transport=request.app.state.transport,
        )
    except TraceFetchError as exc:
        raise HTTPException(
            status_code=502,
            detail={"endpoint": exc.endpoint, "status_code": exc.status_code},
        ) from exc


@router.get("/traces/{request_id}", response_model=TraceView)
async def get_trace_detail(
    request: Request,
    request_id: str,
    authorization: str | None = Header(None),
    orphans: OrphanPolicy | None = Query(None, description="Orphan span policy"),
):
    """Get the ordered spans of the trace for a request id."""
    return await _load_trace(request, request_id, authorization, orphans)


@router.get("/traces/{request_id}/tree", response_model=list[SpanTreeNode])
async def get_span_tree(
    request: Request,
    request_id: str,
    authorization: str | None = Header(None),
    orphans: OrphanPolicy | None = Query(None, description="Orphan span policy"),
):
    """Get spans as a nested tree structure for call tree rendering."""
    view = await _load_trace(request, request_id, authorization, orphans)
    return nest_spans(view.spans)
