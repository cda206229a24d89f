"""Epsagon API client.

Looks up the most recent trace for a request id and fetches its span
graph.  The two calls are made in sequence because the graph request is
keyed by the span id returned from the search.

Usage::

    async with EpsagonClient(config, token="...") as client:
        result = await client.get_data("3f2a...")
        if result.step == FetchStep.SPANS_ATTACHED:
            ...
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from tracedebug.config import TracedebugConfig
from tracedebug.models import FetchResult, FetchStep, SpanContainer, TraceSummary

logger = logging.getLogger("tracedebug")

SEARCH_PATH = "/search/query_events"
GRAPH_PATH = "/spans/graph"


class TraceFetchError(RuntimeError):
    """A backend request returned a non-success status."""

    def __init__(self, endpoint: str, status_code: int):
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(f"Request to {endpoint} failed with status code {status_code}")


class EpsagonClient:
    """Async client for the Epsagon search and span graph endpoints."""

    def __init__(
        self,
        config: TracedebugConfig | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or TracedebugConfig()
        self.token = token or self.config.api_token
        self._http = httpx.AsyncClient(
            base_url=self.config.api_endpoint,
            timeout=self.config.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> EpsagonClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    # ── Requests ───────────────────────────────────────────────────────

    def _search_query(self, request_id: str) -> str:
        return json.dumps({
            "search_string": [{"type": "aws_request_id", "term": request_id}],
            "time_frame": {"type": self.config.time_frame},
            "sort": {"by": "start_time", "direction": "desc"},
        })

    async def _get_json(self, path: str, params: dict[str, str]) -> Any:
        if not self.token:
            raise ValueError("An Epsagon API token is required")

        endpoint = f"{self.config.api_endpoint}{path}"
        request = self._http.build_request(
            "GET",
            path,
            params=params,
            headers={"Authorization": f"Bearer {self.token}"},
        )
        logger.debug("url: %s", request.url)
        response = await self._http.send(request)
        if not response.is_success:
            logger.error("Error while requesting %s: %s", path, response.text)
            raise TraceFetchError(endpoint, response.status_code)
        return response.json()

    async def search(self, request_id: str) -> list[TraceSummary]:
        """Return the traces matching ``request_id``, most recent first.

        Anything other than a JSON array counts as no match.
        """
        data = await self._get_json(SEARCH_PATH, {"query": self._search_query(request_id)})
        if not isinstance(data, list):
            return []
        return [TraceSummary.model_validate(item) for item in data if isinstance(item, dict)]

    async def span_graph(self, span_id: str) -> list[SpanContainer]:
        """Return the span containers of the graph rooted at ``span_id``."""
        data = await self._get_json(GRAPH_PATH, {"span_id": span_id})
        containers = data.get("data") if isinstance(data, dict) else None
        if not isinstance(containers, list):
            return []
        return [SpanContainer.model_validate(item) for item in containers if isinstance(item, dict)]

    async def get_data(self, request_id: str) -> FetchResult:
        """Search for ``request_id`` and attach the span graph of the first hit."""
        result = FetchResult()

        summaries = await self.search(request_id)
        if not summaries:
            logger.info("No trace found for request %s", request_id)
            return result

        wrapper = summaries[0]
        if not wrapper.span_id:
            logger.info("Trace for request %s has no span graph id", request_id)
            result.step = FetchStep.NO_SPAN_GRAPH
            return result

        result.wrapper = wrapper
        result.spans = await self.span_graph(wrapper.span_id)
        result.step = FetchStep.SPANS_ATTACHED
        logger.info(
            "Fetched %d span containers for request %s", len(result.spans), request_id
        )
        return result
