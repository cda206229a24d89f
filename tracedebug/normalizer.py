"""Span normalizer. Maps Epsagon/OpenWhisk span records onto :class:`Span`.

The backend emits heterogeneous tag sets depending on the instrumentation
version, so every attribute is resolved from an ordered list of candidate
tags and degrades to an empty value instead of raising.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from tracedebug.models import (
    OrphanPolicy,
    RawSpan,
    Span,
    SpanContainer,
    TagValue,
)
from tracedebug.tree import build_tree

# ── Tag keys ───────────────────────────────────────────────────────────────

ACTION_NAME = "openwhisk.action.name"
ACTION_NAMESPACE = "openwhisk.namespace"
ACTION_PACKAGE = "openwhisk.action.package"
ACTION_VERSION = "openwhisk.action.version"
ACTION_ACTIVATION_ID = "openwhisk.action.activation_id"
ACTION_RESPONSE = "openwhisk.action.response"
ACTION_PARAMS = "openwhisk.action.params"
API_HOST = "openwhisk.api_host"
HTTP_HOST = "http.host"
HTTP_SCHEME = "http.scheme"
HTTP_PATH = "http.request.path"
HTTP_STATUS_CODE = "http.status_code"
STATUS = "status"
PARAMS = "params"

LAST_ACTIVATION_HEADER = "x-last-activation-id"
NO_STATUS = "N/A"


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _tag(tags: Mapping[str, TagValue], key: str) -> TagValue:
    """Return the tag value, or None when the tag is missing or empty."""
    value = tags.get(key)
    return value if _present(value) else None


def _lookup(value: Any, *keys: str) -> Any:
    """Walk nested mappings, returning None as soon as a level is missing."""
    for key in keys:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value if _present(value) else None


# ── Field resolution ───────────────────────────────────────────────────────


def _invoked_name(tags: Mapping[str, TagValue]) -> str:
    action_name = _tag(tags, ACTION_NAME)
    if action_name is None:
        return ""
    namespace = _tag(tags, ACTION_NAMESPACE)
    package = _tag(tags, ACTION_PACKAGE)
    version = _tag(tags, ACTION_VERSION)
    return "/{}{}{}{}".format(
        f"{namespace}/" if namespace is not None else "",
        f"{package}/" if package is not None else "",
        action_name,
        f"@{version}" if version is not None else "",
    )


def _activation_id(tags: Mapping[str, TagValue]) -> TagValue:
    # Sequences report the id of their last component activation.
    last = _lookup(tags.get(ACTION_RESPONSE), "result", "headers", LAST_ACTIVATION_HEADER)
    if last is not None:
        return last
    return _tag(tags, ACTION_ACTIVATION_ID)


def _host(tags: Mapping[str, TagValue]) -> str | None:
    api_host = _tag(tags, API_HOST)
    if api_host is not None:
        return str(api_host)
    http_host = _tag(tags, HTTP_HOST)
    if http_host is None:
        return None
    scheme = _tag(tags, HTTP_SCHEME)
    return f"{scheme}://{http_host}" if scheme is not None else str(http_host)


def _path(tags: Mapping[str, TagValue]) -> TagValue:
    path = _lookup(tags.get(ACTION_PARAMS), "path")
    if path is not None:
        return path
    path = _tag(tags, HTTP_PATH)
    return path if path is not None else ""


def _status(tags: Mapping[str, TagValue]) -> TagValue:
    result = _lookup(tags.get(ACTION_RESPONSE), "result")
    if result is not None:
        status = _lookup(result, "statusCode")
        return status if status is not None else NO_STATUS
    for key in (STATUS, HTTP_STATUS_CODE):
        status = _tag(tags, key)
        if status is not None:
            return status
    return NO_STATUS


# ── Public API ─────────────────────────────────────────────────────────────


def normalize_span(raw: RawSpan, container: SpanContainer) -> Span:
    """Build the canonical :class:`Span` for one raw span of ``container``."""
    tags = raw.tags
    action_name = _tag(tags, ACTION_NAME)
    timestamp = raw.start_time * 1000
    parent_span_id = raw.references[0].span_id if raw.references else None

    return Span(
        span_id=raw.span_id,
        parent_span_id=parent_span_id,
        timestamp=timestamp,
        date=datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc),
        duration=raw.duration,
        error=raw.error,
        operation=raw.operation_name,
        name=str(action_name) if action_name is not None else container.name,
        invoked_name=_invoked_name(tags),
        activation_id=_activation_id(tags),
        host=_host(tags),
        path=_path(tags),
        status=_status(tags),
        params=tags.get(ACTION_PARAMS),
        response=tags.get(ACTION_RESPONSE),
        type=container.type,
        data=None if _tag(tags, PARAMS) is not None else dict(tags),
    )


def normalize_container(container: SpanContainer) -> list[Span]:
    return [normalize_span(raw, container) for raw in container.spans]


def normalize_containers(containers: Iterable[SpanContainer]) -> list[Span]:
    """Flatten every container into one unordered list of spans."""
    spans: list[Span] = []
    for container in containers:
        spans.extend(normalize_container(container))
    return spans


def construct_spans(
    containers: Iterable[SpanContainer] | None,
    orphans: OrphanPolicy = OrphanPolicy.APPEND,
) -> list[Span]:
    """Normalize a span graph and return it as an ordered call tree."""
    if not containers:
        return []
    return build_tree(normalize_containers(containers), orphans=orphans)
