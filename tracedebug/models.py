"""Pydantic models for tracedebug."""

from __future__ import annotations

from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

TagValue = Union[str, int, float, bool, None, list[Any], dict[str, Any]]


# ── Enums ──────────────────────────────────────────────────────────────────


class FetchStep(IntEnum):
    NOT_FOUND = 0
    NO_SPAN_GRAPH = 1
    SPANS_ATTACHED = 2


class OrphanPolicy(str, Enum):
    DROP = "drop"
    APPEND = "append"


# ── Backend Models ─────────────────────────────────────────────────────────


def _as_id(value: Any) -> str | None:
    return None if value is None else str(value)


class RawReference(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    span_id: str | None = Field(default=None, alias="spanID")

    @field_validator("span_id", mode="before")
    @classmethod
    def coerce_span_id(cls, value: Any) -> str | None:
        return _as_id(value)


class RawSpan(BaseModel):
    """One span as the backend sends it; missing or null fields get defaults."""

    model_config = ConfigDict(extra="allow")

    span_id: str | None = None
    operation_name: str = ""
    start_time: float = 0.0
    duration: float | None = None
    error: Any = None
    tags: dict[str, TagValue] = Field(default_factory=dict)
    references: list[RawReference] = Field(default_factory=list)

    @field_validator("span_id", mode="before")
    @classmethod
    def coerce_span_id(cls, value: Any) -> str | None:
        return _as_id(value)

    @field_validator("operation_name", mode="before")
    @classmethod
    def default_operation(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("start_time", mode="before")
    @classmethod
    def default_start_time(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("references", mode="before")
    @classmethod
    def default_references(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [ref for ref in value if ref is not None]
        return value


class SpanContainer(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    type: str = ""
    spans: list[RawSpan] = Field(default_factory=list)

    @field_validator("name", "type", mode="before")
    @classmethod
    def default_label(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("spans", mode="before")
    @classmethod
    def default_spans(cls, value: Any) -> Any:
        return [] if value is None else value


class TraceSummary(BaseModel):
    model_config = ConfigDict(extra="allow")

    span_id: str | None = None

    @field_validator("span_id", mode="before")
    @classmethod
    def coerce_span_id(cls, value: Any) -> str | None:
        return _as_id(value)


class FetchResult(BaseModel):
    step: FetchStep = FetchStep.NOT_FOUND
    wrapper: TraceSummary | None = None
    spans: list[SpanContainer] | None = None


# ── Span Models ────────────────────────────────────────────────────────────


class Span(BaseModel):
    span_id: str | None = None
    parent_span_id: str | None = None
    timestamp: float
    date: datetime
    duration: float | None = None
    error: Any = None
    operation: str = ""
    name: str = ""
    invoked_name: str = ""
    activation_id: TagValue = None
    host: str | None = None
    path: TagValue = ""
    status: TagValue = "N/A"
    params: TagValue = None
    response: TagValue = None
    type: str = ""
    data: dict[str, TagValue] | None = None
    level: int = 0


class SpanTreeNode(Span):
    children: list[SpanTreeNode] = Field(default_factory=list)


class TraceView(BaseModel):
    request_id: str
    step: FetchStep
    wrapper: TraceSummary | None = None
    spans: list[Span] = Field(default_factory=list)
    orphan_count: int = 0
