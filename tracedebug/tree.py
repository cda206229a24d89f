"""Tree builder. Orders a flat span collection into a depth-first call tree.

Each sibling group is inserted right after its parent, skipping siblings
that started no later than the span being placed, so concurrent fan-out
executions keep a chronological reading order.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable

from tracedebug.models import OrphanPolicy, Span, SpanTreeNode

logger = logging.getLogger("tracedebug")

ChildrenMap = dict[str | None, list[Span]]


def _children_map(spans: list[Span]) -> ChildrenMap:
    children: ChildrenMap = defaultdict(list)
    for span in spans:
        children[span.parent_span_id].append(span)
    return children


def _insert_position(ordered: list[Span], span: Span) -> int:
    parent_id = span.parent_span_id
    position = 0
    if parent_id is not None:
        for index in range(len(ordered) - 1, -1, -1):
            if ordered[index].span_id == parent_id:
                position = index + 1
                break

    while (
        position < len(ordered)
        and ordered[position].parent_span_id == parent_id
        and ordered[position].timestamp <= span.timestamp
    ):
        position += 1
    return position


def _place_descendants(
    ordered: list[Span],
    children: ChildrenMap,
    placed: set[int],
    parent_id: str | None,
    level: int,
) -> None:
    """Place every descendant of ``parent_id`` in pre-order.

    A whole sibling group is placed before any of its members' own
    children, and a span object is never placed twice.
    """
    stack: list[tuple[str | None, int]] = [(parent_id, level)]
    while stack:
        current_id, current_level = stack.pop()
        group = [s for s in children.get(current_id, ()) if id(s) not in placed]
        for span in group:
            if ordered:
                ordered.insert(_insert_position(ordered, span), span)
            else:
                ordered.append(span)
            span.level = current_level
            placed.add(id(span))
        for span in reversed(group):
            stack.append((span.span_id, current_level + 1))


def _append_orphans(
    ordered: list[Span],
    children: ChildrenMap,
    placed: set[int],
    remaining: list[Span],
) -> None:
    while remaining:
        pending_ids = {s.span_id for s in remaining}
        anchors = [s for s in remaining if s.parent_span_id not in pending_ids]
        if not anchors:
            # Every pending span has a pending parent: a reference cycle.
            anchors = [min(remaining, key=lambda s: s.timestamp)]

        for anchor in sorted(anchors, key=lambda s: s.timestamp):
            if id(anchor) in placed:
                continue
            ordered.append(anchor)
            anchor.level = 0
            placed.add(id(anchor))
            _place_descendants(ordered, children, placed, anchor.span_id, 1)

        remaining = [s for s in remaining if id(s) not in placed]


def build_tree(
    spans: Iterable[Span],
    orphans: OrphanPolicy = OrphanPolicy.APPEND,
) -> list[Span]:
    """Order ``spans`` as a pre-order traversal of their parent/child forest.

    Root spans (no parent) get ``level`` 0 and every placed child gets its
    parent's level plus one. Siblings are kept in start-time order; spans
    with equal timestamps keep their input order.

    Spans that cannot be reached from a root are either dropped or appended
    after the rooted tree as secondary roots, depending on ``orphans``.

    Args:
        spans: Normalized spans in backend order.  Their ``level`` is
            assigned in place.
        orphans: What to do with spans whose parent chain never reaches a
            root span.

    Returns:
        The ordered span sequence.
    """
    spans = list(spans)
    children = _children_map(spans)
    ordered: list[Span] = []
    placed: set[int] = set()

    _place_descendants(ordered, children, placed, None, 0)

    remaining = [s for s in spans if id(s) not in placed]
    if remaining:
        logger.warning(
            "%d of %d spans do not descend from a root span (policy: %s)",
            len(remaining), len(spans), OrphanPolicy(orphans).value,
        )
        if orphans == OrphanPolicy.APPEND:
            _append_orphans(ordered, children, placed, remaining)

    return ordered


def find_orphans(spans: Iterable[Span]) -> list[Span]:
    """Return the spans whose parent chain never reaches a root span."""
    spans = list(spans)
    children = _children_map(spans)
    reached: set[int] = set()
    stack: list[str | None] = [None]
    while stack:
        for child in children.get(stack.pop(), ()):
            if id(child) not in reached:
                reached.add(id(child))
                stack.append(child.span_id)
    return [s for s in spans if id(s) not in reached]


def nest_spans(ordered: Iterable[Span]) -> list[SpanTreeNode]:
    """Turn an ordered sequence from :func:`build_tree` into nested nodes."""
    roots: list[SpanTreeNode] = []
    path: list[SpanTreeNode] = []
    for span in ordered:
        node = SpanTreeNode(**span.model_dump())
        while path and path[-1].level >= node.level:
            path.pop()
        if path:
            path[-1].children.append(node)
        else:
            roots.append(node)
        path.append(node)
    return roots
