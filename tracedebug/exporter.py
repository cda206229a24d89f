"""tracedebug exporters.

Writes an ordered trace (as returned by :func:`tracedebug.get_trace`) to
JSON or CSV so a call tree can be shared or loaded into other tools.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tracedebug.models import TraceView


class SpanExporter:
    """Export the ordered spans of one trace.

    Usage::

        exporter = SpanExporter(view)

        # Write the call tree to JSON
        exporter.export_json("trace.json")

        # Or get CSV text in memory
        text = exporter.export_csv()
    """

    def __init__(self, view: TraceView):
        self.view = view

    # ── JSON Export ────────────────────────────────────────────────────

    def export_json(
        self,
        output_path: str | None = None,
        *,
        pretty: bool = True,
    ) -> dict[str, Any]:
        """Export the trace as JSON.

        Args:
            output_path: If provided, write JSON to this file path.
            pretty: Whether to pretty-print the JSON output.

        Returns:
            The exported data as a dictionary.
        """
        data = {
            "version": "1.0",
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "request_id": self.view.request_id,
            "step": int(self.view.step),
            "span_count": len(self.view.spans),
            "spans": [span.model_dump(mode="json") for span in self.view.spans],
        }

        if output_path:
            path = Path(output_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            indent = 2 if pretty else None
            path.write_text(
                json.dumps(data, indent=indent, ensure_ascii=False, default=str),
                encoding="utf-8",
            )

        return data

    # ── CSV Export ─────────────────────────────────────────────────────

    def export_csv(self, output_path: str | None = None) -> str:
        """Export the spans as CSV, one row per span in tree order.

        Args:
            output_path: If provided, write CSV to this file path.

        Returns:
            The CSV content as a string.
        """
        buf = io.StringIO()
        writer = csv.writer(buf)

        writer.writerow([
            "span_id",
            "parent_span_id",
            "level",
            "name",
            "invoked_name",
            "activation_id",
            "operation",
            "type",
            "started_at",
            "duration",
            "status",
            "host",
            "path",
            "error",
        ])

        for span in self.view.spans:
            writer.writerow([
                span.span_id,
                span.parent_span_id or "",
                span.level,
                "  " * span.level + span.name,
                span.invoked_name,
                span.activation_id or "",
                span.operation,
                span.type,
                span.date.isoformat(),
                span.duration if span.duration is not None else "",
                span.status,
                span.host or "",
                span.path,
                json.dumps(span.error, default=str) if span.error else "",
            ])

        text = buf.getvalue()
        if output_path:
            path = Path(output_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")

        return text
