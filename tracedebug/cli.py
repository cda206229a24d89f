"""tracedebug command-line interface.

Usage:
    tracedebug show REQUEST_ID               Print the call tree of a request
    tracedebug export REQUEST_ID -o out.csv  Export the call tree to JSON or CSV
    tracedebug serve --port 9000             Start the JSON API
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import replace

import click

from tracedebug import __version__, get_trace
from tracedebug.client import TraceFetchError
from tracedebug.config import TracedebugConfig
from tracedebug.models import FetchStep, OrphanPolicy, TraceView

STEP_MESSAGES = {
    FetchStep.NOT_FOUND: "No trace found for request {request_id}",
    FetchStep.NO_SPAN_GRAPH: "Trace found for request {request_id} but it has no span graph",
}


@click.group()
@click.version_option(version=__version__, prog_name="tracedebug")
@click.option("--token", envvar="EPSAGON_TOKEN", default=None, help="Epsagon API token (env: EPSAGON_TOKEN)")
@click.option(
    "--orphans",
    type=click.Choice([p.value for p in OrphanPolicy]),
    default=None,
    help="What to do with spans that do not descend from a root span",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level (default: WARNING)",
)
@click.pass_context
def main(ctx: click.Context, token: str | None, orphans: str | None, log_level: str):
    """tracedebug: rebuild OpenWhisk call trees from Epsagon traces."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    config = TracedebugConfig.from_env()
    if token:
        config = replace(config, api_token=token)
    if orphans:
        config = replace(config, orphan_policy=OrphanPolicy(orphans))
    ctx.obj = config


def _fetch(config: TracedebugConfig, request_id: str) -> TraceView:
    if not config.api_token:
        raise click.UsageError("An Epsagon API token is required (--token or EPSAGON_TOKEN)")
    try:
        view = asyncio.run(get_trace(request_id, config=config))
    except TraceFetchError as exc:
        raise click.ClickException(str(exc)) from exc

    if view.step != FetchStep.SPANS_ATTACHED:
        raise click.ClickException(STEP_MESSAGES[view.step].format(request_id=request_id))
    return view


@main.command()
@click.argument("request_id")
@click.pass_obj
def show(config: TracedebugConfig, request_id: str):
    """Print the call tree of a request."""
    view = _fetch(config, request_id)

    for span in view.spans:
        label = span.invoked_name or span.name
        duration = f"{span.duration}ms" if span.duration is not None else "-"
        click.echo(
            f"{'  ' * span.level}{label}  [{span.status}]  {duration}"
            f"  {span.activation_id or ''}".rstrip()
        )

    if view.orphan_count:
        click.echo(f"\n{view.orphan_count} span(s) did not descend from a root span", err=True)


@main.command()
@click.argument("request_id")
@click.option("--output", "-o", default=None, help="Output file path (default: stdout for JSON)")
@click.option("--format", "-f", "fmt", type=click.Choice(["json", "csv"]), default="json", help="Export format (default: json)")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON output")
@click.pass_obj
def export(config: TracedebugConfig, request_id: str, output: str | None, fmt: str, pretty: bool):
    """Export the call tree of a request to JSON or CSV."""
    from tracedebug.exporter import SpanExporter

    exporter = SpanExporter(_fetch(config, request_id))

    if fmt == "csv":
        text = exporter.export_csv(output)
        if output:
            click.echo(f"Exported {len(exporter.view.spans)} spans to {output}")
        else:
            click.echo(text, nl=False)
    else:
        data = exporter.export_json(output, pretty=pretty or (output is not None))
        if output:
            click.echo(f"Exported {data['span_count']} spans to {output}")
        else:
            indent = 2 if pretty else None
            click.echo(json.dumps(data, indent=indent, ensure_ascii=False, default=str))


@main.command()
@click.option("--port", "-p", default=None, type=int, help="Port to serve on (default: 8746)")
@click.option("--host", "-h", default=None, help="Host to bind to (default: 127.0.0.1)")
@click.pass_obj
def serve(config: TracedebugConfig, port: int | None, host: str | None):
    """Start the tracedebug JSON API."""
    import uvicorn
    from tracedebug.server.app import create_app

    host = host or config.server_host
    port = port or config.server_port
    app = create_app(config)

    click.echo(f"")
    click.echo(f"  tracedebug v{__version__}")
    click.echo(f"  API: http://{host}:{port}/api/traces/<request_id>")
    click.echo(f"")

    uvicorn.run(app, host=host, port=port, log_level="warning")


if __name__ == "__main__":
    main()
