"""Command line interface for :mod:`rdfscout`."""

import json
import os
from pathlib import Path
from typing import Any, Optional

import click

from .api import (
    classify_properties,
    discover_types,
    run_query,
    sample_filtered_nodes,
    sample_nodes,
)
from .concurrency import DEFAULT_MAX_WORKERS
from .exceptions import RdfScoutError
from .models import dump_node_map, dump_type_map

__all__ = [
    "main",
]


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@click.group()
@click.version_option()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    r"""rdfscout - browse the schema of a SPARQL endpoint.

    Discover the types of an endpoint, classify their properties and
    sample example nodes. Results are printed as JSON.


    Typical workflow: vars > properties > nodes
    """
    import logging

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            force=True,
        )
        logging.getLogger("rdfscout").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s", force=True)


endpoint_option = click.option("--endpoint", required=True, help="SPARQL endpoint URL")
timeout_option = click.option(
    "--timeout", type=float, default=None, help="Give up after this many seconds",
)
workers_option = click.option(
    "--max-workers", type=int, default=DEFAULT_MAX_WORKERS, show_default=True,
    help="Concurrent queries",
)


@main.command(name="vars")
@endpoint_option
@timeout_option
@workers_option
def vars_command(endpoint: str, timeout: Optional[float], max_workers: int) -> None:
    """Discover the browsable types of an endpoint.

    Example:
      rdfscout vars --endpoint https://sparql.uniprot.org/sparql
    """
    try:
        types = discover_types(endpoint, timeout=timeout, max_workers=max_workers)
        _echo_json(dump_type_map(types))
    except RdfScoutError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()


@main.command()
@endpoint_option
@timeout_option
@workers_option
def properties(endpoint: str, timeout: Optional[float], max_workers: int) -> None:
    """Classify the object and data properties of every type.

    Runs type discovery first.
    """
    try:
        types = discover_types(endpoint, timeout=timeout, max_workers=max_workers)
        maps = classify_properties(types, endpoint, timeout=timeout, max_workers=max_workers)
        _echo_json(maps.to_json())
    except RdfScoutError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()


@main.command()
@endpoint_option
@click.option("--limit", type=int, default=100, show_default=True, help="Candidates per type")
@click.option("--total", type=int, default=1000, show_default=True, help="Total node budget")
@click.option("--filter", "filter_text", help="Keep nodes whose URI, label or type contains this")
@timeout_option
@workers_option
def nodes(
    endpoint: str,
    limit: int,
    total: int,
    filter_text: Optional[str],
    timeout: Optional[float],
    max_workers: int,
) -> None:
    r"""Sample labelled example nodes of every type.

    Example:
      rdfscout nodes --endpoint https://sparql.uniprot.org/sparql \
                     --total 200 --filter kinase
    """
    try:
        types = discover_types(endpoint, timeout=timeout, max_workers=max_workers)
        if filter_text:
            result = sample_filtered_nodes(
                types, endpoint, limit, filter_text, total,
                timeout=timeout, max_workers=max_workers,
            )
        else:
            result = sample_nodes(
                types, endpoint, limit, total, timeout=timeout, max_workers=max_workers,
            )
        _echo_json(dump_node_map(result))
    except RdfScoutError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()


@main.command()
@endpoint_option
@click.option("--query", "query_text", help="SPARQL SELECT query")
@click.option(
    "--query-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="File holding the query",
)
@click.option("--labels/--no-labels", default=True, help="Attach labels to URI cells")
@click.option("--post", is_flag=True, help="Send the query with POST")
def query(
    endpoint: str,
    query_text: Optional[str],
    query_file: Optional[Path],
    labels: bool,
    post: bool,
) -> None:
    """Run a SELECT query and print the labelled result."""
    if query_file is not None:
        query_text = query_file.read_text(encoding="utf-8")
    if not query_text:
        raise click.UsageError("Provide --query or --query-file")

    result = run_query(endpoint, query_text, labels=labels, method="POST" if post else "GET")
    if result.error:
        click.echo(f"Error: {result.error}", err=True)
        raise click.Abort()
    _echo_json(result.model_dump(exclude_none=True))


@main.command()
@click.option("--host", default=lambda: os.getenv("FLASK_HOST", "127.0.0.1"), help="Bind address")
@click.option("--port", type=int, default=lambda: int(os.getenv("FLASK_PORT", "5000")), help="Port")
@click.option("--debug", is_flag=True, help="Run Flask in debug mode")
def serve(host: str, port: int, debug: bool) -> None:
    """Run the HTTP service."""
    from rdfscout.backend.app import create_app

    app = create_app()
    click.echo(f"Serving rdfscout on http://{host}:{port}")
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    main()
