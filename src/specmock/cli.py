"""CLI interface for specmock.

Provides commands for serving mock APIs and inspecting the routes
synthesized from OpenAPI documents.

Usage:
    specmock serve                      # Serve using specmock.yml / defaults
    specmock serve --openapi-dir specs  # Serve documents from specs/
    specmock routes specs/              # List synthesized routes
    specmock health                     # Check a running server
"""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .client import MockApiClient
from .config import MockMode, MockServerConfig
from .handlers import STATEFUL_ENDPOINTS
from .loader import parse_directory
from .routes import convert_path_to_pattern, extract_all_routes
from .server import MockServer


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


@click.group()
@click.version_option(version=__version__, prog_name="specmock")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to specmock.yml (searched for in parent directories by default)",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """specmock: mock HTTP APIs synthesized from OpenAPI documents.

    Every path and operation in the loaded documents becomes a route that
    answers with the operation's example response. In stateful mode a set
    of built-in endpoints keeps buckets, objects, issues and more in memory.
    """
    config = MockServerConfig.load(config_path)
    if verbose:
        config.verbose = True
    setup_logging(config.verbose)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.option("--port", "-p", type=int, default=None, help="Server port [default: 3000]")
@click.option("--host", "-H", default=None, help="Server host [default: 0.0.0.0]")
@click.option(
    "--mode",
    "-m",
    type=click.Choice([m.value for m in MockMode], case_sensitive=False),
    default=None,
    help="Operation mode [default: stateful]",
)
@click.option(
    "--openapi-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory of OpenAPI documents [default: openapi]",
)
@click.option(
    "--state-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="State persistence file (accepted but not supported)",
)
@click.option(
    "--simulate-translations/--no-simulate-translations",
    default=None,
    help="Advance translation jobs on every manifest read",
)
@click.pass_context
def serve(
    ctx: click.Context,
    port: int | None,
    host: str | None,
    mode: str | None,
    openapi_dir: Path | None,
    state_file: Path | None,
    simulate_translations: bool | None,
) -> None:
    """Start the mock server.

    Example:
        specmock serve
        specmock serve --mode stateless --openapi-dir ../openapi
        specmock serve -p 8080 -H 127.0.0.1
    """
    config: MockServerConfig = ctx.obj["config"].with_overrides(
        port=port,
        host=host,
        mode=mode,
        openapi_dir=openapi_dir,
        state_file=state_file,
        simulate_translations=simulate_translations,
    )

    click.echo("Starting specmock server")
    click.echo(f"Mode: {config.mode.value}")
    click.echo(f"OpenAPI directory: {config.openapi_dir}")

    server = MockServer(config)
    click.echo(
        f"Routes: {len(server.context.registered)} registered, "
        f"{len(server.context.skipped)} duplicates skipped"
    )
    click.echo(f"\nServer running on http://{config.host}:{config.port}")
    server.run()


@main.command()
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "--builtin/--no-builtin",
    default=False,
    help="Also list built-in stateful endpoints",
)
def routes(directory: Path, builtin: bool) -> None:
    """List routes synthesized from the OpenAPI documents in DIRECTORY.

    Example:
        specmock routes openapi/
        specmock routes openapi/ --builtin
    """
    specs = parse_directory(directory)
    synthesized = extract_all_routes(specs)

    click.echo(f"Loaded {len(specs)} document(s)")
    for name, spec in specs:
        click.echo(f"  {name}: {spec.info.title} {spec.info.version}")

    click.echo(f"\n{len(synthesized)} route(s):")
    seen: set[tuple[str, str]] = set()
    for route in synthesized:
        marker = " (duplicate)" if route.key in seen else ""
        seen.add(route.key)
        operation_id = route.operation.operation_id or "-"
        click.echo(f"  {route.method.value:<6} {route.pattern}  [{operation_id}]{marker}")

    if builtin:
        click.echo(f"\n{len(STATEFUL_ENDPOINTS)} built-in endpoint(s):")
        for endpoint in STATEFUL_ENDPOINTS:
            key = (endpoint.method.value, convert_path_to_pattern(endpoint.path))
            marker = " (overridden)" if key in seen else ""
            click.echo(f"  {key[0]:<6} {key[1]}{marker}")


@main.command()
@click.option(
    "--url",
    "-u",
    default=None,
    help="Server URL [default: from config]",
)
@click.pass_context
def health(ctx: click.Context, url: str | None) -> None:
    """Check if a specmock server is running and issuing tokens.

    Example:
        specmock health
        specmock health --url http://localhost:8080
    """
    config: MockServerConfig = ctx.obj["config"]
    if url is None:
        host = "localhost" if config.host == "0.0.0.0" else config.host
        url = f"http://{host}:{config.port}"

    client = MockApiClient(base_url=url, timeout=5.0)
    click.echo(f"Checking server at {url}...")
    if client.health_check():
        click.echo("Server is healthy.")
    else:
        click.echo("Error: Server is not responding.", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
