# === NAVMAP v1 ===
# {
#   "module": "ArtifactGet.cli",
#   "purpose": "Typer command line for fetching artifacts and inspecting settings",
#   "sections": [
#     {"id": "clicontext", "name": "CliContext", "anchor": "class-clicontext", "kind": "class"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"},
#     {"id": "get-command", "name": "get_command", "anchor": "function-get-command", "kind": "function"},
#     {"id": "settings-command", "name": "settings_command", "anchor": "function-settings-command", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Command line entry point ``artifact-get``.

Examples:
    $ artifact-get get https://example.com/tool.zip ./tool
    $ artifact-get get "https://example.com/data.bin?ranged_request_bytes=0-1023" ./head.bin --mode file
    $ artifact-get --config settings.yaml settings
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import httpx
import typer
from rich.console import Console
from rich.markup import escape

from . import __version__
from .dispatch import Dispatcher
from .errors import ArtifactGetError, ConfigurationError
from .getters.base import ClientMode, FileFetchResult
from .logging_utils import setup_logging
from .net import build_http_client
from .settings import GetterSettings, load_settings

__all__ = ["app", "main"]

_console = Console(soft_wrap=True)

_VERBOSITY_LEVELS = {1: "INFO", 2: "DEBUG"}


class CliContext:
    """Per-invocation state shared by commands."""

    def __init__(self, settings: GetterSettings, verbosity: int = 0) -> None:
        self.settings = settings
        self.verbosity = verbosity
        self.console = _console
        self.logger = logging.getLogger("ArtifactGet.cli")


app = typer.Typer(
    name="artifact-get",
    help="Fetch files and directory trees over HTTP(S).",
    no_args_is_help=True,
)


def _fail(console: Console, message: str) -> typer.Exit:
    console.print(f"[red]Error:[/red] {escape(message)}")
    return typer.Exit(1)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"artifact-get {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="ARTIFACTGET_CONFIG",
        help="Path to a YAML settings file",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Fetch artifacts over HTTP(S) with discovery and byte-range support."""

    try:
        settings = load_settings(config)
    except ConfigurationError as exc:
        raise _fail(_console, str(exc))

    level = _VERBOSITY_LEVELS.get(min(verbosity, 2))
    if level is not None:
        settings = settings.model_copy(
            update={"logging": settings.logging.model_copy(update={"level": level})}
        )
    setup_logging(settings.logging)
    ctx.obj = CliContext(settings, verbosity)


@app.command("get")
def get_command(
    ctx: typer.Context,
    src: str = typer.Argument(..., help="Locator to fetch"),
    dst: Path = typer.Argument(..., help="Destination file or directory"),
    mode: ClientMode = typer.Option(
        ClientMode.ANY,
        "--mode",
        "-m",
        case_sensitive=False,
        help="Fetch a single file, a directory tree, or let the locator decide",
    ),
    netrc: Optional[bool] = typer.Option(
        None,
        "--netrc/--no-netrc",
        help="Add credentials from the netrc file (defaults to the settings value)",
    ),
) -> None:
    """Fetch SRC into DST."""

    cli: CliContext = ctx.obj
    settings = cli.settings
    if netrc is not None:
        settings = settings.model_copy(update={"netrc": netrc})

    client = build_http_client(settings.http)
    try:
        with Dispatcher(client, settings=settings) as dispatcher:
            result = dispatcher.fetch(dst, src, mode)
    except (ArtifactGetError, httpx.HTTPError, OSError) as exc:
        cli.logger.debug("fetch failed", exc_info=True, extra={"stage": "dispatch"})
        raise _fail(cli.console, str(exc))
    finally:
        client.close()

    if isinstance(result, FileFetchResult):
        for warning in result.warnings:
            cli.console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")
        suffix = " (partial)" if result.partial else ""
        cli.console.print(f"[green]Fetched[/green] {escape(str(result.path))}{suffix}")
    else:
        cli.console.print(f"[green]Fetched[/green] {escape(str(result.destination))}")


@app.command("settings")
def settings_command(ctx: typer.Context) -> None:
    """Print the effective settings as JSON."""

    cli: CliContext = ctx.obj
    typer.echo(json.dumps(cli.settings.model_dump(mode="json"), indent=2, sort_keys=True))


if __name__ == "__main__":  # pragma: no cover
    app()
