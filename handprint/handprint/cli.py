"""CLI entrypoint for handprint."""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .config import TrackingConfig, default_config_path, load_config


def _configure_logging(verbose: bool, log_file: Path | None) -> None:
    # stdout belongs to the LSP stdio transport; logs go to stderr or a file
    handler: logging.Handler
    if log_file is not None:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[handler],
    )


def _load_tracking_config(ctx: click.Context) -> TrackingConfig:
    config_path: Path | None = ctx.obj.get("config_path")
    if config_path is None:
        config_path = default_config_path(ctx.obj["workspace"])
    try:
        return load_config(config_path)
    except ValueError as e:
        raise click.ClickException(str(e))


@click.group()
@click.version_option(__version__, prog_name="handprint")
@click.option(
    "--workspace",
    "-w",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Workspace root (defaults to the current directory)",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Config file (defaults to <workspace>/.handprint/config.yml)",
)
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write logs to a file instead of stderr",
)
@click.pass_context
def cli(
    ctx: click.Context,
    workspace: Path | None,
    config_path: Path | None,
    verbose: bool,
    log_file: Path | None,
) -> None:
    """handprint - human edit attribution for live documents.

    Tracks the line ranges a human is actively editing and keeps them
    aligned while formatters and AI tools rewrite other parts of the file.
    """
    ctx.ensure_object(dict)
    workspace = workspace or Path.cwd()
    if not workspace.exists() or not workspace.is_dir():
        raise click.BadParameter(f"Directory '{workspace}' does not exist.", param_hint="--workspace / -w")

    _configure_logging(verbose, log_file)
    ctx.obj["workspace"] = workspace.resolve()
    ctx.obj["config_path"] = config_path


# -----------------------------------------------------------------------------
# LSP command - live tracking
# -----------------------------------------------------------------------------


@cli.command("lsp")
@click.option(
    "--transport",
    type=click.Choice(["stdio", "tcp"]),
    default="stdio",
    show_default=True,
    help="Transport method",
)
@click.pass_context
def lsp(ctx: click.Context, transport: str) -> None:
    """Start the LSP server for live human edit tracking.

    The LSP server:

    \b
    - Classifies every didChange notification by shape
    - Tracks one open human segment per document
    - Records closed segments to .handprint/segments.jsonl

    For VSCode, configure the extension to use:

        handprint lsp --transport stdio

    For debugging with a TCP connection:

        handprint lsp --transport tcp

    Examples:

        handprint -w ~/src/project lsp

        handprint --log-file /tmp/handprint.log lsp
    """
    from .lsp import start_server

    config = None
    if ctx.obj.get("config_path") is not None:
        config = _load_tracking_config(ctx)
    start_server(workspace_path=ctx.obj["workspace"], config=config, transport=transport)


# -----------------------------------------------------------------------------
# Replay command - offline segmentation of a change log
# -----------------------------------------------------------------------------


@cli.command("replay")
@click.argument("replay_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--record/--no-record",
    default=False,
    show_default=True,
    help="Append closed human segments to the workspace ledger",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Output format",
)
@click.pass_context
def replay(ctx: click.Context, replay_file: Path, record: bool, output_format: str) -> None:
    """Replay a JSON Lines change log through the segmenter.

    Each line is an "open", "change" or "close" entry with an optional
    millisecond timestamp; "change" entries carry document and
    contentChanges exactly as an editor reports them.

    Examples:

        handprint replay session.jsonl

        handprint replay session.jsonl --record
    """
    from .commands.replay_cmd import run_replay

    config = _load_tracking_config(ctx)
    try:
        run_replay(
            ctx.obj["workspace"],
            replay_file,
            config=config,
            record=record,
            output_format=output_format,
        )
    except ValueError as e:
        raise click.ClickException(str(e))


# -----------------------------------------------------------------------------
# Segments commands - ledger inspection
# -----------------------------------------------------------------------------


@cli.group()
def segments() -> None:
    """Inspect recorded human segments.

    Segments are recorded to .handprint/segments.jsonl (metadata only).
    """
    pass


@segments.command("list")
@click.option("--last", "last_n", type=int, default=None, help="Show only the last N segments")
@click.option("--file", "file_filter", type=str, default=None, help="Only segments for this relative path")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Output format",
)
@click.pass_context
def segments_list(
    ctx: click.Context,
    last_n: int | None,
    file_filter: str | None,
    output_format: str,
) -> None:
    """List recorded segments.

    Examples:

        handprint segments list --last 10

        handprint segments list --file src/app.py --format json
    """
    from .commands.segments_cmd import run_segments_list

    count = run_segments_list(
        ctx.obj["workspace"],
        last_n=last_n,
        file_filter=file_filter,
        format=output_format,
    )
    sys.exit(0 if count > 0 else 1)


@segments.command("summary")
@click.pass_context
def segments_summary(ctx: click.Context) -> None:
    """Display a summary of recorded segments."""
    from .commands.segments_cmd import run_segments_summary

    count = run_segments_summary(ctx.obj["workspace"])
    sys.exit(0 if count > 0 else 1)


# -----------------------------------------------------------------------------
# Config command
# -----------------------------------------------------------------------------


@cli.group("config")
def config_group() -> None:
    """Inspect tracking configuration."""
    pass


@config_group.command("show")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["yaml", "json"]),
    default="yaml",
    show_default=True,
    help="Output format",
)
@click.pass_context
def config_show(ctx: click.Context, output_format: str) -> None:
    """Show the effective configuration (defaults merged with the config file)."""
    from .commands.config_cmd import run_config_show

    run_config_show(_load_tracking_config(ctx), format=output_format)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
