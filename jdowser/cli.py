"""CLI entry point: jdowser.

Subcommands:
    jdowser start [--root /] [--skipfs nfs,tmpfs,proc] [--nojvmrun]
    jdowser stop
    jdowser status
    jdowser report
    jdowser version

Group options (--json, --csv, --wait, -v) go before the subcommand.
"""

from __future__ import annotations

import os
import sys

import click

from jdowser import __version__
from jdowser.core.config import DEFAULT_ROOT, DEFAULT_SKIP_FS, OutputFormat, load_config
from jdowser.core.logging import setup_logging
from jdowser.exceptions import ConfigurationError
from jdowser.reporting import get_renderer
from jdowser.scan.coordinator import ScanCoordinator
from jdowser.scan.protocol import StartToken


@click.group()
@click.option("--json", "as_json", is_flag=True, help="Print output as JSON")
@click.option("--csv", "as_csv", is_flag=True, help="Print output as CSV")
@click.option("--wait", is_flag=True, help="Wait for a running scan to finish")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.pass_context
def main(ctx: click.Context, as_json: bool, as_csv: bool, wait: bool, verbose: bool) -> None:
    """jdowser: find Java installations on this host."""
    if as_json and as_csv:
        raise click.UsageError("--json and --csv are mutually exclusive")

    output_format = OutputFormat.TEXT
    if as_json:
        output_format = OutputFormat.JSON
    elif as_csv:
        output_format = OutputFormat.CSV

    ctx.obj = {"output_format": output_format, "wait": wait, "verbose": verbose}
    setup_logging(verbose=verbose)


def _coordinator(ctx: click.Context, **options) -> ScanCoordinator:
    try:
        config = load_config(**ctx.obj, **options)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    return ScanCoordinator(config, get_renderer(config.output_format))


@main.command()
@click.option("--root", default=DEFAULT_ROOT, show_default=True, help="Directory to scan")
@click.option(
    "--skipfs",
    default=DEFAULT_SKIP_FS,
    show_default=True,
    help="Comma-separated filesystem types to skip",
)
@click.option("--nojvmrun", is_flag=True, help="Never execute discovered java binaries")
@click.pass_context
def start(ctx: click.Context, root: str, skipfs: str, nojvmrun: bool) -> None:
    """Start a scan in the background (in the foreground with --wait)."""
    coordinator = _coordinator(ctx, root=root, skip_fs=skipfs, no_jvm_run=nojvmrun)
    if StartToken.from_env(os.environ) is not None:
        # Detached: no terminal, log next to the results
        setup_logging(verbose=ctx.obj["verbose"], log_file=coordinator.config.log_file_path)
    ctx.exit(coordinator.start())


@main.command()
@click.pass_context
def stop(ctx: click.Context) -> None:
    """Terminate a running scan."""
    ctx.exit(_coordinator(ctx).stop())


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the state of the last scan."""
    ctx.exit(_coordinator(ctx).status())


@main.command()
@click.pass_context
def report(ctx: click.Context) -> None:
    """Show the installations found by the last scan."""
    ctx.exit(_coordinator(ctx).report())


@main.command()
@click.pass_context
def version(ctx: click.Context) -> None:
    """Show the jdowser version."""
    renderer = get_renderer(ctx.obj["output_format"])
    click.echo(renderer.render_version(__version__))


if __name__ == "__main__":
    main()
