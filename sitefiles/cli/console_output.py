# sitefiles/cli/console_output.py
"""
Handles printing summary information to the console (stderr) after a build.
"""
import click
import structlog

from sitefiles.config.settings import BuildConfig
from sitefiles.core.pipeline import BuildResult

log = structlog.get_logger(__name__)

def print_cli_summary_output(config: BuildConfig, result: BuildResult):
    """Prints written/failed counts and each render error to stderr."""
    log.debug("console_summary_output_requested")

    click.secho("--- Build Summary ---", fg="cyan", err=True)
    click.echo(f"Files written: {len(result.written)} (to {config.dest_dir})", err=True)
    if result.errors:
        click.secho(f"Files failed: {len(result.errors)}", fg="red", err=True)
        for error in result.errors:
            click.secho(f"  - {error}", fg="red", err=True)
