"""CLI interface for spashell.

Command-line tool for building and serving a single-page application.
"""

import logging
import sys
from pathlib import Path

import click

from spashell.config import MAX_PORT, Config

config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path, dir_okay=False),
    default=None,
    help="Path to configuration file (default: auto-discover spashell.toml)",
)
output_dir_option = click.option(
    "--output-dir",
    "-o",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Output directory (overrides config)",
)
verbose_option = click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging",
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_path: Path | None) -> Config:
    """Load configuration or exit with an error message."""
    try:
        return Config.load(config_path)
    except (FileNotFoundError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


@click.group()
def cli() -> None:
    """spashell - serve a bundled single-page application."""


@cli.command()
@config_option
@click.option(
    "--host",
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    "-p",
    type=click.IntRange(0, MAX_PORT),
    default=None,
    help="Port to bind to (overrides PORT and config, default: 8080)",
)
@output_dir_option
@click.option(
    "--watch/--no-watch",
    default=None,
    help="Rebuild on source changes (overrides config, default: disabled)",
)
@verbose_option
def serve(
    config_path: Path | None,
    host: str | None,
    port: int | None,
    output_dir: Path | None,
    watch: bool | None,
    verbose: bool,
) -> None:
    """Start the static file server."""
    from spashell.server import run_server

    _configure_logging(verbose)
    config = _load_config(config_path).with_overrides(
        host=host,
        port=port,
        output_dir=output_dir,
        watch_enabled=watch,
    )

    click.echo(f"Starting server on {config.server.host}:{config.server.port}")
    click.echo(f"Output directory: {config.build.output_dir}")
    if config.watch.enabled:
        click.echo("Rebuild on change: enabled")

    try:
        run_server(config)
    except OSError as e:
        click.echo(
            click.style(
                f"Error: cannot listen on {config.server.host}:{config.server.port}: {e}",
                fg="red",
            ),
            err=True,
        )
        sys.exit(1)


@cli.command()
@config_option
@output_dir_option
@verbose_option
def build(
    config_path: Path | None,
    output_dir: Path | None,
    verbose: bool,
) -> None:
    """Bundle the entry module and write the shell document."""
    from spashell.build import BuildError, Bundler

    _configure_logging(verbose)
    config = _load_config(config_path).with_overrides(output_dir=output_dir)

    click.echo(f"Entry module: {config.build.entry}")
    try:
        result = Bundler(config.build).build()
    except BuildError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        if e.diagnostic:
            click.echo(e.diagnostic, err=True)
        sys.exit(1)

    click.echo(f"Built {len(result.files)} files into {result.output_dir}")
    for path in result.files:
        click.echo(f"  -> {path}")
