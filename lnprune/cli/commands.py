"""CLI entry point for lnprune.

lightningd starts plugins without arguments, so the single command runs the
plugin by default.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from loguru import logger

from lnprune import __version__
from lnprune.cli.shared.logging_utils import setup_logging
from lnprune.config.loader import load_settings
from lnprune.runtime import run_plugin

app = typer.Typer(
    name="lnprune",
    help="lnprune - prune bitcoind block files behind Core Lightning",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"lnprune v{__version__}")
        raise typer.Exit()


@app.command()
def main(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a JSON config file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override the configured log level"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Run as a Core Lightning plugin on stdin/stdout."""
    try:
        settings = load_settings(config)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(2) from exc

    setup_logging(log_level or settings.logging.level, settings.logging.file)
    logger.info("lnprune v{} starting", __version__)
    try:
        asyncio.run(run_plugin(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except Exception as exc:
        logger.opt(exception=exc).critical("lnprune stopped: {}", exc)
        raise typer.Exit(1) from exc
