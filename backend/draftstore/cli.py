"""Draftstore maintenance commands.

Usage::

    draftstore cleanup-drafts --days 7 --component user
    draftstore cleanup-drafts -d 30 --config /etc/draftstore/draftstore.settings.yaml
"""
import logging
from pathlib import Path
from typing import Optional

import typer

from .config import get_config, load_config, set_config
from .files.service import FileService

app = typer.Typer(help="Draftstore file maintenance commands")
logger = logging.getLogger(__name__)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose output"),
) -> None:
    """Draftstore file maintenance commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.command("cleanup-drafts")
def cleanup_drafts(
    days: Optional[int] = typer.Option(
        None, "--days", "-d", help="Delete drafts older than this many days (default: retention.days, 7)"
    ),
    component: Optional[str] = typer.Option(
        None, "--component", "-c", help="Component whose drafts are swept (default: retention.component, user)"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to draftstore.settings.yaml"
    ),
) -> None:
    """Delete draft files older than the given number of days."""
    try:
        if config_path is not None:
            set_config(load_config(config_path))
        config = get_config()
    except Exception as e:
        typer.echo(f"Error: cannot load settings: {e}", err=True)
        raise typer.Exit(1)

    days = config.retention.days if days is None else days
    component = component or config.retention.component

    if days < 1:
        typer.echo("Error: --days must be at least 1", err=True)
        raise typer.Exit(1)

    typer.echo(f"Deleting {component} drafts older than {days} day(s)...")

    service = None
    try:
        service = FileService.from_config(config)
        deleted = service.sweeper.sweep_days(days, component=component)
    except Exception as e:
        logger.exception("Draft cleanup failed")
        typer.echo(f"Error during cleanup: {e}", err=True)
        raise typer.Exit(1)
    finally:
        if service is not None:
            service.close()

    if deleted > 0:
        typer.echo(f"Deleted {deleted} old draft file(s).")
    else:
        typer.echo("No old draft files found, nothing to delete.")


if __name__ == "__main__":
    app()
