"""CLI interface for steadfast"""

import dataclasses
import logging
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

import click
from pydantic import ValidationError

from steadfast.application.command_service import CommandService
from steadfast.domain.config import BackoffSpec
from steadfast.infrastructure.config.config_manager import ConfigManager, ConfigurationError

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, level_name: Optional[str] = None) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else getattr(logging, level_name or "INFO")
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _backoff_options(func: Callable) -> Callable:
    """Attach the options that override the configured backoff schedule"""
    options = [
        click.option("--count", "-n", type=int, help="Number of delays (retries). Overrides config."),
        click.option("--first-delay", type=float, help="First delay in seconds. Overrides config."),
        click.option("--max-delay", type=float, help="Delay ceiling in seconds. Overrides config."),
        click.option("--factor", "growth_factor", type=float, help="Growth factor per step. Overrides config."),
        click.option("--jitter", "jitter_fraction", type=float, help="Jitter fraction (0.0-1.0). Overrides config."),
        click.option("--seed", type=int, help="Seed for reproducible jitter. Overrides config."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _resolve_backoff(ctx: click.Context, overrides: dict) -> BackoffSpec:
    """Load the configured backoff schedule and apply CLI overrides

    Args:
        ctx: Click context holding global options
        overrides: Option values keyed by BackoffSpec field (None = not given)

    Returns:
        Validated backoff spec
    """
    verbose = ctx.obj.get("verbose", False)
    try:
        config_manager = ConfigManager(config_path=ctx.obj.get("config_path"))
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)

    if not verbose:
        setup_logging(level_name=config_manager.get_logging_config().level)

    given = {key: value for key, value in overrides.items() if value is not None}
    try:
        return dataclasses.replace(config_manager.get_backoff_spec(), **given)
    except ValidationError as e:
        _die(f"Invalid backoff options: {e}", verbose=verbose, exc=e)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to .steadfast.yml (default: searched from the current directory)",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """steadfast - retries with exponential backoff"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@_backoff_options
@click.pass_context
def schedule(ctx, **overrides: Any):
    """Print the delay schedule that retries would follow."""
    spec = _resolve_backoff(ctx, overrides)
    delays = list(spec)
    for index, delay in enumerate(delays, start=1):
        click.echo(f"{index:>4}  {delay:.6f}s")
    click.echo(f"Total: {len(delays)} delay(s), {sum(delays):.6f}s")


@cli.command(context_settings={"ignore_unknown_options": True})
@_backoff_options
@click.option(
    "--retry-on",
    type=int,
    multiple=True,
    help="Exit status worth retrying (repeatable). Default: any non-zero status.",
)
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
def run(ctx, retry_on: Tuple[int, ...], command: Tuple[str, ...], **overrides: Any):
    """Run COMMAND, retrying it while it fails.

    Use -- to separate the command from steadfast's own options:
    steadfast run -n 3 -- curl -fsS https://example.com
    """
    spec = _resolve_backoff(ctx, overrides)
    service = CommandService(backoff=spec, retry_on=retry_on)
    try:
        returncode = service.run(command)
    except OSError as e:
        _die(f"Cannot run {command[0]}: {e}", verbose=ctx.obj.get("verbose", False), exc=e)
    ctx.exit(returncode)


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
