"""Main entry point for the newscache maintenance CLI.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import logging
from typing import Any, Dict, Optional

import typer
from typing_extensions import Annotated

from newscache.core.command_handler import CommandHandler
from newscache.infrastructure.cache.data_cache import DataCacheManager
from newscache.infrastructure.cache.image_cache import DEFAULT_IMAGE_CACHE_DIR, ImageCache
from newscache.infrastructure.cli.display import ConsoleDisplay
from newscache.infrastructure.config.settings import (
    get_cache_dir,
    get_config,
    get_image_cache_dir,
    get_image_memory_cost_limit,
    get_image_memory_limit,
    get_queue_size,
    get_ttl_overrides,
    load_configuration,
)
from newscache.infrastructure.monitoring.logger_setup import parse_log_level, setup_logging

logger = logging.getLogger(__name__)


def create_dependencies(log_level: Optional[str] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    load_configuration()
    setup_logging(
        log_level=parse_log_level(log_level or get_config('logging.level', 'WARNING')),
        log_file=get_config('logging.file'),
    )

    dependencies: Dict[str, Any] = {}
    dependencies['ui'] = ConsoleDisplay()
    dependencies['ttl_overrides'] = get_ttl_overrides()
    dependencies['data_cache'] = DataCacheManager(
        cache_dir=get_cache_dir(),
        queue_size=get_queue_size(),
        ttl_overrides=dependencies['ttl_overrides'],
    )
    dependencies['image_cache'] = ImageCache(
        directory=get_image_cache_dir() or DEFAULT_IMAGE_CACHE_DIR,
        memory_limit=get_image_memory_limit(),
        memory_cost_limit=get_image_memory_cost_limit(),
    )
    dependencies['command_handler'] = CommandHandler(
        data_cache=dependencies['data_cache'],
        image_cache=dependencies['image_cache'],
        ui=dependencies['ui'],
        ttl_overrides=dependencies['ttl_overrides'],
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies


def close_dependencies(dependencies: Dict[str, Any]) -> None:
    dependencies['data_cache'].close()
    dependencies['image_cache'].close()


# --- Typer App Definition ---
app = typer.Typer(
    name="newscache",
    help="Inspect and maintain the news client's data cache.",
    add_completion=False,
)


def _handler(ctx: typer.Context) -> CommandHandler:
    return ctx.obj['command_handler']


@app.callback()
def main_callback(
    ctx: typer.Context,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", "-l", help="Logging level (debug, info, warning, error).")
    ] = None,
):
    """Builds the cache objects shared by every command."""
    dependencies = create_dependencies(log_level)
    ctx.obj = dependencies
    ctx.call_on_close(lambda: close_dependencies(dependencies))


@app.command()
def info(ctx: typer.Context):
    """Show the cache directory, file count and size."""
    _handler(ctx).handle_info()


@app.command()
def policies(ctx: typer.Context):
    """List every key namespace with its TTL."""
    _handler(ctx).handle_policies()


@app.command()
def clear(
    ctx: typer.Context,
    keep_images: Annotated[bool, typer.Option("--keep-images", help="Leave the image cache untouched.")] = False,
):
    """Delete every cached entry from memory and disk."""
    _handler(ctx).handle_clear(include_images=not keep_images)


@app.command()
def sweep(ctx: typer.Context):
    """Delete expired cache files from disk."""
    _handler(ctx).handle_sweep()


def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
