"""Cache commands -- inspect and clear the on-disk response cache."""

from __future__ import annotations

import typer

from papers.cache import ResponseCache
from papers.config import resolve_cache_dir, resolve_config
from papers.output import get_output, info, success

cache_app = typer.Typer(no_args_is_help=True)


def _open() -> ResponseCache:
    config = resolve_config()
    config.cache.enabled = True
    return ResponseCache(resolve_cache_dir(config), config.cache)


@cache_app.command("stats")
def cache_stats() -> None:
    """Show entry count, size on disk, location and TTL."""
    cache = _open()
    try:
        get_output().print_record(cache.stats())
    finally:
        cache.close()


@cache_app.command("prune")
def cache_prune() -> None:
    """Delete expired entries."""
    cache = _open()
    try:
        removed = cache.sweep()
    finally:
        cache.close()
    success(f"Removed {removed} expired entries.")


@cache_app.command("clear")
def cache_clear(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Delete every cached response."""
    if not force and not typer.confirm("Delete all cached responses?"):
        info("Cancelled.")
        raise typer.Exit()
    cache = _open()
    try:
        cache.clear()
    finally:
        cache.close()
    success("Cache cleared.")
