"""Client construction and record rendering shared by the command groups."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional

import typer
from pydantic import BaseModel

from papers.cache import ResponseCache
from papers.config import resolve_cache_dir, resolve_config, resolve_optional_credential
from papers.models import GlobalConfig
from papers.openalex import OpenAlexClient
from papers.output import OutputFormat, debug, get_output
from papers.zotero import ZoteroClient


def cli_config(ctx: typer.Context) -> GlobalConfig:
    """Resolved configuration for this invocation (``--no-cache`` applied)."""
    obj = ctx.ensure_object(dict)
    if "config" not in obj:
        obj["config"] = resolve_config(no_cache=obj.get("no_cache", False))
    return obj["config"]


def open_cache(config: GlobalConfig) -> Optional[ResponseCache]:
    if not config.cache.enabled:
        debug("Response cache disabled")
        return None
    return ResponseCache(resolve_cache_dir(config), config.cache)


@contextmanager
def openalex_session(ctx: typer.Context) -> Iterator[OpenAlexClient]:
    """Yield a configured :class:`OpenAlexClient`; closes it and its cache on exit."""
    config = cli_config(ctx)
    cache = open_cache(config)
    client = OpenAlexClient(
        api_key=resolve_optional_credential(config.openalex.api_key_source),
        mailto=config.openalex.mailto,
        base_url=config.openalex.base_url,
        request_config=config.request,
        cache=cache,
    )
    try:
        with client:
            yield client
    finally:
        if cache is not None:
            cache.close()


@contextmanager
def zotero_session(ctx: typer.Context) -> Iterator[ZoteroClient]:
    config = cli_config(ctx)
    cache = open_cache(config)
    try:
        client = ZoteroClient(
            library_id=resolve_optional_credential(config.zotero.library_id_source) or "",
            api_key=resolve_optional_credential(config.zotero.api_key_source),
            library_type=config.zotero.library_type,
            base_url=config.zotero.base_url,
            request_config=config.request,
            cache=cache,
        )
        with client:
            yield client
    finally:
        if cache is not None:
            cache.close()


@contextmanager
def optional_zotero_session(ctx: typer.Context) -> Iterator[Optional[ZoteroClient]]:
    """Like :func:`zotero_session`, but yields ``None`` when no library id is configured."""
    config = cli_config(ctx)
    if not resolve_optional_credential(config.zotero.library_id_source):
        debug("No Zotero library configured")
        yield None
        return
    with zotero_session(ctx) as client:
        yield client


def to_record(entity: Any) -> dict[str, Any]:
    if isinstance(entity, BaseModel):
        return entity.model_dump(mode="json", by_alias=True, exclude_none=True)
    return dict(entity)


def emit_records(
    entities: Iterable[Any],
    columns: list[str],
    title: Optional[str] = None,
    flatten: Optional[dict[str, str]] = None,
) -> int:
    """Print *entities* as records; *flatten* maps a column to a dotted path."""
    output = get_output()
    if output.format == OutputFormat.JSON or flatten is None:
        flatten = {}

    def records() -> Iterable[dict[str, Any]]:
        for entity in entities:
            record = to_record(entity)
            for column, dotted in flatten.items():
                record[column] = _dig(record, dotted)
            yield record

    return output.print_records(records(), columns=columns, title=title)


def _dig(record: dict[str, Any], dotted: str) -> Any:
    value: Any = record
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value
