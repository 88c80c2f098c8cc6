"""Zotero commands -- browse the configured library.

The library comes from ``zotero.library_id_source`` (default
``env:ZOTERO_USER_ID``) and the key from ``zotero.api_key_source``.

Example::

    papers zotero items --top --search "attention" --all
    papers zotero items --collection ABCD1234
    papers zotero item ABCD1234
    papers zotero tags --json
"""

from __future__ import annotations

from typing import Optional

import typer

from papers.commands.common import emit_records, to_record, zotero_session
from papers.output import get_output, info
from papers.zotero import ZoteroListParams, make_zotero_params

zotero_app = typer.Typer(no_args_is_help=True)

ITEM_COLUMNS = ["key", "itemType", "title", "date"]
ITEM_FLATTEN = {"itemType": "data.itemType", "title": "data.title", "date": "data.date"}


def _run_listing(
    ctx: typer.Context,
    endpoint: str,
    params: ZoteroListParams,
    parent_key: Optional[str],
    all_pages: bool,
    limit: Optional[int],
    columns: list[str],
    flatten: Optional[dict[str, str]] = None,
) -> None:
    with zotero_session(ctx) as client:
        if all_pages or limit is not None:
            stream = client.list_entities_stream(endpoint, params, parent_key, limit=limit)
            count = emit_records(stream, columns, title=endpoint, flatten=flatten)
            info(f"{count} results")
        else:
            result = client.list_entities(endpoint, params, parent_key)
            emit_records(result.items, columns, title=endpoint, flatten=flatten)
            if result.total_results:
                info(f"{len(result.items)} of {result.total_results} results")


@zotero_app.command("items")
def items_command(
    ctx: typer.Context,
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Quick search."),
    everything: bool = typer.Option(False, "--everything", help="Search full text too."),
    tag: Optional[list[str]] = typer.Option(None, "--tag", help="Tag (repeat for OR)."),
    item_type: Optional[str] = typer.Option(None, "--type", help="Item type filter."),
    sort: Optional[str] = typer.Option(None, "--sort", help="Sort field."),
    direction: Optional[str] = typer.Option(None, "--direction", help="asc or desc."),
    top: bool = typer.Option(False, "--top", help="Top-level items only."),
    trash: bool = typer.Option(False, "--trash", help="Items in the trash."),
    collection: Optional[str] = typer.Option(None, "--collection", help="Collection key."),
    children: Optional[str] = typer.Option(None, "--children-of", help="Parent item key."),
    per_page: Optional[int] = typer.Option(None, "--per-page", help="Page size (1-100)."),
    page: Optional[int] = typer.Option(None, "--page", help="Page number."),
    all_pages: bool = typer.Option(False, "--all", help="Fetch every page."),
    limit: Optional[int] = typer.Option(None, "--limit", help="Stop after this many items."),
) -> None:
    """List items in the library, a collection, the trash, or under a parent."""
    params = make_zotero_params(
        search=search,
        search_mode="everything" if everything and search else None,
        tag=tag or None,
        item_type=item_type,
        sort=sort,
        direction=direction,
        per_page=per_page,
        page=page,
    )
    parent_key = None
    if collection:
        endpoint = "collection_items_top" if top else "collection_items"
        parent_key = collection
    elif children:
        endpoint, parent_key = "item_children", children
    elif trash:
        endpoint = "items_trash"
    else:
        endpoint = "items_top" if top else "items"
    _run_listing(ctx, endpoint, params, parent_key, all_pages, limit, ITEM_COLUMNS, ITEM_FLATTEN)


@zotero_app.command("item")
def item_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Item key."),
) -> None:
    """Show one item."""
    with zotero_session(ctx) as client:
        get_output().print_record(to_record(client.get_item(key)))


@zotero_app.command("collections")
def collections_command(
    ctx: typer.Context,
    top: bool = typer.Option(False, "--top", help="Top-level collections only."),
    parent: Optional[str] = typer.Option(None, "--parent", help="List subcollections of this key."),
    all_pages: bool = typer.Option(False, "--all", help="Fetch every page."),
    limit: Optional[int] = typer.Option(None, "--limit", help="Stop after this many."),
) -> None:
    """List collections."""
    if parent:
        endpoint = "subcollections"
    else:
        endpoint = "collections_top" if top else "collections"
    _run_listing(
        ctx,
        endpoint,
        make_zotero_params(),
        parent,
        all_pages,
        limit,
        ["key", "name", "numItems"],
        {"name": "data.name", "numItems": "meta.numItems"},
    )


@zotero_app.command("collection")
def collection_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Collection key."),
) -> None:
    """Show one collection."""
    with zotero_session(ctx) as client:
        get_output().print_record(to_record(client.get_collection(key)))


@zotero_app.command("tags")
def tags_command(
    ctx: typer.Context,
    all_pages: bool = typer.Option(False, "--all", help="Fetch every page."),
    limit: Optional[int] = typer.Option(None, "--limit", help="Stop after this many tags."),
) -> None:
    """List tags in the library."""
    _run_listing(
        ctx, "tags", make_zotero_params(), None, all_pages, limit,
        ["tag", "numItems"], {"numItems": "meta.numItems"},
    )


@zotero_app.command("searches")
def searches_command(ctx: typer.Context) -> None:
    """List saved searches."""
    _run_listing(
        ctx, "searches", make_zotero_params(), None, True, None,
        ["key", "name"], {"name": "data.name"},
    )


@zotero_app.command("groups")
def groups_command(ctx: typer.Context) -> None:
    """List the groups the library's user belongs to."""
    _run_listing(
        ctx, "groups", make_zotero_params(), None, True, None,
        ["id", "name", "numItems"], {"name": "data.name", "numItems": "meta.numItems"},
    )
