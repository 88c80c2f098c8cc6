"""OpenAlex commands -- list, get, autocomplete and semantic search.

Example::

    papers openalex list works --search "graphene" --filter publication_year:2024
    papers openalex list authors --search curie --all --limit 500 --json
    papers openalex get works W2741809807
    papers openalex autocomplete institutions "mass inst"
    papers openalex find "protein folding with transformers" --count 20
"""

from __future__ import annotations

from typing import Optional

import typer

from papers.commands.common import emit_records, openalex_session, to_record
from papers.openalex import make_find_params, make_list_params
from papers.output import get_output, info

openalex_app = typer.Typer(no_args_is_help=True)

ENTITY_COLUMNS = ["id", "display_name", "works_count", "cited_by_count"]


@openalex_app.command("list")
def list_command(
    ctx: typer.Context,
    entity: str = typer.Argument(help="Entity type: works, authors, sources, ..."),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Full-text search."),
    filter: Optional[str] = typer.Option(
        None, "--filter", help="Filter expression, e.g. 'is_oa:true,type:article'."
    ),
    sort: Optional[str] = typer.Option(None, "--sort", help="Sort field."),
    desc: bool = typer.Option(False, "--desc", help="Sort descending."),
    per_page: Optional[int] = typer.Option(None, "--per-page", help="Results per page (1-200)."),
    page: Optional[int] = typer.Option(None, "--page", help="Page number (offset paging)."),
    sample: Optional[int] = typer.Option(None, "--sample", help="Random sample size."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Sampling seed."),
    select: Optional[str] = typer.Option(None, "--select", help="Comma-separated fields."),
    group_by: Optional[str] = typer.Option(None, "--group-by", help="Aggregate by field."),
    all_pages: bool = typer.Option(
        False, "--all", help="Follow cursor pagination through every page."
    ),
    limit: Optional[int] = typer.Option(None, "--limit", help="Stop after this many results."),
) -> None:
    """List entities, one page or (with --all) the whole result set."""
    params = make_list_params(
        search=search,
        filter=filter,
        sort=sort,
        descending=desc,
        per_page=per_page,
        page=page,
        cursor="*" if (all_pages or limit is not None) and page is None and sample is None else None,
        sample=sample,
        seed=seed,
        select=select,
        group_by=group_by,
    )
    with openalex_session(ctx) as client:
        if group_by:
            result = client.list_entities(entity, params)
            emit_records(result.group_by, ["key", "key_display_name", "count"], title=entity)
            return
        if all_pages or limit is not None:
            stream = client.list_entities_stream(entity, params, limit=limit)
            count = emit_records(stream, ENTITY_COLUMNS, title=entity)
            info(f"{count} {entity}")
        else:
            result = client.list_entities(entity, params)
            emit_records(result.items, ENTITY_COLUMNS, title=entity)
            if result.total_results is not None:
                info(f"{len(result.items)} of {result.total_results} {entity}")


@openalex_app.command("get")
def get_command(
    ctx: typer.Context,
    entity: str = typer.Argument(help="Entity type: works, authors, sources, ..."),
    entity_id: str = typer.Argument(help="OpenAlex id, URL, DOI, ORCID, ROR, ..."),
    select: Optional[str] = typer.Option(None, "--select", help="Comma-separated fields."),
) -> None:
    """Show a single entity."""
    with openalex_session(ctx) as client:
        found = client.get_entity(entity, entity_id, select=select)
        get_output().print_record(to_record(found))


@openalex_app.command("autocomplete")
def autocomplete_command(
    ctx: typer.Context,
    entity: str = typer.Argument(help="works, authors, sources, institutions, concepts, ..."),
    query: str = typer.Argument(help="Partial name to complete."),
) -> None:
    """Type-ahead suggestions."""
    with openalex_session(ctx) as client:
        results = client.autocomplete(entity, query)
        emit_records(results, ["short_id", "display_name", "hint", "cited_by_count"])


@openalex_app.command("find")
def find_command(
    ctx: typer.Context,
    query: str = typer.Argument(help="Title, abstract, or research question."),
    count: Optional[int] = typer.Option(None, "--count", help="Number of results (1-100)."),
    filter: Optional[str] = typer.Option(None, "--filter", help="Filter expression."),
) -> None:
    """Semantic search for similar works (requires an API key)."""
    params = make_find_params(query=query, count=count, filter=filter)
    with openalex_session(ctx) as client:
        results = client.find_works(params)
        emit_records(
            results,
            ["score", "id", "display_name"],
            flatten={"id": "work.id", "display_name": "work.display_name"},
        )
