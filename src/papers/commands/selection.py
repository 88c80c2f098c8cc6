"""Selection commands -- keep named lists of papers across sessions.

Selections live under the data directory. One of them is *active*; ``add``,
``remove`` and ``show`` use it unless told otherwise. Wherever a selection
is named, its 1-based index from ``papers selection list`` works too.

Example::

    papers selection create thesis
    papers selection add 10.1038/nature12373
    papers selection add "attention is all you need"
    papers selection show --json
    papers selection remove W2741809807
"""

from __future__ import annotations

from typing import Any, Optional

import typer

from papers.commands.common import emit_records, openalex_session, optional_zotero_session
from papers.exceptions import SelectionNotFoundError
from papers.output import get_output, info, success
from papers.selection import (
    Selection,
    activate_selection,
    active_selection_name,
    create_selection,
    delete_selection,
    list_selection_names,
    load_selection,
    resolve_paper,
    resolve_selection,
    save_selection,
    target_selection,
)

selection_app = typer.Typer(no_args_is_help=True)

ENTRY_COLUMNS = ["#", "zotero_key", "openalex_id", "doi", "year", "title"]


def _entry_rows(selection: Selection) -> list[dict[str, Any]]:
    return [
        {"#": index, **entry.model_dump(mode="json", exclude_none=True)}
        for index, entry in enumerate(selection.entries, start=1)
    ]


@selection_app.command("list")
def list_command() -> None:
    """List saved selections with their entry counts."""
    active = active_selection_name()
    rows = []
    for index, name in enumerate(list_selection_names(), start=1):
        rows.append(
            {
                "#": index,
                "name": name,
                "entries": len(load_selection(name).entries),
                "active": name == active,
            }
        )
    if not rows:
        info("No selections yet. Create one with 'papers selection create NAME'.")
        return
    emit_records(rows, ["#", "name", "entries", "active"], title="selections")


@selection_app.command("create")
def create_command(
    name: str = typer.Argument(help="Letters, digits, '-' and '_'."),
) -> None:
    """Create an empty selection and make it active."""
    create_selection(name)
    success(f"Created selection '{name}' (now active).")


@selection_app.command("use")
def use_command(
    selection: str = typer.Argument(help="Selection name or index."),
) -> None:
    """Make a selection the active one."""
    name = resolve_selection(selection)
    activate_selection(name)
    success(f"Active selection: {name}")


@selection_app.command("delete")
def delete_command(
    selection: str = typer.Argument(help="Selection name or index."),
) -> None:
    """Delete a selection."""
    name = resolve_selection(selection)
    delete_selection(name)
    success(f"Deleted selection '{name}'.")


@selection_app.command("show")
def show_command(
    selection: Optional[str] = typer.Argument(None, help="Selection name or index (default: active)."),
) -> None:
    """List the papers in a selection."""
    target = target_selection(selection)
    count = emit_records(_entry_rows(target), ENTRY_COLUMNS, title=target.name)
    info(f"{count} entries in '{target.name}'")


@selection_app.command("add")
def add_command(
    ctx: typer.Context,
    paper: str = typer.Argument(help="Zotero key, DOI, OpenAlex work id, or title."),
    to: Optional[str] = typer.Option(None, "--to", help="Selection name or index (default: active)."),
) -> None:
    """Resolve a paper through Zotero and OpenAlex and add it to a selection."""
    target = target_selection(to)
    with openalex_session(ctx) as openalex, optional_zotero_session(ctx) as zotero:
        entry = resolve_paper(paper, openalex, zotero)
    if not target.add(entry):
        info(f"Already in '{target.name}'.")
        return
    save_selection(target)
    get_output().print_record(entry.model_dump(mode="json", exclude_none=True))
    success(f"Added to '{target.name}'.")


@selection_app.command("remove")
def remove_command(
    paper: str = typer.Argument(help="Zotero key, DOI, OpenAlex work id, or part of the title."),
    source: Optional[str] = typer.Option(
        None, "--from", help="Selection name or index (default: active)."
    ),
) -> None:
    """Remove every matching paper from a selection."""
    target = target_selection(source)
    removed = target.remove(paper)
    if not removed:
        raise SelectionNotFoundError(f"No entry in '{target.name}' matches {paper!r}")
    save_selection(target)
    success(f"Removed {len(removed)} entr{'y' if len(removed) == 1 else 'ies'} from '{target.name}'.")
