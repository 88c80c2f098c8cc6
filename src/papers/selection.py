"""Named paper selections saved under the data directory.

A selection is a named, ordered list of papers. Each entry keeps whatever
identifiers and metadata could be resolved for it: a Zotero item key, an
OpenAlex work id, a DOI, and bibliographic fields. An entry without a Zotero
key is a paper that is not in the local library yet.

Storage layout::

    <data dir>/selections/<name>.json     one file per selection
    <data dir>/selections/state.json      {"active": "<name>"}

Files are replaced atomically, so an interrupted write leaves the previous
version in place. Names use letters, digits, ``-`` and ``_`` only.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from papers.config import _atomic_write, get_data_dir
from papers.exceptions import ClientError, InvalidParamsError, SelectionError, SelectionNotFoundError
from papers.exit_codes import EXIT_INVALID_USAGE
from papers.openalex import OpenAlexClient, OpenAlexEntity, make_list_params
from papers.zotero import ZoteroClient, ZoteroItem, make_zotero_params

logger = logging.getLogger(__name__)

_STATE_FILENAME = "state.json"
_NAME_RE = re.compile(r"[\w-]+")
_ZOTERO_KEY_RE = re.compile(r"[A-Z0-9]{8}")
_OPENALEX_WORK_RE = re.compile(r"W\d+")
_YEAR_RE = re.compile(r"\b(\d{4})\b")
_DOI_PREFIXES = ("https://doi.org/", "http://doi.org/", "doi:")
_OPENALEX_PREFIX = "https://openalex.org/"


class SelectionEntry(BaseModel):
    """One paper in a selection, with as much metadata as was resolved."""

    zotero_key: Optional[str] = None
    openalex_id: Optional[str] = None
    doi: Optional[str] = None
    title: Optional[str] = None
    authors: Optional[list[str]] = None
    year: Optional[int] = None
    issn: Optional[list[str]] = None
    isbn: Optional[list[str]] = None

    def same_paper(self, other: SelectionEntry) -> bool:
        """True when *other* shares a Zotero key, OpenAlex id or DOI with this entry."""
        if self.zotero_key and self.zotero_key == other.zotero_key:
            return True
        if self.openalex_id and self.openalex_id == other.openalex_id:
            return True
        return bool(self.doi and other.doi and _normalize_doi(self.doi) == _normalize_doi(other.doi))

    def matches(self, query: str) -> bool:
        """Match a user-typed reference: Zotero key, OpenAlex id, DOI, or part of the title."""
        query = query.strip()
        if looks_like_zotero_key(query) and self.zotero_key == query:
            return True
        work_id = _strip_openalex_prefix(query)
        if looks_like_openalex_work_id(work_id) and self.openalex_id == work_id:
            return True
        if looks_like_doi(query) and self.doi and _normalize_doi(self.doi) == _normalize_doi(query):
            return True
        return bool(self.title and query.lower() in self.title.lower())

    def is_empty(self) -> bool:
        return not (self.zotero_key or self.openalex_id or self.doi or self.title)


class Selection(BaseModel):
    name: str
    entries: list[SelectionEntry] = Field(default_factory=list)

    def add(self, entry: SelectionEntry) -> bool:
        """Append *entry* unless the same paper is already present.

        Returns:
            ``True`` if the entry was appended.
        """
        if any(existing.same_paper(entry) for existing in self.entries):
            return False
        self.entries.append(entry)
        return True

    def remove(self, query: str) -> list[SelectionEntry]:
        """Drop every entry matching *query* and return the dropped entries."""
        removed = [entry for entry in self.entries if entry.matches(query)]
        self.entries = [entry for entry in self.entries if not entry.matches(query)]
        return removed


class SelectionState(BaseModel):
    active: Optional[str] = None


# --- Identifier helpers ---


def looks_like_zotero_key(value: str) -> bool:
    return bool(_ZOTERO_KEY_RE.fullmatch(value))


def looks_like_openalex_work_id(value: str) -> bool:
    return bool(_OPENALEX_WORK_RE.fullmatch(_strip_openalex_prefix(value)))


def strip_doi_prefix(doi: str) -> str:
    """``10.1/x`` for ``https://doi.org/10.1/x``, ``http://doi.org/...`` or ``doi:...``."""
    for prefix in _DOI_PREFIXES:
        if doi.startswith(prefix):
            return doi[len(prefix):]
    return doi


def looks_like_doi(value: str) -> bool:
    bare = strip_doi_prefix(value)
    return bare.startswith("10.") and "/" in bare


def _normalize_doi(doi: str) -> str:
    return strip_doi_prefix(doi).lower()


def _strip_openalex_prefix(value: str) -> str:
    return value[len(_OPENALEX_PREFIX):] if value.startswith(_OPENALEX_PREFIX) else value


# --- Storage ---


def selections_dir() -> Path:
    path = get_data_dir() / "selections"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _selection_path(name: str) -> Path:
    return selections_dir() / f"{name}.json"


def validate_name(name: str) -> None:
    """Raise :class:`InvalidParamsError` unless *name* is a usable selection name."""
    if not _NAME_RE.fullmatch(name):
        raise InvalidParamsError(
            f"Invalid selection name {name!r}: use only letters, digits, '-' and '_'"
        )


def list_selection_names() -> list[str]:
    """Saved selection names, sorted."""
    return sorted(
        path.stem for path in selections_dir().glob("*.json") if path.name != _STATE_FILENAME
    )


def resolve_selection(reference: str) -> str:
    """Turn a 1-based index from ``selection list`` or a name (any case) into a name.

    Raises:
        SelectionNotFoundError: Index out of range or no such name.
    """
    names = list_selection_names()
    if reference.isdigit():
        index = int(reference)
        if 1 <= index <= len(names):
            return names[index - 1]
        raise SelectionNotFoundError(f"No selection at index {index} ({len(names)} saved)")
    for name in names:
        if name.lower() == reference.lower():
            return name
    raise SelectionNotFoundError(f"Selection {reference!r} not found")


def load_selection(name: str) -> Selection:
    """Read the selection called *name*.

    Raises:
        SelectionNotFoundError: There is no such file.
        SelectionError: The file is not a valid selection.
    """
    path = _selection_path(name)
    if not path.is_file():
        raise SelectionNotFoundError(f"Selection {name!r} not found")
    try:
        return Selection.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except ValueError as exc:
        raise SelectionError(f"Invalid selection file {path}: {exc}") from exc


def save_selection(selection: Selection) -> None:
    validate_name(selection.name)
    _atomic_write(
        _selection_path(selection.name),
        json.dumps(selection.model_dump(mode="json"), indent=2) + "\n",
    )


def delete_selection(name: str) -> None:
    """Remove the selection file; the active marker is cleared if it pointed here."""
    path = _selection_path(name)
    if not path.is_file():
        raise SelectionNotFoundError(f"Selection {name!r} not found")
    path.unlink()
    if active_selection_name() == name:
        save_state(SelectionState())


def create_selection(name: str) -> Selection:
    """Save a new empty selection and make it the active one.

    Raises:
        InvalidParamsError: *name* has characters outside ``[A-Za-z0-9_-]``.
        SelectionError: A selection with that name (in any case) exists.
    """
    validate_name(name)
    if any(existing.lower() == name.lower() for existing in list_selection_names()):
        raise SelectionError(f"Selection {name!r} already exists", exit_code=EXIT_INVALID_USAGE)
    selection = Selection(name=name)
    save_selection(selection)
    save_state(SelectionState(active=name))
    return selection


# --- Active selection ---


def load_state() -> SelectionState:
    """Read ``state.json``; a missing or unreadable file means nothing is active."""
    path = selections_dir() / _STATE_FILENAME
    if not path.is_file():
        return SelectionState()
    try:
        return SelectionState.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable selection state %s: %s", path, exc)
        return SelectionState()


def save_state(state: SelectionState) -> None:
    path = selections_dir() / _STATE_FILENAME
    _atomic_write(path, json.dumps(state.model_dump(mode="json"), indent=2) + "\n")


def active_selection_name() -> Optional[str]:
    return load_state().active


def activate_selection(name: str) -> None:
    if not _selection_path(name).is_file():
        raise SelectionNotFoundError(f"Selection {name!r} not found")
    save_state(SelectionState(active=name))


def target_selection(reference: Optional[str] = None) -> Selection:
    """Load the selection *reference* names, or the active one when it is ``None``.

    Raises:
        SelectionError: No reference was given and nothing is active.
        SelectionNotFoundError: The named or active selection does not exist.
    """
    if reference is not None:
        return load_selection(resolve_selection(reference))
    active = active_selection_name()
    if active is None:
        raise SelectionError(
            "No active selection; create one with 'papers selection create NAME'",
            exit_code=EXIT_INVALID_USAGE,
        )
    return load_selection(active)


# --- Resolving papers ---


def resolve_paper(
    query: str,
    openalex: OpenAlexClient,
    zotero: Optional[ZoteroClient] = None,
) -> SelectionEntry:
    """Build a :class:`SelectionEntry` for a Zotero key, DOI, OpenAlex id or title.

    The Zotero library is consulted first, then OpenAlex; fields already
    filled are not overwritten. When only OpenAlex knew the paper but it has
    a DOI, the library is searched again by that DOI. A free-text query is
    taken from Zotero only when it matches exactly one item. A Zotero key
    reaches OpenAlex only through the DOI of the item it names.

    Lookups that end in a 4xx are treated as "not found"; network, server
    and decode failures propagate.

    Raises:
        SelectionNotFoundError: Neither service recognised *query*.
    """
    query = query.strip()
    entry = SelectionEntry()
    is_doi = looks_like_doi(query)
    is_work_id = looks_like_openalex_work_id(query)

    if zotero is not None:
        item = None
        if looks_like_zotero_key(query):
            item = _quietly(zotero.get_item, query)
        elif is_doi:
            item = _zotero_by_doi(zotero, query)
        elif not is_work_id:
            result = _quietly(
                zotero.list_top_items, make_zotero_params(search=query, per_page=2)
            )
            if result is not None and len(result.items) == 1:
                item = result.items[0]
        if item is not None:
            _fill_from_zotero(entry, item)

    if looks_like_zotero_key(query) and not is_work_id:
        work = _openalex_work(openalex, entry.doi, True, False) if entry.doi else None
    else:
        work = _openalex_work(openalex, query, is_doi, is_work_id)
    if work is not None:
        _fill_from_openalex(entry, work)
        if zotero is not None and entry.zotero_key is None and entry.doi:
            item = _zotero_by_doi(zotero, entry.doi)
            if item is not None:
                entry.zotero_key = item.key
                if entry.isbn is None:
                    entry.isbn = _extra_list(item, "ISBN")

    if entry.is_empty():
        raise SelectionNotFoundError(f"Could not resolve paper {query!r}")
    return entry


def _quietly(call, *args):
    try:
        return call(*args)
    except ClientError as exc:
        logger.debug("Lookup for %r failed: %s", args[0], exc)
        return None


def _zotero_by_doi(zotero: ZoteroClient, doi: str) -> Optional[ZoteroItem]:
    params = make_zotero_params(search=strip_doi_prefix(doi), search_mode="everything", per_page=1)
    result = _quietly(zotero.list_top_items, params)
    if result is None or not result.items:
        return None
    return result.items[0]


def _openalex_work(
    openalex: OpenAlexClient, query: str, is_doi: bool, is_work_id: bool
) -> Optional[OpenAlexEntity]:
    if is_doi:
        return _quietly(openalex.get_entity, "works", f"doi:{strip_doi_prefix(query)}")
    if is_work_id:
        return _quietly(openalex.get_entity, "works", _strip_openalex_prefix(query))
    result = _quietly(openalex.list_entities, "works", make_list_params(search=query, per_page=1))
    if result is None or not result.items:
        return None
    return result.items[0]


def _extra_list(item: ZoteroItem, field: str) -> Optional[list[str]]:
    value = (item.data.model_extra or {}).get(field)
    return [value] if value else None


def _fill_from_zotero(entry: SelectionEntry, item: ZoteroItem) -> None:
    entry.zotero_key = item.key
    entry.title = entry.title or item.data.title
    if entry.authors is None:
        names = [creator.display_name for creator in item.data.creators]
        entry.authors = [name for name in names if name] or None
    if entry.year is None:
        date = item.meta.get("parsedDate") or item.data.date or ""
        match = _YEAR_RE.search(date)
        entry.year = int(match.group(1)) if match else None
    if entry.doi is None and item.data.doi:
        entry.doi = strip_doi_prefix(item.data.doi)
    entry.issn = entry.issn or _extra_list(item, "ISSN")
    entry.isbn = entry.isbn or _extra_list(item, "ISBN")


def _fill_from_openalex(entry: SelectionEntry, work: OpenAlexEntity) -> None:
    entry.openalex_id = entry.openalex_id or work.short_id
    if entry.doi is None and work.get("doi"):
        entry.doi = strip_doi_prefix(work.get("doi"))
    entry.title = entry.title or work.display_name or work.get("title")
    if entry.authors is None:
        names = [
            (authorship.get("author") or {}).get("display_name")
            for authorship in work.get("authorships", [])
        ]
        entry.authors = [name for name in names if name] or None
    if entry.year is None:
        entry.year = work.get("publication_year")
    if entry.issn is None:
        source = (work.get("primary_location") or {}).get("source") or {}
        entry.issn = source.get("issn") or None
