"""CLI sub-command groups for ``papers``.

* :mod:`~papers.commands.openalex` -- list, get, autocomplete, semantic find.
* :mod:`~papers.commands.zotero` -- browse a Zotero library.
* :mod:`~papers.commands.cache` -- inspect and clear the response cache.
* :mod:`~papers.commands.config` -- view and modify global settings.
"""
