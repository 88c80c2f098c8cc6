"""End-to-end tests for the ``papers`` CLI using typer's CliRunner."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import RecordingHandler, json_response, mock_http
from typer.testing import CliRunner

from papers import __version__
from papers.app import app, main
from papers.commands import common
from papers.exceptions import (
    ConfigError,
    InvalidParamsError,
    SelectionError,
    SelectionNotFoundError,
    UnsupportedError,
)
from papers.openalex import OpenAlexClient
from papers.zotero import ZoteroClient

WORK = {"id": "https://openalex.org/W1", "display_name": "Graphene", "works_count": None, "cited_by_count": 5}


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _records(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


@pytest.fixture
def openalex_http(monkeypatch: pytest.MonkeyPatch):
    """Route CLI-built OpenAlex clients through a RecordingHandler."""

    def install(*responses) -> RecordingHandler:
        handler = RecordingHandler(*responses)
        monkeypatch.setattr(
            common,
            "OpenAlexClient",
            lambda *a, **kw: OpenAlexClient(*a, http_client=mock_http(handler), sleep=lambda s: None, **kw),
        )
        return handler

    return install


@pytest.fixture
def zotero_http(monkeypatch: pytest.MonkeyPatch):
    def install(*responses) -> RecordingHandler:
        handler = RecordingHandler(*responses)
        monkeypatch.setattr(
            common,
            "ZoteroClient",
            lambda *a, **kw: ZoteroClient(*a, http_client=mock_http(handler), sleep=lambda s: None, **kw),
        )
        return handler

    return install


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


# ------------------------------------------------------------------ #
# openalex
# ------------------------------------------------------------------ #


class TestOpenAlexCommands:
    def test_list_json(self, runner, isolated_config: Path, openalex_http) -> None:
        handler = openalex_http(json_response({"meta": {"count": 1}, "results": [WORK]}))
        result = runner.invoke(
            app, ["--json", "--quiet", "openalex", "list", "works", "--search", "graphene", "--per-page", "5"]
        )
        assert result.exit_code == 0, result.output
        assert _records(result.stdout)[0]["display_name"] == "Graphene"
        params = handler.requests[0].url.params
        assert params["search"] == "graphene"
        assert params["per-page"] == "5"

    def test_list_all_uses_cursor(self, runner, isolated_config: Path, openalex_http) -> None:
        pages = {
            "*": json_response({"meta": {"next_cursor": "c1"}, "results": [WORK]}),
            "c1": json_response({"meta": {"next_cursor": None}, "results": [WORK]}),
        }
        handler = openalex_http(lambda request: pages[request.url.params["cursor"]])
        result = runner.invoke(app, ["--json", "--quiet", "openalex", "list", "authors", "--all"])
        assert result.exit_code == 0, result.output
        assert len(_records(result.stdout)) == 2
        assert handler.calls == 2

    def test_second_run_served_from_cache(self, runner, isolated_config: Path, openalex_http) -> None:
        handler = openalex_http(json_response(WORK))
        for _ in range(2):
            result = runner.invoke(app, ["--json", "--quiet", "openalex", "get", "works", "W1"])
            assert result.exit_code == 0, result.output
        assert handler.calls == 1

    def test_no_cache_flag(self, runner, isolated_config: Path, openalex_http) -> None:
        handler = openalex_http(json_response(WORK))
        for _ in range(2):
            runner.invoke(app, ["--json", "--quiet", "--no-cache", "openalex", "get", "works", "W1"])
        assert handler.calls == 2

    def test_autocomplete_unsupported(self, runner, isolated_config: Path, openalex_http) -> None:
        handler = openalex_http()
        result = runner.invoke(app, ["openalex", "autocomplete", "topics", "bio"])
        assert isinstance(result.exception, UnsupportedError)
        assert handler.calls == 0

    def test_find_sends_key(self, runner, isolated_config: Path, openalex_http, monkeypatch) -> None:
        monkeypatch.setenv("OPENALEX_KEY", "k")
        handler = openalex_http(json_response({"results": [{"score": 0.5, "work": WORK}]}))
        result = runner.invoke(app, ["--json", "--quiet", "openalex", "find", "graphene transistors"])
        assert result.exit_code == 0, result.output
        assert _records(result.stdout)[0]["score"] == 0.5
        assert handler.requests[0].url.params["api_key"] == "k"


# ------------------------------------------------------------------ #
# zotero
# ------------------------------------------------------------------ #


class TestZoteroCommands:
    def test_items(self, runner, isolated_config: Path, zotero_http, monkeypatch) -> None:
        monkeypatch.setenv("ZOTERO_USER_ID", "123")
        body = [{"key": "K1", "data": {"itemType": "book", "title": "SICP"}}]
        handler = zotero_http(json_response(body, headers={"Total-Results": "1"}))
        result = runner.invoke(app, ["--plain", "--quiet", "zotero", "items", "--top", "--tag", "cs"])
        assert result.exit_code == 0, result.output
        assert "K1\tbook\tSICP" in result.stdout
        assert handler.requests[0].url.path == "/users/123/items/top"
        assert handler.requests[0].url.params["tag"] == "cs"

    def test_missing_library_id(self, runner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["zotero", "tags"])
        assert isinstance(result.exception, ConfigError)


# ------------------------------------------------------------------ #
# cache and config
# ------------------------------------------------------------------ #


class TestCacheCommands:
    def test_stats(self, runner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--json", "--quiet", "cache", "stats"])
        assert result.exit_code == 0, result.output
        stats = json.loads(result.stdout)
        assert stats["enabled"] is True

    def test_clear_forced(self, runner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["cache", "clear", "--force"])
        assert result.exit_code == 0

    def test_prune(self, runner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["cache", "prune"])
        assert result.exit_code == 0


class TestConfigCommands:
    def test_set_and_show(self, runner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "set", "openalex.mailto", "me@example.org"])
        assert result.exit_code == 0, result.output
        result = runner.invoke(app, ["--json", "--quiet", "config", "show"])
        assert '"mailto": "me@example.org"' in result.stdout

    def test_set_int(self, runner, isolated_config: Path) -> None:
        runner.invoke(app, ["config", "set", "request.max_attempts", "5"])
        from papers.config import load_global_config

        assert load_global_config().request.max_attempts == 5

    def test_unknown_key(self, runner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "set", "openalex.nope", "x"])
        assert result.exit_code == 2

    def test_invalid_value(self, runner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "set", "zotero.library_type", "team"])
        assert result.exit_code == 2

    def test_configured_format_is_default(self, runner, isolated_config: Path) -> None:
        assert runner.invoke(app, ["config", "set", "output.format", "json"]).exit_code == 0
        result = runner.invoke(app, ["--quiet", "cache", "stats"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["enabled"] is True

    def test_flag_overrides_configured_format(self, runner, isolated_config: Path) -> None:
        runner.invoke(app, ["config", "set", "output.format", "json"])
        result = runner.invoke(app, ["--plain", "--quiet", "cache", "stats"])
        assert result.exit_code == 0, result.output
        assert "enabled\tTrue" in result.stdout.splitlines()

    def test_unknown_format_rejected(self, runner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["config", "set", "output.format", "yaml"])
        assert result.exit_code == 2


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


class TestMain:
    def test_papers_error_maps_to_exit_code(self, isolated_config: Path, monkeypatch, capsys) -> None:
        monkeypatch.setattr("papers.app._setup_signal_handlers", lambda: None)
        monkeypatch.setattr("sys.argv", ["papers", "--no-color", "openalex", "autocomplete", "topics", "bio"])
        with pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 2
        assert "Autocomplete is not available" in capsys.readouterr().err

    def test_unexpected_error_writes_crash_log(self, isolated_config: Path, monkeypatch) -> None:
        monkeypatch.setattr("papers.app._setup_signal_handlers", lambda: None)
        monkeypatch.setattr(common, "open_cache", lambda config: 1 / 0)
        monkeypatch.setattr("sys.argv", ["papers", "--no-color", "openalex", "get", "works", "W1"])
        with pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 1
        logs = list((isolated_config / "data" / "papers" / "logs").glob("crash-*.log"))
        assert logs and "ZeroDivisionError" in logs[0].read_text()


# ------------------------------------------------------------------ #
# Selections
# ------------------------------------------------------------------ #


class TestSelectionCommands:
    def test_create_and_list(self, runner, isolated_config: Path) -> None:
        assert runner.invoke(app, ["selection", "create", "thesis"]).exit_code == 0
        assert runner.invoke(app, ["selection", "create", "notes"]).exit_code == 0
        result = runner.invoke(app, ["--json", "selection", "list"])
        assert result.exit_code == 0, result.output
        assert _records(result.stdout) == [
            {"#": 1, "name": "notes", "entries": 0, "active": True},
            {"#": 2, "name": "thesis", "entries": 0, "active": False},
        ]

    def test_create_invalid_name(self, runner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["selection", "create", "my thesis"])
        assert isinstance(result.exception, InvalidParamsError)

    def test_add_without_active_selection(self, runner, isolated_config: Path, openalex_http) -> None:
        handler = openalex_http(json_response(WORK))
        result = runner.invoke(app, ["selection", "add", "W1"])
        assert isinstance(result.exception, SelectionError)
        assert result.exception.exit_code == 2
        assert handler.calls == 0

    def test_add_through_openalex(self, runner, isolated_config: Path, openalex_http) -> None:
        from papers.selection import load_selection

        runner.invoke(app, ["selection", "create", "thesis"])
        handler = openalex_http(json_response(WORK))
        result = runner.invoke(app, ["--json", "selection", "add", "https://openalex.org/W1"])
        assert result.exit_code == 0, result.output
        assert handler.requests[0].url.path == "/works/W1"
        again = runner.invoke(app, ["--no-cache", "selection", "add", "W1"])
        assert again.exit_code == 0, again.output
        entries = load_selection("thesis").entries
        assert len(entries) == 1
        assert entries[0].openalex_id == "W1"
        assert entries[0].title == "Graphene"

    def test_add_unresolvable(self, runner, isolated_config: Path, openalex_http) -> None:
        runner.invoke(app, ["selection", "create", "thesis"])
        openalex_http(json_response({"error": "Not found"}, 404))
        result = runner.invoke(app, ["selection", "add", "10.0/missing"])
        assert isinstance(result.exception, SelectionNotFoundError)
        assert result.exception.exit_code == 4

    def test_show_and_remove(self, runner, isolated_config: Path) -> None:
        from papers.selection import Selection, SelectionEntry, load_selection, save_selection

        runner.invoke(app, ["selection", "create", "thesis"])
        save_selection(
            Selection(
                name="thesis",
                entries=[SelectionEntry(openalex_id="W1", title="Graphene"), SelectionEntry(doi="10.2/y", title="Other")],
            )
        )
        result = runner.invoke(app, ["--json", "selection", "show"])
        assert result.exit_code == 0, result.output
        records = _records(result.stdout)
        assert [(r["#"], r.get("openalex_id")) for r in records] == [(1, "W1"), (2, None)]

        assert runner.invoke(app, ["selection", "remove", "graph"]).exit_code == 0
        assert [e.title for e in load_selection("thesis").entries] == ["Other"]
        missing = runner.invoke(app, ["selection", "remove", "graph"])
        assert isinstance(missing.exception, SelectionNotFoundError)

    def test_use_and_delete_by_index(self, runner, isolated_config: Path) -> None:
        from papers.selection import active_selection_name, list_selection_names

        runner.invoke(app, ["selection", "create", "alpha"])
        runner.invoke(app, ["selection", "create", "beta"])
        assert runner.invoke(app, ["selection", "use", "1"]).exit_code == 0
        assert active_selection_name() == "alpha"
        assert runner.invoke(app, ["selection", "delete", "alpha"]).exit_code == 0
        assert active_selection_name() is None
        assert list_selection_names() == ["beta"]
        assert isinstance(runner.invoke(app, ["selection", "use", "5"]).exception, SelectionNotFoundError)
