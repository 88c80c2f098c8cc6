"""Tests for the output layer: format resolution, stream discipline, logging."""

from __future__ import annotations

import json
import logging

import pytest

from papers.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("papers.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("papers.output._is_tty", lambda: True)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("TERM", raising=False)


class TestFormatResolution:
    def test_auto_plain_when_piped(self, non_tty) -> None:
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_rich_on_tty(self, tty) -> None:
        assert OutputManager().format == OutputFormat.RICH

    def test_no_color_forces_plain_on_tty(self, tty) -> None:
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json(self, tty) -> None:
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDetection:
    def test_no_color_env(self, monkeypatch) -> None:
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color()

    def test_dumb_term(self, monkeypatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color()


class TestRecords:
    RECORDS = [
        {"id": "W1", "display_name": "A", "cited_by_count": 3},
        {"id": "W2", "display_name": None, "extra": {"x": 1}},
    ]

    def test_json_lines(self, capsys) -> None:
        count = OutputManager(format=OutputFormat.JSON).print_records(self.RECORDS, ["id"])
        out = capsys.readouterr().out.splitlines()
        assert count == 2
        assert [json.loads(line)["id"] for line in out] == ["W1", "W2"]

    def test_plain_columns(self, capsys) -> None:
        OutputManager(format=OutputFormat.PLAIN).print_records(
            self.RECORDS, ["id", "display_name", "cited_by_count"]
        )
        assert capsys.readouterr().out.splitlines() == ["W1\tA\t3", "W2\t\t"]

    def test_record_plain(self, capsys) -> None:
        OutputManager(format=OutputFormat.PLAIN).print_record({"id": "W1", "ids": {"doi": "x"}})
        assert capsys.readouterr().out.splitlines() == ["id\tW1", 'ids\t{"doi": "x"}']

    def test_record_json(self, capsys) -> None:
        OutputManager(format=OutputFormat.JSON).print_record({"id": "W1"})
        assert json.loads(capsys.readouterr().out) == {"id": "W1"}


class TestDiagnostics:
    def test_info_goes_to_stderr(self, capsys) -> None:
        OutputManager(format=OutputFormat.PLAIN, no_color=True).info("hello")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "hello" in captured.err

    def test_quiet_suppresses_info_not_errors(self, capsys) -> None:
        out = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        out.info("hidden")
        out.error("boom")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "Error: boom" in err

    def test_debug_only_when_verbose(self, capsys) -> None:
        OutputManager(no_color=True).debug("nope")
        OutputManager(no_color=True, verbose=True).debug("yes")
        err = capsys.readouterr().err
        assert "nope" not in err
        assert "[debug] yes" in err


class TestLogging:
    def test_verbose_enables_debug(self) -> None:
        OutputManager(no_color=True, verbose=True).configure_logging()
        logger = logging.getLogger("papers")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_reconfiguring_replaces_handler(self) -> None:
        OutputManager(no_color=True).configure_logging()
        OutputManager(no_color=True, quiet=True).configure_logging()
        logger = logging.getLogger("papers")
        assert len(logger.handlers) == 1
        assert logger.level == logging.ERROR


class TestGlobalInstance:
    def test_lazy_default(self) -> None:
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_and_get(self) -> None:
        manager = OutputManager(format=OutputFormat.JSON)
        set_output(manager)
        assert get_output() is manager
