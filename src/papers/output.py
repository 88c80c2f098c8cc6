"""CLI output with strict stdout/stderr discipline.

* **stdout** carries data only: entities as JSON, tab-separated plain text,
  or Rich tables.
* **stderr** carries diagnostics: status lines, warnings, errors, and the
  library's :mod:`logging` records routed through
  :class:`rich.logging.RichHandler`.

``NO_COLOR``, ``TERM=dumb`` and ``--no-color`` disable colour. ``AUTO``
format picks Rich for an interactive terminal and plain text when piped.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table


class OutputFormat(str, Enum):
    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes CLI output to the right stream in the right format.

    Args:
        format: Desired output format. ``AUTO`` resolves on TTY detection.
        no_color: Disable colour and Rich markup.
        quiet: Suppress informational messages on stderr.
        verbose: Show debug messages and DEBUG-level log records.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_json(self, data: Any) -> None:
        self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    def print_record(self, record: dict[str, Any]) -> None:
        """Print a single entity.

        JSON and Rich modes print the whole record; plain mode prints one
        ``key<TAB>value`` line per top-level field.
        """
        if self._format == OutputFormat.PLAIN:
            for key, value in record.items():
                if isinstance(value, (dict, list)):
                    value = json.dumps(value, ensure_ascii=False, default=str)
                self.print_data(f"{key}\t{value}")
        elif self._format == OutputFormat.JSON:
            self.print_json(record)
        else:
            self._stdout.print_json(data=record, default=str)

    def print_records(
        self,
        records: Iterable[dict[str, Any]],
        columns: list[str],
        title: Optional[str] = None,
    ) -> int:
        """Print a sequence of entities and return how many were printed.

        * **JSON** -- one compact JSON object per line, written as the
          records arrive.
        * **Plain** -- *columns* as tab-separated values, one row per line.
        * **Rich** -- a :class:`~rich.table.Table` of *columns*.
        """
        count = 0
        if self._format == OutputFormat.JSON:
            for record in records:
                self.print_data(json.dumps(record, ensure_ascii=False, default=str))
                count += 1
            return count

        rows = []
        for record in records:
            row = [_cell(record.get(column)) for column in columns]
            count += 1
            if self._format == OutputFormat.PLAIN:
                self.print_data("\t".join(row))
            else:
                rows.append(row)

        if self._format == OutputFormat.RICH:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for column in columns:
                table.add_column(column)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)
        return count

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Informational message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, style="green")

    def warning(self, message: str) -> None:
        """Shown even with ``--quiet``."""
        self._emit(message, label="Warning:", style="yellow")

    def error(self, message: str) -> None:
        self._emit(message, label="Error:", style="bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(message, label="[debug]", style="dim")

    def _emit(self, message: str, label: str = "", style: Optional[str] = None) -> None:
        if self._no_color:
            text = f"{label} {message}" if label else message
            print(text, file=sys.stderr, flush=True)
        elif style is None:
            self._stderr.print(message, markup=False)
        elif label:
            self._stderr.print(f"[{style}]{escape(label)}[/{style}] {escape(message)}")
        else:
            self._stderr.print(f"[{style}]{escape(message)}[/{style}]")

    # ------------------------------------------------------------------ #
    # Logging
    # ------------------------------------------------------------------ #

    def configure_logging(self) -> None:
        """Send ``papers.*`` log records to stderr through Rich.

        ``--verbose`` shows DEBUG records (retries, cache hits); otherwise
        only warnings and above. ``--quiet`` raises the floor to ERROR.
        """
        if self._verbose:
            level = logging.DEBUG
        elif self._quiet:
            level = logging.ERROR
        else:
            level = logging.WARNING

        logger = logging.getLogger("papers")
        for handler in list(logger.handlers):
            if getattr(handler, "_papers_cli", False):
                logger.removeHandler(handler)
        handler = RichHandler(
            console=self._stderr,
            show_time=False,
            show_path=self._verbose,
            markup=False,
            rich_tracebacks=False,
        )
        handler._papers_cli = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the global manager. Used by the test suite between tests."""
    global _output
    _output = None


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
