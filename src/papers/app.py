"""Typer application and CLI entry point for ``papers``.

The root callback turns the global flags into an
:class:`~papers.output.OutputManager`, routes library logging to stderr,
and stores ``--no-cache`` in the context for the command groups.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. A :class:`~papers.exceptions.PapersError` exits cleanly
with its ``exit_code``; anything else writes a crash log under the data
directory.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from papers import __version__
from papers.commands.cache import cache_app
from papers.commands.config import config_app
from papers.commands.openalex import openalex_app
from papers.commands.selection import selection_app
from papers.commands.zotero import zotero_app
from papers.exit_codes import EXIT_GENERIC_FAILURE
from papers.output import OutputFormat

app = typer.Typer(
    name="papers",
    help="Query OpenAlex and Zotero from the command line.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(openalex_app, name="openalex", help="Search and fetch OpenAlex entities.")
app.add_typer(zotero_app, name="zotero", help="Browse a Zotero library.")
app.add_typer(cache_app, name="cache", help="Response cache management.")
app.add_typer(selection_app, name="selection", help="Named lists of papers.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"papers {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the response cache."),
) -> None:
    """Root callback executed before every sub-command.

    Args:
        ctx: Typer invocation context.
        version: Print the version string and exit.
        json_output: Force JSON output.
        plain_output: Force plain-text output.
            Without either flag, ``output.format`` from the config file applies.
        no_color: Disable colour and Rich markup.
        quiet: Suppress non-essential diagnostics.
        verbose: Show debug diagnostics, including retry and cache log lines.
        no_cache: Neither read from nor write to the response cache.
    """
    from papers.output import OutputManager, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = _configured_format()

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    output.configure_logging()
    set_output(output)

    ctx.ensure_object(dict)
    ctx.obj["no_cache"] = no_cache
    ctx.obj["verbose"] = verbose


def _configured_format() -> OutputFormat:
    """The ``output.format`` setting; ``AUTO`` when the config file is unreadable."""
    from papers.config import load_global_config
    from papers.exceptions import ConfigError

    try:
        return OutputFormat(load_global_config().output.format)
    except ConfigError:
        return OutputFormat.AUTO


def _setup_signal_handlers() -> None:
    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the traceback of *exc* under ``<data dir>/logs`` and return the path."""
    from papers.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    now = datetime.now()
    log_path = logs_dir / f"crash-{now:%Y%m%d-%H%M%S}.log"
    header = f"papers {__version__} at {now.isoformat(timespec='seconds')}\nargv: {sys.argv!r}\n\n"
    log_path.write_text(header + "".join(traceback.format_exception(exc)), encoding="utf-8")
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``papers`` console script.

    Raises:
        SystemExit: Always (from Typer, or with the error's exit code).
    """
    _setup_signal_handlers()
    try:
        app(standalone_mode=True)
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from papers.exceptions import PapersError
        from papers.output import error

        if isinstance(exc, PapersError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)


if __name__ == "__main__":
    main()
