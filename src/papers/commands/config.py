"""Config commands -- view and modify the global configuration file."""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from papers.output import error, get_output, info, success

config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the stored configuration.

    Example::

        papers config show --json
    """
    from papers.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    get_output().print_record(config.model_dump(mode="json"))


@config_app.command("path")
def config_path() -> None:
    """Print the config, cache and data directories."""
    from papers.config import config_file_path, get_cache_dir, get_data_dir

    get_output().print_record(
        {
            "config_file": str(config_file_path()),
            "cache_dir": str(get_cache_dir()),
            "data_dir": str(get_data_dir()),
        }
    )


def _coerce(current: Any, value: str) -> Any:
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if value.lower() in ("none", "null", ""):
        return None
    return value


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Dotted key, e.g. 'openalex.mailto' or 'cache.ttl_seconds'."),
    value: str = typer.Argument(help="New value ('none' clears optional settings)."),
) -> None:
    """Set a configuration value.

    The value is coerced to the current field's type and the whole file is
    validated before it is written.

    Example::

        papers config set openalex.mailto me@example.org
        papers config set request.max_attempts 5
        papers config set zotero.library_id_source file:~/.zotero-id
    """
    from papers.config import load_global_config, save_global_config
    from papers.models import GlobalConfig

    data = load_global_config().model_dump(mode="json")

    *parents, final_key = key.split(".")
    target = data
    for part in parents:
        if not isinstance(target.get(part), dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[part]
    if final_key not in target:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    try:
        coerced = _coerce(target[final_key], value)
    except ValueError:
        error(f"Expected a number for {key}, got: {value}")
        raise typer.Exit(code=2) from None
    target[final_key] = coerced

    try:
        config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(config)
    success(f"Set {key} = {coerced}")
