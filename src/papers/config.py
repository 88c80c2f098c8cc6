"""Where papers keeps its files, and how settings and credentials are resolved.

This is the only module that reads the process environment. Everything it
resolves (a :class:`~papers.models.GlobalConfig`, credential strings) is
handed to the clients as plain values.

Directory layout::

    kind     Linux/BSD (XDG)                  macOS/Windows
    config   $XDG_CONFIG_HOME/papers          ~/.papers
    cache    $XDG_CACHE_HOME/papers           ~/.papers/cache
    data     $XDG_DATA_HOME/papers            ~/.papers/data

Settings precedence, high to low: CLI flags, ``PAPERS_*`` environment
variables, ``config.json``, model defaults.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from papers.exceptions import ConfigError
from papers.models import GlobalConfig

_APP_NAME = "papers"
_CONFIG_FILENAME = "config.json"

# kind -> (XDG env var, default under $HOME, subdir under ~/.papers)
_DIR_KINDS: dict[str, tuple[str, tuple[str, ...], Optional[str]]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), None),
    "cache": ("XDG_CACHE_HOME", (".cache",), "cache"),
    "data": ("XDG_DATA_HOME", (".local", "share"), "data"),
}

_TRUTHY = ("1", "true", "yes", "on")


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_segments, fallback_subdir = _DIR_KINDS[kind]
    if _is_xdg_platform():
        root = os.environ.get(env_var)
        base = Path(root) if root else Path.home().joinpath(*home_segments)
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback_subdir:
            path = path / fallback_subdir
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json`` (created on first use)."""
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Default response cache directory. Safe to delete at any time."""
    return _app_dir("cache")


def get_data_dir() -> Path:
    """Directory for crash logs and other non-config state."""
    return _app_dir("data")


def config_file_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


# --- Writing ---


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* so readers see either the old or new file.

    The temp file lives next to *path*; ``os.replace`` within one directory
    is atomic on POSIX and Windows.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


# --- Global config ---


def load_global_config() -> GlobalConfig:
    """Read ``config.json``, or return defaults when there is none.

    Raises:
        ConfigError: The file is not valid JSON or fails validation.
    """
    path = config_file_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except ValueError as exc:
        # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    _atomic_write(config_file_path(), json.dumps(config.model_dump(mode="json"), indent=2) + "\n")


def resolve_config(no_cache: bool = False) -> GlobalConfig:
    """Return the stored config with environment and flag overrides applied.

    Args:
        no_cache: ``--no-cache`` was given; disables the response cache.

    Returns:
        A fresh :class:`~papers.models.GlobalConfig`; the file is not touched.
    """
    config = load_global_config()
    cache_dir = os.environ.get("PAPERS_CACHE_DIR")
    if cache_dir:
        config.cache.directory = cache_dir
    if no_cache or os.environ.get("PAPERS_NO_CACHE", "").lower() in _TRUTHY:
        config.cache.enabled = False
    return config


def resolve_cache_dir(config: GlobalConfig) -> Path:
    if not config.cache.directory:
        return get_cache_dir()
    path = Path(config.cache.directory).expanduser()
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Credentials ---


def resolve_credential(source: str) -> str:
    """Turn a source descriptor into the secret it points at.

    ``env:NAME`` reads an environment variable; ``file:PATH`` reads a file
    and strips surrounding whitespace (``~`` is expanded).

    Raises:
        ConfigError: Unset variable, missing or unreadable file, or an
            unknown scheme.
    """
    scheme, _, target = source.partition(":")
    if scheme == "env" and target:
        value = os.environ.get(target)
        if value is None:
            raise ConfigError(f"Environment variable '{target}' is not set (source: {source})")
        return value
    if scheme == "file" and target:
        path = Path(target).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc
    raise ConfigError(f"Unknown credential source format: {source}")


def resolve_optional_credential(source: Optional[str]) -> Optional[str]:
    """Like :func:`resolve_credential`, but an unset or empty env var is ``None``.

    A named file that is missing is still an error.
    """
    if not source:
        return None
    if source.startswith("env:"):
        return os.environ.get(source[4:]) or None
    return resolve_credential(source)
