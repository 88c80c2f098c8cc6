"""Canonical Pydantic configuration models shared across papers.

These models are serialised as JSON in the user's config directory and
passed, already resolved, into the clients at construction time:

:class:`RequestConfig`, :class:`CacheConfig`, :class:`OutputConfig`,
:class:`OpenAlexConfig`, :class:`ZoteroConfig`, and :class:`GlobalConfig`.

Credentials never live in these models directly. Provider sections hold a
*source descriptor* (``env:VAR`` or ``file:/path``) which
:func:`~papers.config.resolve_credential` turns into a value exactly once.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class RequestConfig(BaseModel):
    """HTTP and retry settings applied to every call a client makes."""

    timeout: float = Field(default=30.0, description="Per-request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_attempts: int = Field(
        default=3, description="Total attempts per request, including the first"
    )
    backoff_base: float = Field(
        default=1.0, description="Delay before the first retry, in seconds"
    )
    backoff_max: float = Field(
        default=30.0, description="Upper bound for a single backoff delay, in seconds"
    )
    jitter: bool = Field(default=True, description="Randomise backoff delays")
    max_retry_after: float = Field(
        default=120.0,
        description="Longest Retry-After hint to wait out; a longer one fails the call at once",
    )

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @field_validator("max_attempts")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_attempts must be at least 1")
        return value


class CacheConfig(BaseModel):
    """On-disk response cache settings."""

    enabled: bool = Field(default=True, description="Enable response caching")
    ttl_seconds: int = Field(default=3600, description="Cache TTL in seconds")
    directory: Optional[str] = Field(
        default=None,
        description="Cache directory; defaults to the XDG cache dir",
    )


_OUTPUT_FORMATS = ("auto", "json", "plain", "rich")


class OutputConfig(BaseModel):
    """Default output format preferences."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )

    @field_validator("format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.lower()
        if value not in _OUTPUT_FORMATS:
            raise ValueError(f"format must be one of: {', '.join(_OUTPUT_FORMATS)}")
        return value


class OpenAlexConfig(BaseModel):
    """Connection settings for the OpenAlex API."""

    base_url: str = "https://api.openalex.org"
    api_key_source: Optional[str] = Field(
        default="env:OPENALEX_KEY",
        description="Credential source for the API key: env:VAR or file:/path",
    )
    mailto: Optional[str] = Field(
        default=None, description="Contact email that joins the polite pool"
    )


class ZoteroConfig(BaseModel):
    """Connection settings for the Zotero Web API."""

    base_url: str = "https://api.zotero.org"
    library_type: str = Field(default="user", description="user or group")
    library_id_source: Optional[str] = Field(
        default="env:ZOTERO_USER_ID",
        description="Source for the numeric library id: env:VAR or file:/path",
    )
    api_key_source: Optional[str] = Field(
        default="env:ZOTERO_API_KEY",
        description="Credential source for the API key: env:VAR or file:/path",
    )

    @field_validator("library_type")
    @classmethod
    def _known_library_type(cls, value: str) -> str:
        if value not in ("user", "group"):
            raise ValueError("library_type must be 'user' or 'group'")
        return value


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/papers/config.json``.

    Loaded and saved by :func:`~papers.config.load_global_config` and
    :func:`~papers.config.save_global_config`; environment overrides are
    layered on by :func:`~papers.config.resolve_config`.
    """

    openalex: OpenAlexConfig = Field(default_factory=OpenAlexConfig)
    zotero: ZoteroConfig = Field(default_factory=ZoteroConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
