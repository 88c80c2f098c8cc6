"""Exception hierarchy for papers.

All exceptions raised to callers inherit from :class:`PapersError`, which
carries an ``exit_code`` attribute mapped to a constant from
:mod:`papers.exit_codes`. The top-level handler in :func:`papers.app.main`
catches ``PapersError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    PapersError (exit 1)
    +-- InvalidParamsError        (exit 2)  caller error, never retried
    +-- UnsupportedError          (exit 2)  capability missing, no request sent
    +-- ConfigError               (exit 1)
    +-- SelectionError            (exit 1, or 2 for usage mistakes)
    |   +-- SelectionNotFoundError (exit 4)
    +-- ApiError                  (exit 1)
        +-- NetworkError          (exit 6)  transient, retried
        +-- RequestFailedError    (exit 6)  request could not be sent, not retried
        +-- RateLimitedError      (exit 7)  transient, retried
        +-- ClientError           (exit 2/3/4)  permanent 4xx
        +-- ServerError           (exit 5)  retried, then surfaced
        +-- DecodeError           (exit 8)  malformed 2xx body
        +-- ProtocolViolationError (exit 8)

:class:`CacheError` is deliberately outside the hierarchy: the cache layer
raises it internally and always converts it into a miss plus a warning, so it
never reaches a caller of the clients.
"""

from __future__ import annotations

from typing import Optional

from papers.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PROTOCOL_ERROR,
    EXIT_RATE_LIMITED,
    EXIT_SERVER_ERROR,
)


class PapersError(Exception):
    """Base exception for all papers errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`papers.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidParamsError(PapersError):
    """Raised before any I/O when a parameter object is incomplete or contradictory."""

    exit_code = EXIT_INVALID_USAGE


class UnsupportedError(PapersError):
    """Raised when an endpoint lacks a capability (e.g. autocomplete on topics)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(PapersError):
    """Raised for configuration problems (invalid JSON, bad credential sources, missing library id)."""

    exit_code = EXIT_GENERIC_FAILURE


class SelectionError(PapersError):
    """A saved paper selection could not be read, written or changed.

    Usage mistakes (a duplicate name, no active selection) are raised with
    ``exit_code=EXIT_INVALID_USAGE``.
    """


class SelectionNotFoundError(SelectionError):
    """No selection, entry or paper matches what the user named."""

    exit_code = EXIT_NOT_FOUND


class ApiError(PapersError):
    """Base class for failures talking to, or understanding, a remote API.

    Attributes:
        retryable: Whether the retry loop may repeat the request after this
            error. Only transient failures set it.
    """

    retryable: bool = False


class NetworkError(ApiError):
    """Raised on connection failures and timeouts (DNS, refused, reset, read timeout)."""

    exit_code = EXIT_CONNECTION_ERROR
    retryable = True


class RequestFailedError(ApiError):
    """Raised when httpx rejects a request for a reason retrying cannot fix.

    Unsupported URL schemes, malformed URLs, redirect loops and undecodable
    content encodings end up here.
    """

    exit_code = EXIT_CONNECTION_ERROR


class RateLimitedError(ApiError):
    """Raised when the provider answers HTTP 429.

    Args:
        message: Human-readable description.
        retry_after: Seconds the provider asked us to wait, if it said.
    """

    exit_code = EXIT_RATE_LIMITED
    retryable = True

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class ClientError(ApiError):
    """Raised for permanent HTTP 4xx responses other than 429.

    The exit code follows the status: 401/403 map to an auth failure, 404 to
    not-found, everything else to invalid usage.

    Args:
        status_code: HTTP status returned by the provider.
        message: Provider-supplied error message, when one could be extracted.
    """

    def __init__(self, status_code: int, message: str = ""):
        text = f"HTTP {status_code}: {message}" if message else f"HTTP {status_code}"
        if status_code in (401, 403):
            code = EXIT_AUTH_FAILURE
        elif status_code == 404:
            code = EXIT_NOT_FOUND
        else:
            code = EXIT_INVALID_USAGE
        super().__init__(text, exit_code=code)
        self.status_code = status_code
        self.message = message


class ServerError(ApiError):
    """Raised when the provider returns HTTP 5xx on every attempt."""

    exit_code = EXIT_SERVER_ERROR
    retryable = True

    def __init__(self, status_code: int, message: str = ""):
        text = f"HTTP {status_code}: {message}" if message else f"HTTP {status_code}"
        super().__init__(text)
        self.status_code = status_code


class DecodeError(ApiError):
    """Raised when a 2xx body does not match the expected shape."""

    exit_code = EXIT_PROTOCOL_ERROR


class ProtocolViolationError(ApiError):
    """Raised when the provider breaks a pagination contract (e.g. repeats a cursor)."""

    exit_code = EXIT_PROTOCOL_ERROR


class CacheError(Exception):
    """Local cache I/O failure. Never surfaced; the cache downgrades it to a miss."""
