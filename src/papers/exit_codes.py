"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~papers.exceptions.PapersError` subclass.
Shell wrappers can inspect the exit code to tell a bad query from an
upstream outage without parsing stderr.

Example::

    $ papers openalex get works W0000000000
    $ echo $?
    4   # EXIT_NOT_FOUND -- the provider has no such entity
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid or contradictory parameters."""

EXIT_AUTH_FAILURE = 3
"""The provider rejected the credential (HTTP 401 / 403)."""

EXIT_NOT_FOUND = 4
"""The requested entity was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The provider kept returning HTTP 5xx after all retries."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_RATE_LIMITED = 7
"""The provider kept answering HTTP 429 after all retries."""

EXIT_PROTOCOL_ERROR = 8
"""The provider returned a body or pagination state that cannot be used."""
