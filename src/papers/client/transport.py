"""Single-shot HTTP execution of request descriptors over :mod:`httpx`.

:class:`HttpTransport` sends exactly one request per :meth:`~HttpTransport.send`
call. It knows nothing about caching or retries: a 2xx is returned as-is
(decoding is the caller's job), any other status is returned unclassified
for :mod:`papers.client.retry` to judge, and only connection-level failures
raise: transient transport failures as :class:`~papers.exceptions.NetworkError`,
unsendable requests as :class:`~papers.exceptions.RequestFailedError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

import httpx

from papers import __version__
from papers.client.request import QUERY, RequestDescriptor
from papers.exceptions import NetworkError, RequestFailedError

DEFAULT_RESPONSE_HEADERS = ("retry-after",)


@dataclass(frozen=True)
class TransportResponse:
    """Raw outcome of one HTTP exchange.

    Attributes:
        status_code: HTTP status.
        body: Raw response bytes.
        headers: The response headers the transport was asked to keep,
            keyed by lower-cased name.
    """

    status_code: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


class HttpTransport:
    """Blocking transport backed by :class:`httpx.Client`.

    Args:
        timeout: Per-request timeout in seconds.
        verify_ssl: Verify TLS certificates.
        response_headers: Response header names to surface to callers
            (case-insensitive). ``Retry-After`` is always kept.
        client: Pre-built :class:`httpx.Client`; tests inject one with an
            :class:`httpx.MockTransport`. The transport closes it on
            :meth:`close` either way.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        response_headers: Iterable[str] = (),
        client: Optional[httpx.Client] = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._timeout = timeout
        self._keep = {h.lower() for h in (*DEFAULT_RESPONSE_HEADERS, *response_headers)}
        self._client = client or httpx.Client(
            timeout=timeout,
            verify=verify_ssl,
            follow_redirects=True,
            headers={"User-Agent": f"papers/{__version__}", "Accept": "application/json"},
        )

    def send(self, descriptor: RequestDescriptor) -> TransportResponse:
        """Execute *descriptor* once.

        Returns:
            The raw :class:`TransportResponse`, whatever its status.

        Raises:
            NetworkError: On connection, proxy and protocol failures and
                timeouts (httpx transport errors).
            RequestFailedError: When httpx cannot send the request at all
                (bad URL or scheme, too many redirects, undecodable body).
        """
        headers = dict(descriptor.headers)
        params = dict(descriptor.params)
        cred = descriptor.credential
        if cred is not None:
            if cred.location == QUERY:
                params[cred.name] = cred.value
            else:
                headers[cred.name] = cred.value

        kwargs: dict = {
            "method": descriptor.method,
            "url": descriptor.url,
            "params": params,
            "headers": headers,
            "timeout": self._timeout,
        }
        if descriptor.json_body is not None:
            kwargs["content"] = descriptor.json_body.encode()
            headers["Content-Type"] = "application/json"

        try:
            response = self._client.request(**kwargs)
        except httpx.UnsupportedProtocol as exc:
            raise RequestFailedError(_describe(descriptor, exc)) from exc
        except httpx.TransportError as exc:
            raise NetworkError(_describe(descriptor, exc)) from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise RequestFailedError(_describe(descriptor, exc)) from exc

        kept = {
            name.lower(): value
            for name, value in response.headers.items()
            if name.lower() in self._keep
        }
        return TransportResponse(
            status_code=response.status_code,
            body=response.content,
            headers=kept,
        )

    def close(self) -> None:
        """Close the underlying :class:`httpx.Client`."""
        self._client.close()


def _describe(descriptor: RequestDescriptor, exc: Exception) -> str:
    return f"{descriptor.method} {descriptor.url} failed: {exc.__class__.__name__}: {exc}"
