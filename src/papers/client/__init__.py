"""Request/response pipeline shared by the provider clients.

Modules, leaf first:

:mod:`~papers.client.request`
    Request descriptors, credentials, endpoint capabilities, and the builder.
:mod:`~papers.client.transport`
    One-shot HTTP execution over :mod:`httpx`.
:mod:`~papers.client.retry`
    Failure classification and bounded retry with backoff.
:mod:`~papers.client.pager`
    Offset/cursor continuation and lazy item streams.
:mod:`~papers.client.base`
    :class:`BaseClient`, the facade core composing all of the above with
    the :mod:`papers.cache` store.
"""

from papers.client.base import BaseClient
from papers.client.pager import CursorState, OffsetState, PagedResult, PageStream
from papers.client.request import Credential, Endpoint, RequestBuilder, RequestDescriptor
from papers.client.retry import Retrier, RetryPolicy
from papers.client.transport import HttpTransport, TransportResponse

__all__ = [
    "BaseClient",
    "Credential",
    "CursorState",
    "Endpoint",
    "HttpTransport",
    "OffsetState",
    "PagedResult",
    "PageStream",
    "RequestBuilder",
    "RequestDescriptor",
    "Retrier",
    "RetryPolicy",
    "TransportResponse",
]
