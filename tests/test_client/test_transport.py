"""Tests for the httpx-backed transport."""

from __future__ import annotations

import json

import httpx
import pytest
from conftest import RecordingHandler, json_response, mock_http

from papers.client.request import HEADER, QUERY, Credential, RequestDescriptor
from papers.client.retry import Retrier, RetryPolicy
from papers.client.transport import HttpTransport
from papers.exceptions import NetworkError, RequestFailedError


def _descriptor(**kwargs) -> RequestDescriptor:
    return RequestDescriptor.create("GET", "https://api.example.org", "works", **kwargs)


class TestSend:
    def test_query_credential_added_on_the_wire(self) -> None:
        handler = RecordingHandler(json_response({}))
        transport = HttpTransport(client=mock_http(handler))
        transport.send(_descriptor(params={"a": "1"}, credential=Credential("api_key", "s3cret", QUERY)))
        request = handler.requests[0]
        assert request.url.params["api_key"] == "s3cret"
        assert request.url.params["a"] == "1"

    def test_header_credential_added_on_the_wire(self) -> None:
        handler = RecordingHandler(json_response({}))
        transport = HttpTransport(client=mock_http(handler))
        transport.send(
            _descriptor(
                headers={"Zotero-API-Version": "3"},
                credential=Credential("Zotero-API-Key", "k", HEADER),
            )
        )
        request = handler.requests[0]
        assert request.headers["Zotero-API-Key"] == "k"
        assert request.headers["Zotero-API-Version"] == "3"

    def test_json_body_sent(self) -> None:
        handler = RecordingHandler(json_response({}))
        transport = HttpTransport(client=mock_http(handler))
        descriptor = RequestDescriptor.create("POST", "https://api.example.org", "find", json_body={"query": "q"})
        transport.send(descriptor)
        request = handler.requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"query": "q"}
        assert request.headers["Content-Type"] == "application/json"

    def test_non_2xx_is_returned_not_raised(self) -> None:
        transport = HttpTransport(client=mock_http(RecordingHandler(json_response({}, 503))))
        response = transport.send(_descriptor())
        assert response.status_code == 503
        assert not response.ok

    def test_only_requested_headers_kept(self) -> None:
        handler = RecordingHandler(
            json_response([], headers={"Total-Results": "7", "X-Other": "no", "Retry-After": "2"})
        )
        transport = HttpTransport(response_headers=("Total-Results",), client=mock_http(handler))
        response = transport.send(_descriptor())
        assert response.headers == {"total-results": "7", "retry-after": "2"}
        assert response.header("Total-Results") == "7"

    def test_connect_error_becomes_network_error(self) -> None:
        handler = RecordingHandler(httpx.ConnectError("refused"))
        transport = HttpTransport(client=mock_http(handler))
        with pytest.raises(NetworkError, match="ConnectError"):
            transport.send(_descriptor())

    def test_timeout_becomes_network_error(self) -> None:
        handler = RecordingHandler(httpx.ReadTimeout("slow"))
        transport = HttpTransport(client=mock_http(handler))
        with pytest.raises(NetworkError):
            transport.send(_descriptor())


def test_non_positive_timeout_rejected() -> None:
    with pytest.raises(ValueError):
        HttpTransport(timeout=0)


class TestHttpxErrorMapping:
    @pytest.mark.parametrize(
        "exc",
        [
            httpx.ProxyError("proxy refused"),
            httpx.RemoteProtocolError("peer closed"),
            httpx.WriteError("broken pipe"),
            httpx.PoolTimeout("pool exhausted"),
        ],
        ids=lambda e: type(e).__name__,
    )
    def test_transport_errors_are_retryable_network_errors(self, exc: Exception) -> None:
        transport = HttpTransport(client=mock_http(RecordingHandler(exc)))
        with pytest.raises(NetworkError) as info:
            transport.send(_descriptor())
        assert info.value.retryable
        assert type(exc).__name__ in str(info.value)

    @pytest.mark.parametrize(
        "exc",
        [
            httpx.UnsupportedProtocol("Request URL has an unsupported protocol 'ftp://'"),
            httpx.TooManyRedirects("Exceeded maximum allowed redirects."),
            httpx.DecodingError("bad gzip stream"),
        ],
        ids=lambda e: type(e).__name__,
    )
    def test_unsendable_requests_are_not_retried(self, exc: Exception) -> None:
        handler = RecordingHandler(exc)
        transport = HttpTransport(client=mock_http(handler))
        sleeps: list[float] = []
        retrier = Retrier(RetryPolicy(max_attempts=3, jitter=False), sleep=sleeps.append)
        with pytest.raises(RequestFailedError) as info:
            retrier.call(transport.send, _descriptor())
        assert not info.value.retryable
        assert handler.calls == 1
        assert sleeps == []

    def test_proxy_error_is_retried_then_succeeds(self) -> None:
        handler = RecordingHandler(httpx.ProxyError("proxy refused"), json_response({"ok": True}))
        transport = HttpTransport(client=mock_http(handler))
        sleeps: list[float] = []
        retrier = Retrier(RetryPolicy(max_attempts=3, jitter=False), sleep=sleeps.append)
        response = retrier.call(transport.send, _descriptor())
        assert response.status_code == 200
        assert handler.calls == 2
        assert sleeps == [1.0]
