"""Transport backed by :mod:`httpx`.

:class:`HttpxTransport` sends synchronous requests through a long-lived
:class:`httpx.Client` and asynchronous ones through a short-lived
:class:`httpx.AsyncClient`, so it can be shared across event loops.

GET parameters are appended to the query string; other methods send them
form-encoded in the body with a matching ``Content-Type`` header. A
configured timeout applies to asynchronous requests only; synchronous
requests use the transport's default timeout.

Example::

    transport = HttpxTransport(base_url="https://api.example.com")
    with Registry(transport=transport) as registry:
        ...
"""

from __future__ import annotations

from typing import Any, Optional, Union

import httpx

from elephant.exceptions import TransportError
from elephant.models import HTTPMethod
from elephant.transport.base import Transport, TransportRequest, TransportResponse
from elephant.transport.codecs import (
    ACCEPT_HEADERS,
    FORM_CONTENT_TYPE,
    append_query,
    encode_params,
)


class HttpxTransport(Transport):
    """HTTP transport using :class:`httpx.Client` and :class:`httpx.AsyncClient`.

    Args:
        base_url: Prefix for relative endpoints.
        verify: Verify TLS certificates.
        default_timeout: Timeout in seconds used when a request does not set
            one (``None`` disables it).
        transport: Optional low-level httpx transport, e.g.
            :class:`httpx.MockTransport` in tests. It must support async
            requests if asynchronous templates are used.
    """

    def __init__(
        self,
        base_url: str = "",
        verify: bool = True,
        default_timeout: Optional[float] = 30.0,
        transport: Optional[Union[httpx.BaseTransport, httpx.AsyncBaseTransport]] = None,
    ) -> None:
        self._base_url = base_url
        self._verify = verify
        self._default_timeout = default_timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Exchanges
    # ------------------------------------------------------------------ #

    def exchange(self, request: TransportRequest) -> TransportResponse:
        kwargs = self._build_request(request)
        try:
            response = self._sync_client().request(**kwargs)
        except httpx.TimeoutException as exc:
            raise self._timeout_error(request, exc) from exc
        except httpx.RequestError as exc:
            raise self._network_error(request, exc) from exc
        return self._to_response(response)

    async def exchange_async(self, request: TransportRequest) -> TransportResponse:
        kwargs = self._build_request(request)
        timeout = request.timeout / 1000 if request.timeout else self._default_timeout
        client_kwargs: dict[str, Any] = {
            "base_url": self._base_url,
            "timeout": timeout,
            "verify": self._verify,
            "follow_redirects": True,
        }
        if self._transport is not None:
            client_kwargs["transport"] = self._transport
        try:
            async with httpx.AsyncClient(**client_kwargs) as client:
                response = await client.request(**kwargs)
        except httpx.TimeoutException as exc:
            raise self._timeout_error(request, exc) from exc
        except httpx.RequestError as exc:
            raise self._network_error(request, exc) from exc
        return self._to_response(response)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _sync_client(self) -> httpx.Client:
        if self._client is None:
            client_kwargs: dict[str, Any] = {
                "base_url": self._base_url,
                "timeout": self._default_timeout,
                "verify": self._verify,
                "follow_redirects": True,
            }
            if self._transport is not None:
                client_kwargs["transport"] = self._transport
            self._client = httpx.Client(**client_kwargs)
        return self._client

    def _build_request(self, request: TransportRequest) -> dict[str, Any]:
        """Translate a :class:`TransportRequest` into ``httpx`` request kwargs."""
        headers = {"Accept": ACCEPT_HEADERS[request.format]}
        headers.update(request.headers)
        encoded = encode_params(request.params)

        kwargs: dict[str, Any] = {"method": request.method.value, "headers": headers}
        if request.method is HTTPMethod.GET:
            kwargs["url"] = append_query(request.endpoint, encoded)
        else:
            kwargs["url"] = request.endpoint
            kwargs["content"] = encoded
            if not any(name.lower() == "content-type" for name in headers):
                headers["Content-Type"] = FORM_CONTENT_TYPE
        return kwargs

    @staticmethod
    def _to_response(response: httpx.Response) -> TransportResponse:
        return TransportResponse(
            status_code=response.status_code,
            body=response.text,
            headers=dict(response.headers),
        )

    @staticmethod
    def _timeout_error(request: TransportRequest, exc: Exception) -> TransportError:
        return TransportError(
            f"Request to {request.endpoint} timed out: {exc}",
            endpoint=request.endpoint,
            reason="timeout",
        )

    @staticmethod
    def _network_error(request: TransportRequest, exc: Exception) -> TransportError:
        return TransportError(
            f"Request to {request.endpoint} failed: {exc}",
            endpoint=request.endpoint,
            reason="network",
        )
