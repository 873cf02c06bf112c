"""Transport abstraction with the three-phase outcome guarantee.

A :class:`Transport` performs one request/response exchange and reports
exactly one of two outcomes, success or error, followed by a completion
signal that always fires exactly once. Concrete transports only implement
the raw exchange (:meth:`Transport.exchange` and
:meth:`Transport.exchange_async`); status mapping, body decoding and
callback ordering live here so every implementation behaves the same.

Synchronous dispatch blocks and returns the success handler's result.
Asynchronous dispatch schedules the exchange on the running
:mod:`asyncio` loop and returns the :class:`asyncio.Task`.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from elephant.exceptions import TransportError, ValidationError
from elephant.models import HTTPMethod, ResponseFormat
from elephant.transport.codecs import decode_payload

logger = logging.getLogger(__name__)


@dataclass
class TransportRequest:
    """Everything a transport needs for one exchange.

    Attributes:
        endpoint: Resolved URL or path (placeholders already filled).
        method: HTTP method.
        params: Parameters to encode into the query string or body.
        asynchronous: Dispatch on the event loop instead of blocking.
        timeout: Timeout in milliseconds; only honoured for asynchronous
            requests.
        format: How to decode a successful body.
        headers: Extra request headers.
    """

    endpoint: str
    method: HTTPMethod = HTTPMethod.GET
    params: dict[str, Any] = field(default_factory=dict)
    asynchronous: bool = True
    timeout: Optional[int] = None
    format: ResponseFormat = ResponseFormat.JSON
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class TransportResponse:
    """Raw result of an exchange that reached the server."""

    status_code: int
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code <= 299


SuccessHandler = Callable[[Any, TransportResponse], Any]
ErrorHandler = Callable[[TransportError], None]
CompleteHandler = Callable[[], None]


class Transport(ABC):
    """Base class for request mechanisms."""

    @abstractmethod
    def exchange(self, request: TransportRequest) -> TransportResponse:
        """Perform a blocking exchange.

        Raises:
            TransportError: On network failure or timeout.
        """

    @abstractmethod
    async def exchange_async(self, request: TransportRequest) -> TransportResponse:
        """Perform a non-blocking exchange.

        Raises:
            TransportError: On network failure or timeout.
        """

    def close(self) -> None:
        """Release resources held by the transport."""

    def dispatch(
        self,
        request: TransportRequest,
        on_success: SuccessHandler,
        on_error: ErrorHandler,
        on_complete: CompleteHandler,
    ) -> Union[Any, asyncio.Task]:
        """Run one exchange and deliver its outcome to the handlers.

        Args:
            request: The request to perform.
            on_success: Called with the decoded payload and raw response on
                a 2xx status with a decodable body. Its return value is the
                result of the dispatch.
            on_error: Called with a :class:`TransportError` otherwise.
            on_complete: Called last, exactly once, whatever happened.

        Returns:
            For synchronous requests, the success handler's return value or
            ``None`` after an error. For asynchronous requests, a task that
            resolves to the same.

        Raises:
            ValidationError: If an asynchronous request is dispatched with no
                running event loop.
        """
        if not request.asynchronous:
            return self._run(request, on_success, on_error, on_complete)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise ValidationError(
                "Asynchronous requests need a running event loop; "
                "set 'async' to false or execute from a coroutine"
            ) from exc
        return loop.create_task(
            self._run_async(request, on_success, on_error, on_complete)
        )

    def _run(
        self,
        request: TransportRequest,
        on_success: SuccessHandler,
        on_error: ErrorHandler,
        on_complete: CompleteHandler,
    ) -> Any:
        try:
            try:
                response = self.exchange(request)
            except TransportError as exc:
                self._fail(on_error, exc)
                return None
            return self._settle(request, response, on_success, on_error)
        finally:
            on_complete()

    async def _run_async(
        self,
        request: TransportRequest,
        on_success: SuccessHandler,
        on_error: ErrorHandler,
        on_complete: CompleteHandler,
    ) -> Any:
        try:
            try:
                response = await self.exchange_async(request)
            except TransportError as exc:
                self._fail(on_error, exc)
                return None
            return self._settle(request, response, on_success, on_error)
        finally:
            on_complete()

    def _settle(
        self,
        request: TransportRequest,
        response: TransportResponse,
        on_success: SuccessHandler,
        on_error: ErrorHandler,
    ) -> Any:
        """Map a raw response to exactly one of the two outcomes."""
        if not response.ok:
            self._fail(
                on_error,
                TransportError(
                    f"HTTP {response.status_code} from {request.endpoint}",
                    endpoint=request.endpoint,
                    status_code=response.status_code,
                    reason="status",
                ),
            )
            return None
        try:
            payload = decode_payload(response.body, request.format)
        except ValueError as exc:
            self._fail(
                on_error,
                TransportError(
                    f"Could not decode {request.format.value} response from "
                    f"{request.endpoint}: {exc}",
                    endpoint=request.endpoint,
                    status_code=response.status_code,
                    reason="parse",
                ),
            )
            return None
        logger.debug("HTTP %s from %s", response.status_code, request.endpoint)
        return on_success(payload, response)

    @staticmethod
    def _fail(on_error: ErrorHandler, exc: TransportError) -> None:
        logger.debug("Transport error (%s): %s", exc.reason, exc)
        on_error(exc)
