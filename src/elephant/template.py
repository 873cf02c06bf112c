"""Templates: named request definitions that cache their responses.

A :class:`Template` owns a :class:`~elephant.collection.Collection` of
:class:`~elephant.record.Record` objects keyed by request parameters and
runs the cache state machine for every execution::

    LOOKUP -> HIT_FRESH                          (served from cache)
    LOOKUP -> HIT_STALE | MISS -> FETCH -> FULFILLED | FAILED

Only a fulfilled fetch stores a record; a failed one leaves the collection
untouched and reports through the ``error`` callbacks.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from typing import Any, Callable

from elephant.collection import Collection
from elephant.endpoint import resolve_endpoint
from elephant.exceptions import DuplicateItemError, TransportError, ValidationError
from elephant.models import EffectiveSettings, RequestSettings
from elephant.record import Record, fingerprint, now_ms
from elephant.transport.base import Transport, TransportRequest, TransportResponse

logger = logging.getLogger(__name__)


def invoke_callbacks(callbacks: Iterable[Callable[..., Any]], *args: Any) -> None:
    """Call each callback in registration order with *args*."""
    for callback in callbacks:
        callback(*args)


class Template:
    """A named, configured request definition.

    Args:
        template_id: Identifier, unique within the owning group.
        settings: The template's own settings layer, with ``{{inherit}}``
            already resolved against the group endpoint.
    """

    def __init__(self, template_id: str, settings: RequestSettings) -> None:
        self.id = template_id
        self.settings = settings
        self.records: Collection[Record] = Collection(
            f"template '{template_id}'", key="fingerprint"
        )

    def execute(
        self,
        params: dict[str, Any],
        settings: EffectiveSettings,
        transport: Transport,
        clock: Callable[[], int] = now_ms,
    ) -> Any:
        """Serve *params* from cache or fetch it through *transport*.

        Args:
            params: Request parameters; also the cache fingerprint.
            settings: Effective settings for this execution.
            transport: Transport used on a miss.
            clock: Millisecond clock used for timestamps and freshness.

        Returns:
            The cached output on a fresh hit. Otherwise whatever the
            transport dispatch returns: the processed output (or ``None`` on
            failure) for synchronous requests, or an :class:`asyncio.Task`
            resolving to it for asynchronous ones.

            A ``process`` callable that raises counts as a failed fetch: no
            record is stored and the ``error`` callbacks receive a
            :class:`~elephant.exceptions.TransportError` with reason
            ``"process"``. Exceptions raised by callbacks themselves
            propagate to the caller (or out of the task).

        Raises:
            ValidationError: If no endpoint is configured.
            MissingEndpointParameterError: If an endpoint placeholder has no
                matching parameter.
        """
        if settings.cacheable:
            existing = self.records.find_by("fingerprint", fingerprint(params))
            if existing is not None:
                if existing.is_fresh(clock(), settings.expires):
                    logger.debug("Serving '%s' from cache (record %s)", self.id, existing.id)
                    invoke_callbacks(settings.success, existing.output)
                    return existing.output
                logger.debug("Record %s of '%s' expired; refetching", existing.id, self.id)
                self.records.remove_by_id(existing.id)

        if not settings.endpoint:
            raise ValidationError(f"Template '{self.id}' has no endpoint configured")
        endpoint, consumed = resolve_endpoint(settings.endpoint, params)

        record = Record(params=copy.deepcopy(params), created=clock())
        request = TransportRequest(
            endpoint=endpoint,
            method=settings.method,
            params={k: v for k, v in params.items() if k not in consumed},
            asynchronous=settings.asynchronous,
            timeout=settings.timeout,
            format=settings.format,
            headers=dict(settings.headers),
        )

        def on_success(payload: Any, response: TransportResponse) -> Any:
            output = payload
            if settings.process is not None:
                try:
                    output = settings.process(payload)
                except Exception as exc:
                    logger.debug("Processing response for '%s' failed: %s", self.id, exc)
                    on_error(
                        TransportError(
                            f"Could not process response from {endpoint}: {exc}",
                            endpoint=endpoint,
                            status_code=response.status_code,
                            reason="process",
                        )
                    )
                    return None
            record.fill(output, clock())
            if settings.cacheable:
                self._store(record)
            invoke_callbacks(settings.success, output)
            return output

        def on_error(exc: TransportError) -> None:
            invoke_callbacks(settings.error, exc)

        def on_complete() -> None:
            invoke_callbacks(settings.complete)

        logger.debug("Fetching '%s': %s %s", self.id, settings.method.value, endpoint)
        record.mark_sent(clock())
        return transport.dispatch(request, on_success, on_error, on_complete)

    def _store(self, record: Record) -> None:
        # Overlapping identical requests both miss; the first to finish wins.
        try:
            self.records.add(record)
        except DuplicateItemError:
            logger.debug(
                "Record for %r already cached in '%s'; keeping the existing one",
                record.params,
                self.id,
            )

    def count_records(self) -> int:
        return self.records.count()

    def __repr__(self) -> str:
        return f"Template({self.id!r}, records={self.records.count()})"
