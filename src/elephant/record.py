"""Cache entries produced by template executions."""

from __future__ import annotations

import itertools
import json
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from elephant.exceptions import ValidationError

_ids = itertools.count(1)


def now_ms() -> int:
    """Wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def fingerprint(params: dict[str, Any]) -> str:
    """Canonical, type-aware cache key for request parameters.

    Key order is ignored, but values that compare equal in Python yet
    encode differently on the wire (``1``, ``1.0`` and ``True``) stay
    distinct.
    """
    return json.dumps(params, sort_keys=True, default=str)


@dataclass
class Record:
    """One cached request/response pairing.

    A record is created when a template starts a fetch, stamped when the
    request is sent, and filled exactly once when the transport succeeds.
    Only filled records are ever stored in a template's collection.

    Attributes:
        params: The request parameters.
        fingerprint: Canonical form of ``params`` used for cache lookups.
        output: Processed payload, ``None`` until :meth:`fill` is called.
        created: Millisecond timestamp of creation.
        sent: Millisecond timestamp the request left, or ``None``.
        received: Millisecond timestamp the response arrived, or ``None``.
        id: Monotonically increasing identifier.
    """

    params: dict[str, Any]
    created: int
    output: Any = None
    sent: Optional[int] = None
    received: Optional[int] = None
    id: int = field(default_factory=lambda: next(_ids))
    fingerprint: str = field(init=False)

    def __post_init__(self) -> None:
        self.fingerprint = fingerprint(self.params)

    @property
    def filled(self) -> bool:
        return self.received is not None

    def mark_sent(self, timestamp: int) -> None:
        self.sent = timestamp

    def fill(self, output: Any, received: int) -> None:
        """Store the response payload and the time it arrived.

        Raises:
            ValidationError: If the record was already filled.
        """
        if self.filled:
            raise ValidationError(f"Record {self.id} is already filled")
        self.output = output
        self.received = received

    def is_fresh(self, now: int, expires: int) -> bool:
        """Whether the record may still satisfy a cache hit at *now*."""
        return self.received is not None and now - self.received < expires
