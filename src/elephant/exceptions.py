"""Exception hierarchy for elephant.

All exceptions inherit from :class:`ElephantError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`elephant.exit_codes`.
Library callers catch the specific subclasses; the console entry point in
:func:`elephant.app.main` catches ``ElephantError`` and exits with the
matching code.

Subclass hierarchy::

    ElephantError (exit 1)
    +-- ValidationError                  (exit 2)
    |   +-- MissingEndpointParameterError (exit 2)
    +-- DuplicateItemError               (exit 2)
    +-- NotFoundError                    (exit 4)
    +-- TransportError                   (exit 6)
    +-- TransportUnavailableError        (exit 6)
    +-- ConfigError                      (exit 1)

:class:`TransportError` is never raised out of
:meth:`~elephant.registry.Registry.execute`; it is handed to the configured
``error`` callbacks instead.
"""

from __future__ import annotations

from typing import Optional

from elephant.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
)


class ElephantError(Exception):
    """Base exception for all elephant errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ValidationError(ElephantError):
    """Raised for a malformed id, settings map, parameter shape, or misuse."""

    exit_code = EXIT_INVALID_USAGE


class MissingEndpointParameterError(ValidationError):
    """Raised when an endpoint placeholder has no matching request parameter.

    Args:
        endpoint: The endpoint pattern being resolved.
        name: The placeholder that could not be filled.
    """

    def __init__(self, endpoint: str, name: str):
        super().__init__(
            f"Endpoint '{endpoint}' needs parameter '{name}' but none was given"
        )
        self.endpoint = endpoint
        self.name = name


class DuplicateItemError(ElephantError):
    """Raised when an item with the same key is already in a collection."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(ElephantError):
    """Raised when a referenced group or template id does not exist."""

    exit_code = EXIT_NOT_FOUND


class TransportError(ElephantError):
    """Failure of a single request/response exchange.

    Covers network failures, timeouts, non-2xx statuses and bodies that
    cannot be decoded in the configured format.

    Args:
        message: Human-readable description.
        endpoint: The resolved endpoint the request was sent to.
        status_code: HTTP status when a response arrived, else ``None``.
        reason: Short machine-friendly cause (``"status"``, ``"timeout"``,
            ``"network"``, ``"parse"``, ``"process"``).
    """

    exit_code = EXIT_CONNECTION_ERROR

    def __init__(
        self,
        message: str,
        endpoint: str = "",
        status_code: Optional[int] = None,
        reason: str = "status",
    ):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
        self.reason = reason


class TransportUnavailableError(ElephantError):
    """Raised when no usable transport mechanism can be set up."""

    exit_code = EXIT_CONNECTION_ERROR


class ConfigError(ElephantError):
    """Raised for definitions-file problems (missing file, invalid JSON/YAML)."""

    exit_code = EXIT_GENERIC_FAILURE
