"""Numeric process exit codes used by the ``elephant`` command line.

Each constant maps to an error category and is referenced by the
corresponding :class:`~elephant.exceptions.ElephantError` subclass, so
shell wrappers can tell a bad definitions file from an unreachable API
without parsing stderr.

Example::

    $ elephant fetch api users
    $ echo $?
    6   # EXIT_CONNECTION_ERROR -- the transport reported a failure
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid ids, settings, parameters, or command-line arguments."""

EXIT_NOT_FOUND = 4
"""The referenced group or template does not exist."""

EXIT_CONNECTION_ERROR = 6
"""The transport failed (network error, timeout, or non-2xx status)."""
