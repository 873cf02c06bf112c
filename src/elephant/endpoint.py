"""Endpoint placeholder resolution.

Endpoints may contain ``{{name}}`` tokens that are filled from the request
parameters at execution time::

    >>> resolve_endpoint("/items/{{id}}", {"id": 42})
    ('/items/42', {'id'})
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import quote

from elephant.exceptions import MissingEndpointParameterError

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def placeholders(endpoint: str) -> list[str]:
    """Return the placeholder names in *endpoint*, in order of appearance."""
    return PLACEHOLDER_RE.findall(endpoint)


def resolve_endpoint(endpoint: str, params: dict[str, Any]) -> tuple[str, set[str]]:
    """Substitute every ``{{name}}`` token with ``params[name]``.

    Values are converted with ``str`` and percent-encoded so that a value
    never introduces extra path segments.

    Args:
        endpoint: The endpoint pattern.
        params: Request parameters.

    Returns:
        The resolved endpoint and the set of parameter names consumed.

    Raises:
        MissingEndpointParameterError: If a token has no matching parameter.
    """
    used: set[str] = set()

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in params or params[name] is None:
            raise MissingEndpointParameterError(endpoint, name)
        used.add(name)
        return quote(str(params[name]), safe="")

    return PLACEHOLDER_RE.sub(_substitute, endpoint), used
