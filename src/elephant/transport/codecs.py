"""Parameter encoding and response decoding for transports.

Request parameters are form-encoded the way browsers and most web
frameworks expect nested data::

    >>> encode_params({"q": "a b", "filter": {"state": "open"}, "tags": ["x", "y"]})
    'q=a+b&filter%5Bstate%5D=open&tags%5B%5D=x&tags%5B%5D=y'

Response bodies are decoded according to
:class:`~elephant.models.ResponseFormat`. Decoding failures raise
:class:`ValueError`, which transports report as an error outcome.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode, urlsplit
from xml.etree import ElementTree

from elephant.models import ResponseFormat

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"

ACCEPT_HEADERS = {
    ResponseFormat.TEXT: "text/plain, */*; q=0.01",
    ResponseFormat.JSON: "application/json, text/javascript, */*; q=0.01",
    ResponseFormat.XML: "application/xml, text/xml, */*; q=0.01",
    ResponseFormat.HTML: "text/html, */*; q=0.01",
}


def encode_params(params: Mapping[str, Any]) -> str:
    """URL-encode *params*, flattening nested mappings and sequences.

    Mappings become ``key[sub]=value``; lists of scalars become
    ``key[]=value`` pairs and lists of containers use the index,
    ``key[0][sub]=value``. Booleans encode as ``true``/``false`` and
    ``None`` as an empty value.
    """
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        _flatten(str(key), value, pairs)
    return urlencode(pairs)


def _flatten(prefix: str, value: Any, pairs: list[tuple[str, str]]) -> None:
    if isinstance(value, Mapping):
        for key, item in value.items():
            _flatten(f"{prefix}[{key}]", item, pairs)
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            if isinstance(item, (Mapping, list, tuple)):
                _flatten(f"{prefix}[{index}]", item, pairs)
            else:
                _flatten(f"{prefix}[]", item, pairs)
    elif value is None:
        pairs.append((prefix, ""))
    elif isinstance(value, bool):
        pairs.append((prefix, "true" if value else "false"))
    else:
        pairs.append((prefix, str(value)))


def append_query(endpoint: str, encoded: str) -> str:
    """Append an encoded parameter string to *endpoint*'s query string.

    Nothing is appended when *encoded* is empty or the existing query
    already holds exactly those pairs, in order, as whole ``&``-separated
    segments. A partial match such as ``q=a`` against ``q=ab`` still
    appends.
    """
    query = urlsplit(endpoint).query
    if not encoded or f"&{encoded}&" in f"&{query}&":
        return endpoint
    separator = "&" if "?" in endpoint else "?"
    return f"{endpoint}{separator}{encoded}"


def decode_payload(body: str, fmt: ResponseFormat) -> Any:
    """Decode a response body.

    ``text`` and ``html`` bodies are returned as strings, ``json`` is parsed
    with :func:`json.loads` and ``xml`` into an
    :class:`xml.etree.ElementTree.Element`. An empty body decodes to
    ``None`` for the structured formats.

    Raises:
        ValueError: If the body is not valid for *fmt*.
    """
    if fmt in (ResponseFormat.TEXT, ResponseFormat.HTML):
        return body
    if not body.strip():
        return None
    if fmt is ResponseFormat.JSON:
        return json.loads(body)
    try:
        return ElementTree.fromstring(body)
    except ElementTree.ParseError as exc:
        raise ValueError(f"Invalid XML: {exc}") from exc
