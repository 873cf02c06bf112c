"""Settings validation at the call boundary and layered merging.

Every public entry point that accepts configuration funnels it through
:func:`parse_settings`, which turns ``None``, a plain mapping, or an
existing :class:`~elephant.models.RequestSettings` into a validated layer
and converts Pydantic failures into
:class:`~elephant.exceptions.ValidationError`.

:func:`merge_settings` applies the precedence chain (high to low)::

    call site > template > group > registry defaults > library defaults
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

import pydantic

from elephant.exceptions import ValidationError
from elephant.models import EffectiveSettings, RequestSettings

INHERIT_TOKEN = "{{inherit}}"


def parse_settings(value: Any, what: str = "settings") -> RequestSettings:
    """Validate one layer of configuration.

    Args:
        value: ``None``, a key/value mapping, or a ``RequestSettings``.
        what: Label used in error messages (e.g. ``"group 'api' settings"``).

    Returns:
        The validated settings layer.

    Raises:
        ValidationError: If *value* is not a mapping or holds an unknown key
            or an illegal value.
    """
    if value is None:
        return RequestSettings()
    if isinstance(value, RequestSettings):
        return value
    if not isinstance(value, Mapping):
        raise ValidationError(
            f"Illegal {what}: expected a key/value map, got {type(value).__name__}"
        )
    try:
        return RequestSettings.model_validate(dict(value))
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Illegal {what}: {_describe(exc)}") from exc


def merge_settings(*layers: Optional[RequestSettings]) -> EffectiveSettings:
    """Merge settings layers, later layers overriding earlier ones.

    Only the keys a layer explicitly set participate, so an unset field
    never masks a value from a lower layer.

    Args:
        *layers: Layers from lowest to highest precedence. ``None`` entries
            are skipped.

    Returns:
        The effective settings for one execution.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer is not None:
            merged.update(layer.provided())
    try:
        return EffectiveSettings.model_validate(merged)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Illegal merged settings: {_describe(exc)}") from exc


def inherit_endpoint(layer: RequestSettings, parent_endpoint: Optional[str]) -> RequestSettings:
    """Replace the ``{{inherit}}`` token in *layer*'s endpoint.

    The token is substituted with the parent group's endpoint, or with an
    empty string when the group has none.

    Raises:
        ValidationError: If the endpoint contains more than one token.
    """
    endpoint = layer.endpoint
    if endpoint is None or INHERIT_TOKEN not in endpoint:
        return layer
    if endpoint.count(INHERIT_TOKEN) > 1:
        raise ValidationError(
            f"Endpoint '{endpoint}' may contain {INHERIT_TOKEN} only once"
        )
    resolved = endpoint.replace(INHERIT_TOKEN, parent_endpoint or "")
    return layer.model_copy(update={"endpoint": resolved})


def _describe(exc: pydantic.ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "value"
        parts.append(f"'{location}' {err['msg']}")
    return "; ".join(parts)
