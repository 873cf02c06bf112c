"""Canonical Pydantic models shared across elephant modules.

The models fall into two groups:

**Request settings** -- :class:`RequestSettings` is one layer of
configuration (library defaults, registry defaults, group, template or
call site). Every field is optional so that a layer only overrides what it
explicitly sets; :class:`EffectiveSettings` is the fully merged result a
single execution runs with. See :func:`~elephant.settings.merge_settings`.

**Definitions files** -- :class:`GroupDefinition` and :class:`Definitions`
describe groups and templates loaded from JSON or YAML by
:mod:`elephant.config`.

Callback fields (``success``, ``error``, ``complete``) accept a single
callable or a list of callables and are normalised to a list on
validation.
"""

from __future__ import annotations

import enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

DEFAULT_EXPIRES_MS = 300_000


class HTTPMethod(str, enum.Enum):
    """HTTP methods a template may use."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class ResponseFormat(str, enum.Enum):
    """How a successful response body is decoded before it is cached."""

    TEXT = "text"
    JSON = "json"
    XML = "xml"
    HTML = "html"


def _as_callback_list(value: Any) -> Any:
    if value is None:
        return []
    if callable(value):
        return [value]
    if isinstance(value, tuple):
        return list(value)
    return value


class RequestSettings(BaseModel):
    """One layer of request configuration.

    Only explicitly provided keys take part in a merge, so an unset field
    means "inherit from the layer below". ``async`` is exposed under the
    alias ``async`` because it is a Python keyword; use ``asynchronous``
    when constructing from keyword arguments.

    Example::

        RequestSettings.model_validate({
            "endpoint": "{{inherit}}users/{{id}}",
            "async": False,
            "expires": 60_000,
            "success": print,
        })
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    asynchronous: Optional[StrictBool] = Field(
        default=None, alias="async", description="Dispatch without blocking"
    )
    format: Optional[ResponseFormat] = Field(
        default=None, description="Response decoding: text, json, xml, html"
    )
    timeout: Optional[int] = Field(
        default=None, ge=0, description="Async request timeout in milliseconds"
    )
    endpoint: Optional[str] = Field(
        default=None, description="URL or path pattern with {{name}} placeholders"
    )
    cacheable: Optional[StrictBool] = None
    method: Optional[HTTPMethod] = None
    expires: Optional[int] = Field(
        default=None, ge=0, description="Record time-to-live in milliseconds"
    )
    process: Optional[Callable[[Any], Any]] = Field(
        default=None, description="Transform applied to the decoded payload"
    )
    success: Optional[list[Callable[..., Any]]] = None
    error: Optional[list[Callable[..., Any]]] = None
    complete: Optional[list[Callable[..., Any]]] = None
    headers: Optional[dict[str, str]] = None

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("format", mode="before")
    @classmethod
    def _lower_format(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value

    @field_validator("success", "error", "complete", mode="before")
    @classmethod
    def _normalise_callbacks(cls, value: Any) -> Any:
        return _as_callback_list(value)

    def provided(self) -> dict[str, Any]:
        """Return the explicitly set fields, keyed by field name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class EffectiveSettings(BaseModel):
    """Fully merged settings for one execution; every field has a value."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    asynchronous: bool = Field(default=True, alias="async")
    format: ResponseFormat = ResponseFormat.JSON
    timeout: Optional[int] = None
    endpoint: str = ""
    cacheable: bool = True
    method: HTTPMethod = HTTPMethod.GET
    expires: int = DEFAULT_EXPIRES_MS
    process: Optional[Callable[[Any], Any]] = None
    success: list[Callable[..., Any]] = Field(default_factory=list)
    error: list[Callable[..., Any]] = Field(default_factory=list)
    complete: list[Callable[..., Any]] = Field(default_factory=list)
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("success", "error", "complete", mode="before")
    @classmethod
    def _normalise_callbacks(cls, value: Any) -> Any:
        return _as_callback_list(value)

    @field_validator("headers", mode="before")
    @classmethod
    def _empty_headers(cls, value: Any) -> Any:
        return {} if value is None else value


# --- Definitions files ---


class GroupDefinition(RequestSettings):
    """A group as written in a definitions file: its settings plus templates."""

    templates: dict[str, RequestSettings] = Field(default_factory=dict)

    def settings(self) -> RequestSettings:
        """Return the group's own settings layer without its templates."""
        data = self.provided()
        data.pop("templates", None)
        return RequestSettings.model_validate(data)


class Definitions(BaseModel):
    """Top-level shape of a definitions file.

    Example (YAML)::

        defaults:
          expires: 60000
        groups:
          api:
            endpoint: https://api.example.com/
            templates:
              users:
                endpoint: "{{inherit}}users"
              user:
                endpoint: "{{inherit}}users/{{id}}"
    """

    model_config = ConfigDict(extra="forbid")

    defaults: RequestSettings = Field(default_factory=RequestSettings)
    groups: dict[str, GroupDefinition] = Field(default_factory=dict)
