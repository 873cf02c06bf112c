"""The registry: public entry point owning every group.

:class:`Registry` is an explicit context object. Create one, register
groups and templates on it, execute templates, and close it (or use it as
a context manager) when done::

    with Registry() as registry:
        registry.create_group("api", {"endpoint": "https://api.example.com/"})
        registry.register_template("api", "user", {
            "endpoint": "{{inherit}}users/{{id}}",
            "async": False,
            "expires": 60_000,
        })
        user = registry.execute("api", "user", params={"id": 42})

For code that prefers a process-wide instance, :func:`get_registry`
returns a lazily created default that :func:`set_registry` replaces and
:func:`reset_registry` discards.

Every lookup that fails raises :class:`~elephant.exceptions.NotFoundError`;
malformed ids, settings or parameters raise
:class:`~elephant.exceptions.ValidationError` before anything changes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator, Mapping
from typing import Any, Callable, Optional

from elephant.collection import Collection
from elephant.exceptions import NotFoundError, TransportUnavailableError, ValidationError
from elephant.group import Group
from elephant.models import EffectiveSettings, RequestSettings
from elephant.record import now_ms
from elephant.settings import inherit_endpoint, merge_settings, parse_settings
from elephant.template import Template
from elephant.transport.base import Transport
from elephant.transport.httpx_transport import HttpxTransport

logger = logging.getLogger(__name__)


def _check_id(value: Any, what: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{what} id is illegal: expected a non-empty string, got {value!r}")
    return value


def _check_params(params: Any) -> dict[str, Any]:
    if params is None:
        return {}
    if not isinstance(params, Mapping):
        raise ValidationError(
            f"Request parameters must be a key/value map, got {type(params).__name__}"
        )
    return dict(params)


class Registry:
    """Owns groups, their templates and their cached records.

    Args:
        transport: Transport used for every fetch. Defaults to a new
            :class:`~elephant.transport.HttpxTransport`.
        defaults: Settings layer applied beneath every group, above the
            library defaults.
        clock: Millisecond wall clock; injectable for tests.

    Raises:
        TransportUnavailableError: If *transport* is not a
            :class:`~elephant.transport.Transport`.
        ValidationError: If *defaults* is malformed.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        defaults: Any = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        if transport is None:
            transport = HttpxTransport()
        elif not isinstance(transport, Transport):
            raise TransportUnavailableError(
                f"Cannot use {type(transport).__name__} as a transport"
            )
        self._transport = transport
        self._defaults = parse_settings(defaults, "default settings")
        self._clock = clock
        self._groups: Collection[Group] = Collection("registry")

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Registry:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Drop every group and close the transport."""
        self._groups.remove_all()
        self._transport.close()

    @property
    def transport(self) -> Transport:
        return self._transport

    # ------------------------------------------------------------------ #
    # Groups
    # ------------------------------------------------------------------ #

    def create_group(self, group_id: str, settings: Any = None) -> None:
        """Create a group whose settings act as defaults for its templates.

        Raises:
            ValidationError: If the id or settings are malformed.
            DuplicateItemError: If a group with this id exists.
        """
        _check_id(group_id, "Group")
        layer = parse_settings(settings, f"settings for group '{group_id}'")
        layer = inherit_endpoint(layer, self._defaults.endpoint)
        self._groups.add(Group(group_id, layer))

    def destroy_group(self, group_id: str) -> None:
        """Remove a group together with its templates and records.

        Raises:
            NotFoundError: If no such group exists.
        """
        self.get_group(group_id)
        self._groups.remove_by_id(group_id)

    def destroy_all_groups(self) -> None:
        """Remove every group. Safe to call repeatedly."""
        self._groups.remove_all()

    def get_group(self, group_id: str) -> Group:
        """Return the group called *group_id*.

        Raises:
            ValidationError: If the id is malformed.
            NotFoundError: If no such group exists.
        """
        _check_id(group_id, "Group")
        group = self._groups.find_by("id", group_id)
        if group is None:
            raise NotFoundError(f"Group '{group_id}' could not be found")
        return group

    def groups(self) -> Iterator[Group]:
        """Iterate over groups in creation order."""
        return iter(self._groups)

    # ------------------------------------------------------------------ #
    # Templates
    # ------------------------------------------------------------------ #

    def register_template(self, group_id: str, template_id: str, settings: Any = None) -> None:
        """Add a template to a group.

        An ``{{inherit}}`` token in the template endpoint is replaced with
        the group's endpoint, or the registry default endpoint when the
        group has none.

        Raises:
            ValidationError: If an id or the settings are malformed.
            NotFoundError: If the group does not exist.
            DuplicateItemError: If the group already has this template id.
        """
        group = self.get_group(group_id)
        _check_id(template_id, "Template")
        layer = parse_settings(settings, f"settings for template '{template_id}'")
        layer = inherit_endpoint(layer, self._parent_endpoint(group))
        group.templates.add(Template(template_id, layer))

    def unregister_template(self, group_id: str, template_id: str) -> None:
        """Remove a template and its records from a group.

        Raises:
            NotFoundError: If the group or template does not exist.
        """
        group = self.get_group(group_id)
        _check_id(template_id, "Template")
        group.get_template(template_id)
        group.templates.remove_by_id(template_id)

    def unregister_all_templates(self, group_id: str) -> None:
        """Remove every template from a group.

        Raises:
            NotFoundError: If the group does not exist.
        """
        self.get_group(group_id).templates.remove_all()

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    def effective_settings(
        self, group_id: str, template_id: str, settings: Any = None
    ) -> EffectiveSettings:
        """Merge every settings layer for one template.

        Precedence (high to low): *settings* (call site), template, group,
        registry defaults, library defaults.
        """
        group = self.get_group(group_id)
        _check_id(template_id, "Template")
        template = group.get_template(template_id)
        call_site = parse_settings(settings, "call-site settings")
        call_site = inherit_endpoint(call_site, self._parent_endpoint(group))
        return merge_settings(self._defaults, group.settings, template.settings, call_site)

    def _parent_endpoint(self, group: Group) -> Optional[str]:
        """Endpoint an ``{{inherit}}`` token expands to inside *group*.

        The group's own endpoint, or the registry default when the group
        sets none.
        """
        return group.settings.endpoint or self._defaults.endpoint

    def execute(
        self,
        group_id: str,
        template_id: str,
        settings: Any = None,
        params: Any = None,
    ) -> Any:
        """Execute a template, serving from cache when a fresh record exists.

        Args:
            group_id: Owning group.
            template_id: Template to execute.
            settings: Call-site settings for this execution only.
            params: Request parameters; also the cache fingerprint.

        Returns:
            The cached output on a fresh hit. Otherwise the processed output
            (``None`` on failure) for synchronous templates, or an
            :class:`asyncio.Task` resolving to it for asynchronous ones.
            Transport failures never raise; they reach the ``error``
            callbacks.

        Raises:
            ValidationError: For malformed ids, settings or parameters, or an
                asynchronous request with no running event loop.
            NotFoundError: If the group or template does not exist.
            MissingEndpointParameterError: If an endpoint placeholder has no
                matching parameter.
        """
        request_params = _check_params(params)
        effective = self.effective_settings(group_id, template_id, settings)
        template = self.get_group(group_id).get_template(template_id)
        return template.execute(request_params, effective, self._transport, self._clock)

    async def fetch(
        self,
        group_id: str,
        template_id: str,
        settings: Any = None,
        params: Any = None,
    ) -> Any:
        """Coroutine form of :meth:`execute` that always yields the output.

        Awaits the transport task when the template dispatched
        asynchronously; returns directly on a cache hit or a synchronous
        fetch. ``None`` means the request failed.
        """
        result = self.execute(group_id, template_id, settings, params)
        if isinstance(result, asyncio.Task):
            return await result
        return result

    # ------------------------------------------------------------------ #
    # Counts
    # ------------------------------------------------------------------ #

    def count_groups(self) -> int:
        return self._groups.count()

    def count_templates(self, group_id: str) -> int:
        return self.get_group(group_id).templates.count()

    def count_records(self, group_id: str, template_id: str) -> int:
        _check_id(template_id, "Template")
        return self.get_group(group_id).get_template(template_id).count_records()

    def stats(self) -> dict[str, Any]:
        """Return nested record counts for every group and template.

        Returns:
            ``{"groups": N, "templates": {group_id: {template_id: records}}}``
        """
        return {
            "groups": self._groups.count(),
            "templates": {
                group.id: {template.id: template.count_records() for template in group.templates}
                for group in self._groups
            },
        }

    @property
    def defaults(self) -> RequestSettings:
        return self._defaults


# ------------------------------------------------------------------ #
# Process default instance
# ------------------------------------------------------------------ #

_registry: Optional[Registry] = None


def get_registry() -> Registry:
    """Return the default :class:`Registry`, creating it on first use."""
    global _registry
    if _registry is None:
        _registry = Registry()
    return _registry


def set_registry(registry: Registry) -> None:
    """Install *registry* as the default instance."""
    global _registry
    _registry = registry


def reset_registry() -> None:
    """Close and discard the default instance.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _registry
    if _registry is not None:
        _registry.close()
    _registry = None
