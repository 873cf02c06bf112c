"""elephant -- client-side request cache for parameterised HTTP calls.

Requests are described once as *templates*, organised into *groups* that
share default settings, and executed through a pluggable *transport*.
Successful responses are cached per request-parameter fingerprint for a
configurable time-to-live, so repeated calls are answered without a
network round-trip.

Typical use::

    from elephant import Registry

    with Registry() as registry:
        registry.create_group("api", {"endpoint": "https://api.example.com/"})
        registry.register_template("api", "user", {
            "endpoint": "{{inherit}}users/{{id}}",
            "async": False,
        })
        registry.execute("api", "user", {"success": print}, {"id": 42})

Modules:
    registry: The :class:`Registry` context object and its default instance.
    template: Cache lookup and fetch state machine.
    transport: Transport abstraction and the httpx implementation.
    models: Pydantic settings models.
    config: Definitions files and XDG paths for the command line.
    app: Typer command line.
"""

__version__ = "0.2.0"

from elephant.exceptions import (  # noqa: E402
    ConfigError,
    DuplicateItemError,
    ElephantError,
    MissingEndpointParameterError,
    NotFoundError,
    TransportError,
    TransportUnavailableError,
    ValidationError,
)
from elephant.registry import Registry, get_registry, reset_registry, set_registry  # noqa: E402

__all__ = [
    "ConfigError",
    "DuplicateItemError",
    "ElephantError",
    "MissingEndpointParameterError",
    "NotFoundError",
    "Registry",
    "TransportError",
    "TransportUnavailableError",
    "ValidationError",
    "get_registry",
    "reset_registry",
    "set_registry",
]
