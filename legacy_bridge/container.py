"""Minimal lazy service container.

Services are registered explicitly as factories taking the container and
returning the service. There is no autowiring and no type inspection:
a dependency is reachable only through a factory chain that calls
``container.get`` for it.

Each :class:`Container` is independent. The cache is not locked; share
one instance across threads only behind the embedder's own lock.

Usage
-----
Register and resolve services::

    container = Container()
    container.set("clock", lambda c: SystemClock())
    container.set("greeter", lambda c: Greeter(c.get("clock")))

    greeter = container.get("greeter")  # built once, then cached

"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

from legacy_bridge.errors import ContainerError, NotFoundError
from legacy_bridge.logging import get_logger, log_warning

__all__ = ["Container", "ServiceContainer", "ServiceFactory"]

logger = get_logger(__name__)


class ServiceContainer(typ.Protocol):
    """Interface handlers and factories see."""

    def get(self, service_id: str) -> typ.Any:  # noqa: ANN401 - services are untyped
        """Return the service registered as *service_id*."""
        ...

    def has(self, service_id: str) -> bool:
        """Return whether *service_id* has a registered factory."""
        ...

    def set(self, service_id: str, factory: ServiceFactory) -> None:
        """Register *factory* as *service_id*."""
        ...


type ServiceFactory = cabc.Callable[[ServiceContainer], object]


class Container:
    """Explicit-registration container with per-id caching."""

    def __init__(self) -> None:
        """Create an empty container."""
        self._factories: dict[str, ServiceFactory] = {}
        self._instances: dict[str, object] = {}

    def set(self, service_id: str, factory: ServiceFactory) -> None:
        """Register *factory* for *service_id*, dropping any cached value."""
        self._factories[service_id] = factory
        self._instances.pop(service_id, None)

    def has(self, service_id: str) -> bool:
        """Return whether a factory is registered; never resolves it."""
        return service_id in self._factories

    def __contains__(self, service_id: object) -> bool:
        """Support ``service_id in container``."""
        return isinstance(service_id, str) and self.has(service_id)

    def get(self, service_id: str) -> typ.Any:  # noqa: ANN401 - services are untyped
        """Resolve *service_id*, invoking its factory on first access only.

        Every successful result is cached, including ``None`` and other
        falsy values.

        Parameters
        ----------
        service_id
            Identifier passed to :meth:`set`.

        Returns
        -------
        Any
            The cached or freshly built service.

        Raises
        ------
        NotFoundError
            If no factory is registered for *service_id*.
        ContainerError
            If the factory raised; the original exception is the cause
            and nothing is cached.

        """
        factory = self._factories.get(service_id)
        if factory is None:
            raise NotFoundError.for_service(service_id)

        if service_id in self._instances:
            return self._instances[service_id]

        try:
            instance = factory(self)
        except Exception as exc:
            log_warning(logger, "Factory for service %r failed: %s", service_id, exc)
            raise ContainerError.resolution_failed(service_id, exc) from exc

        self._instances[service_id] = instance
        return instance
