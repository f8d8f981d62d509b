"""Convenience setup for running the bridge from an application script.

Usage
-----
Minimal setup::

    factory = MessageFactory()
    Bootstrap.new().with_factories(factory, factory, factory).run(handler)

Register custom services first::

    bootstrap = Bootstrap.new()
    bootstrap.container.set("db", lambda c: connect())
    bootstrap.with_factories(factory, factory, factory).run(handler)

Service ids registered by :func:`register_defaults`:

- ``output_channel``: :class:`CGIChannel` on stdout
- ``response_emitter``: :class:`ResponseEmitter` bound to ``output_channel``
- ``request_builder``: :class:`RequestBuilder` over ``request_factory``,
  ``stream_factory`` and ``uploaded_file_factory`` (registered by
  :meth:`Bootstrap.with_factories`)

"""

from __future__ import annotations

import typing as typ

from legacy_bridge.ambient import AmbientEnvironment
from legacy_bridge.config import BridgeConfig
from legacy_bridge.container import Container
from legacy_bridge.errors import ConfigurationError
from legacy_bridge.http.bridge import run as run_bridge
from legacy_bridge.http.channels import CGIChannel
from legacy_bridge.http.emitter import ResponseEmitter
from legacy_bridge.http.request_builder import RequestBuilder
from legacy_bridge.logging import configure_logging, get_logger, log_warning

if typ.TYPE_CHECKING:
    from legacy_bridge.container import ServiceContainer
    from legacy_bridge.http.bridge import Handler
    from legacy_bridge.http.channels import OutputChannel
    from legacy_bridge.http.factories import (
        RequestFactory,
        StreamFactory,
        UploadedFileFactory,
    )

__all__ = [
    "Bootstrap",
    "create_container",
    "register_defaults",
    "request_builder_factory",
    "response_emitter_factory",
]

logger = get_logger(__name__)


def response_emitter_factory(container: ServiceContainer) -> ResponseEmitter:
    """Build a :class:`ResponseEmitter` for the registered output channel."""
    return ResponseEmitter(container.get("output_channel"))


def request_builder_factory(container: ServiceContainer) -> RequestBuilder:
    """Build a :class:`RequestBuilder` from the registered object factories."""
    return RequestBuilder(
        container.get("request_factory"),
        container.get("stream_factory"),
        container.get("uploaded_file_factory"),
    )


def register_defaults(container: ServiceContainer) -> None:
    """Register the default bridge services into *container*."""
    container.set("output_channel", lambda _c: CGIChannel())
    container.set("response_emitter", response_emitter_factory)
    container.set("request_builder", request_builder_factory)


def create_container(*, with_defaults: bool = False) -> Container:
    """Return a fresh container, optionally with default services."""
    container = Container()
    if with_defaults:
        register_defaults(container)
    return container


class Bootstrap:
    """Fluent setup of container, factories and logging."""

    def __init__(self, config: BridgeConfig | None = None) -> None:
        """Create a container with default services; prefer :meth:`new`."""
        self._config = config or BridgeConfig()
        self._container = create_container(with_defaults=True)
        self._request_factory: RequestFactory | None = None
        self._stream_factory: StreamFactory | None = None
        self._uploaded_file_factory: UploadedFileFactory | None = None

    @classmethod
    def new(cls, config: BridgeConfig | None = None) -> Bootstrap:
        """Create a bootstrap, configuring logging when a level is set.

        Parameters
        ----------
        config
            Bridge configuration; read from the environment when omitted.

        """
        config = config or BridgeConfig.from_env()
        if config.log_level is not None:
            normalized, invalid = configure_logging(config.log_level)
            if invalid:
                log_warning(
                    logger,
                    "Invalid LEGACY_BRIDGE_LOG_LEVEL %r, falling back to %s",
                    config.log_level,
                    normalized,
                )
        return cls(config)

    @property
    def config(self) -> BridgeConfig:
        """Return the active configuration."""
        return self._config

    @property
    def container(self) -> Container:
        """Return the container for custom registrations."""
        return self._container

    def with_factories(
        self,
        request_factory: RequestFactory,
        stream_factory: StreamFactory,
        uploaded_file_factory: UploadedFileFactory,
    ) -> Bootstrap:
        """Set the object factories and register them in the container."""
        self._request_factory = request_factory
        self._stream_factory = stream_factory
        self._uploaded_file_factory = uploaded_file_factory

        self._container.set("request_factory", lambda _c: request_factory)
        self._container.set("stream_factory", lambda _c: stream_factory)
        self._container.set("uploaded_file_factory", lambda _c: uploaded_file_factory)
        return self

    def run(
        self,
        handler: Handler,
        *,
        environment: AmbientEnvironment | None = None,
        channel: OutputChannel | None = None,
    ) -> None:
        """Serve one request with *handler*.

        Raises
        ------
        ConfigurationError
            If :meth:`with_factories` was not called.

        """
        if (
            self._request_factory is None
            or self._stream_factory is None
            or self._uploaded_file_factory is None
        ):
            raise ConfigurationError.missing_factories(
                ("request_factory", "stream_factory", "uploaded_file_factory")
            )

        if environment is None:
            environment = AmbientEnvironment.from_cgi(config=self._config)

        run_bridge(
            handler,
            request_factory=self._request_factory,
            stream_factory=self._stream_factory,
            uploaded_file_factory=self._uploaded_file_factory,
            environment=environment,
            channel=(
                channel
                if channel is not None
                else self._container.get("output_channel")
            ),
            container=self._container,
        )
