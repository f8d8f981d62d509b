"""WSGI adapter around the bridge.

Each WSGI call snapshots the environ, builds a fresh container, runs the
handler through :class:`LegacyBridge` and emits into a
:class:`WSGIChannel`, whose status and headers are then passed to
``start_response``. Errors propagate to the WSGI server.

Threaded servers are supported, but handler calls are serialized: printed
output goes through the process-wide ``sys.stdout``, so only one handler
runs at a time per process. Scale out with worker processes.

Usage
-----
Serve a handler with a WSGI server::

    from legacy_bridge.http.factories import MessageFactory
    from legacy_bridge.wsgi import create_app

    factory = MessageFactory()
    app = create_app(
        handler,
        request_factory=factory,
        stream_factory=factory,
        uploaded_file_factory=factory,
    )

"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

from legacy_bridge.ambient import AmbientEnvironment
from legacy_bridge.bootstrap import create_container
from legacy_bridge.config import BridgeConfig
from legacy_bridge.errors import ConfigurationError
from legacy_bridge.http.bridge import LegacyBridge
from legacy_bridge.http.channels import WSGIChannel
from legacy_bridge.http.emitter import ResponseEmitter
from legacy_bridge.http.request_builder import RequestBuilder
from legacy_bridge.logging import configure_logging, get_logger, log_info, log_warning

if typ.TYPE_CHECKING:
    from legacy_bridge.container import ServiceContainer
    from legacy_bridge.http.bridge import Handler
    from legacy_bridge.http.factories import (
        RequestFactory,
        StreamFactory,
        UploadedFileFactory,
    )

__all__ = ["WSGIApp", "create_app"]

logger = get_logger(__name__)

type StartResponse = cabc.Callable[[str, list[tuple[str, str]]], object]
type WSGIApp = cabc.Callable[[dict[str, typ.Any], StartResponse], cabc.Iterable[bytes]]


def create_app(  # noqa: PLR0913 - mirrors the bridge entry point
    handler: Handler,
    *,
    request_factory: RequestFactory | None = None,
    stream_factory: StreamFactory | None = None,
    uploaded_file_factory: UploadedFileFactory | None = None,
    container_factory: cabc.Callable[[], ServiceContainer] | None = None,
    config: BridgeConfig | None = None,
) -> WSGIApp:
    """Create a WSGI callable serving *handler*.

    Parameters
    ----------
    handler
        Callable taking ``(request, container)`` and returning a Response.
    request_factory, stream_factory, uploaded_file_factory
        Required object factories.
    container_factory
        Builds the per-request container; defaults to
        :func:`create_container`.
    config
        Bridge configuration; read from the environment when omitted.

    Raises
    ------
    ConfigurationError
        If any object factory is missing.

    """
    supplied = {
        "request_factory": request_factory,
        "stream_factory": stream_factory,
        "uploaded_file_factory": uploaded_file_factory,
    }
    missing = [name for name, value in supplied.items() if value is None]
    if missing:
        raise ConfigurationError.missing_factories(missing)

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

    builder = RequestBuilder(
        typ.cast("RequestFactory", request_factory),
        typ.cast("StreamFactory", stream_factory),
        typ.cast("UploadedFileFactory", uploaded_file_factory),
    )
    make_container = container_factory or create_container
    log_info(
        logger,
        "Serving %s over WSGI (form limit %d bytes)",
        getattr(handler, "__qualname__", repr(handler)),
        config.max_form_bytes,
    )

    def app(environ: dict[str, typ.Any], start_response: StartResponse) -> list[bytes]:
        environment = AmbientEnvironment.from_environ(environ, config=config)
        channel = WSGIChannel()
        bridge = LegacyBridge(builder, make_container(), ResponseEmitter(channel))
        bridge.run(environment, handler)
        return channel.start(start_response)

    return app
