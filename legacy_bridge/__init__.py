"""Bridge print-style CGI/WSGI handlers to immutable request/response values.

A handler is a callable taking ``(request, container)``. It may ``print``
its output, return a :class:`~legacy_bridge.http.messages.Response`, or
both: printed text is captured and appended to the response body before
the response is emitted.

Usage
-----
Serve one CGI request::

    from legacy_bridge import Bootstrap, MessageFactory, Response

    def handler(request, container):
        print(f"<p>Hello from {request.uri.path}</p>")
        return Response().with_header("Content-Type", "text/html")

    factory = MessageFactory()
    Bootstrap.new().with_factories(factory, factory, factory).run(handler)

Public API
----------
run
    One-call entry point taking explicit factories.
Bootstrap
    Fluent setup with a pre-populated service container.
create_app
    WSGI application factory.
"""

from legacy_bridge.ambient import AmbientEnvironment
from legacy_bridge.bootstrap import Bootstrap, create_container, register_defaults
from legacy_bridge.config import BridgeConfig
from legacy_bridge.container import Container, ServiceContainer
from legacy_bridge.errors import (
    BridgeError,
    ConfigurationError,
    ContainerError,
    EmissionError,
    ErrorKind,
    InvalidRequestError,
    InvalidResponseError,
    NotFoundError,
)
from legacy_bridge.http.bridge import LegacyBridge, run
from legacy_bridge.http.factories import MessageFactory
from legacy_bridge.http.messages import Request, Response, Stream, UploadedFile
from legacy_bridge.wsgi import create_app

__all__ = [
    "AmbientEnvironment",
    "Bootstrap",
    "BridgeConfig",
    "BridgeError",
    "ConfigurationError",
    "Container",
    "ContainerError",
    "EmissionError",
    "ErrorKind",
    "InvalidRequestError",
    "InvalidResponseError",
    "LegacyBridge",
    "MessageFactory",
    "NotFoundError",
    "Request",
    "Response",
    "ServiceContainer",
    "Stream",
    "UploadedFile",
    "create_app",
    "create_container",
    "register_defaults",
    "run",
]
