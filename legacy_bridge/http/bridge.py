"""Run a handler inside a request lifecycle.

:class:`LegacyBridge` builds the request from an ambient snapshot, calls
the handler with the request and the service container while capturing
anything it prints, appends that text to the returned response body and
hands the response to the emitter. :func:`run` is the one-call entry
point that wires those collaborators together.

Usage
-----
Serve a CGI request::

    from legacy_bridge.http.bridge import run
    from legacy_bridge.http.factories import MessageFactory
    from legacy_bridge.http.messages import Response

    def handler(request, container):
        print("<h1>Hello</h1>")
        return Response(200).with_header("Content-Type", "text/html")

    factory = MessageFactory()
    run(
        handler,
        request_factory=factory,
        stream_factory=factory,
        uploaded_file_factory=factory,
    )

"""

from __future__ import annotations

import collections.abc as cabc
import io
import threading
import typing as typ

from legacy_bridge.ambient import AmbientEnvironment
from legacy_bridge.capture import CaptureScope
from legacy_bridge.container import Container
from legacy_bridge.errors import ConfigurationError, InvalidResponseError, describe_type
from legacy_bridge.http.channels import CGIChannel
from legacy_bridge.http.emitter import ResponseEmitter
from legacy_bridge.http.messages import Response, UploadedFile
from legacy_bridge.http.request_builder import RequestBuilder
from legacy_bridge.logging import get_logger, log_debug, log_error, log_warning

if typ.TYPE_CHECKING:
    from legacy_bridge.container import ServiceContainer
    from legacy_bridge.http.channels import OutputChannel
    from legacy_bridge.http.factories import (
        RequestFactory,
        StreamFactory,
        UploadedFileFactory,
    )
    from legacy_bridge.http.messages import Request, UploadedFileTree

__all__ = ["Handler", "LegacyBridge", "run"]

logger = get_logger(__name__)

_capture_lock = threading.RLock()

type Handler = cabc.Callable[[Request, ServiceContainer], object]


class LegacyBridge:
    """Capture/merge orchestration around one handler call.

    Parameters
    ----------
    builder
        Builds the request from the ambient snapshot.
    container
        Service container passed to the handler.
    emitter
        Emits the final response.

    """

    def __init__(
        self,
        builder: RequestBuilder,
        container: ServiceContainer,
        emitter: ResponseEmitter,
    ) -> None:
        """Store the collaborators."""
        self._builder = builder
        self._container = container
        self._emitter = emitter

    def handle(self, environment: AmbientEnvironment, handler: Handler) -> Response:
        """Build the request, call *handler* and merge its printed output.

        The capture level opened for the handler is always closed before
        this method returns or raises. Output captured from a failing
        handler is discarded and the handler's exception propagates
        unchanged. Uploaded-file streams are closed once the handler is
        done with them.

        ``sys.stdout`` is process-wide, so calls are serialized by a
        re-entrant lock shared by every bridge: one handler runs at a
        time per process and a handler may still bridge a nested call.

        Raises
        ------
        InvalidRequestError
            If the request cannot be built.
        InvalidResponseError
            If *handler* does not return a :class:`Response`.

        """
        with _capture_lock:
            request = self._builder.build(environment)
            try:
                result, captured = self._call(handler, request)
            finally:
                _close_uploads(request.uploaded_files.values())

        if not isinstance(result, Response):
            log_error(logger, "Handler returned %s", describe_type(result))
            raise InvalidResponseError.not_a_response(result)

        if captured:
            body = result.body
            if body.seekable():
                body.seek(0, io.SEEK_END)
            body.write(captured)
            log_debug(logger, "Merged %d captured character(s)", len(captured))

        return result

    def _call(self, handler: Handler, request: Request) -> tuple[object, str]:
        scope = CaptureScope()
        scope.start()
        try:
            result = handler(request, self._container)
            captured = scope.get_and_stop()
        except Exception as exc:
            discarded = scope.get_and_stop()
            log_warning(
                logger,
                "Handler raised %s; discarding %d captured character(s)",
                describe_type(exc),
                len(discarded),
            )
            raise
        finally:
            scope.discard_and_stop()
        return result, captured

    def run(self, environment: AmbientEnvironment, handler: Handler) -> None:
        """Handle the request and emit the resulting response.

        Emission happens under the same lock as the handler call, so a
        channel writing to ``sys.stdout`` never lands in another thread's
        capture.
        """
        with _capture_lock:
            self._emitter.emit(self.handle(environment, handler))


def _close_uploads(trees: cabc.Iterable[UploadedFileTree]) -> None:
    for tree in trees:
        if isinstance(tree, UploadedFile):
            tree.stream.close()
        elif isinstance(tree, dict):
            _close_uploads(tree.values())
        else:
            _close_uploads(tree)


def run(  # noqa: PLR0913 - explicit collaborators, no defaults for factories
    handler: Handler,
    *,
    request_factory: RequestFactory | None = None,
    stream_factory: StreamFactory | None = None,
    uploaded_file_factory: UploadedFileFactory | None = None,
    environment: AmbientEnvironment | None = None,
    channel: OutputChannel | None = None,
    container: ServiceContainer | None = None,
) -> None:
    """Serve one request with *handler*.

    Parameters
    ----------
    handler
        Callable taking ``(request, container)`` and returning a
        :class:`Response`.
    request_factory, stream_factory, uploaded_file_factory
        Required object factories; see :mod:`legacy_bridge.http.factories`.
    environment
        Ambient snapshot; defaults to :meth:`AmbientEnvironment.from_cgi`.
    channel
        Output channel; defaults to a :class:`CGIChannel` on stdout.
    container
        Service container; defaults to a fresh :class:`Container`.

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

    builder = RequestBuilder(
        typ.cast("RequestFactory", request_factory),
        typ.cast("StreamFactory", stream_factory),
        typ.cast("UploadedFileFactory", uploaded_file_factory),
    )
    bridge = LegacyBridge(
        builder,
        container if container is not None else Container(),
        ResponseEmitter(channel if channel is not None else CGIChannel()),
    )
    if environment is None:
        environment = AmbientEnvironment.from_cgi()
    bridge.run(environment, handler)
