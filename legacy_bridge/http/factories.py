"""Object factory seams used to build requests.

The request builder never instantiates messages, streams or uploaded
files directly. It goes through three collaborators, each described by a
protocol, so an embedding application can substitute its own
implementations. :class:`MessageFactory` implements all three with the
types from :mod:`legacy_bridge.http.messages`.
"""

from __future__ import annotations

import io
import typing as typ
from pathlib import Path

from legacy_bridge.http.messages import Request, Stream, UploadError, UploadedFile

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from legacy_bridge.http.messages import Uri

__all__ = [
    "MessageFactory",
    "RequestFactory",
    "StreamFactory",
    "UploadedFileFactory",
]


class RequestFactory(typ.Protocol):
    """Creates the base request value."""

    def create_server_request(
        self,
        method: str,
        uri: Uri,
        server_params: cabc.Mapping[str, str],
    ) -> Request:
        """Return a request with only method, URI and server params set."""
        ...


class StreamFactory(typ.Protocol):
    """Creates body and upload streams."""

    def create_stream(self, content: str | bytes = b"") -> Stream:
        """Return a seekable stream holding *content*."""
        ...

    def create_stream_from_file(self, path: str | Path, mode: str = "rb") -> Stream:
        """Return a stream over the file at *path*."""
        ...

    def create_stream_from_resource(self, resource: typ.BinaryIO) -> Stream:
        """Return a stream over an already open binary resource."""
        ...


class UploadedFileFactory(typ.Protocol):
    """Creates uploaded-file leaves."""

    def create_uploaded_file(
        self,
        stream: Stream,
        size: int,
        error: int = UploadError.OK,
        client_filename: str | None = None,
        client_media_type: str | None = None,
    ) -> UploadedFile:
        """Return an uploaded file wrapping *stream*."""
        ...


class MessageFactory:
    """Default implementation of every factory protocol."""

    def create_server_request(
        self,
        method: str,
        uri: Uri,
        server_params: cabc.Mapping[str, str],
    ) -> Request:
        """Return a bare :class:`Request`."""
        return Request(method=method, uri=uri, server_params=dict(server_params))

    def create_stream(self, content: str | bytes = b"") -> Stream:
        """Return an in-memory stream positioned at the start of *content*."""
        payload = content.encode("utf-8") if isinstance(content, str) else content
        return Stream(io.BytesIO(payload))

    def create_stream_from_file(self, path: str | Path, mode: str = "rb") -> Stream:
        """Open *path* in binary *mode*."""
        if "b" not in mode:
            mode = f"{mode}b"
        return Stream(typ.cast("typ.BinaryIO", Path(path).open(mode)))  # noqa: SIM115 - the stream owns the handle

    def create_stream_from_resource(self, resource: typ.BinaryIO) -> Stream:
        """Wrap *resource* without reading it."""
        return Stream(resource)

    def create_uploaded_file(
        self,
        stream: Stream,
        size: int,
        error: int = UploadError.OK,
        client_filename: str | None = None,
        client_media_type: str | None = None,
    ) -> UploadedFile:
        """Return an :class:`UploadedFile` leaf."""
        return UploadedFile(
            stream=stream,
            size=size,
            error=error,
            client_filename=client_filename,
            client_media_type=client_media_type,
        )
