"""Immutable HTTP message values exchanged with handlers.

A :class:`Request` is assembled once per invocation by the request
builder and handed to the handler together with the service container.
The handler answers with a :class:`Response`. Both are frozen dataclasses;
the ``with_*`` methods return modified copies. Bodies are :class:`Stream`
objects wrapping a binary file object, so the body *content* stays
writable while the message itself does not change.

Usage
-----
Answer a request from a handler::

    from legacy_bridge.http.messages import Response

    def handler(request, container):
        response = Response(status=201).with_header("Content-Type", "text/plain")
        response.body.write(f"created {request.uri.path}")
        return response

"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
import io
import ipaddress
import re
import shutil
import typing as typ
import urllib.parse
from pathlib import Path

from legacy_bridge.errors import (
    MAX_STATUS_CODE,
    MIN_STATUS_CODE,
    InvalidResponseError,
)
from legacy_bridge.http.headers import Headers

__all__ = [
    "HttpMethod",
    "Request",
    "Response",
    "Stream",
    "UploadError",
    "UploadedFile",
    "UploadedFileTree",
    "Uri",
]

_DEFAULT_PORTS = {"http": 80, "https": 443}
_HOST_NAME = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9._~-]*[A-Za-z0-9])?")


class HttpMethod(enum.StrEnum):
    """Request methods the bridge accepts."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    CONNECT = "CONNECT"


class UploadError(enum.IntEnum):
    """Upload status codes as reported by the transport for each file."""

    OK = 0
    INI_SIZE = 1
    FORM_SIZE = 2
    PARTIAL = 3
    NO_FILE = 4
    NO_TMP_DIR = 6
    CANT_WRITE = 7
    EXTENSION = 8


class Stream:
    """Binary body stream over a file-like resource.

    Non-seekable resources (pipes, ``wsgi.input``) can be read once and
    never rewound; :meth:`rewind` refuses to touch them.

    Parameters
    ----------
    resource
        Binary file object providing ``read`` and/or ``write``.

    """

    __slots__ = ("_resource",)

    def __init__(self, resource: typ.BinaryIO) -> None:
        """Wrap *resource*."""
        self._resource = resource

    @property
    def resource(self) -> typ.BinaryIO:
        """Return the wrapped file object."""
        return self._resource

    def seekable(self) -> bool:
        """Return whether the resource supports random access."""
        check = getattr(self._resource, "seekable", None)
        return bool(check()) if callable(check) else False

    def rewind(self) -> None:
        """Move to the start of a seekable resource.

        Raises
        ------
        io.UnsupportedOperation
            If the resource is not seekable.

        """
        if not self.seekable():
            msg = "Stream is not seekable"
            raise io.UnsupportedOperation(msg)
        self._resource.seek(0)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Reposition a seekable resource and return the new position."""
        if not self.seekable():
            msg = "Stream is not seekable"
            raise io.UnsupportedOperation(msg)
        return self._resource.seek(offset, whence)

    def read(self, size: int = -1) -> bytes:
        """Read up to *size* bytes from the current position."""
        return self._resource.read(size) or b""

    def get_contents(self) -> bytes:
        """Read everything from the current position to the end."""
        return self.read()

    def write(self, data: str | bytes) -> int:
        """Write *data* at the current position, encoding text as UTF-8."""
        payload = data.encode("utf-8") if isinstance(data, str) else data
        return self._resource.write(payload) or 0

    def close(self) -> None:
        """Close the underlying resource."""
        self._resource.close()

    def __repr__(self) -> str:
        """Return a debugging representation."""
        return f"Stream({self._resource!r})"


def _empty_stream() -> Stream:
    return Stream(io.BytesIO())


def _check_host(host: str, *, bracketed: bool) -> None:
    if bracketed:
        try:
            ipaddress.IPv6Address(host)
        except ValueError as exc:
            msg = f"invalid IPv6 host {host!r}"
            raise ValueError(msg) from exc
    elif _HOST_NAME.fullmatch(host) is None:
        msg = f"invalid host {host!r}"
        raise ValueError(msg)


@dc.dataclass(frozen=True, slots=True)
class Uri:
    """Parsed absolute request URI.

    Attributes
    ----------
    scheme
        ``http`` or ``https``.
    host
        Host name without port.
    port
        Explicit port, ``None`` when the scheme default applies.
    path
        Path component, ``/`` when the target was empty.
    query
        Query string without the leading ``?``.

    """

    scheme: str
    host: str
    port: int | None = None
    path: str = "/"
    query: str = ""

    @classmethod
    def parse(cls, text: str) -> Uri:
        """Parse and validate an absolute ``http(s)`` URI.

        Raises
        ------
        ValueError
            If the URI has no usable scheme or host, carries user info or
            an invalid port, or contains whitespace or control characters.

        """
        if any(ch.isspace() or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in text):
            msg = f"URI contains whitespace or control characters: {text!r}"
            raise ValueError(msg)
        parts = urllib.parse.urlsplit(text)
        scheme = parts.scheme.lower()
        if scheme not in _DEFAULT_PORTS:
            msg = f"unsupported scheme {parts.scheme!r}"
            raise ValueError(msg)
        if "@" in parts.netloc:
            msg = f"user info is not allowed in {text!r}"
            raise ValueError(msg)
        if not parts.hostname:
            msg = f"missing host in {text!r}"
            raise ValueError(msg)
        _check_host(parts.hostname, bracketed=parts.netloc.startswith("["))
        port = parts.port
        if port == _DEFAULT_PORTS[scheme]:
            port = None
        return cls(
            scheme=scheme,
            host=parts.hostname,
            port=port,
            path=parts.path or "/",
            query=parts.query,
        )

    @property
    def authority(self) -> str:
        """Return ``host[:port]``, bracketing IPv6 literals."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        return host if self.port is None else f"{host}:{self.port}"

    def __str__(self) -> str:
        """Render as ``scheme://host[:port]path[?query]``."""
        rendered = f"{self.scheme}://{self.authority}{self.path}"
        return f"{rendered}?{self.query}" if self.query else rendered


@dc.dataclass(slots=True)
class UploadedFile:
    """One uploaded file: a leaf of the uploaded-file tree."""

    stream: Stream
    size: int
    error: int = UploadError.OK
    client_filename: str | None = None
    client_media_type: str | None = None
    _moved: bool = dc.field(default=False, init=False, repr=False, compare=False)

    def move_to(self, target: str | Path) -> None:
        """Copy the upload's content to *target*; allowed once.

        Raises
        ------
        RuntimeError
            If the upload failed or was already moved.

        """
        if self.error != UploadError.OK:
            msg = f"Cannot move upload with error code {self.error}"
            raise RuntimeError(msg)
        if self._moved:
            msg = "Uploaded file has already been moved"
            raise RuntimeError(msg)
        if self.stream.seekable():
            self.stream.rewind()
        with Path(target).open("wb") as handle:
            shutil.copyfileobj(self.stream.resource, handle)
        self._moved = True


type UploadedFileTree = (
    UploadedFile | list[UploadedFileTree] | dict[str, UploadedFileTree]
)


@dc.dataclass(frozen=True, slots=True)
class Request:
    """Immutable server request handed to the handler.

    Attributes
    ----------
    method
        Upper-case request method, one of :class:`HttpMethod`.
    uri
        Absolute request URI.
    server_params
        Snapshot of the ambient server parameters.
    protocol_version
        HTTP version without the ``HTTP/`` prefix.
    headers
        Canonical header multimap.
    body
        Request body stream.
    cookies, query
        Cookie and query parameters.
    parsed_body
        Form data or decoded JSON; ``None`` when absent.
    uploaded_files
        Uploaded-file tree keyed by field name.

    """

    method: str
    uri: Uri
    server_params: cabc.Mapping[str, str] = dc.field(default_factory=dict)
    protocol_version: str = "1.1"
    headers: Headers = dc.field(default_factory=Headers)
    body: Stream = dc.field(default_factory=_empty_stream)
    cookies: cabc.Mapping[str, str] = dc.field(default_factory=dict)
    query: cabc.Mapping[str, typ.Any] = dc.field(default_factory=dict)
    parsed_body: typ.Any = None
    uploaded_files: cabc.Mapping[str, UploadedFileTree] = dc.field(default_factory=dict)

    def with_protocol_version(self, version: str) -> Request:
        """Return a copy using *version*."""
        return dc.replace(self, protocol_version=version)

    def with_header(self, name: str, value: str | cabc.Iterable[str]) -> Request:
        """Return a copy where *name* holds only *value*."""
        return dc.replace(self, headers=self.headers.with_header(name, value))

    def with_added_header(self, name: str, value: str | cabc.Iterable[str]) -> Request:
        """Return a copy with *value* appended to header *name*."""
        return dc.replace(self, headers=self.headers.with_added(name, value))

    def with_body(self, body: Stream) -> Request:
        """Return a copy using *body*."""
        return dc.replace(self, body=body)

    def with_cookies(self, cookies: cabc.Mapping[str, str]) -> Request:
        """Return a copy with *cookies*."""
        return dc.replace(self, cookies=dict(cookies))

    def with_query(self, query: cabc.Mapping[str, typ.Any]) -> Request:
        """Return a copy with *query*."""
        return dc.replace(self, query=dict(query))

    def with_parsed_body(self, parsed_body: typ.Any) -> Request:  # noqa: ANN401 - form or JSON payload
        """Return a copy with *parsed_body*."""
        return dc.replace(self, parsed_body=parsed_body)

    def with_uploaded_files(
        self, uploaded_files: cabc.Mapping[str, UploadedFileTree]
    ) -> Request:
        """Return a copy with *uploaded_files*."""
        return dc.replace(self, uploaded_files=dict(uploaded_files))


@dc.dataclass(frozen=True, slots=True)
class Response:
    """Immutable response returned by a handler.

    Raises
    ------
    InvalidResponseError
        If ``status`` lies outside 100-599.

    """

    status: int = 200
    headers: Headers = dc.field(default_factory=Headers)
    body: Stream = dc.field(default_factory=_empty_stream)

    def __post_init__(self) -> None:
        """Validate the status code."""
        if not MIN_STATUS_CODE <= self.status <= MAX_STATUS_CODE:
            raise InvalidResponseError.invalid_status_code(self.status)

    def with_status(self, status: int) -> Response:
        """Return a copy with *status*."""
        return dc.replace(self, status=status)

    def with_header(self, name: str, value: str | cabc.Iterable[str]) -> Response:
        """Return a copy where *name* holds only *value*."""
        return dc.replace(self, headers=self.headers.with_header(name, value))

    def with_added_header(self, name: str, value: str | cabc.Iterable[str]) -> Response:
        """Return a copy with *value* appended to header *name*."""
        return dc.replace(self, headers=self.headers.with_added(name, value))

    def without_header(self, name: str) -> Response:
        """Return a copy without header *name*."""
        return dc.replace(self, headers=self.headers.without(name))

    def with_body(self, body: Stream) -> Response:
        """Return a copy using *body*."""
        return dc.replace(self, body=body)
