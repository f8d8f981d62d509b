"""Outbound channels that responses are emitted to.

The emitter talks to an :class:`OutputChannel`: it sends the status, then
header lines, then the body. :class:`CGIChannel` writes a CGI response to
a binary stream (``sys.stdout.buffer`` by default). :class:`WSGIChannel`
collects the same calls so a WSGI adapter can hand them to
``start_response``.
"""

from __future__ import annotations

import sys
import traceback
import typing as typ

import falcon

if typ.TYPE_CHECKING:
    import collections.abc as cabc

__all__ = ["CGIChannel", "OutputChannel", "WSGIChannel"]

_CRLF = b"\r\n"


class OutputChannel(typ.Protocol):
    """Transport-facing sink for an emitted response."""

    def headers_sent(self) -> tuple[bool, str | None]:
        """Return whether output began and, if known, where."""
        ...

    def send_status(self, status: int) -> None:
        """Set the response status."""
        ...

    def send_header(self, name: str, value: str, *, status: int | None = None) -> None:
        """Add one header line; *status*, when given, also sets the status."""
        ...

    def write(self, data: bytes) -> None:
        """Write body bytes, sending the head first if still pending."""
        ...


def _caller_location() -> str:
    # Skip this helper and the channel method that called it.
    frame = traceback.extract_stack(limit=3)[0]
    return f"{frame.filename}:{frame.lineno}"


class CGIChannel:
    """Write a CGI response (``Status:`` line, headers, body) to a stream.

    The head is buffered until the first :meth:`write`; from then on the
    channel reports its headers as sent, together with the location of
    that first write.

    Parameters
    ----------
    stream
        Binary destination; defaults to ``sys.stdout.buffer`` at write time.

    """

    def __init__(self, stream: typ.BinaryIO | None = None) -> None:
        """Bind the channel to *stream*."""
        self._stream = stream
        self._status = 200
        self._headers: list[tuple[str, str]] = []
        self._started_at: str | None = None

    def headers_sent(self) -> tuple[bool, str | None]:
        """Return whether the head was written, and where from."""
        return (self._started_at is not None, self._started_at)

    def send_status(self, status: int) -> None:
        """Set the status for the pending head."""
        self._status = status

    def send_header(self, name: str, value: str, *, status: int | None = None) -> None:
        """Queue a header line for the pending head."""
        if status is not None:
            self._status = status
        self._headers.append((name, value))

    def write(self, data: bytes) -> None:
        """Flush the head on first use, then write *data*."""
        stream = self._stream if self._stream is not None else sys.stdout.buffer
        if self._started_at is None:
            location = _caller_location()
            lines = [f"Status: {falcon.code_to_http_status(self._status)}"]
            lines.extend(f"{name}: {value}" for name, value in self._headers)
            head = _CRLF.join(line.encode("latin-1") for line in lines)
            stream.write(head + _CRLF + _CRLF)
            # Only a head that reached the stream counts as started.
            self._started_at = location
        stream.write(data)
        stream.flush()


class WSGIChannel:
    """Collect an emitted response for a WSGI ``start_response`` call."""

    def __init__(self) -> None:
        """Create an empty channel."""
        self.status = 200
        self.headers: list[tuple[str, str]] = []
        self.chunks: list[bytes] = []
        self._started = False

    def headers_sent(self) -> tuple[bool, str | None]:
        """Return whether emission already began on this channel."""
        return (self._started, None)

    def send_status(self, status: int) -> None:
        """Record the status."""
        self._started = True
        self.status = status

    def send_header(self, name: str, value: str, *, status: int | None = None) -> None:
        """Record a header line."""
        self._started = True
        if status is not None:
            self.status = status
        self.headers.append((name, value))

    def write(self, data: bytes) -> None:
        """Record body bytes."""
        self._started = True
        self.chunks.append(data)

    @property
    def status_line(self) -> str:
        """Return the WSGI status line, e.g. ``201 Created``."""
        return falcon.code_to_http_status(self.status)

    def start(
        self, start_response: cabc.Callable[[str, list[tuple[str, str]]], object]
    ) -> list[bytes]:
        """Call *start_response* and return the body iterable."""
        start_response(self.status_line, list(self.headers))
        return self.chunks
