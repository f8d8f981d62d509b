"""Shared test utilities."""

from __future__ import annotations

import io
import typing as typ

from legacy_bridge.ambient import AmbientEnvironment
from legacy_bridge.http.messages import Stream

if typ.TYPE_CHECKING:
    import collections.abc as cabc

BASE_SERVER: dict[str, str] = {
    "REQUEST_METHOD": "GET",
    "HTTP_HOST": "example.com",
    "SERVER_PORT": "80",
    "SERVER_PROTOCOL": "HTTP/1.1",
    "REQUEST_URI": "/",
}


def make_environment(
    body: bytes | None = None,
    *,
    files: cabc.Mapping[str, typ.Any] | None = None,
    **server: str,
) -> AmbientEnvironment:
    """Snapshot a minimal environ overlaid with *server* entries."""
    environ: dict[str, typ.Any] = {**BASE_SERVER, **server}
    if body is not None:
        environ["wsgi.input"] = io.BytesIO(body)
    return AmbientEnvironment.from_environ(environ, files=files)


class SpyStream(Stream):
    """Stream that records every write call."""

    def __init__(self, resource: typ.BinaryIO | None = None) -> None:
        super().__init__(resource if resource is not None else io.BytesIO())
        self.writes: list[str | bytes] = []

    def write(self, data: str | bytes) -> int:
        self.writes.append(data)
        return super().write(data)
