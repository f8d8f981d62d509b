"""Immutable snapshot of the ambient request state.

CGI and WSGI hand a request to Python as a flat environ mapping plus a
raw input channel. :class:`AmbientEnvironment` captures that state once,
at the start of an invocation, and exposes typed getters resolving the
method, scheme, host, port, protocol version and request target with a
fixed precedence. Every later component reads from the snapshot instead
of the live process state, so a request is always built from one
consistent view.

Usage
-----
Snapshot a WSGI environ::

    environment = AmbientEnvironment.from_environ(environ)
    environment.method()   # "POST"
    environment.scheme()   # "https"

Snapshot the CGI process state::

    environment = AmbientEnvironment.from_cgi()

"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import http.cookies
import io
import os
import sys
import types
import typing as typ
import urllib.parse

import falcon.uri

from legacy_bridge.config import BridgeConfig
from legacy_bridge.errors import InvalidRequestError
from legacy_bridge.logging import get_logger, log_warning

__all__ = ["AmbientEnvironment"]

logger = get_logger(__name__)

_DEFAULT_METHOD = "GET"
_DEFAULT_HOST = "localhost"
_DEFAULT_PROTOCOL = "HTTP/1.1"
_PROTOCOL_PREFIX = "HTTP/"
_DEFAULT_PORTS = {"http": 80, "https": 443}
_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
_PATH_SAFE = "/;=,:@!$&'()*+~"


def _frozen(mapping: cabc.Mapping[str, typ.Any] | None) -> cabc.Mapping[str, typ.Any]:
    return types.MappingProxyType(dict(mapping or {}))


def _quote_path(raw_path: str) -> str:
    # PEP 3333 carries the decoded path as latin-1 text.
    try:
        encoded = raw_path.encode("latin-1")
    except UnicodeEncodeError:
        encoded = raw_path.encode("utf-8")
    return urllib.parse.quote(encoded, safe=_PATH_SAFE)


def _parse_content_length(raw: str) -> int | None:
    """Return a usable ``CONTENT_LENGTH`` or ``None`` when absent or invalid."""
    if not (raw.isascii() and raw.isdigit()):
        return None
    return int(raw)


def _parse_port(raw: str, field: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise InvalidRequestError.malformed_uri(
            f"{field} is not a port number: {raw!r}"
        ) from exc


@dc.dataclass(frozen=True, slots=True)
class AmbientEnvironment:
    """Snapshot of server params, request maps and the raw input channel.

    Attributes
    ----------
    server
        String-valued environ entries (``REQUEST_METHOD``, ``HTTP_*``...).
    query
        Parsed query parameters.
    form
        Parsed form fields.
    cookies
        Cookie name to value.
    files
        Uploaded-file descriptors: ``name``, ``type``, ``tmp_name``,
        ``error`` and ``size`` per field, either scalars or parallel
        sequences/mappings.
    raw_input
        Binary channel carrying the request body, ``None`` when absent.

    """

    server: cabc.Mapping[str, str] = dc.field(default_factory=dict)
    query: cabc.Mapping[str, typ.Any] = dc.field(default_factory=dict)
    form: cabc.Mapping[str, typ.Any] = dc.field(default_factory=dict)
    cookies: cabc.Mapping[str, str] = dc.field(default_factory=dict)
    files: cabc.Mapping[str, typ.Any] = dc.field(default_factory=dict)
    raw_input: typ.BinaryIO | None = None

    def __post_init__(self) -> None:
        """Detach the snapshot from the caller's mutable mappings."""
        for name in ("server", "query", "form", "cookies", "files"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))

    @classmethod
    def from_environ(
        cls,
        environ: cabc.Mapping[str, typ.Any],
        *,
        files: cabc.Mapping[str, typ.Any] | None = None,
        config: BridgeConfig | None = None,
    ) -> AmbientEnvironment:
        """Snapshot a WSGI or CGI environ.

        URL-encoded form bodies are read here, once, and replaced by a
        seekable in-memory copy so the body stays readable afterwards.

        Parameters
        ----------
        environ
            WSGI environ or ``os.environ``-style mapping.
        files
            Pre-parsed uploaded-file descriptors.
        config
            Limits for body buffering; defaults to :class:`BridgeConfig`.

        Raises
        ------
        InvalidRequestError
            If a form body exceeds ``config.max_form_bytes``.

        """
        config = config or BridgeConfig()
        server = {key: value for key, value in environ.items() if isinstance(value, str)}
        raw_input = typ.cast("typ.BinaryIO | None", environ.get("wsgi.input"))

        query = falcon.uri.parse_query_string(
            server.get("QUERY_STRING", ""), keep_blank=True, csv=False
        )

        cookies: dict[str, str] = {}
        cookie_header = server.get("HTTP_COOKIE", "")
        if cookie_header:
            jar = http.cookies.SimpleCookie()
            try:
                jar.load(cookie_header)
            except http.cookies.CookieError as exc:
                log_warning(logger, "Ignoring malformed Cookie header: %s", exc)
            cookies = {name: morsel.value for name, morsel in jar.items()}

        form: dict[str, typ.Any] = {}
        content_type = server.get("CONTENT_TYPE", "")
        if raw_input is not None and content_type.startswith(_FORM_CONTENT_TYPE):
            payload = cls._read_form_body(raw_input, server, config.max_form_bytes)
            form = falcon.uri.parse_query_string(
                payload.decode("latin-1"), keep_blank=True, csv=False
            )
            raw_input = io.BytesIO(payload)

        return cls(
            server=server,
            query=query,
            form=form,
            cookies=cookies,
            files=files or {},
            raw_input=raw_input,
        )

    @staticmethod
    def _read_form_body(
        raw_input: typ.BinaryIO, server: cabc.Mapping[str, str], limit: int
    ) -> bytes:
        raw_length = server.get("CONTENT_LENGTH", "").strip()
        length = _parse_content_length(raw_length)
        if length is not None:
            if length > limit:
                raise InvalidRequestError.body_too_large(length, limit)
            return raw_input.read(length) if length > 0 else b""
        if raw_length:
            log_warning(
                logger,
                "Ignoring invalid CONTENT_LENGTH %r; reading up to %d byte(s)",
                raw_length,
                limit,
            )
        payload = raw_input.read(limit + 1)
        if len(payload) > limit:
            raise InvalidRequestError.body_too_large(len(payload), limit)
        return payload

    @classmethod
    def from_cgi(
        cls,
        *,
        files: cabc.Mapping[str, typ.Any] | None = None,
        config: BridgeConfig | None = None,
    ) -> AmbientEnvironment:
        """Snapshot ``os.environ`` with ``sys.stdin`` as the raw input."""
        environ: dict[str, typ.Any] = dict(os.environ)
        environ["wsgi.input"] = sys.stdin.buffer
        return cls.from_environ(environ, files=files, config=config)

    def _server_value(self, key: str) -> str:
        return self.server.get(key, "") or ""

    def method(self) -> str:
        """Return the upper-cased request method, ``GET`` when unset."""
        return self.server.get("REQUEST_METHOD", _DEFAULT_METHOD).upper()

    def is_https(self) -> bool:
        """Return whether the request arrived over HTTPS.

        The ``HTTPS`` flag wins unless it is ``off``; a forwarded proto
        header is consulted next and decides on its own; ``REQUEST_SCHEME``
        is the last resort.
        """
        flag = self._server_value("HTTPS")
        if flag and flag != "off":
            return True
        forwarded = self._server_value("HTTP_X_FORWARDED_PROTO")
        if forwarded:
            return forwarded.lower() == "https"
        request_scheme = self._server_value("REQUEST_SCHEME")
        if request_scheme:
            return request_scheme.lower() == "https"
        return False

    def scheme(self) -> str:
        """Return ``https`` or ``http``."""
        return "https" if self.is_https() else "http"

    def host(self) -> str:
        """Return the Host header, the server name or ``localhost``."""
        return (
            self._server_value("HTTP_HOST")
            or self._server_value("SERVER_NAME")
            or _DEFAULT_HOST
        )

    def port(self) -> int | None:
        """Return an explicit non-default port, or ``None``.

        ``SERVER_PORT`` is returned only when it differs from the scheme's
        default; otherwise ``X-Forwarded-Port`` is used when present.

        Raises
        ------
        InvalidRequestError
            If a port field is not numeric.

        """
        server_port = self._server_value("SERVER_PORT")
        if server_port:
            port = _parse_port(server_port, "SERVER_PORT")
            if port != _DEFAULT_PORTS[self.scheme()]:
                return port
        forwarded = self._server_value("HTTP_X_FORWARDED_PORT")
        if forwarded:
            return _parse_port(forwarded, "X-Forwarded-Port")
        return None

    def protocol_version(self) -> str:
        """Return the protocol version without ``HTTP/``, e.g. ``1.1``."""
        protocol = self.server.get("SERVER_PROTOCOL", _DEFAULT_PROTOCOL)
        return protocol.replace(_PROTOCOL_PREFIX, "")

    def request_target(self) -> str:
        """Return the path and query string of the request.

        ``REQUEST_URI`` is used verbatim when present. Otherwise the target
        is rebuilt from ``SCRIPT_NAME``, ``PATH_INFO`` and ``QUERY_STRING``.
        """
        request_uri = self._server_value("REQUEST_URI")
        if request_uri:
            return request_uri
        raw_path = self._server_value("SCRIPT_NAME") + self._server_value("PATH_INFO")
        path = _quote_path(raw_path) or "/"
        query = self._server_value("QUERY_STRING")
        return f"{path}?{query}" if query else path

    def content_type(self) -> str:
        """Return the request content type, ``""`` when unset."""
        return self._server_value("CONTENT_TYPE") or self._server_value(
            "HTTP_CONTENT_TYPE"
        )
