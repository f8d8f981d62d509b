"""Assemble an immutable :class:`Request` from an ambient snapshot.

Usage
-----
Build a request with the default message types::

    from legacy_bridge.ambient import AmbientEnvironment
    from legacy_bridge.http.factories import MessageFactory
    from legacy_bridge.http.request_builder import RequestBuilder

    factory = MessageFactory()
    builder = RequestBuilder(factory, factory, factory)
    request = builder.build(AmbientEnvironment.from_environ(environ))

"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

import msgspec

from legacy_bridge.errors import InvalidRequestError
from legacy_bridge.http.headers import normalize_headers
from legacy_bridge.http.messages import HttpMethod, UploadError, Uri
from legacy_bridge.logging import get_logger, log_debug, log_warning

if typ.TYPE_CHECKING:
    from legacy_bridge.ambient import AmbientEnvironment
    from legacy_bridge.http.factories import (
        RequestFactory,
        StreamFactory,
        UploadedFileFactory,
    )
    from legacy_bridge.http.messages import (
        Request,
        Stream,
        UploadedFile,
        UploadedFileTree,
    )

__all__ = ["RequestBuilder"]

logger = get_logger(__name__)

_JSON_MEDIA_TYPE = "application/json"


def _entry(values: object, index: int | str, default: object = None) -> object:
    """Return ``values[index]`` from a parallel array, or *default*."""
    if isinstance(values, cabc.Mapping):
        return values.get(index, default)
    if isinstance(values, cabc.Sequence) and not isinstance(values, str | bytes):
        if isinstance(index, int) and 0 <= index < len(values):
            return values[index]
    return default


def _is_parallel(value: object) -> bool:
    return isinstance(value, cabc.Mapping) or (
        isinstance(value, cabc.Sequence) and not isinstance(value, str | bytes)
    )


class RequestBuilder:
    """Build requests through injected object factories.

    Parameters
    ----------
    request_factory
        Creates the base request.
    stream_factory
        Creates the body and upload streams.
    uploaded_file_factory
        Creates uploaded-file leaves.

    """

    def __init__(
        self,
        request_factory: RequestFactory,
        stream_factory: StreamFactory,
        uploaded_file_factory: UploadedFileFactory,
    ) -> None:
        """Store the factories."""
        self._request_factory = request_factory
        self._stream_factory = stream_factory
        self._uploaded_file_factory = uploaded_file_factory

    def build(self, environment: AmbientEnvironment) -> Request:
        """Build a request from *environment*.

        Raises
        ------
        InvalidRequestError
            If the method is unsupported or the URI is malformed.

        """
        method = environment.method()
        if method not in HttpMethod.__members__:
            raise InvalidRequestError.invalid_http_method(method)

        uri = self._build_uri(environment)

        request = self._request_factory.create_server_request(
            method, uri, environment.server
        ).with_protocol_version(environment.protocol_version())

        for name, values in normalize_headers(environment.server).items():
            for value in values:
                request = request.with_added_header(name, value)

        body = self._open_body(environment)

        if environment.cookies:
            request = request.with_cookies(environment.cookies)
        if environment.query:
            request = request.with_query(environment.query)

        if environment.form:
            request = request.with_parsed_body(dict(environment.form))
        elif _JSON_MEDIA_TYPE in environment.content_type():
            body, parsed = self._decode_json(body)
            if parsed is not None:
                request = request.with_parsed_body(parsed)

        request = request.with_body(body)

        if environment.files:
            request = request.with_uploaded_files(
                self._normalize_files(environment.files)
            )

        log_debug(logger, "Built %s request for %s", method, uri)
        return request

    def _build_uri(self, environment: AmbientEnvironment) -> Uri:
        target = environment.request_target()
        if not target.startswith("/"):
            raise InvalidRequestError.malformed_uri(
                f"request target must start with '/': {target!r}"
            )
        host = environment.host()
        port = environment.port()
        if port is not None and ":" not in host:
            host = f"{host}:{port}"
        text = f"{environment.scheme()}://{host}{target}"
        try:
            return Uri.parse(text)
        except ValueError as exc:
            raise InvalidRequestError.malformed_uri(str(exc)) from exc

    def _open_body(self, environment: AmbientEnvironment) -> Stream:
        if environment.raw_input is None:
            return self._stream_factory.create_stream(b"")
        return self._stream_factory.create_stream_from_resource(environment.raw_input)

    def _decode_json(self, body: Stream) -> tuple[Stream, object]:
        """Decode *body* as JSON without losing its content.

        A seekable body is rewound after reading; a non-seekable one is
        replaced by an in-memory copy of what was read.
        """
        payload = body.get_contents()
        if body.seekable():
            body.rewind()
        else:
            body = self._stream_factory.create_stream(payload)

        if not payload:
            return body, None
        try:
            decoded = msgspec.json.decode(payload)
        except msgspec.DecodeError as exc:
            log_warning(logger, "Malformed JSON request body: %s", exc)
            return body, {}
        if not isinstance(decoded, dict | list):
            log_warning(
                logger,
                "JSON request body is a %s, not an object or array",
                type(decoded).__name__,
            )
            return body, {}
        return body, decoded

    def _normalize_files(
        self, files: cabc.Mapping[str, typ.Any]
    ) -> dict[str, UploadedFileTree]:
        normalized: dict[str, UploadedFileTree] = {}
        for field, descriptor in files.items():
            if not isinstance(descriptor, cabc.Mapping) or "name" not in descriptor:
                continue
            if _is_parallel(descriptor["name"]):
                normalized[field] = self._normalize_parallel(descriptor)
            else:
                normalized[field] = self._create_uploaded_file(descriptor)
        return normalized

    def _normalize_parallel(
        self, descriptor: cabc.Mapping[str, typ.Any]
    ) -> UploadedFileTree:
        """Zip parallel ``name/type/tmp_name/error/size`` arrays into a branch."""
        names = descriptor["name"]
        indexes: list[int] | list[str]
        if isinstance(names, cabc.Mapping):
            indexes = list(names)
        else:
            indexes = list(range(len(names)))

        children: list[UploadedFileTree] = []
        for index in indexes:
            entry = {
                "name": _entry(names, index),
                "type": _entry(descriptor.get("type"), index),
                "tmp_name": _entry(descriptor.get("tmp_name"), index),
                "error": _entry(descriptor.get("error"), index, UploadError.NO_FILE),
                "size": _entry(descriptor.get("size"), index, 0),
            }
            if _is_parallel(entry["name"]):
                children.append(self._normalize_parallel(entry))
            else:
                children.append(self._create_uploaded_file(entry))

        if isinstance(names, cabc.Mapping):
            return dict(zip(typ.cast("list[str]", indexes), children, strict=True))
        return children

    def _create_uploaded_file(
        self, descriptor: cabc.Mapping[str, typ.Any]
    ) -> UploadedFile:
        tmp_name = descriptor.get("tmp_name") or ""
        if tmp_name:
            stream = self._stream_factory.create_stream_from_file(tmp_name, "rb")
        else:
            stream = self._stream_factory.create_stream(b"")
        error = descriptor.get("error")
        return self._uploaded_file_factory.create_uploaded_file(
            stream,
            int(descriptor.get("size") or 0),
            int(UploadError.NO_FILE if error is None else error),
            descriptor.get("name"),
            descriptor.get("type"),
        )
