"""Error taxonomy for the request bridge.

Every failure the bridge raises is one of six variants of
:class:`BridgeError`. Each variant carries a fixed :class:`ErrorKind`, so
callers can either ``except`` a concrete class or match on ``exc.kind``.
Wrapped causes are attached with ``raise ... from`` and are available as
``__cause__``.

Usage
-----
Translate bridge failures into a transport response in the embedding
application::

    from legacy_bridge.errors import BridgeError, ErrorKind

    try:
        run(handler, **factories)
    except BridgeError as exc:
        if exc.kind is ErrorKind.INVALID_REQUEST:
            ...

"""

from __future__ import annotations

import builtins
import enum
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

__all__ = [
    "BridgeError",
    "ConfigurationError",
    "ContainerError",
    "EmissionError",
    "ErrorKind",
    "InvalidRequestError",
    "InvalidResponseError",
    "NotFoundError",
    "describe_type",
]

MIN_STATUS_CODE = 100
MAX_STATUS_CODE = 599


class ErrorKind(enum.StrEnum):
    """Closed set of failure kinds raised by the bridge."""

    INVALID_REQUEST = "invalid_request"
    INVALID_RESPONSE = "invalid_response"
    NOT_FOUND = "not_found"
    CONTAINER = "container"
    EMISSION = "emission"
    CONFIGURATION = "configuration"


def describe_type(value: object) -> str:
    """Return a readable runtime type name for *value*.

    Builtins are reported by their bare name (``NoneType``, ``dict``);
    everything else is qualified with its module.
    """
    cls = type(value)
    if cls.__module__ == builtins.__name__:
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


class BridgeError(Exception):
    """Base class for all bridge failures.

    Attributes
    ----------
    kind
        The failure kind shared by every instance of the variant.

    """

    kind: typ.ClassVar[ErrorKind]


class InvalidRequestError(BridgeError):
    """Raised when ambient state cannot be turned into a valid request."""

    kind = ErrorKind.INVALID_REQUEST

    @classmethod
    def invalid_http_method(cls, method: str) -> InvalidRequestError:
        """Create an error for a verb outside the supported set."""
        return cls(f"Invalid HTTP method: {method!r}")

    @classmethod
    def malformed_uri(cls, reason: str) -> InvalidRequestError:
        """Create an error for a URI that failed validation.

        Parameters
        ----------
        reason
            Description of what made the URI invalid.

        Returns
        -------
        InvalidRequestError
            Error carrying the reason.

        """
        return cls(f"Failed to create valid URI: {reason}")

    @classmethod
    def body_too_large(cls, length: int, limit: int) -> InvalidRequestError:
        """Create an error for a form body exceeding the buffering limit."""
        return cls(f"Form body of {length} bytes exceeds the {limit} byte limit")


class InvalidResponseError(BridgeError):
    """Raised when a handler's result cannot be emitted."""

    kind = ErrorKind.INVALID_RESPONSE

    @classmethod
    def not_a_response(cls, received: object) -> InvalidResponseError:
        """Create an error for a handler that returned a non-Response value.

        Parameters
        ----------
        received
            The value the handler returned.

        Returns
        -------
        InvalidResponseError
            Error naming the runtime type of *received*.

        """
        return cls(f"Handler must return a Response, got {describe_type(received)}")

    @classmethod
    def invalid_status_code(cls, status: int) -> InvalidResponseError:
        """Create an error for a status code outside 100-599."""
        return cls(
            f"Invalid HTTP status code: {status}. "
            f"Must be between {MIN_STATUS_CODE} and {MAX_STATUS_CODE}."
        )


class NotFoundError(BridgeError, LookupError):
    """Raised when a container lookup names an unregistered service.

    Attributes
    ----------
    service_id
        The identifier that was looked up.

    """

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str, *, service_id: str) -> None:
        """Initialise with a message and the missing identifier."""
        self.service_id = service_id
        super().__init__(message)

    def __str__(self) -> str:
        """Return the message without ``LookupError`` quoting."""
        return str(self.args[0])

    @classmethod
    def for_service(cls, service_id: str) -> NotFoundError:
        """Create an error for the unregistered *service_id*."""
        return cls(
            f"Service {service_id!r} not found in container. Register it "
            f"using container.set({service_id!r}, factory).",
            service_id=service_id,
        )


class ContainerError(BridgeError):
    """Raised when a service factory fails during resolution.

    The original exception is chained as ``__cause__``.

    Attributes
    ----------
    service_id
        The identifier whose factory failed.

    """

    kind = ErrorKind.CONTAINER

    def __init__(self, message: str, *, service_id: str) -> None:
        """Initialise with a message and the failing identifier."""
        self.service_id = service_id
        super().__init__(message)

    @classmethod
    def resolution_failed(cls, service_id: str, cause: BaseException) -> ContainerError:
        """Create an error describing *cause* for *service_id*."""
        return cls(
            f"Error resolving service {service_id!r}: {cause}",
            service_id=service_id,
        )


class EmissionError(BridgeError):
    """Raised when a response cannot be emitted because output has started.

    Attributes
    ----------
    location
        Where output started (``file:line``), when the channel knows it.

    """

    kind = ErrorKind.EMISSION

    def __init__(self, message: str, *, location: str | None = None) -> None:
        """Initialise with a message and optional start location."""
        self.location = location
        super().__init__(message)

    @classmethod
    def headers_already_sent(cls, location: str | None = None) -> EmissionError:
        """Create an error for a channel whose output already began."""
        message = "Unable to emit response: headers already sent"
        if location:
            message = f"{message} (output started at {location})"
        return cls(message, location=location)


class ConfigurationError(BridgeError):
    """Raised when the entry point lacks required collaborators."""

    kind = ErrorKind.CONFIGURATION

    @classmethod
    def missing_factories(cls, names: cabc.Iterable[str]) -> ConfigurationError:
        """Create an error listing the object factories that were not supplied."""
        missing = ", ".join(names)
        return cls(
            f"Object factories must be configured before running the bridge; "
            f"missing: {missing}"
        )
