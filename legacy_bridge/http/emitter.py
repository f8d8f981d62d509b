"""Deterministic emission of a :class:`Response` to an output channel.

Emission order is fixed: status, then every header value as its own line
(in header-map order), then the body. Blank header values are skipped.
"""

from __future__ import annotations

import typing as typ

from legacy_bridge.errors import EmissionError
from legacy_bridge.http.headers import should_send_header
from legacy_bridge.logging import get_logger, log_debug, log_exception

if typ.TYPE_CHECKING:
    from legacy_bridge.http.channels import OutputChannel
    from legacy_bridge.http.messages import Response

__all__ = ["ResponseEmitter"]

logger = get_logger(__name__)


class ResponseEmitter:
    """Emit responses to a single output channel."""

    def __init__(self, channel: OutputChannel) -> None:
        """Bind the emitter to *channel*."""
        self._channel = channel

    @property
    def channel(self) -> OutputChannel:
        """Return the bound channel."""
        return self._channel

    def emit(self, response: Response) -> None:
        """Write *response* to the channel.

        Only the first header line carries the status code. The body is
        rewound first when its stream is seekable.

        Raises
        ------
        EmissionError
            If the channel reports that output has already started.

        """
        sent, location = self._channel.headers_sent()
        if sent:
            error = EmissionError.headers_already_sent(location)
            log_exception(logger, "Refusing to emit response", error)
            raise error

        self._channel.send_status(response.status)

        header_lines = 0
        for name, values in response.headers.items():
            for value in values:
                if not should_send_header(value):
                    continue
                status = response.status if header_lines == 0 else None
                self._channel.send_header(name, value, status=status)
                header_lines += 1

        body = response.body
        if body.seekable():
            body.rewind()
        content = body.get_contents()
        self._channel.write(content)

        log_debug(
            logger,
            "Emitted status %d with %d header line(s) and %d body byte(s)",
            response.status,
            header_lines,
            len(content),
        )
