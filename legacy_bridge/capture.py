"""Nested capture of implicit ``sys.stdout`` output.

Legacy handlers often ``print`` their output instead of writing it to a
response body. While a capture level is open, ``sys.stdout`` points at an
in-memory UTF-8 text stream whose ``buffer`` also accepts raw bytes;
closing the level restores whatever ``sys.stdout`` was when it opened.
Levels form one process-wide stack, mirroring how nested output buffers
behave, so a capture opened inside another (a test harness, an enclosing
bridge call) keeps the outer level untouched.

:class:`CaptureScope` records the stack depth when it is created and only
ever closes levels above that depth.

Usage
-----
Capture output around a call::

    with CaptureScope() as scope:
        print("hello")
        text = scope.get_and_stop()   # "hello\n"

The stack is not thread-safe. Code that may capture on several threads
must serialize its capture regions, as
:class:`legacy_bridge.http.bridge.LegacyBridge` does.
"""

from __future__ import annotations

import dataclasses as dc
import io
import sys
import typing as typ

if typ.TYPE_CHECKING:
    import types

__all__ = ["CaptureScope", "capture_level"]


@dc.dataclass(slots=True)
class _Level:
    raw: io.BytesIO
    stream: io.TextIOWrapper
    previous: typ.TextIO

    @classmethod
    def open(cls) -> _Level:
        raw = io.BytesIO()
        stream = io.TextIOWrapper(
            raw, encoding="utf-8", newline="\n", write_through=True
        )
        return cls(raw=raw, stream=stream, previous=sys.stdout)

    def read_and_close(self) -> str:
        self.stream.flush()
        text = self.raw.getvalue().decode("utf-8", errors="replace")
        self.stream.close()
        return text


_levels: list[_Level] = []


def capture_level() -> int:
    """Return the number of open capture levels."""
    return len(_levels)


def _push_level() -> None:
    level = _Level.open()
    _levels.append(level)
    sys.stdout = level.stream


def _pop_level() -> str:
    level = _levels.pop()
    sys.stdout = level.previous
    return level.read_and_close()


class CaptureScope:
    """One capture region bound to the depth it started from."""

    def __init__(self) -> None:
        """Record the current depth; nothing is captured until :meth:`start`."""
        self._start_level = capture_level()

    @property
    def start_level(self) -> int:
        """Return the depth recorded at creation."""
        return self._start_level

    @property
    def is_active(self) -> bool:
        """Return whether levels above the recorded depth are open."""
        return capture_level() > self._start_level

    def start(self) -> None:
        """Open a capture level."""
        _push_level()

    def get_and_stop(self) -> str:
        """Close every level this scope owns and return its text.

        Levels opened after :meth:`start` and left open are folded into
        this scope's own level first, so the result is exactly the text
        written inside the region. Returns ``""`` when nothing is open.
        """
        if not self.is_active:
            return ""
        while capture_level() > self._start_level + 1:
            inner = _pop_level()
            _levels[-1].stream.write(inner)
        return _pop_level()

    def discard_and_stop(self) -> None:
        """Drop every level above the recorded depth without reading it."""
        while self.is_active:
            _pop_level()

    def __enter__(self) -> CaptureScope:
        """Start capturing."""
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        """Release any level still open; the exception, if any, propagates."""
        self.discard_and_stop()
