"""Header name normalization and the immutable header multimap.

CGI and WSGI servers expose request headers as environ keys with an
``HTTP_`` prefix (``HTTP_X_FORWARDED_FOR``), except for ``CONTENT_TYPE``
and ``CONTENT_LENGTH`` which carry no prefix. This module turns such keys
into canonical ``Ada-Case`` header names and stores values in
:class:`Headers`, which preserves insertion order and repeated values.

Examples
--------
>>> normalize_header_name("HTTP_X_CUSTOM_HEADER")
'X-Custom-Header'
>>> normalize_headers({"CONTENT_LENGTH": "3", "PATH_INFO": "/"})
{'Content-Length': ['3']}

"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

__all__ = [
    "HEADER_PREFIX",
    "SPECIAL_HEADER_KEYS",
    "Headers",
    "HeadersInput",
    "normalize_header_name",
    "normalize_headers",
    "should_send_header",
]

HEADER_PREFIX = "HTTP_"
SPECIAL_HEADER_KEYS = frozenset({"CONTENT_TYPE", "CONTENT_LENGTH"})

type HeadersInput = (
    cabc.Mapping[str, str | cabc.Iterable[str]] | cabc.Iterable[tuple[str, str]]
)


def _is_header_key(key: str) -> bool:
    return key.startswith(HEADER_PREFIX) or key in SPECIAL_HEADER_KEYS


def normalize_header_name(key: str) -> str:
    """Convert an environ key into a canonical header name."""
    key = key.removeprefix(HEADER_PREFIX)
    return "-".join(part.lower().capitalize() for part in key.split("_"))


def normalize_headers(server: cabc.Mapping[str, str]) -> dict[str, list[str]]:
    """Collect header-bearing environ keys into canonical name -> values.

    Keys without the ``HTTP_`` prefix are kept only when they are one of
    :data:`SPECIAL_HEADER_KEYS`; every other key is skipped. Blank values
    are kept, use :func:`should_send_header` to decide on emission.

    Parameters
    ----------
    server
        Flat mapping of environ keys to string values.

    Returns
    -------
    dict[str, list[str]]
        Canonical header names mapped to values in encounter order.

    """
    headers: dict[str, list[str]] = {}
    for key, value in server.items():
        if not _is_header_key(key):
            continue
        headers.setdefault(normalize_header_name(key), []).append(value)
    return headers


def should_send_header(value: str) -> bool:
    """Return whether a header value carries anything worth emitting."""
    return value.strip() != ""


class Headers(cabc.Mapping[str, tuple[str, ...]]):
    """Immutable, case-insensitive, ordered header multimap.

    Lookups ignore case; iteration yields names in the case they were
    first registered with. Every mutator returns a new instance.
    """

    __slots__ = ("_entries",)

    _entries: dict[str, tuple[str, tuple[str, ...]]]

    def __init__(self, headers: HeadersInput | None = None) -> None:
        """Build from a mapping of name -> value(s) or ``(name, value)`` pairs."""
        entries: dict[str, tuple[str, tuple[str, ...]]] = {}
        pairs: cabc.Iterable[tuple[str, str | cabc.Iterable[str]]]
        if headers is None:
            pairs = ()
        elif isinstance(headers, cabc.Mapping):
            pairs = typ.cast(
                "cabc.Mapping[str, str | cabc.Iterable[str]]", headers
            ).items()
        else:
            pairs = headers
        for name, raw in pairs:
            values = (raw,) if isinstance(raw, str) else tuple(raw)
            key = name.lower()
            if key in entries:
                existing_name, existing = entries[key]
                entries[key] = (existing_name, existing + values)
            else:
                entries[key] = (name, values)
        self._entries = entries

    @classmethod
    def _from_entries(
        cls, entries: dict[str, tuple[str, tuple[str, ...]]]
    ) -> Headers:
        headers = cls()
        headers._entries = entries
        return headers

    def __getitem__(self, name: str) -> tuple[str, ...]:
        """Return every value for *name*, ignoring case."""
        return self._entries[name.lower()][1]

    def __iter__(self) -> cabc.Iterator[str]:
        """Yield header names in registration order."""
        return (name for name, _ in self._entries.values())

    def __len__(self) -> int:
        """Return the number of distinct header names."""
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        """Return whether *name* is present, ignoring case."""
        return isinstance(name, str) and name.lower() in self._entries

    def __eq__(self, other: object) -> bool:
        """Compare names (case-insensitively) and values."""
        if not isinstance(other, Headers):
            return NotImplemented
        mine = {key: values for key, (_, values) in self._entries.items()}
        theirs = {key: values for key, (_, values) in other._entries.items()}
        return mine == theirs

    def __repr__(self) -> str:
        """Return a debugging representation."""
        return f"Headers({dict(self.items())!r})"

    def get_line(self, name: str) -> str:
        """Return the comma-joined values for *name*, or ``""`` if absent."""
        return ", ".join(self.get(name, ()))

    def with_header(self, name: str, value: str | cabc.Iterable[str]) -> Headers:
        """Return a copy where *name* holds only *value*."""
        values = (value,) if isinstance(value, str) else tuple(value)
        entries = dict(self._entries)
        entries.pop(name.lower(), None)
        entries[name.lower()] = (name, values)
        return self._from_entries(entries)

    def with_added(self, name: str, value: str | cabc.Iterable[str]) -> Headers:
        """Return a copy with *value* appended to the values of *name*."""
        values = (value,) if isinstance(value, str) else tuple(value)
        key = name.lower()
        entries = dict(self._entries)
        if key in entries:
            existing_name, existing = entries[key]
            entries[key] = (existing_name, existing + values)
        else:
            entries[key] = (name, values)
        return self._from_entries(entries)

    def without(self, name: str) -> Headers:
        """Return a copy with *name* removed."""
        entries = dict(self._entries)
        entries.pop(name.lower(), None)
        return self._from_entries(entries)
