"""Unit tests for femtologging integration helpers.

Run with:
    pytest tests/unit/test_logging.py
"""

from __future__ import annotations

import pytest

from legacy_bridge.logging import (
    configure_logging,
    format_log_message,
    log_debug,
    log_exception,
    log_warning,
    normalize_log_level,
)


class _FakeLogger:
    """Collects log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None, bool]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((level, message, exc_info, stack_info))
        return message


@pytest.mark.parametrize(
    ("raw", "expected", "invalid"),
    [
        ("debug", "DEBUG", False),
        ("  Warn ", "WARN", False),
        (None, "INFO", True),
        ("   ", "INFO", True),
        ("verbose", "INFO", True),
    ],
)
def test_normalize_log_level(raw: str | None, expected: str, *, invalid: bool) -> None:
    """Known levels are upper-cased; anything else falls back to INFO."""
    level, flagged = normalize_log_level(raw)
    assert level == expected, f"Expected {raw!r} to normalize to {expected}."
    assert flagged is invalid, f"Expected invalid flag {invalid} for {raw!r}."


def test_format_log_message_without_args_keeps_template() -> None:
    """A template with no args is returned untouched, percent signs included."""
    assert format_log_message("100% done") == "100% done", (
        "Expected the template to pass through unformatted."
    )


def test_log_debug_formats_message() -> None:
    """log_debug interpolates args and emits DEBUG."""
    logger = _FakeLogger()

    log_debug(logger, "emitted %d line(s)", 3)

    assert logger.calls == [("DEBUG", "emitted 3 line(s)", None, False)], (
        "Expected DEBUG entry with formatted message."
    )


def test_log_warning_forwards_exc_info() -> None:
    """log_warning forwards exc_info to the logger."""
    logger = _FakeLogger()
    exc = ValueError("boom")

    log_warning(logger, "factory %r failed", "db", exc_info=exc)

    assert logger.calls == [("WARNING", "factory 'db' failed", exc, False)], (
        "Expected WARNING entry with exc_info."
    )


def test_log_exception_passes_exc_info() -> None:
    """log_exception attaches the exception at ERROR."""
    logger = _FakeLogger()
    exc = RuntimeError("boom")

    log_exception(logger, "handler failed", exc)

    assert logger.calls == [("ERROR", "handler failed", exc, False)], (
        "Expected ERROR entry with exc_info."
    )


def test_configure_logging_passes_level(monkeypatch: pytest.MonkeyPatch) -> None:
    """configure_logging hands the normalized level to basicConfig."""
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr("legacy_bridge.logging.basicConfig", fake_basic_config)

    normalized, invalid = configure_logging("nope", force=True)

    assert (normalized, invalid) == ("INFO", True), "Expected INFO fallback."
    assert captured == {"level": "INFO", "force": True}, (
        "Expected basicConfig to receive the normalized level and force flag."
    )
