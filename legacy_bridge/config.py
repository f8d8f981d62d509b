"""Runtime configuration for the bridge.

Usage
-----
Use the defaults:

>>> config = BridgeConfig()
>>> config.max_form_bytes
1048576

Or load from environment variables:

>>> import os
>>> os.environ["LEGACY_BRIDGE_MAX_FORM_BYTES"] = "2048"
>>> BridgeConfig.from_env().max_form_bytes
2048

"""

from __future__ import annotations

import dataclasses as dc
import os

__all__ = ["DEFAULT_MAX_FORM_BYTES", "BridgeConfig"]

DEFAULT_MAX_FORM_BYTES = 1024 * 1024


@dc.dataclass(frozen=True, slots=True)
class BridgeConfig:
    """Configuration for snapshotting requests and logging.

    Attributes
    ----------
    log_level
        Raw femtologging level. ``None`` leaves logging configuration to
        the embedding application.
    max_form_bytes
        Largest ``application/x-www-form-urlencoded`` body that
        :meth:`AmbientEnvironment.from_environ` will buffer and parse.

    """

    log_level: str | None = None
    max_form_bytes: int = DEFAULT_MAX_FORM_BYTES

    @staticmethod
    def _parse_positive_int(env_var: str, default: int) -> int:
        """Read a positive integer env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            msg = f"{env_var} must be an integer, got: {raw!r}"
            raise ValueError(msg) from exc
        if value < 1:
            msg = f"{env_var} must be positive, got: {value}"
            raise ValueError(msg)
        return value

    @classmethod
    def from_env(cls) -> BridgeConfig:
        """Create configuration from environment variables.

        Reads ``LEGACY_BRIDGE_LOG_LEVEL`` (optional) and
        ``LEGACY_BRIDGE_MAX_FORM_BYTES`` (positive integer).

        Raises
        ------
        ValueError
            If ``LEGACY_BRIDGE_MAX_FORM_BYTES`` is not a positive integer.

        """
        raw_level = os.environ.get("LEGACY_BRIDGE_LOG_LEVEL", "")
        return cls(
            log_level=raw_level.strip() or None,
            max_form_bytes=cls._parse_positive_int(
                "LEGACY_BRIDGE_MAX_FORM_BYTES", DEFAULT_MAX_FORM_BYTES
            ),
        )
