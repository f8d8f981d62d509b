"""Unit tests for BridgeConfig."""

from __future__ import annotations

import pytest

from legacy_bridge.config import DEFAULT_MAX_FORM_BYTES, BridgeConfig


class TestBridgeConfigFromEnv:
    """Tests for BridgeConfig.from_env()."""

    def test_defaults_when_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unset variables yield the defaults."""
        monkeypatch.delenv("LEGACY_BRIDGE_LOG_LEVEL", raising=False)
        monkeypatch.delenv("LEGACY_BRIDGE_MAX_FORM_BYTES", raising=False)

        config = BridgeConfig.from_env()

        assert config == BridgeConfig(), "expected default configuration"
        assert config.max_form_bytes == DEFAULT_MAX_FORM_BYTES

    def test_reads_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Both variables are read and stripped."""
        monkeypatch.setenv("LEGACY_BRIDGE_LOG_LEVEL", " debug ")
        monkeypatch.setenv("LEGACY_BRIDGE_MAX_FORM_BYTES", "2048")

        config = BridgeConfig.from_env()

        assert config.log_level == "debug", "expected stripped log level"
        assert config.max_form_bytes == 2048, "expected parsed byte limit"

    @pytest.mark.parametrize("raw", ["lots", "0", "-5"])
    def test_rejects_invalid_limit(
        self, monkeypatch: pytest.MonkeyPatch, raw: str
    ) -> None:
        """Non-integer and non-positive limits raise ValueError."""
        monkeypatch.setenv("LEGACY_BRIDGE_MAX_FORM_BYTES", raw)

        with pytest.raises(ValueError, match="LEGACY_BRIDGE_MAX_FORM_BYTES"):
            BridgeConfig.from_env()
