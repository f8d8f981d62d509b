"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import pytest

from legacy_bridge.http.factories import MessageFactory
from legacy_bridge.http.request_builder import RequestBuilder


@pytest.fixture
def message_factory() -> MessageFactory:
    """Provide the default object factory."""
    return MessageFactory()


@pytest.fixture
def request_builder(message_factory: MessageFactory) -> RequestBuilder:
    """Provide a request builder over the default factory."""
    return RequestBuilder(message_factory, message_factory, message_factory)
