"""Behavioural coverage for bridging print-style handlers."""

from __future__ import annotations

import io
import typing as typ

import pytest
from pytest_bdd import given, parsers, scenario, then, when

from legacy_bridge.capture import capture_level
from legacy_bridge.http.bridge import run
from legacy_bridge.http.channels import CGIChannel
from legacy_bridge.http.factories import MessageFactory
from legacy_bridge.http.messages import Response
from tests.helpers import make_environment

if typ.TYPE_CHECKING:
    from legacy_bridge.container import ServiceContainer
    from legacy_bridge.http.bridge import Handler
    from legacy_bridge.http.messages import Request


class _HandlerFailedError(RuntimeError):
    """Raised by the failing scenario handler."""


class BridgeContext(typ.TypedDict, total=False):
    """Shared mutable scenario state."""

    handler: Handler
    output: io.BytesIO
    error: BaseException
    start_level: int


@scenario("../bridge.feature", "Printed output becomes the response body")
def test_printed_output_becomes_body() -> None:
    """Wrap the pytest-bdd scenario for captured output."""


@scenario("../bridge.feature", "JSON request bodies are decoded")
def test_json_bodies_are_decoded() -> None:
    """Wrap the pytest-bdd scenario for JSON decoding."""


@scenario("../bridge.feature", "A failing handler leaves no capture behind")
def test_failing_handler_unwinds() -> None:
    """Wrap the pytest-bdd scenario for handler failures."""


@pytest.fixture
def bridge_context() -> BridgeContext:
    """Provision an output buffer for the scenario."""
    return {"output": io.BytesIO(), "start_level": capture_level()}


def _bridge(context: BridgeContext, **server: str) -> None:
    body = server.pop("body", None)
    factory = MessageFactory()
    try:
        run(
            context["handler"],
            request_factory=factory,
            stream_factory=factory,
            uploaded_file_factory=factory,
            environment=make_environment(
                body.encode() if body is not None else None, **server
            ),
            channel=CGIChannel(context["output"]),
        )
    except _HandlerFailedError as exc:
        context["error"] = exc


@given(parsers.parse('a handler that prints "{text}" and returns status {status:d}'))
def given_printing_handler(bridge_context: BridgeContext, text: str, status: int) -> None:
    """Register a handler that only prints."""

    def handler(_request: Request, _container: ServiceContainer) -> Response:
        print(text, end="")  # noqa: T201 - legacy output
        return Response(status=status).with_header("Content-Type", "text/html")

    bridge_context["handler"] = handler


@given("a handler that echoes the parsed body")
def given_echo_handler(bridge_context: BridgeContext) -> None:
    """Register a handler printing the parsed body."""

    def handler(request: Request, _container: ServiceContainer) -> Response:
        print(request.parsed_body, end="")  # noqa: T201 - legacy output
        return Response()

    bridge_context["handler"] = handler


@given(parsers.parse('a handler that prints "{text}" and then fails'))
def given_failing_handler(bridge_context: BridgeContext, text: str) -> None:
    """Register a handler that prints and raises."""

    def handler(_request: Request, _container: ServiceContainer) -> Response:
        print(text)  # noqa: T201 - legacy output
        msg = "handler failed"
        raise _HandlerFailedError(msg)

    bridge_context["handler"] = handler


@when(parsers.parse("a GET request for {path} is bridged"))
def when_get_is_bridged(bridge_context: BridgeContext, path: str) -> None:
    """Run the handler for a GET request."""
    _bridge(bridge_context, REQUEST_URI=path)


@when(parsers.parse("a POST request for {path} with JSON body {body} is bridged"))
def when_json_post_is_bridged(
    bridge_context: BridgeContext, path: str, body: str
) -> None:
    """Run the handler for a JSON POST request."""
    _bridge(
        bridge_context,
        REQUEST_METHOD="POST",
        REQUEST_URI=path,
        CONTENT_TYPE="application/json",
        body=body,
    )


@then(parsers.parse('the CGI output starts with "{text}"'))
def then_output_starts_with(bridge_context: BridgeContext, text: str) -> None:
    """Assert on the start of the emitted bytes."""
    output = bridge_context["output"].getvalue().decode()
    assert output.startswith(text), f"expected output to start with {text!r}"


@then(parsers.parse('the CGI output ends with "{text}"'))
def then_output_ends_with(bridge_context: BridgeContext, text: str) -> None:
    """Assert on the end of the emitted bytes."""
    output = bridge_context["output"].getvalue().decode()
    assert output.endswith(text), f"expected output to end with {text!r}"


@then("the handler error propagates unchanged")
def then_error_propagates(bridge_context: BridgeContext) -> None:
    """Assert the handler's own exception reached the caller."""
    error = bridge_context.get("error")
    assert isinstance(error, _HandlerFailedError), "expected the handler's error"
    assert bridge_context["output"].getvalue() == b"", "expected nothing emitted"


@then("no capture level remains open")
def then_no_capture_level(bridge_context: BridgeContext) -> None:
    """Assert the capture stack is back where it started."""
    assert capture_level() == bridge_context["start_level"]
