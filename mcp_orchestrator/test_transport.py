import asyncio
from contextlib import asynccontextmanager

import pytest
from mcp import types

from conftest import make_init_result, make_prompt, make_tool, text_message
from mcp_orchestrator.app.core.transport import (
    McpClientFactory,
    McpConnection,
    to_wire_arguments,
    uses_sse_transport,
)


class RecordingSession:
    """Mimics the slice of mcp.ClientSession that McpConnection drives."""

    instances = []
    init_result = None
    init_delay = 0.0

    def __init__(self, read_stream, write_stream, read_timeout_seconds=None):
        self.read_timeout_seconds = read_timeout_seconds
        self.list_prompts_cursors = []
        self.get_prompt_calls = []
        self.exited = 0
        RecordingSession.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited += 1

    async def initialize(self):
        if RecordingSession.init_delay:
            await asyncio.sleep(RecordingSession.init_delay)
        return RecordingSession.init_result

    async def list_tools(self, cursor=None):
        return types.ListToolsResult(tools=[make_tool("lookup")])

    async def list_prompts(self, cursor=None):
        self.list_prompts_cursors.append(cursor)
        if cursor is None:
            return types.ListPromptsResult(prompts=[make_prompt("greet")], nextCursor="page-2")
        return types.ListPromptsResult(prompts=[make_prompt("summarize")])

    async def get_prompt(self, name, arguments=None):
        self.get_prompt_calls.append((name, arguments))
        return types.GetPromptResult(messages=[text_message("ok")])


@pytest.fixture
def recording_transport():
    RecordingSession.instances = []
    RecordingSession.init_result = make_init_result("Greeter")
    RecordingSession.init_delay = 0.0
    opened = []

    @asynccontextmanager
    async def transport(url, timeout_sec, sse_read_timeout_sec):
        opened.append((url, timeout_sec, sse_read_timeout_sec))
        yield "read-stream", "write-stream", lambda: None

    transport.opened = opened
    return transport


def _connection(transport, url="http://s1/mcp", timeout_sec=1.0):
    return McpConnection(
        url,
        timeout_sec=timeout_sec,
        sse_read_timeout_sec=60.0,
        transport_factory=transport,
        session_cls=RecordingSession,
    )


def test_wire_arguments_are_strings():
    assert to_wire_arguments({"name": "Ada", "count": 3, "flags": {"loud": True}, "empty": None}) == {
        "name": "Ada",
        "count": "3",
        "flags": '{"loud": true}',
        "empty": "",
    }
    assert to_wire_arguments(None) == {}


@pytest.mark.parametrize(
    "url, expected",
    [("http://s1/sse", True), ("http://s1/sse/", True), ("http://s1/mcp", False), ("http://sse/mcp", False)],
)
def test_sse_transport_is_chosen_by_path(url, expected):
    assert uses_sse_transport(url) is expected


def test_factory_applies_timeouts(recording_transport):
    factory = McpClientFactory(
        request_timeout_sec=30.0,
        health_timeout_sec=5.0,
        sse_read_timeout_sec=120.0,
        transport_factory=recording_transport,
        session_cls=RecordingSession,
    )

    request_connection = factory.create_connection("http://s1/mcp")
    health_connection = factory.create_health_connection("http://s1/mcp")

    assert request_connection.timeout_sec == 30.0
    assert request_connection.sse_read_timeout_sec == 120.0
    assert health_connection.timeout_sec == 5.0


@pytest.mark.asyncio
async def test_initialize_returns_the_handshake_result(recording_transport):
    async with _connection(recording_transport) as connection:
        init_result = await connection.initialize()
        prompts = await connection.list_prompts()
        tools = await connection.list_tools()

    session = RecordingSession.instances[0]
    assert init_result.serverInfo.name == "Greeter"
    assert connection.initialize_result is init_result
    assert recording_transport.opened == [("http://s1/mcp", 1.0, 60.0)]
    assert session.read_timeout_seconds.total_seconds() == 1.0
    assert [prompt.name for prompt in prompts] == ["greet", "summarize"]
    assert session.list_prompts_cursors == [None, "page-2"]
    assert [tool.name for tool in tools] == ["lookup"]
    assert session.exited == 1


@pytest.mark.asyncio
async def test_prompts_are_skipped_when_capability_is_absent(recording_transport):
    RecordingSession.init_result = make_init_result("Tools only", prompts=False)
    connection = _connection(recording_transport)

    await connection.initialize()

    assert not connection.supports_prompts()
    assert await connection.list_prompts() == []
    assert RecordingSession.instances[0].list_prompts_cursors == []
    await connection.close()


@pytest.mark.asyncio
async def test_get_prompt_sends_wire_arguments(recording_transport):
    connection = _connection(recording_transport)
    await connection.initialize()

    await connection.get_prompt("greet", {"name": "Ada", "times": 2})

    assert RecordingSession.instances[0].get_prompt_calls == [("greet", {"name": "Ada", "times": "2"})]
    await connection.close()


@pytest.mark.asyncio
async def test_handshake_is_bounded_by_timeout(recording_transport):
    RecordingSession.init_delay = 0.5
    connection = _connection(recording_transport, url="http://slow/mcp", timeout_sec=0.01)

    with pytest.raises(asyncio.TimeoutError):
        await connection.initialize()
    await connection.close()


@pytest.mark.asyncio
async def test_calls_before_initialize_fail_and_close_is_idempotent(recording_transport):
    connection = _connection(recording_transport)

    with pytest.raises(RuntimeError):
        await connection.get_prompt("greet", {})

    await connection.close()
    await connection.close()

    with pytest.raises(RuntimeError):
        await connection.initialize()
    assert RecordingSession.instances == []
