import asyncio
import socket
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import pytest
import uvicorn
from mcp import types
from mcp.server.fastmcp import FastMCP


def make_init_result(server_name: str | None = None, *, prompts: bool = True) -> types.InitializeResult:
    return types.InitializeResult(
        protocolVersion=types.LATEST_PROTOCOL_VERSION,
        capabilities=types.ServerCapabilities(
            prompts=types.PromptsCapability() if prompts else None,
            tools=types.ToolsCapability(),
        ),
        serverInfo=types.Implementation(name=server_name or "", version="1.0.0"),
    )


def make_tool(name: str, description: str | None = None) -> types.Tool:
    return types.Tool(name=name, description=description, inputSchema={"type": "object"})


def make_prompt(name: str, description: str | None = None, arguments: list[tuple[str, bool]] = ()) -> types.Prompt:
    return types.Prompt(
        name=name,
        description=description,
        arguments=[types.PromptArgument(name=arg_name, required=required) for arg_name, required in arguments],
    )


def text_message(text: str, role: str = "user") -> types.PromptMessage:
    return types.PromptMessage(role=role, content=types.TextContent(type="text", text=text))


@dataclass
class FakeServer:
    """Scripted behaviour for one MCP server URL."""

    server_name: str | None = None
    tools: list[Any] = field(default_factory=list)
    prompts: list[Any] = field(default_factory=list)
    prompt_results: dict[str, Any] = field(default_factory=dict)
    initialize_error: BaseException | None = None
    list_tools_error: BaseException | None = None
    list_prompts_error: BaseException | None = None
    get_prompt_error: BaseException | None = None
    gate: asyncio.Event | None = None
    get_prompt_calls: list[tuple[str, dict]] = field(default_factory=list)


class FakeConnection:
    def __init__(self, server: FakeServer, url: str, timeout_sec: float | None) -> None:
        self.server = server
        self.url = url
        self.timeout_sec = timeout_sec
        self.closed = False

    async def __aenter__(self) -> "FakeConnection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def initialize(self):
        if self.server.initialize_error is not None:
            raise self.server.initialize_error
        return make_init_result(self.server.server_name)

    async def list_tools(self):
        if self.server.list_tools_error is not None:
            raise self.server.list_tools_error
        return list(self.server.tools)

    async def list_prompts(self):
        if self.server.gate is not None:
            await self.server.gate.wait()
        if self.server.list_prompts_error is not None:
            raise self.server.list_prompts_error
        return list(self.server.prompts)

    async def get_prompt(self, name: str, arguments: dict):
        self.server.get_prompt_calls.append((name, dict(arguments or {})))
        if self.server.get_prompt_error is not None:
            raise self.server.get_prompt_error
        return self.server.prompt_results[name]

    async def close(self) -> None:
        self.closed = True


class FakeClientFactory:
    """Stands in for McpClientFactory; unknown URLs refuse the connection."""

    def __init__(self, servers: dict[str, FakeServer] | None = None) -> None:
        self.servers = dict(servers or {})
        self.opened: list[FakeConnection] = []

    def _server_for(self, url: str) -> FakeServer:
        server = self.servers.get(url)
        if server is None:
            server = FakeServer(initialize_error=ConnectionRefusedError(f"connection refused: {url}"))
        return server

    def create_connection(self, url: str, *, timeout_sec: float | None = None) -> FakeConnection:
        connection = FakeConnection(self._server_for(url), url, timeout_sec)
        self.opened.append(connection)
        return connection

    def create_health_connection(self, url: str) -> FakeConnection:
        return self.create_connection(url, timeout_sec=10.0)


@pytest.fixture
def fake_factory():
    def build(servers: dict[str, FakeServer] | None = None) -> FakeClientFactory:
        return FakeClientFactory(servers)

    return build


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@asynccontextmanager
async def serve_mcp(server: FastMCP):
    """Run ``server`` over streamable HTTP on a loopback port and yield its URL."""
    port = _free_port()
    http_server = uvicorn.Server(
        uvicorn.Config(server.streamable_http_app(), host="127.0.0.1", port=port, log_level="warning")
    )
    serving = asyncio.create_task(http_server.serve())
    try:
        while not http_server.started:
            if serving.done():
                serving.result()
                raise RuntimeError("MCP test server exited before it started")
            await asyncio.sleep(0.01)
        yield f"http://127.0.0.1:{port}/mcp"
    finally:
        http_server.should_exit = True
        await serving
