import logging

import pytest
from mcp import types
from mcp.server.fastmcp import FastMCP
from mcp.shared.exceptions import McpError

from conftest import serve_mcp
from mcp_orchestrator.app.core.transport import McpClientFactory
from mcp_orchestrator.app.services.health_prober import HealthProber
from mcp_orchestrator.app.services.prompt_discovery import PromptDiscoveryService
from mcp_orchestrator.app.services.prompt_resolution import PromptResolutionService
from mcp_orchestrator.app.services.server_identity import ServerNameRegistry, derive_server_id


def _weather_server() -> FastMCP:
    server = FastMCP("Weather Srv")

    @server.tool()
    def lookup(city: str) -> str:
        """Looks up weather"""
        return f"Sunny in {city}"

    @server.prompt()
    def greet(name: str) -> str:
        """Greets someone"""
        return f"Hello {name}"

    return server


def _factory() -> McpClientFactory:
    return McpClientFactory(request_timeout_sec=10.0, health_timeout_sec=10.0, sse_read_timeout_sec=30.0)


@pytest.mark.asyncio
async def test_handshake_reports_server_name_and_prompt_capability():
    async with serve_mcp(_weather_server()) as url:
        async with _factory().create_connection(url) as connection:
            init_result = await connection.initialize()
            prompts = await connection.list_prompts()

    assert isinstance(init_result, types.InitializeResult)
    assert init_result.serverInfo.name == "Weather Srv"
    assert connection.supports_prompts()
    assert [prompt.name for prompt in prompts] == ["greet"]


@pytest.mark.asyncio
async def test_health_check_records_reported_name_and_tools():
    registry = ServerNameRegistry()
    prober = HealthProber(_factory(), registry)

    async with serve_mcp(_weather_server()) as url:
        agent = await prober.probe("weather", url)

    assert agent.healthy
    assert agent.server_name == "Weather Srv"
    assert [(tool.name, tool.description) for tool in agent.tools] == [("lookup", "Looks up weather")]
    assert registry.get(url) == "Weather Srv"


@pytest.mark.asyncio
async def test_discovered_prompts_carry_reported_name_and_resolve():
    factory = _factory()

    async with serve_mcp(_weather_server()) as url:
        discovery = PromptDiscoveryService([url], factory, ServerNameRegistry())
        await discovery.discover_all()
        resolution = PromptResolutionService(discovery, [url], factory)
        resolved = await resolution.resolve(f"{derive_server_id(url)}:greet", {"name": "Ada"})

    prompt = discovery.find_prompt_by_id(f"{derive_server_id(url)}:greet")
    assert prompt.server_name == "Weather Srv"
    assert [(arg.name, arg.required) for arg in prompt.arguments] == [("name", True)]
    assert resolved.content == "Hello Ada"
    assert [message.role for message in resolved.messages] == ["user"]


@pytest.mark.asyncio
async def test_rejected_prompt_listing_is_treated_as_unsupported(caplog):
    server = _weather_server()

    async def reject_prompt_listing(request):
        raise McpError(types.ErrorData(code=types.METHOD_NOT_FOUND, message="Method not found"))

    # Prompts stay advertised in the handshake, but prompts/list is refused.
    server._mcp_server.request_handlers[types.ListPromptsRequest] = reject_prompt_listing

    with caplog.at_level(logging.DEBUG, logger="mcp_orchestrator"):
        async with serve_mcp(server) as url:
            discovery = PromptDiscoveryService([url], _factory(), ServerNameRegistry())
            snapshot = await discovery.discover_all()

    ours = [record for record in caplog.records if record.name.startswith("mcp_orchestrator")]
    assert snapshot.prompt_count == 0
    assert any("does not support prompts" in record.getMessage() for record in ours)
    assert not [record for record in ours if record.levelno >= logging.WARNING]
