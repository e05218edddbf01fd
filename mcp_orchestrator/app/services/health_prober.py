from __future__ import annotations

import asyncio
from time import perf_counter
from typing import Sequence

from mcp_orchestrator.app.core.errors import describe_failure
from mcp_orchestrator.app.core.logger import get_logger
from mcp_orchestrator.app.core.transport import McpClientFactory
from mcp_orchestrator.app.models.agent_models import Agent, ProbeReport, Tool
from mcp_orchestrator.app.services.server_identity import ServerNameRegistry, extract_server_name


logger = get_logger(__name__)


class HealthProber:
    """Checks every configured MCP server and records which ones can serve tools.

    Probing never raises: an unreachable server becomes an unhealthy Agent
    with no tools, and the rest of the pass carries on.
    """

    def __init__(self, client_factory: McpClientFactory, server_names: ServerNameRegistry) -> None:
        self._client_factory = client_factory
        self._server_names = server_names
        self._report = ProbeReport()

    def report(self) -> ProbeReport:
        return self._report

    def agents(self) -> tuple[Agent, ...]:
        return self._report.agents

    def healthy_urls(self) -> tuple[str, ...]:
        return self._report.healthy_urls

    async def probe(self, service_name: str, service_url: str) -> Agent:
        started = perf_counter()
        server_name = self._server_names.resolve_display_name(service_url, service_name)

        try:
            async with self._client_factory.create_health_connection(service_url) as connection:
                init_result = await connection.initialize()

                reported_name = extract_server_name(init_result)
                if reported_name:
                    self._server_names.record(service_url, reported_name)
                    server_name = reported_name

                try:
                    remote_tools = await connection.list_tools()
                except Exception as exc:
                    logger.warning(
                        "MCP server '%s' (%s) is reachable but listing tools failed: %s",
                        service_name,
                        service_url,
                        describe_failure(exc),
                    )
                    remote_tools = []
        except Exception as exc:
            logger.warning(
                "MCP server '%s' (%s) failed health check: %s",
                service_name,
                service_url,
                describe_failure(exc),
            )
            return Agent(name=service_name, server_name=server_name, healthy=False, tools=())

        tools = tuple(
            Tool(name=tool.name, description=getattr(tool, "description", "") or "")
            for tool in remote_tools
        )
        logger.debug(
            "MCP server '%s' (%s) healthy with %d tools in %d ms",
            server_name,
            service_url,
            len(tools),
            int((perf_counter() - started) * 1000),
        )
        return Agent(name=service_name, server_name=server_name, healthy=True, tools=tools)

    async def probe_all(self, service_names: Sequence[str], service_urls: Sequence[str]) -> ProbeReport:
        if len(service_names) != len(service_urls):
            logger.warning(
                "Configured %d MCP service names but %d URLs; probing only the first %d pairs",
                len(service_names),
                len(service_urls),
                min(len(service_names), len(service_urls)),
            )
        pairs = list(zip(service_names, service_urls))

        agents = await asyncio.gather(*(self.probe(name, url) for name, url in pairs))

        report = ProbeReport(
            agents=tuple(agents),
            healthy_urls=tuple(url for (_, url), agent in zip(pairs, agents) if agent.healthy),
        )
        self._report = report
        logger.info(
            "MCP health check completed: %d of %d servers healthy",
            report.healthy_count,
            len(report.agents),
        )
        return report
