from __future__ import annotations

from dataclasses import dataclass

from mcp_orchestrator.app.core.events import ChatConfigurationEvent, EventBus
from mcp_orchestrator.app.core.logger import get_logger
from mcp_orchestrator.app.core.transport import McpClientFactory
from mcp_orchestrator.app.models.agent_models import ProbeReport
from mcp_orchestrator.app.services.chat_runtime import ChatService
from mcp_orchestrator.app.services.health_prober import HealthProber
from mcp_orchestrator.app.services.metrics_service import MetricsService
from mcp_orchestrator.app.services.prompt_discovery import PromptDiscoveryService
from mcp_orchestrator.app.services.prompt_resolution import PromptResolutionService
from mcp_orchestrator.app.services.server_identity import ServerNameRegistry
from mcp_orchestrator.env import OrchestratorEnv


logger = get_logger(__name__)


@dataclass
class McpOrchestrator:
    env: OrchestratorEnv
    event_bus: EventBus
    client_factory: McpClientFactory
    server_names: ServerNameRegistry
    health_prober: HealthProber
    metrics: MetricsService
    prompt_discovery: PromptDiscoveryService
    prompt_resolution: PromptResolutionService
    chat: ChatService

    async def start(self) -> ProbeReport:
        """Health pass first; its event then drives prompt discovery and metrics."""
        report = await self.health_prober.probe_all(self.env.mcp_service_names, self.env.mcp_service_urls)
        await self.event_bus.publish(
            ChatConfigurationEvent(
                chat_model=self.env.chat_model,
                agents=report.agents,
                healthy_urls=report.healthy_urls,
            )
        )
        return report


def build_orchestrator(env: OrchestratorEnv, client_factory: McpClientFactory | None = None) -> McpOrchestrator:
    event_bus = EventBus()
    factory = client_factory or McpClientFactory(
        request_timeout_sec=env.request_timeout_sec,
        health_timeout_sec=env.health_timeout_sec,
        sse_read_timeout_sec=env.sse_read_timeout_sec,
    )
    server_names = ServerNameRegistry()
    health_prober = HealthProber(factory, server_names)
    # Metrics subscribes first so it records the chat configuration before discovery runs.
    metrics = MetricsService(event_bus)
    prompt_discovery = PromptDiscoveryService(env.mcp_service_urls, factory, server_names, event_bus)
    prompt_resolution = PromptResolutionService(prompt_discovery, env.mcp_service_urls, factory)
    chat = ChatService(
        health_prober,
        chat_model=env.chat_model,
        ollama_base_url=env.ollama_base_url,
        temperature=env.chat_temperature,
    )
    logger.debug("Built orchestrator for %d configured MCP servers", len(env.mcp_service_urls))
    return McpOrchestrator(
        env=env,
        event_bus=event_bus,
        client_factory=factory,
        server_names=server_names,
        health_prober=health_prober,
        metrics=metrics,
        prompt_discovery=prompt_discovery,
        prompt_resolution=prompt_resolution,
        chat=chat,
    )
