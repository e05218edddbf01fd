from __future__ import annotations

from dataclasses import dataclass

from mcp_orchestrator.app.core.events import (
    ChatConfigurationEvent,
    EventBus,
    PromptConfigurationEvent,
)
from mcp_orchestrator.app.core.logger import get_logger
from mcp_orchestrator.app.models.agent_models import Agent


logger = get_logger(__name__)


@dataclass(frozen=True)
class PromptMetrics:
    total: int = 0
    servers_with_prompts: int = 0
    available: bool = False


@dataclass(frozen=True)
class Metrics:
    chat_model: str
    agents: tuple[Agent, ...]
    prompts: PromptMetrics


class MetricsService:
    """Read-only rollup of what the startup passes published."""

    def __init__(self, event_bus: EventBus) -> None:
        self._chat_model = ""
        self._agents: tuple[Agent, ...] = ()
        self._prompts = PromptMetrics()
        event_bus.subscribe(ChatConfigurationEvent, self.handle_chat_configuration)
        event_bus.subscribe(PromptConfigurationEvent, self.handle_prompt_configuration)

    def handle_chat_configuration(self, event: ChatConfigurationEvent) -> None:
        self._chat_model = event.chat_model or ""
        self._agents = tuple(event.agents or ())

    def handle_prompt_configuration(self, event: PromptConfigurationEvent) -> None:
        self._prompts = PromptMetrics(
            total=event.total_prompts,
            servers_with_prompts=event.servers_with_prompts,
            available=event.available,
        )

    def get_metrics(self) -> Metrics:
        logger.debug("Retrieving metrics snapshot")
        return Metrics(chat_model=self._chat_model, agents=self._agents, prompts=self._prompts)
