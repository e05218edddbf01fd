from __future__ import annotations

import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from mcp_orchestrator.app.core.logger import get_logger
from mcp_orchestrator.app.models.agent_models import Agent
from mcp_orchestrator.app.models.prompt_models import McpPrompt


logger = get_logger(__name__)

Handler = Callable[[Any], Awaitable[None] | None]


@dataclass(frozen=True)
class ChatConfigurationEvent:
    """Published once the health pass has produced the agent set."""

    chat_model: str
    agents: tuple[Agent, ...] = ()
    healthy_urls: tuple[str, ...] = ()


@dataclass(frozen=True)
class PromptConfigurationEvent:
    """Published after every prompt discovery pass."""

    total_prompts: int
    servers_with_prompts: int
    available: bool
    prompts_by_server: Mapping[str, tuple[McpPrompt, ...]] = field(default_factory=dict)


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    async def publish(self, event: Any) -> None:
        for handler in list(self._handlers.get(type(event), [])):
            try:
                outcome = handler(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception(
                    "Handler %s failed for %s",
                    getattr(handler, "__qualname__", handler),
                    type(event).__name__,
                )
