from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from typing import Any, Sequence

from mcp_orchestrator.app.core.errors import describe_failure, is_method_not_found
from mcp_orchestrator.app.core.events import (
    ChatConfigurationEvent,
    EventBus,
    PromptConfigurationEvent,
)
from mcp_orchestrator.app.core.logger import get_logger
from mcp_orchestrator.app.core.transport import McpClientFactory
from mcp_orchestrator.app.models.prompt_models import McpPrompt, PromptArgument, PromptSnapshot
from mcp_orchestrator.app.services.server_identity import (
    ServerNameRegistry,
    derive_server_id,
    extract_server_name,
)


logger = get_logger(__name__)


class DiscoveryState(str, enum.Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    PUBLISHED = "published"


@dataclass(frozen=True)
class ServerPromptOutcome:
    url: str
    server_id: str
    prompts: tuple[McpPrompt, ...] = ()
    supported: bool = True
    failed: bool = False


def convert_prompt_argument(argument: Any) -> PromptArgument:
    return PromptArgument(
        name=argument.name,
        description=getattr(argument, "description", None),
        required=bool(getattr(argument, "required", None) or False),
    )


def convert_prompt(server_id: str, server_name: str, prompt: Any) -> McpPrompt:
    return McpPrompt(
        server_id=server_id,
        server_name=server_name,
        name=prompt.name,
        description=getattr(prompt, "description", None),
        arguments=tuple(convert_prompt_argument(arg) for arg in (getattr(prompt, "arguments", None) or [])),
    )


class PromptDiscoveryService:
    """Keeps an in-memory catalog of prompts offered by the configured MCP servers.

    A pass builds a brand-new ``PromptSnapshot`` and publishes it with a single
    assignment, so readers see either the previous catalog or the new one.
    """

    def __init__(
        self,
        service_urls: Sequence[str],
        client_factory: McpClientFactory,
        server_names: ServerNameRegistry,
        event_bus: EventBus | None = None,
    ) -> None:
        self._service_urls = tuple(service_urls)
        self._client_factory = client_factory
        self._server_names = server_names
        self._event_bus = event_bus
        self._snapshot = PromptSnapshot()
        self._state = DiscoveryState.IDLE
        self._pass_lock = asyncio.Lock()

        if event_bus is not None:
            event_bus.subscribe(ChatConfigurationEvent, self.on_chat_configuration_ready)

    @property
    def state(self) -> DiscoveryState:
        return self._state

    @property
    def snapshot(self) -> PromptSnapshot:
        return self._snapshot

    async def on_chat_configuration_ready(self, event: ChatConfigurationEvent) -> None:
        if not self._service_urls:
            logger.debug("No MCP service URLs configured, skipping prompt discovery")
            return
        logger.info("Starting prompt discovery for %d MCP servers", len(self._service_urls))
        await self.discover_all()

    async def discover_all(self, urls: Sequence[str] | None = None) -> PromptSnapshot:
        targets = tuple(self._service_urls if urls is None else urls)
        if not targets:
            return self._snapshot

        async with self._pass_lock:
            self._state = DiscoveryState.DISCOVERING
            try:
                outcomes = await asyncio.gather(*(self._discover_server(url) for url in targets))

                prompts_by_server: dict[str, list[McpPrompt]] = {}
                servers_without_prompts = 0
                for outcome in outcomes:
                    if outcome.prompts:
                        prompts_by_server.setdefault(outcome.server_id, []).extend(outcome.prompts)
                    else:
                        servers_without_prompts += 1

                snapshot = PromptSnapshot.build(prompts_by_server, servers_without_prompts)
                self._snapshot = snapshot
            finally:
                self._state = DiscoveryState.PUBLISHED

        logger.info(
            "Prompt discovery completed. Total prompts: %d, Servers with prompts: %d, "
            "Servers without prompts: %d (unsupported: %d, failed: %d)",
            snapshot.prompt_count,
            snapshot.server_count,
            snapshot.servers_without_prompts,
            sum(1 for outcome in outcomes if not outcome.supported),
            sum(1 for outcome in outcomes if outcome.failed),
        )

        if self._event_bus is not None:
            await self._event_bus.publish(
                PromptConfigurationEvent(
                    total_prompts=snapshot.prompt_count,
                    servers_with_prompts=snapshot.server_count,
                    available=snapshot.prompt_count > 0,
                    prompts_by_server=snapshot.prompts_by_server,
                )
            )
        return snapshot

    async def _discover_server(self, url: str) -> ServerPromptOutcome:
        server_id = derive_server_id(url)
        server_name = self._server_names.resolve_display_name(url, server_id)

        try:
            async with self._client_factory.create_connection(url) as connection:
                init_result = await connection.initialize()

                reported_name = extract_server_name(init_result)
                if reported_name:
                    self._server_names.record(url, reported_name)
                    server_name = reported_name
                    logger.debug("Updated server name '%s' for MCP server at %s", reported_name, url)

                remote_prompts = await connection.list_prompts()
        except Exception as exc:
            if is_method_not_found(exc):
                logger.debug("Server '%s' (%s) does not support prompts", server_name, url)
                return ServerPromptOutcome(url=url, server_id=server_id, supported=False)
            logger.warning(
                "Failed to discover prompts from server '%s' (%s): %s",
                server_name,
                url,
                describe_failure(exc),
            )
            return ServerPromptOutcome(url=url, server_id=server_id, failed=True)

        prompts = []
        for remote_prompt in remote_prompts:
            if not getattr(remote_prompt, "name", None):
                logger.warning("Skipping unnamed prompt from server '%s' (%s)", server_name, url)
                continue
            prompts.append(convert_prompt(server_id, server_name, remote_prompt))

        if prompts:
            logger.debug("Discovered %d prompts from server '%s' (%s)", len(prompts), server_name, url)
        else:
            logger.debug("Server '%s' (%s) returned no prompts", server_name, url)
        return ServerPromptOutcome(url=url, server_id=server_id, prompts=tuple(prompts))

    def get_all_prompts(self) -> list[McpPrompt]:
        return list(self._snapshot.prompts_by_id.values())

    def get_prompts_by_server(self) -> dict[str, list[McpPrompt]]:
        return {server_id: list(prompts) for server_id, prompts in self._snapshot.prompts_by_server.items()}

    def find_prompt_by_id(self, prompt_id: str) -> McpPrompt | None:
        return self._snapshot.prompts_by_id.get(prompt_id)

    def find_prompts_by_server(self, server_id: str) -> list[McpPrompt]:
        return list(self._snapshot.prompts_by_server.get(server_id, ()))

    def get_prompt_count(self) -> int:
        return self._snapshot.prompt_count

    def get_server_count(self) -> int:
        return self._snapshot.server_count

    def has_prompts(self) -> bool:
        return self._snapshot.prompt_count > 0
