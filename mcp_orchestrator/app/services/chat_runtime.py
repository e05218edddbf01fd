from __future__ import annotations

import logging
from typing import Any, Callable

from langchain_core.callbacks import BaseCallbackHandler
from langchain_ollama import ChatOllama
from mcp_use import MCPAgent, MCPClient

from mcp_orchestrator.app.core.logger import get_logger
from mcp_orchestrator.app.services.health_prober import HealthProber
from mcp_orchestrator.app.services.server_identity import derive_server_id


logger = get_logger(__name__)


class LLMDebugCallback(BaseCallbackHandler):
    def on_llm_start(self, serialized, prompts, **kwargs):
        for prompt in prompts:
            logger.debug("LLM prompt sent:\n%s", prompt)

    def on_llm_end(self, response, **kwargs):
        logger.debug("Raw LLM response: %s", response)


def build_mcp_config(server_urls: tuple[str, ...] | list[str]) -> dict[str, dict[str, dict[str, Any]]]:
    servers: dict[str, dict[str, Any]] = {}
    for url in server_urls:
        key = derive_server_id(url)
        if key in servers:
            key = f"{key}#{len(servers)}"
        servers[key] = {"url": url}
    return {"mcpServers": servers}


class ChatService:
    """One chat turn against the model, with tools from the currently healthy MCP servers only."""

    def __init__(
        self,
        prober: HealthProber,
        *,
        chat_model: str,
        ollama_base_url: str,
        temperature: float = 0.0,
        llm_factory: Callable[[], Any] | None = None,
        client_cls: type = MCPClient,
        agent_cls: type = MCPAgent,
    ) -> None:
        self._prober = prober
        self._chat_model = chat_model
        self._ollama_base_url = ollama_base_url
        self._temperature = temperature
        self._llm_factory = llm_factory or self._build_llm
        self._client_cls = client_cls
        self._agent_cls = agent_cls

    @property
    def chat_model(self) -> str:
        return self._chat_model

    def _callbacks(self) -> list[BaseCallbackHandler]:
        return [LLMDebugCallback()] if logger.isEnabledFor(logging.DEBUG) else []

    def _build_llm(self) -> ChatOllama:
        return ChatOllama(
            model=self._chat_model,
            base_url=self._ollama_base_url,
            temperature=self._temperature,
            callbacks=self._callbacks(),
        )

    async def chat(self, message: str) -> str:
        llm = self._llm_factory()
        healthy_urls = self._prober.healthy_urls()

        if not healthy_urls:
            logger.info("No healthy MCP servers; answering without tools")
            response = await llm.ainvoke(message)
            return getattr(response, "content", response)

        client = self._client_cls(build_mcp_config(healthy_urls))
        try:
            agent = self._agent_cls(llm=llm, client=client, callbacks=self._callbacks())
            logger.info("Chat request using %d healthy MCP servers", len(healthy_urls))
            return await agent.run(message)
        finally:
            await client.close_all_sessions()
