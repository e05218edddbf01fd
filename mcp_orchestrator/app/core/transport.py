from __future__ import annotations

import asyncio
import json
from contextlib import AsyncExitStack
from datetime import timedelta
from typing import Any, Callable, Mapping
from urllib.parse import urlparse

from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import GetPromptResult, InitializeResult, Prompt, Tool

from mcp_orchestrator.app.core.logger import get_logger


logger = get_logger(__name__)

_MAX_PAGES = 50


def to_wire_arguments(arguments: Mapping[str, Any] | None) -> dict[str, str]:
    """Prompt arguments travel as strings on the wire."""
    wire: dict[str, str] = {}
    for name, value in (arguments or {}).items():
        if value is None:
            wire[name] = ""
        elif isinstance(value, str):
            wire[name] = value
        else:
            wire[name] = json.dumps(value)
    return wire


def uses_sse_transport(url: str) -> bool:
    return urlparse(url).path.rstrip("/").endswith("/sse")


def open_transport(url: str, timeout_sec: float, sse_read_timeout_sec: float):
    """Async context manager yielding the read/write streams for ``url``.

    URLs ending in ``/sse`` use the legacy SSE transport; everything else
    uses streamable HTTP.
    """
    if uses_sse_transport(url):
        return sse_client(url, timeout=timeout_sec, sse_read_timeout=sse_read_timeout_sec)
    return streamablehttp_client(
        url,
        timeout=timedelta(seconds=timeout_sec),
        sse_read_timeout=timedelta(seconds=sse_read_timeout_sec),
    )


class McpConnection:
    """One short-lived session against a single MCP server.

    Every request is bounded by ``timeout_sec``. Instances are never reused
    across operations; open one, do the work, close it. The transport and the
    session are entered and exited from the task that owns the connection.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_sec: float,
        sse_read_timeout_sec: float,
        transport_factory: Callable[[str, float, float], Any] = open_transport,
        session_cls: type = ClientSession,
    ) -> None:
        self.url = url
        self.timeout_sec = timeout_sec
        self.sse_read_timeout_sec = sse_read_timeout_sec
        self._transport_factory = transport_factory
        self._session_cls = session_cls
        self._stack = AsyncExitStack()
        self._session: Any = None
        self._initialize_result: InitializeResult | None = None
        self._closed = False

    async def __aenter__(self) -> "McpConnection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _bounded(self, awaitable):
        return await asyncio.wait_for(awaitable, timeout=self.timeout_sec)

    def _require_session(self) -> Any:
        if self._session is None:
            raise RuntimeError(f"MCP connection to {self.url} is not initialized")
        return self._session

    async def initialize(self) -> InitializeResult:
        """Connect and perform the protocol handshake."""
        if self._closed:
            raise RuntimeError(f"MCP connection to {self.url} is closed")
        streams = await self._stack.enter_async_context(
            self._transport_factory(self.url, self.timeout_sec, self.sse_read_timeout_sec)
        )
        read_stream, write_stream = streams[0], streams[1]
        session = await self._stack.enter_async_context(
            self._session_cls(
                read_stream,
                write_stream,
                read_timeout_seconds=timedelta(seconds=self.timeout_sec),
            )
        )
        self._session = session
        self._initialize_result = await self._bounded(session.initialize())
        return self._initialize_result

    @property
    def initialize_result(self) -> InitializeResult | None:
        return self._initialize_result

    def supports_prompts(self) -> bool:
        if self._initialize_result is None:
            return True
        capabilities = self._initialize_result.capabilities
        return capabilities is not None and capabilities.prompts is not None

    async def _paginate(self, list_page: Callable[..., Any], field: str) -> list[Any]:
        items: list[Any] = []
        cursor: str | None = None
        for _ in range(_MAX_PAGES):
            if cursor is None:
                result = await self._bounded(list_page())
            else:
                result = await self._bounded(list_page(cursor))
            items.extend(getattr(result, field, None) or [])
            cursor = getattr(result, "nextCursor", None)
            if not cursor:
                return items

        logger.warning("Stopped paging %s from %s after %d pages", field, self.url, _MAX_PAGES)
        return items

    async def list_tools(self) -> list[Tool]:
        return await self._paginate(self._require_session().list_tools, "tools")

    async def list_prompts(self) -> list[Prompt]:
        session = self._require_session()
        if not self.supports_prompts():
            return []
        return await self._paginate(session.list_prompts, "prompts")

    async def get_prompt(self, name: str, arguments: Mapping[str, Any] | None) -> GetPromptResult:
        session = self._require_session()
        return await self._bounded(session.get_prompt(name, to_wire_arguments(arguments)))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._session = None
        try:
            await self._stack.aclose()
        except Exception as exc:
            logger.debug("Ignoring error while closing MCP connection to %s: %s", self.url, exc)


class McpClientFactory:
    """Reusable builder for per-call MCP connections."""

    def __init__(
        self,
        *,
        request_timeout_sec: float = 30.0,
        health_timeout_sec: float = 10.0,
        sse_read_timeout_sec: float = 300.0,
        transport_factory: Callable[[str, float, float], Any] = open_transport,
        session_cls: type = ClientSession,
    ) -> None:
        self.request_timeout_sec = request_timeout_sec
        self.health_timeout_sec = health_timeout_sec
        self.sse_read_timeout_sec = sse_read_timeout_sec
        self._transport_factory = transport_factory
        self._session_cls = session_cls

    def create_connection(self, url: str, *, timeout_sec: float | None = None) -> McpConnection:
        return McpConnection(
            url,
            timeout_sec=self.request_timeout_sec if timeout_sec is None else timeout_sec,
            sse_read_timeout_sec=self.sse_read_timeout_sec,
            transport_factory=self._transport_factory,
            session_cls=self._session_cls,
        )

    def create_health_connection(self, url: str) -> McpConnection:
        return self.create_connection(url, timeout_sec=self.health_timeout_sec)
