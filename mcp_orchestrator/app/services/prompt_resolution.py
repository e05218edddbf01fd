from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

from mcp_orchestrator.app.core.errors import (
    MissingRequiredArguments,
    PromptNotFound,
    PromptResolutionFailed,
    ServerUnavailable,
)
from mcp_orchestrator.app.core.logger import get_logger
from mcp_orchestrator.app.core.transport import McpClientFactory
from mcp_orchestrator.app.models.prompt_models import (
    ROLE_USER,
    McpPrompt,
    PromptMessage,
    ResolvedPrompt,
)
from mcp_orchestrator.app.services.prompt_discovery import PromptDiscoveryService
from mcp_orchestrator.app.services.server_identity import derive_server_id


logger = get_logger(__name__)


def _render_text(content: Any) -> str:
    return getattr(content, "text", "") or ""


def _render_image(content: Any) -> str:
    return f"[Image: {getattr(content, 'mimeType', None)}]"


def _render_resource(content: Any) -> str:
    resource = getattr(content, "resource", None)
    return f"[Resource: {getattr(resource, 'uri', None)}]"


_CONTENT_RENDERERS: dict[str, Callable[[Any], str]] = {
    "text": _render_text,
    "image": _render_image,
    "resource": _render_resource,
}


def render_content(content: Any) -> str:
    """Flatten one message content block into display text."""
    renderer = _CONTENT_RENDERERS.get(getattr(content, "type", None))
    if renderer is None:
        return f"[{type(content).__name__} content]"
    return renderer(content)


def convert_message(message: Any) -> PromptMessage:
    role = getattr(message, "role", None) or ROLE_USER
    return PromptMessage(role=str(role), content=render_content(getattr(message, "content", None)))


def convert_result(result: Any) -> ResolvedPrompt:
    description = getattr(result, "description", None)
    raw_messages = getattr(result, "messages", None)

    messages = None
    if raw_messages is not None:
        messages = tuple(convert_message(message) for message in raw_messages if message is not None)

    if messages:
        content = "\n\n".join(message.content for message in messages)
    else:
        content = description or ""

    metadata: dict[str, Any] = {}
    if description is not None:
        metadata["description"] = description
    return ResolvedPrompt(content=content, messages=messages, metadata=metadata)


def merge_default_arguments(prompt: McpPrompt, arguments: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(arguments)
    for argument in prompt.arguments:
        if argument.required or not argument.has_default_value or argument.name in merged:
            continue
        merged[argument.name] = argument.default_value
    return merged


class PromptResolutionService:
    """Turns a namespaced prompt id plus caller arguments into resolved prompt content."""

    def __init__(
        self,
        discovery: PromptDiscoveryService,
        service_urls: Sequence[str],
        client_factory: McpClientFactory,
    ) -> None:
        self._discovery = discovery
        self._service_urls = tuple(service_urls)
        self._client_factory = client_factory

    async def resolve(self, prompt_id: str, arguments: Mapping[str, Any] | None = None) -> ResolvedPrompt:
        logger.debug("Resolving prompt: %s", prompt_id)
        provided = dict(arguments or {})

        prompt = self._discovery.find_prompt_by_id(prompt_id)
        if prompt is None:
            raise PromptNotFound(prompt_id)

        self.validate_arguments(prompt, provided)

        server_url = self.find_server_url(prompt.server_id)
        if server_url is None:
            raise ServerUnavailable(prompt.server_id)

        return await self._resolve_with_server(server_url, prompt, provided)

    async def resolve_prompt(self, request: Any) -> ResolvedPrompt:
        return await self.resolve(request.prompt_id, request.arguments)

    def validate_arguments(self, prompt: McpPrompt, provided: Mapping[str, Any]) -> None:
        missing = [arg.name for arg in prompt.arguments if arg.required and arg.name not in provided]
        if missing:
            raise MissingRequiredArguments(missing)

        declared = {arg.name for arg in prompt.arguments}
        unknown = [name for name in provided if name not in declared]
        if unknown:
            logger.warning("Unknown arguments provided for prompt %s: %s", prompt.name, unknown)

        for name, value in provided.items():
            if value is None:
                logger.warning("Null value provided for argument: %s", name)
            elif isinstance(value, str) and not value.strip():
                logger.warning("Empty string provided for argument: %s", name)

    def find_server_url(self, server_id: str) -> str | None:
        for url in self._service_urls:
            if derive_server_id(url) == server_id:
                return url
        return None

    async def _resolve_with_server(
        self, server_url: str, prompt: McpPrompt, arguments: Mapping[str, Any]
    ) -> ResolvedPrompt:
        try:
            async with self._client_factory.create_connection(server_url) as connection:
                await connection.initialize()
                result = await connection.get_prompt(prompt.name, merge_default_arguments(prompt, arguments))
                return convert_result(result)
        except Exception as exc:
            logger.error(
                "Failed to resolve prompt %s on server %s: %s",
                prompt.name,
                server_url,
                exc,
                exc_info=True,
            )
            raise PromptResolutionFailed(prompt.id, exc) from exc
