from urllib.parse import unquote

from fastapi import APIRouter, HTTPException

from mcp_orchestrator.app.core.errors import (
    MissingRequiredArguments,
    PromptNotFound,
    PromptResolutionError,
    PromptResolutionFailed,
    ServerUnavailable,
)
from mcp_orchestrator.app.core.logger import get_logger
from mcp_orchestrator.app.schemas.prompts import (
    ErrorResponse,
    McpPromptOut,
    PromptResolutionRequest,
    PromptStatusOut,
    ResolvedPromptOut,
)


logger = get_logger(__name__)

_STATUS_BY_ERROR: dict[type, int] = {
    PromptNotFound: 404,
    MissingRequiredArguments: 400,
    ServerUnavailable: 503,
    PromptResolutionFailed: 502,
}


def _error_detail(exc: PromptResolutionError) -> dict:
    missing = exc.missing if isinstance(exc, MissingRequiredArguments) else None
    return ErrorResponse(code=exc.code, message=str(exc), missing=missing).model_dump(exclude_none=True)


def create_prompts_router(prompt_discovery, prompt_resolution) -> APIRouter:
    router = APIRouter()

    @router.get(
        "/prompts",
        summary="List Prompts",
        description="All prompts discovered across MCP servers.",
        response_model=list[McpPromptOut],
        response_model_by_alias=True,
    )
    def list_all_prompts() -> list[McpPromptOut]:
        prompts = prompt_discovery.get_all_prompts()
        logger.debug("Retrieved %d prompts from all servers", len(prompts))
        return [McpPromptOut.from_prompt(prompt) for prompt in prompts]

    @router.get(
        "/prompts/by-server",
        summary="List Prompts By Server",
        description="Discovered prompts grouped by server id.",
        response_model=dict[str, list[McpPromptOut]],
        response_model_by_alias=True,
    )
    def list_prompts_by_server() -> dict[str, list[McpPromptOut]]:
        return {
            server_id: [McpPromptOut.from_prompt(prompt) for prompt in prompts]
            for server_id, prompts in prompt_discovery.get_prompts_by_server().items()
        }

    @router.get(
        "/prompts/status",
        summary="Prompt Discovery Status",
        response_model=PromptStatusOut,
        response_model_by_alias=True,
    )
    def get_prompt_status() -> PromptStatusOut:
        return PromptStatusOut(
            prompt_count=prompt_discovery.get_prompt_count(),
            server_count=prompt_discovery.get_server_count(),
            available=prompt_discovery.has_prompts(),
        )

    @router.get(
        "/prompts/servers/{server_id}",
        summary="List Server Prompts",
        description="Prompts from one server; empty when the server is unknown.",
        response_model=list[McpPromptOut],
        response_model_by_alias=True,
    )
    def list_prompts_for_server(server_id: str) -> list[McpPromptOut]:
        prompts = prompt_discovery.find_prompts_by_server(server_id)
        logger.debug("Retrieved %d prompts from server %s", len(prompts), server_id)
        return [McpPromptOut.from_prompt(prompt) for prompt in prompts]

    @router.get(
        "/prompts/{prompt_id}",
        summary="Get Prompt",
        description="One prompt by its namespaced id (serverId:promptName).",
        response_model=McpPromptOut,
        response_model_by_alias=True,
    )
    def get_prompt(prompt_id: str) -> McpPromptOut:
        decoded_id = unquote(prompt_id)
        prompt = prompt_discovery.find_prompt_by_id(decoded_id)
        if prompt is None:
            raise HTTPException(status_code=404, detail=_error_detail(PromptNotFound(decoded_id)))
        return McpPromptOut.from_prompt(prompt)

    @router.post(
        "/prompts/resolve",
        summary="Resolve Prompt",
        description="Resolve a prompt on its owning server with the supplied arguments.",
        response_model=ResolvedPromptOut,
    )
    async def resolve_prompt(request: PromptResolutionRequest) -> ResolvedPromptOut:
        logger.info(
            "Resolving prompt '%s' on server '%s' with %d arguments",
            request.prompt_name,
            request.server_id,
            len(request.arguments),
        )
        try:
            resolved = await prompt_resolution.resolve_prompt(request)
        except PromptResolutionError as exc:
            logger.warning("Prompt resolution failed: %s", exc)
            status_code = _STATUS_BY_ERROR.get(type(exc), 400)
            raise HTTPException(status_code=status_code, detail=_error_detail(exc)) from exc
        except Exception as exc:
            logger.error("Unexpected error resolving prompt %s: %s", request.prompt_id, exc, exc_info=True)
            detail = ErrorResponse(code="INTERNAL_ERROR", message=str(exc)).model_dump(exclude_none=True)
            raise HTTPException(status_code=500, detail=detail) from exc
        return ResolvedPromptOut.from_resolved(resolved)

    return router
