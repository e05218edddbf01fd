from typing import Any

from fastapi import APIRouter, HTTPException, Query

from mcp_orchestrator.app.core.logger import get_logger


logger = get_logger(__name__)


def create_chat_router(chat_service) -> APIRouter:
    router = APIRouter()

    @router.get(
        "/chat",
        summary="Chat",
        description="Answer one message using the chat model and tools from healthy MCP servers.",
    )
    async def chat(chat: str = Query(min_length=1)) -> dict[str, Any]:
        try:
            result = await chat_service.chat(chat)
        except Exception as exc:
            logger.error("Chat request failed: %s", exc, exc_info=True)
            raise HTTPException(status_code=500, detail=f"Chat request failed: {exc}") from exc
        return {"response": result}

    return router
