from __future__ import annotations

import asyncio

import httpx
from mcp.shared.exceptions import McpError
from mcp.types import METHOD_NOT_FOUND


class PromptResolutionError(Exception):
    """Base class for every failure surfaced by prompt resolution."""

    code = "PROMPT_RESOLUTION_ERROR"


class PromptNotFound(PromptResolutionError):
    code = "PROMPT_NOT_FOUND"

    def __init__(self, prompt_id: str) -> None:
        super().__init__(f"Prompt not found: {prompt_id}")
        self.prompt_id = prompt_id


class MissingRequiredArguments(PromptResolutionError):
    code = "MISSING_REQUIRED_ARGUMENTS"

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing required arguments: {', '.join(missing)}")
        self.missing = list(missing)


class ServerUnavailable(PromptResolutionError):
    code = "SERVER_UNAVAILABLE"

    def __init__(self, server_id: str) -> None:
        super().__init__(f"Server not found for prompt: {server_id}")
        self.server_id = server_id


class PromptResolutionFailed(PromptResolutionError):
    code = "PROMPT_RESOLUTION_FAILED"

    def __init__(self, prompt_id: str, cause: BaseException) -> None:
        super().__init__(f"Failed to resolve prompt {prompt_id}: {describe_failure(cause)}")
        self.prompt_id = prompt_id
        self.cause = cause


def is_method_not_found(exc: BaseException) -> bool:
    """True when a server rejected a request because it does not implement the method."""
    if isinstance(exc, McpError):
        error_data = getattr(exc, "error", None)
        code = getattr(error_data, "code", None)
        if code is not None:
            return code == METHOD_NOT_FOUND
    # No structured code to go on; fall back to the JSON-RPC message text.
    return "method not found" in str(exc).lower()


def describe_failure(exc: BaseException) -> str:
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return "timed out"
    if isinstance(exc, httpx.ConnectError):
        return f"connection failed ({exc})"
    if isinstance(exc, McpError):
        code = getattr(getattr(exc, "error", None), "code", None)
        return f"protocol error {code}: {exc}"
    if isinstance(exc, OSError):
        return f"connection failed ({exc})"
    return f"{type(exc).__name__}: {exc}"
