from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mcp_orchestrator.app.models.prompt_models import (
    McpPrompt,
    PromptArgument,
    PromptMessage,
    ResolvedPrompt,
)


class PromptArgumentOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str | None = None
    required: bool = False
    default_value: Any = Field(default=None, alias="defaultValue")
    schema_: Any = Field(default=None, alias="schema")

    @classmethod
    def from_argument(cls, argument: PromptArgument) -> "PromptArgumentOut":
        return cls(
            name=argument.name,
            description=argument.description,
            required=argument.required,
            default_value=argument.default_value,
            schema_=argument.schema,
        )


class McpPromptOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    server_id: str = Field(alias="serverId")
    server_name: str = Field(alias="serverName")
    name: str
    description: str | None = None
    arguments: list[PromptArgumentOut] = Field(default_factory=list)

    @classmethod
    def from_prompt(cls, prompt: McpPrompt) -> "McpPromptOut":
        return cls(
            id=prompt.id,
            server_id=prompt.server_id,
            server_name=prompt.server_display_name,
            name=prompt.name,
            description=prompt.description,
            arguments=[PromptArgumentOut.from_argument(arg) for arg in prompt.arguments],
        )


class PromptMessageOut(BaseModel):
    role: str
    content: str

    @classmethod
    def from_message(cls, message: PromptMessage) -> "PromptMessageOut":
        return cls(role=message.role, content=message.content)


class ResolvedPromptOut(BaseModel):
    content: str
    messages: list[PromptMessageOut] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_resolved(cls, resolved: ResolvedPrompt) -> "ResolvedPromptOut":
        messages = None
        if resolved.messages is not None:
            messages = [PromptMessageOut.from_message(message) for message in resolved.messages]
        return cls(content=resolved.content, messages=messages, metadata=dict(resolved.metadata))


class PromptResolutionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt_id: str = Field(alias="promptId")
    arguments: dict[str, Any] = Field(default_factory=dict)

    @field_validator("prompt_id")
    @classmethod
    def validate_prompt_id(cls, value: str) -> str:
        prompt_id = value.strip()
        if not prompt_id:
            raise ValueError("promptId must not be blank")
        return prompt_id

    @field_validator("arguments", mode="before")
    @classmethod
    def default_arguments(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def server_id(self) -> str | None:
        if ":" not in self.prompt_id:
            return None
        return self.prompt_id.rsplit(":", 1)[0]

    @property
    def prompt_name(self) -> str:
        if ":" not in self.prompt_id:
            return self.prompt_id
        return self.prompt_id.rsplit(":", 1)[1]


class PromptStatusOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt_count: int = Field(alias="promptCount")
    server_count: int = Field(alias="serverCount")
    available: bool


class ErrorResponse(BaseModel):
    code: str
    message: str
    missing: list[str] | None = None
