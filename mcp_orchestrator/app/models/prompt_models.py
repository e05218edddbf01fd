from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


ROLE_USER = "user"


@dataclass(frozen=True)
class PromptArgument:
    name: str
    description: str | None = None
    required: bool = False
    # Not populated by the current prompts/list payload; kept for servers that add them.
    default_value: Any = None
    schema: Any = None

    @property
    def has_default_value(self) -> bool:
        return self.default_value is not None


@dataclass(frozen=True)
class McpPrompt:
    """A prompt discovered on one server, namespaced by that server's id."""

    server_id: str
    server_name: str
    name: str
    description: str | None = None
    arguments: tuple[PromptArgument, ...] = ()

    @property
    def id(self) -> str:
        return f"{self.server_id}:{self.name}"

    @property
    def has_arguments(self) -> bool:
        return bool(self.arguments)

    @property
    def required_argument_count(self) -> int:
        return sum(1 for argument in self.arguments if argument.required)

    @property
    def has_required_arguments(self) -> bool:
        return self.required_argument_count > 0

    @property
    def server_display_name(self) -> str:
        if self.server_name and self.server_name.strip():
            return self.server_name
        return self.server_id


@dataclass(frozen=True)
class PromptMessage:
    role: str
    content: str


@dataclass(frozen=True)
class ResolvedPrompt:
    content: str
    messages: tuple[PromptMessage, ...] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def has_messages(self) -> bool:
        return bool(self.messages)

    @property
    def primary_content(self) -> str:
        if self.messages:
            return self.messages[0].content
        return self.content


@dataclass(frozen=True)
class PromptSnapshot:
    """Both prompt views from one discovery pass, built together and never mutated."""

    prompts_by_server: Mapping[str, tuple[McpPrompt, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    prompts_by_id: Mapping[str, McpPrompt] = field(default_factory=lambda: MappingProxyType({}))
    servers_without_prompts: int = 0

    @classmethod
    def build(
        cls,
        prompts_by_server: dict[str, list[McpPrompt]],
        servers_without_prompts: int = 0,
    ) -> "PromptSnapshot":
        by_server: dict[str, tuple[McpPrompt, ...]] = {}
        by_id: dict[str, McpPrompt] = {}
        for server_id, prompts in prompts_by_server.items():
            # Last write wins for a repeated name; the slot keeps its first position.
            by_name: dict[str, McpPrompt] = {}
            for prompt in prompts:
                by_name[prompt.name] = prompt
            if not by_name:
                continue
            by_server[server_id] = tuple(by_name.values())
            for prompt in by_name.values():
                by_id[prompt.id] = prompt
        return cls(
            prompts_by_server=MappingProxyType(by_server),
            prompts_by_id=MappingProxyType(by_id),
            servers_without_prompts=servers_without_prompts,
        )

    @property
    def prompt_count(self) -> int:
        return len(self.prompts_by_id)

    @property
    def server_count(self) -> int:
        return len(self.prompts_by_server)
