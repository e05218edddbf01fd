from dataclasses import dataclass


@dataclass(frozen=True)
class Tool:
    name: str
    description: str = ""


@dataclass(frozen=True)
class Agent:
    """Health and tool listing for one configured MCP server."""

    name: str
    server_name: str | None
    healthy: bool
    tools: tuple[Tool, ...] = ()

    def __post_init__(self) -> None:
        if not self.healthy and self.tools:
            raise ValueError(f"Unhealthy agent '{self.name}' cannot carry tools")

    @property
    def display_name(self) -> str:
        if self.server_name and self.server_name.strip():
            return self.server_name
        return self.name


@dataclass(frozen=True)
class ProbeReport:
    agents: tuple[Agent, ...] = ()
    healthy_urls: tuple[str, ...] = ()

    @property
    def healthy_count(self) -> int:
        return sum(1 for agent in self.agents if agent.healthy)
