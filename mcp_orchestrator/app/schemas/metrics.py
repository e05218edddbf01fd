from pydantic import BaseModel, ConfigDict, Field

from mcp_orchestrator.app.models.agent_models import Agent
from mcp_orchestrator.app.services.metrics_service import Metrics


class ToolOut(BaseModel):
    name: str
    description: str = ""


class AgentOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    server_name: str = Field(alias="serverName")
    healthy: bool
    tools: list[ToolOut] = Field(default_factory=list)

    @classmethod
    def from_agent(cls, agent: Agent) -> "AgentOut":
        return cls(
            name=agent.name,
            server_name=agent.display_name,
            healthy=agent.healthy,
            tools=[ToolOut(name=tool.name, description=tool.description) for tool in agent.tools],
        )


class PromptMetricsOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_prompts: int = Field(alias="totalPrompts")
    servers_with_prompts: int = Field(alias="serversWithPrompts")
    available: bool


class MetricsOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chat_model: str = Field(alias="chatModel")
    agents: list[AgentOut] = Field(default_factory=list)
    prompts: PromptMetricsOut

    @classmethod
    def from_metrics(cls, metrics: Metrics) -> "MetricsOut":
        return cls(
            chat_model=metrics.chat_model,
            agents=[AgentOut.from_agent(agent) for agent in metrics.agents],
            prompts=PromptMetricsOut(
                total_prompts=metrics.prompts.total,
                servers_with_prompts=metrics.prompts.servers_with_prompts,
                available=metrics.prompts.available,
            ),
        )
