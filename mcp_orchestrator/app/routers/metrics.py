from fastapi import APIRouter

from mcp_orchestrator.app.schemas.metrics import AgentOut, MetricsOut


def create_metrics_router(metrics_service, health_prober) -> APIRouter:
    router = APIRouter()

    @router.get(
        "/metrics",
        summary="Get Metrics",
        description="Chat model, per-server health and tools, and prompt availability.",
        response_model=MetricsOut,
        response_model_by_alias=True,
    )
    def get_metrics() -> MetricsOut:
        return MetricsOut.from_metrics(metrics_service.get_metrics())

    @router.get(
        "/agents",
        summary="List Agents",
        description="Result of the latest MCP health check, one entry per configured server.",
        response_model=list[AgentOut],
        response_model_by_alias=True,
    )
    def list_agents() -> list[AgentOut]:
        return [AgentOut.from_agent(agent) for agent in health_prober.agents()]

    return router
