from fastapi import APIRouter


def create_health_router(configured_urls: tuple[str, ...], health_prober, prompt_discovery) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health() -> dict[str, object]:
        return {
            "status": "ok",
            "configured_servers": len(configured_urls),
            "healthy_servers": len(health_prober.healthy_urls()),
            "discovery_state": prompt_discovery.state.value,
        }

    return router
