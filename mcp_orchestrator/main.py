from pathlib import Path
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Allow running `python main.py` from the `mcp_orchestrator/` directory.
# In that mode, Python does not automatically include the repository root
# in sys.path, so absolute imports like `mcp_orchestrator.app.*` would fail.
CURRENT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = CURRENT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mcp_orchestrator.env import ENV, OrchestratorEnv
from mcp_orchestrator.app.core.logger import configure_logging, get_logger
from mcp_orchestrator.app.core.transport import McpClientFactory
from mcp_orchestrator.app.routers.chat import create_chat_router
from mcp_orchestrator.app.routers.health import create_health_router
from mcp_orchestrator.app.routers.metrics import create_metrics_router
from mcp_orchestrator.app.routers.prompts import create_prompts_router
from mcp_orchestrator.app.services.orchestrator import McpOrchestrator, build_orchestrator


logger = get_logger(__name__)


def build_app(
    env: OrchestratorEnv = ENV,
    client_factory: McpClientFactory | None = None,
    orchestrator: McpOrchestrator | None = None,
) -> FastAPI:
    configure_logging(env.log_level)
    orchestrator = orchestrator or build_orchestrator(env, client_factory)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        logger.info(
            "Starting MCP orchestrator with %d configured servers (chat model: %s)",
            len(env.mcp_service_urls),
            env.chat_model,
        )
        await orchestrator.start()
        yield
        logger.info("MCP orchestrator shutting down")

    app = FastAPI(title="MCP Orchestrator", lifespan=lifespan)
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        create_health_router(env.mcp_service_urls, orchestrator.health_prober, orchestrator.prompt_discovery),
        tags=["Health"],
    )
    app.include_router(
        create_prompts_router(orchestrator.prompt_discovery, orchestrator.prompt_resolution),
        tags=["Prompts"],
    )
    app.include_router(
        create_metrics_router(orchestrator.metrics, orchestrator.health_prober),
        tags=["Metrics"],
    )
    app.include_router(create_chat_router(orchestrator.chat), tags=["Chat"])
    return app


app = build_app()


def run() -> None:
    uvicorn.run(app, host=ENV.app_host, port=ENV.app_port)


if __name__ == "__main__":
    uvicorn.run("mcp_orchestrator.main:app", host=ENV.app_host, port=ENV.app_port, reload=True)
