import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _parse_csv(raw_value: str | None) -> tuple[str, ...]:
    if not raw_value:
        return ()
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


def _parse_float(raw_value: str | None, default: float) -> float:
    value = (raw_value or "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Expected a number, got '{value}'") from exc


def _resolve_env_file() -> Path | None:
    current_dir = Path(__file__).resolve().parent
    candidates = [
        current_dir / ".env",
        current_dir.parent / ".env",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


@dataclass(frozen=True)
class OrchestratorEnv:
    env_file: Path | None
    mcp_service_names: tuple[str, ...]
    mcp_service_urls: tuple[str, ...]
    chat_model: str
    ollama_base_url: str
    chat_temperature: float
    health_timeout_sec: float
    request_timeout_sec: float
    sse_read_timeout_sec: float
    log_level: str
    app_host: str
    app_port: int


def load_orchestrator_env() -> OrchestratorEnv:
    env_file = _resolve_env_file()
    if env_file is not None:
        load_dotenv(env_file, override=False)

    return OrchestratorEnv(
        env_file=env_file,
        mcp_service_names=_parse_csv(os.getenv("MCP_SERVICE_NAMES")),
        mcp_service_urls=_parse_csv(os.getenv("MCP_SERVICE_URLS")),
        chat_model=os.getenv("CHAT_MODEL", "").strip(),
        ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434").strip().rstrip("/"),
        chat_temperature=_parse_float(os.getenv("CHAT_TEMPERATURE"), 0.0),
        health_timeout_sec=_parse_float(os.getenv("MCP_HEALTH_TIMEOUT_SEC"), 10.0),
        request_timeout_sec=_parse_float(os.getenv("MCP_REQUEST_TIMEOUT_SEC"), 30.0),
        sse_read_timeout_sec=_parse_float(os.getenv("MCP_SSE_READ_TIMEOUT_SEC"), 300.0),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip(),
        app_host=os.getenv("APP_HOST", "0.0.0.0").strip(),
        app_port=int(os.getenv("APP_PORT", "8080").strip()),
    )


ENV = load_orchestrator_env()
