import pytest

from mcp_orchestrator import env as env_module


def test_env_reads_service_lists_and_timeouts(monkeypatch):
    monkeypatch.setattr(env_module, "_resolve_env_file", lambda: None)
    monkeypatch.setenv("MCP_SERVICE_NAMES", "weather, calendar ,")
    monkeypatch.setenv("MCP_SERVICE_URLS", "http://s1/mcp,http://s2/mcp")
    monkeypatch.setenv("CHAT_MODEL", "llama3")
    monkeypatch.setenv("OLLAMA_BASE_URL", "http://ollama:11434/")
    monkeypatch.setenv("MCP_HEALTH_TIMEOUT_SEC", "2.5")
    monkeypatch.delenv("MCP_REQUEST_TIMEOUT_SEC", raising=False)
    monkeypatch.setenv("APP_PORT", "9090")

    loaded = env_module.load_orchestrator_env()

    assert loaded.mcp_service_names == ("weather", "calendar")
    assert loaded.mcp_service_urls == ("http://s1/mcp", "http://s2/mcp")
    assert loaded.chat_model == "llama3"
    assert loaded.ollama_base_url == "http://ollama:11434"
    assert loaded.health_timeout_sec == 2.5
    assert loaded.request_timeout_sec == 30.0
    assert loaded.app_port == 9090


def test_env_rejects_non_numeric_timeout(monkeypatch):
    monkeypatch.setattr(env_module, "_resolve_env_file", lambda: None)
    monkeypatch.setenv("MCP_REQUEST_TIMEOUT_SEC", "soon")

    with pytest.raises(RuntimeError, match="soon"):
        env_module.load_orchestrator_env()
