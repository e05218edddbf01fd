from __future__ import annotations

import threading
import zlib
from typing import Any
from urllib.parse import urlparse


def _fallback_server_id(url: str) -> str:
    return f"server-{zlib.crc32(url.encode('utf-8'))}"


def derive_server_id(url: str) -> str:
    """Stable namespace for a server: ``host`` or ``host:port``.

    Unparsable URLs, and URLs without a host, get a checksum-based id so the
    result is still deterministic across processes.
    """
    try:
        parsed = urlparse((url or "").strip())
        host = parsed.hostname
        port = parsed.port
    except ValueError:
        return _fallback_server_id(url or "")

    if not host:
        return _fallback_server_id(url or "")
    if ":" in host:
        host = f"[{host}]"
    return f"{host}:{port}" if port is not None else host


def extract_server_name(initialize_result: Any) -> str | None:
    """Server-reported name from a handshake result, if it sent one."""
    if initialize_result is None:
        return None
    server_info = getattr(initialize_result, "serverInfo", None)
    if server_info is None and isinstance(initialize_result, dict):
        server_info = initialize_result.get("serverInfo")
    if server_info is None:
        return None
    name = server_info.get("name") if isinstance(server_info, dict) else getattr(server_info, "name", None)
    if not isinstance(name, str) or not name.strip():
        return None
    return name


class ServerNameRegistry:
    """URL -> handshake-reported display name, shared by the prober and discovery."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._names: dict[str, str] = {}

    def record(self, url: str, server_name: str) -> None:
        with self._lock:
            self._names[url] = server_name

    def get(self, url: str) -> str | None:
        with self._lock:
            return self._names.get(url)

    def resolve_display_name(self, url: str, fallback: str) -> str:
        name = self.get(url)
        if name and name.strip():
            return name
        return fallback

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._names)
