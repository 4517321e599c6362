from __future__ import annotations

from segsso.application.ports.session_store_port import SessionStorePort


class InMemorySessionStore(SessionStorePort):
    """Simple in-memory store for development and tests. Not persistent.

    Pass a shared ``backing`` dict to let several store objects see the same
    browser session.
    """

    def __init__(self, backing: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = backing if backing is not None else {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class InMemorySessionRegistry:
    """Hands out per-session-id stores over one process-local dict."""

    def __init__(self) -> None:
        self._sessions: dict[str, dict[str, str]] = {}

    def __call__(self, session_id: str) -> InMemorySessionStore:
        return InMemorySessionStore(self._sessions.setdefault(session_id, {}))
