from __future__ import annotations

from typing import Protocol


class SessionStorePort(Protocol):
    """Key-value session storage scoped to a single browser session."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None:
        """Remove ``key``; a missing key is not an error."""
        ...
