from __future__ import annotations

from typing import Protocol

from segsso.domain.model import CustomerProfile


class ProfilePort(Protocol):
    """Fetches the membership profile for a customer id."""

    def get_customer_basic_info(self, customer_id: str) -> CustomerProfile:
        """Raises exceptions on failure (network, bad payload)."""
        ...
