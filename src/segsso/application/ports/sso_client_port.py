from __future__ import annotations

from typing import Protocol

from segsso.domain.model import CustomerLookup, RequestContext


class SSOClientPort(Protocol):
    """Token lifecycle operations against the remote SSO service."""

    def is_authenticated(self, ctx: RequestContext) -> bool: ...
    def get_login_url(self, ctx: RequestContext, return_url: str | None = None) -> str: ...
    def get_register_url(self, ctx: RequestContext, return_url: str | None = None) -> str: ...
    def get_customer_identifier(self, ctx: RequestContext) -> str: ...
    def get_customer(self, ctx: RequestContext, customer_id: str | None = None) -> CustomerLookup: ...
    def logout(self, ctx: RequestContext) -> None: ...
