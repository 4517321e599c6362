from __future__ import annotations

from typing import Protocol

from segsso.domain.model import AuthPolicy, PrincipalAttributes, RequestContext


class AuthenticatorPort(Protocol):
    """The narrow surface a host application needs from an external auth source."""

    policy: AuthPolicy

    def is_authenticated(self, ctx: RequestContext) -> bool: ...
    def resolve_principal_attributes(self, ctx: RequestContext) -> PrincipalAttributes | None: ...
    def login_url(self, ctx: RequestContext, return_url: str | None = None) -> str: ...
    def logout(self, ctx: RequestContext) -> None: ...
