from __future__ import annotations

from segsso.application.ports.authenticator_port import AuthenticatorPort
from segsso.application.ports.profile_port import ProfilePort
from segsso.application.ports.sso_client_port import SSOClientPort
from segsso.domain.model import MEMBER_GROUP, AuthPolicy, PrincipalAttributes, RequestContext
from segsso.logging_config import get_logger

logger = get_logger(__name__)


class SSOAuthenticator(AuthenticatorPort):
    """External authentication source backed by the SSO and AMS services.

    Only the four things a host actually varies on are exposed; the fixed
    answers (no password change, no external account creation, strict) live
    in ``policy``.
    """

    def __init__(
        self,
        client: SSOClientPort,
        profiles: ProfilePort,
        *,
        policy: AuthPolicy | None = None,
    ) -> None:
        self.client = client
        self.profiles = profiles
        self.policy = policy or AuthPolicy()

    def is_authenticated(self, ctx: RequestContext) -> bool:
        return self.client.is_authenticated(ctx)

    def login_url(self, ctx: RequestContext, return_url: str | None = None) -> str:
        return self.client.get_login_url(ctx, return_url)

    def resolve_principal_attributes(self, ctx: RequestContext) -> PrincipalAttributes | None:
        """Import name, email and membership for the authenticated customer.

        Returns None when there is nothing to import or the import failed;
        failures are logged, never raised.
        """
        try:
            customer_id = self.client.get_customer_identifier(ctx)
            if not customer_id:
                return None
            profile = self.profiles.get_customer_basic_info(customer_id)
        except Exception:
            logger.exception("principal_import_failed", message="Failed to import user info.")
            return None

        groups = (MEMBER_GROUP,) if profile.membership_type else ()
        return PrincipalAttributes(
            customer_id=customer_id,
            real_name=profile.label_name,
            email=profile.primary_email,
            member_type=profile.membership_type,
            groups=groups,
        )

    def logout(self, ctx: RequestContext) -> None:
        try:
            self.client.logout(ctx)
        except Exception:
            logger.exception("sso_logout_failed", message="Failed to perform SSO logout.")
