from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import quote, urlencode

from segsso.application.ports.authenticator_port import AuthenticatorPort
from segsso.application.ports.http_client_port import HttpClientPort
from segsso.codec import base64_url_decode, base64_url_encode, get_header
from segsso.domain.model import ReconcileDecision, RequestContext
from segsso.logging_config import get_logger
from segsso.metrics import RECONCILE_DECISIONS

# Query keys that describe where to go back to, never carried over themselves
_RETURN_KEYS = ("title", "returnto", "returntoquery")

logger = get_logger(__name__)


def make_special_url(ctx: RequestContext, special_page: str, *, base64_query: bool = False) -> str:
    """Absolute URL of a local special page that returns to the current page.

    The current page goes in ``returnto`` and its GET query in
    ``returntoquery`` (url-encoded) or, with ``base64_query``, in
    ``b64returntoquery`` so the value survives a redirect chain without a
    second round of url-decoding.
    """
    query = {}
    if not ctx.was_posted:
        query = {k: v for k, v in ctx.query.items() if k not in _RETURN_KEYS}
    query_string = urlencode(query)

    page = ctx.query.get("returnto") or ctx.page
    rtq = ctx.query.get("returntoquery", query_string)

    returnto = f"returnto={quote(page, safe='/:')}"
    if rtq:
        if base64_query:
            returnto += f"&b64returntoquery={base64_url_encode(rtq)}"
        else:
            returnto += f"&returntoquery={quote(rtq, safe='')}"
    return f"{ctx.base_url}{special_page}?{returnto}"


def resolve_return_target(ctx: RequestContext, default_page: str = "/") -> str:
    """Where a special page should send the browser once it is done."""
    page = ctx.query.get("returnto") or default_page
    if not page.startswith("/"):
        page = f"/{page}"
    rtq = ctx.query.get("returntoquery", "")
    b64 = ctx.query.get("b64returntoquery")
    if b64:
        try:
            rtq = base64_url_decode(b64)
        except ValueError:
            logger.warning("bad_b64returntoquery", value=b64)
            rtq = ""
    return f"{ctx.base_url}{page}" + (f"?{rtq}" if rtq else "")


class ReconcileSessionUseCase:
    """Per-request auto login / auto logout against the SSO server.

    Logged in locally  -> confirm the SSO session still holds, else log out.
    Logged out locally -> if the SSO cookie is set, probe the SSO login URL
                          and follow a silent 302 back into the app.

    The use case never touches the session itself beyond what the
    authenticator does; it only returns a redirect decision.
    """

    def __init__(
        self,
        authenticator: AuthenticatorPort,
        http: HttpClientPort,
        *,
        login_page: str = "/sso/login",
        logout_page: str = "/sso/logout",
        extra_skip_pages: Iterable[str] = (),
        sso_cookie_name: str = "SSO",
        loop_guard_cookie: str = "username",
    ) -> None:
        self.authenticator = authenticator
        self.http = http
        self.login_page = login_page
        self.logout_page = logout_page
        self.skip_pages = frozenset({login_page, logout_page, *extra_skip_pages})
        self.sso_cookie_name = sso_cookie_name
        self.loop_guard_cookie = loop_guard_cookie

    def execute(self, ctx: RequestContext) -> ReconcileDecision:
        if ctx.page in self.skip_pages:
            return ReconcileDecision.no_action("special page")

        if ctx.is_logged_in:
            decision = self._auto_logout_if_necessary(ctx)
        else:
            decision = self._auto_login_if_necessary(ctx)
        RECONCILE_DECISIONS.labels(action=decision.action).inc()
        return decision

    def _auto_logout_if_necessary(self, ctx: RequestContext) -> ReconcileDecision:
        try:
            if self.authenticator.is_authenticated(ctx):
                return ReconcileDecision.no_action("sso session valid")
            logout_url = make_special_url(ctx, self.logout_page)
            logger.info("auto_logout", page=ctx.page)
            return ReconcileDecision("logout", logout_url, "sso session ended elsewhere")
        except Exception:
            logger.exception("auto_logout_failed", message="Failed to auto logout user.")
            return ReconcileDecision.no_action("auto logout failed")

    def _auto_login_if_necessary(self, ctx: RequestContext) -> ReconcileDecision:
        sso_cookie = ctx.cookies.get(self.sso_cookie_name)
        if sso_cookie is None:
            return ReconcileDecision.no_action("no sso cookie")

        try:
            login_page_url = make_special_url(ctx, self.login_page, base64_query=True)
            sso_login_url = self.authenticator.login_url(ctx, login_page_url)
            resp = self.http.head(
                sso_login_url, cookies={self.sso_cookie_name: sso_cookie}, allow_redirects=False
            )
            if resp.status_code != 302:
                return ReconcileDecision.no_action(f"sso probe answered {resp.status_code}")
            if self.loop_guard_cookie in ctx.cookies:
                return ReconcileDecision.no_action("loop guard cookie present")
            location = get_header(resp.parsed_headers(), "Location")
            if not location:
                return ReconcileDecision.no_action("sso redirect without location")
            logger.info("auto_login", page=ctx.page)
            return ReconcileDecision("login", location, "logged in at sso elsewhere")
        except Exception:
            logger.exception("auto_login_failed", message="Failed to auto login user.")
            return ReconcileDecision.no_action("auto login failed")
