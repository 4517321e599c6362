from __future__ import annotations

import json
from dataclasses import asdict, replace

from fastapi import APIRouter, HTTPException, Request
from starlette.responses import RedirectResponse, Response

from segsso.application.use_cases.reconcile_session import make_special_url, resolve_return_target
from segsso.domain.model import PrincipalAttributes, RequestContext
from segsso.infrastructure.factory import Services
from segsso.logging_config import get_logger
from segsso.presentation.api.context import (
    LOOP_GUARD_COOKIE,
    SK_PRINCIPAL,
    load_principal,
    url_without_ct,
)

router = APIRouter(tags=["sso"])

logger = get_logger(__name__)


def _services(request: Request) -> Services:
    return request.app.state.services


def _ctx(request: Request) -> RequestContext:
    # built once per request by the reconcile middleware
    return request.state.sso_ctx


@router.get("/sso/login")
def sso_login(request: Request) -> Response:  # type: ignore[misc]
    """Landing page for the SSO round trip.

    With a valid ``ct`` (or session token) the principal is stored locally
    and the browser goes back to ``returnto``; otherwise it is sent to the
    SSO login page, which will come back here with a fresh ``ct``.
    """
    services = _services(request)
    ctx = _ctx(request)
    try:
        authenticated = services.authenticator.is_authenticated(ctx)
    except Exception:
        logger.exception("sso_login_check_failed")
        authenticated = False

    if not authenticated:
        try:
            login_url = services.authenticator.login_url(ctx, url_without_ct(ctx, ctx.page))
        except Exception:
            logger.exception("sso_login_url_failed")
            raise HTTPException(status_code=502, detail="SSO login is unavailable")
        return RedirectResponse(login_url, status_code=302)

    attrs = services.authenticator.resolve_principal_attributes(ctx)
    principal = (attrs or PrincipalAttributes("", "", "", "")).as_dict()
    ctx.session.set(SK_PRINCIPAL, json.dumps(principal))
    logger.info("local_login", customer_id=principal["customer_id"])

    response = RedirectResponse(resolve_return_target(ctx), status_code=302)
    response.set_cookie(LOOP_GUARD_COOKIE, principal["customer_id"] or "sso", httponly=True)
    return response


@router.get("/sso/logout")
def sso_logout(request: Request) -> Response:  # type: ignore[misc]
    services = _services(request)
    ctx = _ctx(request)
    services.authenticator.logout(ctx)
    ctx.session.delete(SK_PRINCIPAL)
    logger.info("local_logout")

    response = RedirectResponse(resolve_return_target(ctx), status_code=302)
    response.delete_cookie(LOOP_GUARD_COOKIE)
    return response


@router.get("/sso/register")
def sso_register(request: Request) -> Response:  # type: ignore[misc]
    services = _services(request)
    ctx = _ctx(request)
    # after registering, come back through the login page to pick up ``ct``
    back = replace(ctx, page=ctx.query.get("returnto", "/"), query={})
    return_url = make_special_url(back, services.reconciler.login_page)
    try:
        register_url = services.sso_client.get_register_url(ctx, return_url)
    except Exception:
        logger.exception("sso_register_url_failed")
        raise HTTPException(status_code=502, detail="SSO registration is unavailable")
    return RedirectResponse(register_url, status_code=302)


@router.get("/v1/auth/me")
def me(request: Request) -> dict[str, object]:  # type: ignore[misc]
    principal = load_principal(_ctx(request).session)
    if principal is None:
        raise HTTPException(status_code=401, detail="Not logged in")
    return principal


@router.get("/v1/auth/policy")
def policy(request: Request) -> dict[str, bool]:  # type: ignore[misc]
    return asdict(_services(request).authenticator.policy)
