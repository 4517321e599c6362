from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlencode

from fastapi import Request

from segsso.application.ports.session_store_port import SessionStorePort
from segsso.codec import build_current_url
from segsso.domain.model import RequestContext
from segsso.infrastructure.adapters.sso.sso_client import CT_PARAM

SESSION_COOKIE = "segsso_sid"
LOOP_GUARD_COOKIE = "username"
# Session slot holding the locally logged-in principal (JSON)
SK_PRINCIPAL = "segsso.principal"


def build_request_context(request: Request, store: SessionStorePort) -> RequestContext:
    url = request.url
    host = url.hostname or "localhost"
    return RequestContext(
        session=store,
        current_url=build_current_url(url.scheme, host, url.port, url.path, "", url.query),
        base_url=build_current_url(url.scheme, host, url.port, ""),
        page=url.path,
        query=dict(request.query_params),
        cookies=dict(request.cookies),
        was_posted=request.method == "POST",
        is_logged_in=store.get(SK_PRINCIPAL) is not None,
    )


def url_without_ct(ctx: RequestContext, path: str) -> str:
    """The current page URL with the one-shot ``ct`` parameter removed."""
    query = {k: v for k, v in ctx.query.items() if k != CT_PARAM}
    return f"{ctx.base_url}{path}" + (f"?{urlencode(query)}" if query else "")


def load_principal(store: SessionStorePort) -> dict[str, Any] | None:
    raw = store.get(SK_PRINCIPAL)
    return json.loads(raw) if raw else None
