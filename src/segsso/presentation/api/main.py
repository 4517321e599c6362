from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.concurrency import run_in_threadpool
from starlette.responses import RedirectResponse, Response

from segsso.config import settings
from segsso.infrastructure.factory import Services, build_services
from segsso.logging_config import configure_logging, get_logger, set_request_id
from segsso.metrics import registry
from segsso.presentation.api.context import SESSION_COOKIE, build_request_context
from segsso.presentation.api.routes.auth import router as auth_router
from segsso.presentation.api.routes.health import router as health_router

logger = get_logger(__name__)


def create_app(services: Services | None = None) -> FastAPI:
    if services is None:
        configure_logging(settings.log_level, settings.log_json)
        services = build_services(settings)

    app = FastAPI(title="SEG SSO Bridge", version="0.2.0")
    app.state.services = services
    app.include_router(health_router)
    app.include_router(auth_router)

    @app.middleware("http")
    async def reconcile_sso_session(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        set_request_id(request.headers.get("X-Request-ID"))
        session_id = request.cookies.get(SESSION_COOKIE)
        new_session = session_id is None
        if new_session:
            session_id = uuid.uuid4().hex
        store = services.session_factory(session_id)
        try:
            ctx = build_request_context(request, store)
            request.state.sso_ctx = ctx
            decision = await run_in_threadpool(services.reconciler.execute, ctx)
            if decision.is_redirect:
                logger.info("reconcile_redirect", action=decision.action, reason=decision.reason)
                response: Response = RedirectResponse(decision.redirect_url, status_code=302)
            else:
                response = await call_next(request)
        finally:
            close = getattr(store, "close", None)
            if close is not None:
                close()
        if new_session:
            response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")
        return response

    @app.get("/metrics")
    def metrics() -> Response:  # type: ignore[misc]
        data = generate_latest(registry)
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
