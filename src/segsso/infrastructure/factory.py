from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from segsso.application.ports.authenticator_port import AuthenticatorPort
from segsso.application.ports.http_client_port import HttpClientPort
from segsso.application.ports.session_store_port import SessionStorePort
from segsso.application.ports.sso_client_port import SSOClientPort
from segsso.application.use_cases.reconcile_session import ReconcileSessionUseCase
from segsso.application.use_cases.sso_authenticator import SSOAuthenticator
from segsso.config import Settings
from segsso.infrastructure.adapters.ams.ams_client import AmsClient
from segsso.infrastructure.adapters.http.httpx_client import HttpxClient
from segsso.infrastructure.adapters.http.requests_client import RequestsHttpClient
from segsso.infrastructure.adapters.session.sqlite_store import SQLiteSessionRegistry
from segsso.infrastructure.adapters.sso.sso_client import SSOClient

SessionFactory = Callable[[str], SessionStorePort]

# Pages served without an auto login/logout check, besides login and logout
UNRECONCILED_PAGES = ("/sso/register", "/health", "/metrics")


@dataclass
class Services:
    """Everything the host app needs, built once at startup and passed down."""

    http: HttpClientPort
    sso_client: SSOClientPort
    authenticator: AuthenticatorPort
    reconciler: ReconcileSessionUseCase
    session_factory: SessionFactory
    sso_cookie_name: str = "SSO"


def build_http_client(settings: Settings) -> HttpClientPort:
    if settings.http_backend == "requests":
        return RequestsHttpClient(timeout=settings.http_timeout)
    if settings.http_backend != "httpx":
        raise ValueError(f"unknown HTTP_BACKEND: {settings.http_backend!r}")
    return HttpxClient(timeout=settings.http_timeout)


def build_services(settings: Settings, *, session_factory: SessionFactory | None = None) -> Services:
    # Single shared transport for the SSO and AMS clients
    http = build_http_client(settings)
    sso_client = SSOClient(settings.sso_config(), http)
    authenticator = SSOAuthenticator(sso_client, AmsClient(settings.ams_config(), http))
    reconciler = ReconcileSessionUseCase(
        authenticator,
        http,
        extra_skip_pages=UNRECONCILED_PAGES,
        sso_cookie_name=settings.sso_cookie_name,
    )
    return Services(
        http=http,
        sso_client=sso_client,
        authenticator=authenticator,
        reconciler=reconciler,
        session_factory=session_factory or SQLiteSessionRegistry(settings.session_db_path),
        sso_cookie_name=settings.sso_cookie_name,
    )
