from __future__ import annotations

import json

import typer

from segsso.config import settings
from segsso.domain.model import Found, LookupFailed, RequestContext
from segsso.errors import SSOError
from segsso.infrastructure.adapters.ams.ams_client import AmsClient
from segsso.infrastructure.adapters.session.memory_store import InMemorySessionStore
from segsso.infrastructure.adapters.sso.sso_client import SK_CUSTOMER_TOKEN, SSOClient
from segsso.infrastructure.factory import build_http_client
from segsso.logging_config import configure_logging

app = typer.Typer(help="SEG SSO bridge operator CLI")


def _context(current_url: str = "", token: str | None = None) -> RequestContext:
    store = InMemorySessionStore()
    if token:
        store.set(SK_CUSTOMER_TOKEN, token)
    return RequestContext(session=store, current_url=current_url, base_url="", page="")


def _sso_client() -> SSOClient:
    return SSOClient(settings.sso_config(), build_http_client(settings))


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    configure_logging("debug" if verbose else settings.log_level, settings.log_json)


@app.command("login-url")
def login_url(return_url: str = typer.Option(..., "--return-url", "-r")) -> None:
    """Mint a vendor token and print the SSO login URL."""
    try:
        typer.echo(_sso_client().get_login_url(_context(return_url)))
    except SSOError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)


@app.command("register-url")
def register_url(return_url: str = typer.Option(..., "--return-url", "-r")) -> None:
    """Mint a vendor token and print the SSO register URL."""
    try:
        typer.echo(_sso_client().get_register_url(_context(return_url)))
    except SSOError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def customer(customer_id: str) -> None:
    """Look up an SSO customer by TIMSS id."""
    result = _sso_client().get_customer(_context(), customer_id)
    if isinstance(result, Found):
        typer.echo(json.dumps({"customer_id": result.record.customer_id,
                               "username": result.record.username,
                               "email": result.record.email}))
    elif isinstance(result, LookupFailed):
        typer.echo(f"lookup failed ({result.kind}): {result.detail}", err=True)
        raise typer.Exit(code=1)
    else:
        typer.echo("not found")
        raise typer.Exit(code=2)


@app.command()
def profile(customer_id: str) -> None:
    """Print the AMS membership profile for a TIMSS id."""
    ams = AmsClient(settings.ams_config(), build_http_client(settings))
    try:
        info = ams.get_customer_basic_info(customer_id)
    except SSOError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(dict(info.raw) or {"LabelName": info.label_name,
                                             "PrimaryEmail": info.primary_email,
                                             "MembershipType": info.membership_type}))


@app.command("check-token")
def check_token(token: str) -> None:
    """Validate a customer token and print the token to keep using."""
    ctx = _context(token=token)
    try:
        valid = _sso_client().is_authenticated(ctx)
    except SSOError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)
    if not valid:
        typer.echo("invalid")
        raise typer.Exit(code=2)
    typer.echo(f"valid {ctx.session.get(SK_CUSTOMER_TOKEN)}")


if __name__ == "__main__":
    app()
