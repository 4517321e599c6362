from __future__ import annotations


class SSOError(Exception):
    """Base class for errors raised by the SSO bridge."""


class TransportError(SSOError):
    """A remote call failed: connection error, timeout, HTTP >= 400 or undecodable body."""

    def __init__(self, url: str, detail: str, *, status_code: int | None = None) -> None:
        self.url = url
        self.detail = detail
        self.status_code = status_code
        if status_code is not None:
            msg = f"received response code [{status_code}] while requesting URL: {url}\nResponse received: [{detail}]"
        else:
            msg = f"transport error [{detail}] while requesting URL: {url}"
        super().__init__(msg)


class ProtocolStateError(SSOError):
    """An operation was called in a state where its preconditions do not hold."""
