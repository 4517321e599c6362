from __future__ import annotations

from typing import Any, Mapping

import requests

from segsso.application.ports.http_client_port import HttpClientPort, HttpResponse
from segsso.errors import TransportError
from segsso.infrastructure.adapters.http.httpx_client import (
    FORM_CONTENT_TYPE,
    cookie_header,
    refusing_cookie_jar,
)
from segsso.logging_config import get_logger

logger = get_logger(__name__)


class RequestsHttpClient(HttpClientPort):
    """HTTP transport backed by a persistent requests.Session.

    - Same contract as HttpxClient: no redirects followed, bounded timeout,
      TransportError for connection failures and status >= 400
    - The session cookie jar refuses every Set-Cookie so nothing leaks
      between inbound requests
    """

    def __init__(self, timeout: float = 45.0, default_headers: Mapping[str, str] | None = None) -> None:
        self.timeout = timeout
        self.session = requests.Session()
        refusing_cookie_jar(self.session.cookies)
        self.session.headers.update({"User-Agent": "seg-sso-bridge/0.2 requests"})
        if default_headers:
            self.session.headers.update(dict(default_headers))

    def close(self) -> None:
        self.session.close()

    def _send(self, method: str, url: str, **kwargs: Any) -> HttpResponse:
        kwargs.setdefault("allow_redirects", False)
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("http_transport_error", method=method, url=url, error=repr(e))
            raise TransportError(url, str(e) or e.__class__.__name__) from e

        try:
            effective_url = str(resp.url)
            logger.debug("http_response", method=method, url=effective_url, status=resp.status_code)
            if resp.status_code >= 400:
                raise TransportError(effective_url, resp.text.rstrip()[:500], status_code=resp.status_code)
            status_line = f"HTTP/1.1 {resp.status_code} {resp.reason or ''}".rstrip()
            raw_headers = "\r\n".join([status_line] + [f"{k}: {v}" for k, v in resp.headers.items()])
            return HttpResponse(resp.status_code, resp.text, effective_url, resp.headers, raw_headers=raw_headers)
        finally:
            resp.close()

    def get(
        self,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        return self._send("GET", url, params=dict(params) if params else None, headers=headers)

    def post(
        self,
        url: str,
        *,
        data: Mapping[str, Any] | str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        merged = {"Content-Type": FORM_CONTENT_TYPE, **(headers or {})}
        body = data.encode("utf-8") if isinstance(data, str) else dict(data or {})
        return self._send("POST", url, data=body, headers=merged)

    def head(
        self,
        url: str,
        *,
        cookies: Mapping[str, str] | None = None,
        allow_redirects: bool = False,
    ) -> HttpResponse:
        headers = {"Cookie": cookie_header(cookies)} if cookies else None
        return self._send("HEAD", url, headers=headers, allow_redirects=allow_redirects)
