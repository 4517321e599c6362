from __future__ import annotations

from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any, Mapping

import httpx

from segsso.application.ports.http_client_port import HttpClientPort, HttpResponse
from segsso.errors import TransportError
from segsso.logging_config import get_logger

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
_BODY_SNIPPET = 500

logger = get_logger(__name__)


def cookie_header(cookies: Mapping[str, str]) -> str:
    return "; ".join(f"{name}={value}" for name, value in cookies.items())


def refusing_cookie_jar(jar: CookieJar | None = None) -> CookieJar:
    """Cookie jar that never stores a Set-Cookie from any domain."""
    jar = jar if jar is not None else CookieJar()
    jar.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    return jar


class HttpxClient(HttpClientPort):
    def __init__(
        self,
        timeout: float = 45.0,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """HTTP transport backed by a persistent httpx.Client.

        - Redirects are never followed; callers inspect 3xx themselves
        - Every call is bounded by ``timeout``; expiry is a TransportError
        - Response cookies are never stored; cookies are passed explicitly

        Args:
            timeout (float, optional): Timeout for requests. Defaults to 45.0.
            transport (httpx.BaseTransport | None, optional): Custom transport,
                e.g. ``httpx.MockTransport`` in tests.
        """
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            follow_redirects=False,
            cookies=refusing_cookie_jar(),
            headers={"User-Agent": "seg-sso-bridge/0.2 httpx"},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpxClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _send(self, method: str, url: str, **kwargs: Any) -> HttpResponse:
        try:
            resp = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("http_transport_error", method=method, url=url, error=repr(e))
            raise TransportError(url, str(e) or e.__class__.__name__) from e

        effective_url = str(resp.url)
        logger.debug("http_response", method=method, url=effective_url, status=resp.status_code)
        if resp.status_code >= 400:
            raise TransportError(
                effective_url, resp.text.rstrip()[:_BODY_SNIPPET], status_code=resp.status_code
            )
        return HttpResponse(
            resp.status_code,
            resp.text,
            effective_url,
            resp.headers,
            raw_headers=self._raw_header_block(resp),
        )

    @staticmethod
    def _raw_header_block(resp: httpx.Response) -> str:
        lines = [f"{resp.http_version} {resp.status_code} {resp.reason_phrase}".rstrip()]
        for name, value in resp.headers.raw:
            lines.append(f"{name.decode('latin-1')}: {value.decode('latin-1')}")
        return "\r\n".join(lines)

    def get(
        self,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        """Gets the given URL.

        Args:
            url (str): URL to get.
            params (Mapping[str, str] | None, optional): Query parameters, escaped by httpx.
            headers (Mapping[str, str] | None, optional): Headers to include. Defaults to None.

        Returns:
            HttpResponse: Response from the server.
        """
        return self._send("GET", url, params=dict(params) if params else None, headers=headers)

    def post(
        self,
        url: str,
        *,
        data: Mapping[str, Any] | str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        """Posts form data to the given URL.

        A ``str`` body is sent verbatim as ``application/x-www-form-urlencoded``;
        a mapping is form-encoded by httpx.
        """
        merged = {"Content-Type": FORM_CONTENT_TYPE, **(headers or {})}
        if isinstance(data, str):
            return self._send("POST", url, content=data.encode("utf-8"), headers=merged)
        return self._send("POST", url, data=dict(data or {}), headers=merged)

    def head(
        self,
        url: str,
        *,
        cookies: Mapping[str, str] | None = None,
        allow_redirects: bool = False,
    ) -> HttpResponse:
        """HEAD request; by default the 3xx itself is returned, not followed."""
        headers = {"Cookie": cookie_header(cookies)} if cookies else None
        return self._send("HEAD", url, headers=headers, follow_redirects=allow_redirects)
