from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from segsso.codec import decode_json, parse_header_block


class HttpResponse:
    def __init__(
        self,
        status_code: int,
        text: str,
        url: str,
        headers: Mapping[str, str],
        *,
        raw_headers: str = "",
    ) -> None:
        self.status_code = status_code
        self.text = text
        self.url = url
        self.headers = dict(headers)
        self.raw_headers = raw_headers

    def parsed_headers(self) -> dict[str, str]:
        """Headers as read back from the raw header block."""
        if self.raw_headers:
            return parse_header_block(self.raw_headers)
        return dict(self.headers)

    def json(self) -> Any:
        return decode_json(self.text, url=self.url)


class HttpClientPort(Protocol):
    """Blocking HTTP transport.

    Implementations raise ``TransportError`` on connection errors, timeouts
    and any status >= 400. They never retry.
    """

    def get(
        self,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse: ...
    def post(
        self,
        url: str,
        *,
        data: Mapping[str, Any] | str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse: ...
    def head(
        self,
        url: str,
        *,
        cookies: Mapping[str, str] | None = None,
        allow_redirects: bool = False,
    ) -> HttpResponse: ...
