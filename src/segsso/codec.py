"""Decoding of remote SSO responses and the small URL/form helpers around them.

XML bodies from the SSO service are flat documents: the interesting values
are first-level children of the root element, e.g.::

    <SSOCustomerTokenIsValidResult xmlns="http://...">
      <Valid>true</Valid>
      <NewCustomerToken>abc</NewCustomerToken>
    </SSOCustomerTokenIsValidResult>
"""

from __future__ import annotations

import base64
import json
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

from bs4 import BeautifulSoup  # type: ignore[import-untyped]

from segsso.errors import TransportError


# ---------- XML ----------
def _first_level_values(body: str, names: Sequence[str]) -> dict[str, str]:
    values = {name: "" for name in names}
    if not body or not body.strip():
        return values
    soup = BeautifulSoup(body, "xml")
    root = soup.find()
    if root is None:
        return values
    for child in root.find_all(recursive=False):
        # last occurrence wins; compare on the local name, prefixes vary
        local_name = child.name.rsplit(":", 1)[-1]
        if local_name in values:
            values[local_name] = child.get_text()
    return values


def xml_fields(body: str, names: Sequence[str] | None = None) -> Any:
    """Extract named first-level children from an XML document.

    - no names: the raw body is returned untouched
    - one name: the bare string value
    - two or more names: a dict keyed by every requested name; fields the
      document omits map to ""
    """
    if not names:
        return body
    values = _first_level_values(body, names)
    if len(names) == 1:
        return values[names[0]]
    return values


# ---------- JSON ----------
def decode_json(body: str, *, url: str = "") -> Any:
    """Decode a JSON body into plain dicts/lists/scalars. No schema checks."""
    try:
        return json.loads(body)
    except ValueError as e:
        raise TransportError(url, f"invalid JSON body: {e}") from e


# ---------- Headers ----------
def parse_header_block(raw: str) -> dict[str, str]:
    """Parse a raw response header block into a name -> value mapping.

    The status line (starting with ``HTTP``) and lines without a colon are
    skipped. Keys keep their original case.
    """
    headers: dict[str, str] = {}
    for line in raw.split("\n"):
        parts = line.strip().split(":", 1)
        if len(parts) < 2 or parts[0].startswith("HTTP"):
            continue
        headers[parts[0].strip()] = parts[1].strip()
    return headers


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


# ---------- Form / URL helpers ----------
def encode_form(data: Mapping[str, Any], *, escape: bool = False) -> str:
    """Join ``key=value`` pairs with ``&``.

    The legacy SSO contract sends values verbatim; ``escape=True`` percent
    escapes them instead.
    """
    pairs = []
    for key, value in data.items():
        text = "" if value is None else str(value)
        pairs.append(f"{key}={quote(text, safe='') if escape else text}")
    return "&".join(pairs)


def base64_url_encode(data: str) -> str:
    encoded = base64.b64encode(data.encode("utf-8")).decode("ascii")
    return encoded.rstrip("=").translate(str.maketrans("+/", "-_"))


def base64_url_decode(value: str) -> str:
    padded = value.translate(str.maketrans("-_", "+/"))
    padded += "=" * (-len(padded) % 4)
    return base64.b64decode(padded).decode("utf-8")


def build_current_url(
    scheme: str,
    host: str,
    port: int | str | None,
    request_uri: str,
    path_info: str = "",
    query_string: str = "",
) -> str:
    """Rebuild the full URL of the current request.

    Default ports are omitted and the query string is appended only when the
    request URI does not already carry it.
    """
    secure = scheme == "https"
    port_str = "" if port is None else str(port)
    if (secure and port_str == "443") or (not secure and port_str == "80"):
        port_str = ""

    full_url = f"{scheme}://{host}"
    if port_str and ":" not in host:
        full_url += f":{port_str}"
    full_url += request_uri + path_info
    if query_string and query_string not in full_url:
        full_url += f"?{query_string}"
    return full_url
