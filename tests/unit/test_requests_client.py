from __future__ import annotations

import urllib.request
from email.message import Message

import pytest
import requests

from segsso.errors import TransportError
from segsso.infrastructure.adapters.http.requests_client import RequestsHttpClient


def fake_response(status: int, body: str = "", headers: dict | None = None, url: str = "https://sso/op"):
    resp = requests.models.Response()
    resp.status_code = status
    resp._content = body.encode()
    resp._content_consumed = True
    resp.encoding = "utf-8"
    resp.headers.update(headers or {})
    resp.url = url
    resp.reason = "Found" if status == 302 else "OK"
    return resp


class Recorder:
    def __init__(self, result):
        self.result = result
        self.kwargs = None

    def __call__(self, method, url, **kwargs):
        self.kwargs = {"method": method, "url": url, **kwargs}
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def test_post_string_body_is_sent_verbatim(monkeypatch):
    client = RequestsHttpClient(timeout=3.0)
    rec = Recorder(fake_response(200, "<Result/>"))
    monkeypatch.setattr(client.session, "request", rec)

    resp = client.post("https://sso/op", data="a=1&b=x+y")

    assert resp.text == "<Result/>"
    assert rec.kwargs["data"] == b"a=1&b=x+y"
    assert rec.kwargs["timeout"] == 3.0
    assert rec.kwargs["allow_redirects"] is False


def test_error_status_raises(monkeypatch):
    client = RequestsHttpClient()
    monkeypatch.setattr(client.session, "request", Recorder(fake_response(404, "missing")))
    with pytest.raises(TransportError) as exc:
        client.get("https://sso/op")
    assert exc.value.status_code == 404


def test_connection_error_raises(monkeypatch):
    client = RequestsHttpClient()
    monkeypatch.setattr(client.session, "request", Recorder(requests.ConnectionError("refused")))
    with pytest.raises(TransportError):
        client.get("https://sso/op")


def test_head_sends_cookie_and_returns_redirect(monkeypatch):
    client = RequestsHttpClient()
    rec = Recorder(fake_response(302, headers={"Location": "https://app/sso/login?ct=X"}))
    monkeypatch.setattr(client.session, "request", rec)

    resp = client.head("https://idp/login", cookies={"SSO": "abc"})

    assert rec.kwargs["method"] == "HEAD"
    assert rec.kwargs["headers"] == {"Cookie": "SSO=abc"}
    assert resp.status_code == 302
    assert resp.parsed_headers()["Location"] == "https://app/sso/login?ct=X"


class _SetCookieResponse:
    def __init__(self, *cookies: str) -> None:
        self._headers = Message()
        for cookie in cookies:
            self._headers.add_header("Set-Cookie", cookie)

    def info(self) -> Message:
        return self._headers


def test_session_jar_refuses_response_cookies():
    client = RequestsHttpClient()
    request = urllib.request.Request("https://sso.example.org/login")

    client.session.cookies.extract_cookies(_SetCookieResponse("SSO=userA; Path=/"), request)

    assert len(client.session.cookies) == 0
