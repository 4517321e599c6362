from __future__ import annotations

import pytest

from segsso.config import SSOConfig
from segsso.domain.model import CustomerLookup, CustomerRecord, Found, LookupFailed, NotFound
from segsso.errors import ProtocolStateError, TransportError
from segsso.infrastructure.adapters.session.memory_store import InMemorySessionStore
from segsso.infrastructure.adapters.sso.sso_client import SK_CUSTOMER_TOKEN, Operation, SSOClient
from tests.unit._fakes_auth import SERVICE_URL, FakeHttp, make_ctx, xml_doc

CONFIG = SSOConfig(
    vendor_id="V1",
    vendor_username="vendor",
    vendor_password="secret",
    vendor_block="BLOCK",
    login_url="https://idp/login",
    register_url="https://idp/register",
    service_url=SERVICE_URL,
)


def make_client(responses=None, config=CONFIG):
    http = FakeHttp(responses)
    return SSOClient(config, http), http


def test_no_token_means_not_authenticated_without_network():
    client, http = make_client()
    assert client.is_authenticated(make_ctx()) is False
    assert http.calls == []


def test_valid_token_is_rotated_in_session():
    client, http = make_client({
        "SSOCustomerTokenIsValid": xml_doc(Valid="true", NewCustomerToken="NEW"),
    })
    store = InMemorySessionStore({SK_CUSTOMER_TOKEN: "OLD"})

    assert client.is_authenticated(make_ctx(store)) is True
    assert store.get(SK_CUSTOMER_TOKEN) == "NEW"
    assert http.form()["customerToken"] == "OLD"


def test_rotated_token_is_used_on_next_validation():
    client, http = make_client({
        "SSOCustomerTokenIsValid": [
            xml_doc(Valid="true", NewCustomerToken="NEW"),
            xml_doc(Valid="true", NewCustomerToken="NEWER"),
        ],
    })
    store = InMemorySessionStore({SK_CUSTOMER_TOKEN: "OLD"})

    client.is_authenticated(make_ctx(store))
    client.is_authenticated(make_ctx(store))

    sent = [http.form(i)["customerToken"] for i in range(len(http.calls))]
    assert sent == ["OLD", "NEW"]
    assert store.get(SK_CUSTOMER_TOKEN) == "NEWER"


def test_valid_without_new_token_keeps_current_token():
    client, _ = make_client({"SSOCustomerTokenIsValid": xml_doc(Valid="True")})
    store = InMemorySessionStore({SK_CUSTOMER_TOKEN: "CUR"})
    assert client.is_authenticated(make_ctx(store)) is True
    assert store.get(SK_CUSTOMER_TOKEN) == "CUR"


def test_invalid_token_is_evicted():
    client, _ = make_client({"SSOCustomerTokenIsValid": xml_doc(Valid="false", NewCustomerToken="")})
    store = InMemorySessionStore({SK_CUSTOMER_TOKEN: "STALE"})
    assert client.is_authenticated(make_ctx(store)) is False
    assert store.get(SK_CUSTOMER_TOKEN) is None


def test_ct_parameter_wins_over_session_and_is_decrypted_once():
    client, http = make_client({
        "CustomerTokenDecrypt": xml_doc(CustomerToken="FROM_CT"),
        "SSOCustomerTokenIsValid": xml_doc(Valid="true", NewCustomerToken=""),
    })
    store = InMemorySessionStore({SK_CUSTOMER_TOKEN: "SESSION"})
    ctx = make_ctx(store, query={"ct": "ENCRYPTED"})

    assert client.is_authenticated(ctx) is True
    assert client.is_authenticated(ctx) is True

    assert http.operations() == [
        "CustomerTokenDecrypt", "SSOCustomerTokenIsValid", "SSOCustomerTokenIsValid",
    ]
    decrypt = http.form(0)
    assert decrypt["customerToken"] == "ENCRYPTED"
    assert decrypt["vendorBlock"] == "BLOCK"
    assert http.form(1)["customerToken"] == "FROM_CT"
    assert store.get(SK_CUSTOMER_TOKEN) == "FROM_CT"


def test_transport_error_propagates_from_is_authenticated():
    client, _ = make_client({"SSOCustomerTokenIsValid": TransportError("u", "boom")})
    store = InMemorySessionStore({SK_CUSTOMER_TOKEN: "T"})
    with pytest.raises(TransportError):
        client.is_authenticated(make_ctx(store))


def test_login_url_end_to_end():
    client, http = make_client({"VendorTokenEncrypt": xml_doc(VendorToken="ABC")})

    url = client.get_login_url(make_ctx(), "https://app/return")

    assert url == "https://idp/login?vi=V1&vt=ABC"
    assert http.calls[0][1] == f"{SERVICE_URL}/VendorTokenEncrypt"
    form = http.form()
    assert form == {
        "vendorUsername": "vendor",
        "vendorPassword": "secret",
        "vendorBlock": "BLOCK",
        "url": "https://app/return",
    }
    # legacy body: the url travels pre-encoded, other values verbatim
    assert "url=https%3A%2F%2Fapp%2Freturn" in http.calls[0][2]


def test_register_url_defaults_to_current_url_and_never_caches():
    client, http = make_client({
        "VendorTokenEncrypt": [xml_doc(VendorToken="T1"), xml_doc(VendorToken="T2")],
    })
    ctx = make_ctx(current_url="https://app.example.org/wiki/Page?x=1")

    assert client.get_register_url(ctx) == "https://idp/register?vi=V1&vt=T1"
    assert client.get_register_url(ctx) == "https://idp/register?vi=V1&vt=T2"
    assert http.form(0)["url"] == "https://app.example.org/wiki/Page?x=1"
    assert len(http.calls) == 2


def test_escaped_form_values_send_raw_url_once_encoded():
    config = SSOConfig(**{**CONFIG.__dict__, "escape_form_values": True})
    client, http = make_client({"VendorTokenEncrypt": xml_doc(VendorToken="ABC")}, config=config)

    client.get_login_url(make_ctx(), "https://app/return?a=1&b=2")

    body = http.calls[0][2]
    assert "url=https%3A%2F%2Fapp%2Freturn%3Fa%3D1%26b%3D2" in body
    assert http.form()["url"] == "https://app/return?a=1&b=2"


def test_customer_identifier_requires_token():
    client, http = make_client()
    with pytest.raises(ProtocolStateError):
        client.get_customer_identifier(make_ctx())
    assert http.calls == []


def test_customer_identifier_lookup():
    client, http = make_client({"TIMSSCustomerIdentifierGet": xml_doc(CustomerIdentifier="1001|0")})
    store = InMemorySessionStore({SK_CUSTOMER_TOKEN: "CT"})
    assert client.get_customer_identifier(make_ctx(store)) == "1001|0"
    assert http.form() == {"vendorUsername": "vendor", "vendorPassword": "secret", "customerToken": "CT"}


@pytest.mark.parametrize("flag", ["false", "False", "FALSE", ""])
def test_get_customer_not_found(flag):
    client, _ = make_client({"SSOCustomerGet": xml_doc(UserExists=flag)})
    result = client.get_customer(make_ctx(), "false-flagged-id")
    assert isinstance(result, NotFound)
    assert not result


def test_get_customer_found_resolves_identifier_from_session():
    client, http = make_client({
        "TIMSSCustomerIdentifierGet": xml_doc(CustomerIdentifier="1001|0"),
        "SSOCustomerGet": xml_doc(UserExists="TRUE", UserName="ada", Email="ada@example.org"),
    })
    store = InMemorySessionStore({SK_CUSTOMER_TOKEN: "CT"})

    result = client.get_customer(make_ctx(store))

    assert isinstance(result, Found)
    assert result.record.customer_id == "1001|0"
    assert result.record.username == "ada"
    assert result.record.email == "ada@example.org"
    assert http.form()["TIMSSCustomerId"] == "1001|0"


def test_get_customer_failures_are_tagged():
    client, _ = make_client({"SSOCustomerGet": TransportError("u", "down")})
    failed = client.get_customer(make_ctx(), "1001")
    assert isinstance(failed, LookupFailed) and failed.kind == "transport"

    no_token = client.get_customer(make_ctx())
    assert isinstance(no_token, LookupFailed) and no_token.kind == "protocol_state"


def test_logout_is_idempotent():
    client, http = make_client({"SSOCustomerLogout": xml_doc()})
    store = InMemorySessionStore({SK_CUSTOMER_TOKEN: "CT"})

    client.logout(make_ctx(store))
    client.logout(make_ctx(store))

    assert http.operations() == ["SSOCustomerLogout"]
    assert store.get(SK_CUSTOMER_TOKEN) is None


def test_logout_evicts_token_even_when_remote_fails():
    client, _ = make_client({"SSOCustomerLogout": TransportError("u", "down")})
    store = InMemorySessionStore({SK_CUSTOMER_TOKEN: "CT"})
    with pytest.raises(TransportError):
        client.logout(make_ctx(store))
    assert store.get(SK_CUSTOMER_TOKEN) is None


def test_operation_url():
    client, _ = make_client()
    assert client.operation_url(Operation.SSO_CUSTOMER_GET) == f"{SERVICE_URL}/SSOCustomerGet"


def test_lookup_results_are_customer_lookups():
    for result in (Found(CustomerRecord("1", "u", "e")), NotFound("1"), LookupFailed("transport", "x")):
        assert isinstance(result, CustomerLookup)
