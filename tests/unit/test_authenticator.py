from __future__ import annotations

from segsso.application.use_cases.sso_authenticator import SSOAuthenticator
from segsso.config import SSOConfig
from segsso.domain.model import AuthPolicy, CustomerProfile
from segsso.errors import TransportError
from segsso.infrastructure.adapters.session.memory_store import InMemorySessionStore
from segsso.infrastructure.adapters.sso.sso_client import SK_CUSTOMER_TOKEN, SSOClient
from tests.unit._fakes_auth import SERVICE_URL, FakeHttp, FakeProfiles, make_ctx, xml_doc

CONFIG = SSOConfig(vendor_id="V1", vendor_username="vendor", vendor_password="secret",
                   vendor_block="BLOCK", login_url="https://idp/login", service_url=SERVICE_URL)


def make_authenticator(responses=None, profiles=None):
    http = FakeHttp(responses)
    profiles = profiles or FakeProfiles()
    return SSOAuthenticator(SSOClient(CONFIG, http), profiles), http, profiles


def test_policy_flags_are_fixed():
    auth, _, _ = make_authenticator()
    assert auth.policy == AuthPolicy(
        allow_password_change=False, auto_create_accounts=True,
        can_create_external_accounts=False, strict=True,
    )


def test_resolve_principal_attributes_grants_member_group():
    auth, _, profiles = make_authenticator({"TIMSSCustomerIdentifierGet": xml_doc(CustomerIdentifier="1001|0")})
    ctx = make_ctx(InMemorySessionStore({SK_CUSTOMER_TOKEN: "CT"}))

    attrs = auth.resolve_principal_attributes(ctx)

    assert profiles.requested == ["1001|0"]
    assert attrs is not None
    assert attrs.real_name == "Ada Lovelace"
    assert attrs.email == "ada@example.org"
    assert attrs.member_type == "Full"
    assert attrs.is_member


def test_no_membership_type_means_no_member_group():
    auth, _, _ = make_authenticator(
        {"TIMSSCustomerIdentifierGet": xml_doc(CustomerIdentifier="1001|0")},
        FakeProfiles(CustomerProfile("Bob", "bob@example.org", "")),
    )
    attrs = auth.resolve_principal_attributes(make_ctx(InMemorySessionStore({SK_CUSTOMER_TOKEN: "CT"})))
    assert attrs is not None and attrs.groups == ()


def test_resolve_principal_attributes_failures_yield_none():
    auth, _, _ = make_authenticator()
    assert auth.resolve_principal_attributes(make_ctx()) is None

    failing, _, _ = make_authenticator(
        {"TIMSSCustomerIdentifierGet": xml_doc(CustomerIdentifier="1001|0")},
        FakeProfiles(TransportError("https://ams", "down")),
    )
    assert failing.resolve_principal_attributes(make_ctx(InMemorySessionStore({SK_CUSTOMER_TOKEN: "CT"}))) is None


def test_empty_identifier_skips_profile_lookup():
    auth, _, profiles = make_authenticator({"TIMSSCustomerIdentifierGet": xml_doc(CustomerIdentifier="")})
    assert auth.resolve_principal_attributes(make_ctx(InMemorySessionStore({SK_CUSTOMER_TOKEN: "CT"}))) is None
    assert profiles.requested == []


def test_explicit_logout_swallows_remote_failure_and_clears_token():
    auth, http, _ = make_authenticator({"SSOCustomerLogout": TransportError("u", "down")})
    store = InMemorySessionStore({SK_CUSTOMER_TOKEN: "CT"})

    auth.logout(make_ctx(store))

    assert http.operations() == ["SSOCustomerLogout"]
    assert store.get(SK_CUSTOMER_TOKEN) is None


def test_login_url_delegates_to_client():
    auth, _, _ = make_authenticator({"VendorTokenEncrypt": xml_doc(VendorToken="ABC")})
    assert auth.login_url(make_ctx(), "https://app/return") == "https://idp/login?vi=V1&vt=ABC"
