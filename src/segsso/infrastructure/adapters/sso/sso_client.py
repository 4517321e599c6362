from __future__ import annotations

from enum import StrEnum
from typing import Any
from urllib.parse import quote_plus

from segsso.application.ports.http_client_port import HttpClientPort
from segsso.application.ports.sso_client_port import SSOClientPort
from segsso.codec import encode_form, xml_fields
from segsso.config import SSOConfig
from segsso.domain.model import (
    CustomerLookup,
    CustomerRecord,
    Found,
    LookupFailed,
    NotFound,
    RequestContext,
)
from segsso.errors import ProtocolStateError, TransportError
from segsso.logging_config import get_logger, mask
from segsso.metrics import REMOTE_OPERATIONS

# Session slot holding the current customer token
SK_CUSTOMER_TOKEN = "SEG_SSO_CT"
# One-shot encrypted token carried back from the SSO login page
CT_PARAM = "ct"
_CT_CONSUMED = "ct_consumed"

logger = get_logger(__name__)


class Operation(StrEnum):
    VENDOR_TOKEN_ENCRYPT = "VendorTokenEncrypt"
    CUSTOMER_TOKEN_DECRYPT = "CustomerTokenDecrypt"
    SSO_CUSTOMER_TOKEN_IS_VALID = "SSOCustomerTokenIsValid"
    SSO_CUSTOMER_LOGOUT = "SSOCustomerLogout"
    SSO_CUSTOMER_GET = "SSOCustomerGet"
    TIMSS_CUSTOMER_IDENTIFIER_GET = "TIMSSCustomerIdentifierGet"


class SSOClient(SSOClientPort):
    """Handles all interaction with the SSO server.

    The client holds no per-request state: everything that belongs to the
    caller (session store, ``ct`` parameter, current URL) comes in through
    the ``RequestContext``. One instance is built at startup and shared.
    """

    def __init__(self, config: SSOConfig, http: HttpClientPort) -> None:
        self.config = config
        self.http = http

    # ---------- Public API ----------
    def is_authenticated(self, ctx: RequestContext) -> bool:
        """Validate the current customer token with the SSO server.

        A valid token is replaced in the session by the rotated one the
        server hands back; an invalid one is evicted. No token, no call.
        """
        customer_token = self._retrieve_customer_token(ctx)
        if not customer_token:
            return False

        valid, new_customer_token = self._validate_customer_token(customer_token)
        if valid:
            if new_customer_token:
                logger.debug("customer_token_rotated", token=mask(new_customer_token))
            ctx.session.set(SK_CUSTOMER_TOKEN, new_customer_token or customer_token)
        else:
            logger.info("customer_token_invalid", token=mask(customer_token))
            ctx.session.delete(SK_CUSTOMER_TOKEN)
        return valid

    def get_login_url(self, ctx: RequestContext, return_url: str | None = None) -> str:
        """Full SSO login URL; ``return_url`` defaults to the current URL."""
        return self._signed_url(self.config.login_url, return_url or ctx.current_url)

    def get_register_url(self, ctx: RequestContext, return_url: str | None = None) -> str:
        """Full SSO register URL; ``return_url`` defaults to the current URL."""
        return self._signed_url(self.config.register_url, return_url or ctx.current_url)

    def get_customer_identifier(self, ctx: RequestContext) -> str:
        """TIMSS customer id of the principal whose token is in the session.

        Raises:
            ProtocolStateError: no customer token in the session.
        """
        customer_token = ctx.session.get(SK_CUSTOMER_TOKEN)
        if not customer_token:
            raise ProtocolStateError("customer identifier requested without a customer token in session")
        return self._call(
            Operation.TIMSS_CUSTOMER_IDENTIFIER_GET,
            {**self._credentials(), "customerToken": customer_token},
            ["CustomerIdentifier"],
        )

    def get_customer(self, ctx: RequestContext, customer_id: str | None = None) -> CustomerLookup:
        """Look up the SSO customer record.

        Returns ``Found``, ``NotFound`` when the server reports no such user,
        or ``LookupFailed`` when the lookup itself could not be completed.
        """
        try:
            if not customer_id:
                customer_id = self.get_customer_identifier(ctx)
            return self._get_customer_by_timss_id(customer_id)
        except ProtocolStateError as e:
            return LookupFailed("protocol_state", str(e))
        except TransportError as e:
            logger.warning("customer_lookup_failed", customer_id=customer_id, error=str(e))
            return LookupFailed("transport", str(e))

    def logout(self, ctx: RequestContext) -> None:
        """Log the current customer out of the SSO server.

        The session token is dropped whatever the server answers.
        """
        customer_token = ctx.session.get(SK_CUSTOMER_TOKEN)
        if not customer_token:
            return
        try:
            self._call(
                Operation.SSO_CUSTOMER_LOGOUT,
                {**self._credentials(), "customerToken": customer_token},
            )
        finally:
            ctx.session.delete(SK_CUSTOMER_TOKEN)

    # ---------- Remote operations ----------
    def _get_customer_by_timss_id(self, customer_id: str) -> CustomerLookup:
        result = self._call(
            Operation.SSO_CUSTOMER_GET,
            {**self._credentials(), "TIMSSCustomerId": customer_id},
            ["UserExists", "UserName", "Email"],
        )
        if result["UserExists"].strip().lower() != "true":
            return NotFound(customer_id)
        return Found(CustomerRecord(customer_id, result["UserName"], result["Email"]))

    def _encrypt_vendor_token(self, return_url: str) -> str:
        # the legacy body is not escaped, so the url travels pre-encoded
        url = return_url if self.config.escape_form_values else quote_plus(return_url)
        return self._call(
            Operation.VENDOR_TOKEN_ENCRYPT,
            {**self._credentials(), "vendorBlock": self.config.vendor_block, "url": url},
            ["VendorToken"],
        )

    def _decrypt_customer_token(self, encrypted_token: str) -> str:
        return self._call(
            Operation.CUSTOMER_TOKEN_DECRYPT,
            {
                **self._credentials(),
                "vendorBlock": self.config.vendor_block,
                "customerToken": encrypted_token,
            },
            ["CustomerToken"],
        )

    def _validate_customer_token(self, customer_token: str) -> tuple[bool, str]:
        result = self._call(
            Operation.SSO_CUSTOMER_TOKEN_IS_VALID,
            {**self._credentials(), "customerToken": customer_token},
            ["Valid", "NewCustomerToken"],
        )
        valid = result["Valid"].strip().lower() == "true"
        return valid, (result["NewCustomerToken"] if valid else "")

    # ---------- Helpers ----------
    def _retrieve_customer_token(self, ctx: RequestContext) -> str | None:
        """The ``ct`` parameter wins over the session, and is decrypted once per request."""
        encrypted = ctx.query.get(CT_PARAM)
        if encrypted and not ctx.state.get(_CT_CONSUMED):
            ctx.state[_CT_CONSUMED] = True
            return self._decrypt_customer_token(encrypted)
        return ctx.session.get(SK_CUSTOMER_TOKEN)

    def _signed_url(self, base_url: str, return_url: str) -> str:
        vendor_token = self._encrypt_vendor_token(return_url)
        return f"{base_url}?vi={self.config.vendor_id}&vt={vendor_token}"

    def _credentials(self) -> dict[str, str]:
        return {
            "vendorUsername": self.config.vendor_username,
            "vendorPassword": self.config.vendor_password,
        }

    def operation_url(self, operation: Operation) -> str:
        return f"{self.config.service_url}/{operation.value}"

    def _call(self, operation: Operation, params: dict[str, str], fields: list[str] | None = None) -> Any:
        url = self.operation_url(operation)
        body = encode_form(params, escape=self.config.escape_form_values)
        try:
            resp = self.http.post(url, data=body)
        except TransportError:
            REMOTE_OPERATIONS.labels(operation=operation.value, outcome="error").inc()
            raise
        REMOTE_OPERATIONS.labels(operation=operation.value, outcome="ok").inc()
        logger.debug("sso_operation", operation=operation.value, status=resp.status_code)
        return xml_fields(resp.text, fields)
