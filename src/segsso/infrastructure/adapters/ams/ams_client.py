from __future__ import annotations

from segsso.application.ports.http_client_port import HttpClientPort
from segsso.application.ports.profile_port import ProfilePort
from segsso.config import AmsConfig
from segsso.domain.model import CustomerIdentifier, CustomerProfile
from segsso.errors import TransportError
from segsso.logging_config import get_logger
from segsso.metrics import REMOTE_OPERATIONS

OP_GET_CUSTOMER_LABEL = "GetCustomerLabel"

logger = get_logger(__name__)


class AmsClient(ProfilePort):
    """Reads membership profiles from the AMS custom service (JSON over GET)."""

    def __init__(self, config: AmsConfig, http: HttpClientPort) -> None:
        self.config = config
        self.http = http

    def get_customer_basic_info(self, customer_id: str) -> CustomerProfile:
        ident = CustomerIdentifier(customer_id)
        url = f"{self.config.custom_service_url}/{OP_GET_CUSTOMER_LABEL}"
        try:
            resp = self.http.get(
                url,
                params={"masterCustID": ident.master_id, "subCustID": ident.sub_id},
                headers={"Accept": "application/json; charset=utf-8"},
            )
            data = resp.json()
        except TransportError:
            REMOTE_OPERATIONS.labels(operation=OP_GET_CUSTOMER_LABEL, outcome="error").inc()
            raise
        REMOTE_OPERATIONS.labels(operation=OP_GET_CUSTOMER_LABEL, outcome="ok").inc()
        logger.debug("profile_fetched", master_id=ident.master_id, sub_id=ident.sub_id)
        return CustomerProfile.from_json(data)
