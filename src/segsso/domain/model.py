from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from segsso.application.ports.session_store_port import SessionStorePort

# =========================
# Value Objects
# =========================
class CustomerIdentifier(str):
    """Stable TIMSS customer id, ``<master>|<sub>``."""

    @property
    def master_id(self) -> str:
        return self.split("|", 1)[0]

    @property
    def sub_id(self) -> str:
        parts = self.split("|", 1)
        return parts[1] if len(parts) > 1 else "0"


# =========================
# Entities
# =========================
@dataclass(frozen=True)
class CustomerRecord:
    customer_id: str
    username: str
    email: str


@dataclass(frozen=True)
class CustomerProfile:
    label_name: str
    primary_email: str
    membership_type: str
    raw: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any) -> "CustomerProfile":
        if not isinstance(data, Mapping):
            data = {}
        return cls(
            label_name=str(data.get("LabelName") or ""),
            primary_email=str(data.get("PrimaryEmail") or ""),
            membership_type=str(data.get("MembershipType") or ""),
            raw=dict(data),
        )


MEMBER_GROUP = "Member"


@dataclass(frozen=True)
class PrincipalAttributes:
    """What the host application needs to mirror a remote principal locally."""

    customer_id: str
    real_name: str
    email: str
    member_type: str
    groups: tuple[str, ...] = ()

    @property
    def is_member(self) -> bool:
        return MEMBER_GROUP in self.groups

    def as_dict(self) -> dict[str, Any]:
        return {
            "customer_id": self.customer_id,
            "real_name": self.real_name,
            "email": self.email,
            "member_type": self.member_type,
            "groups": list(self.groups),
        }


# =========================
# Customer lookup result
# =========================
@dataclass(frozen=True)
class Found:
    record: CustomerRecord

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class NotFound:
    customer_id: str = ""

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class LookupFailed:
    kind: Literal["transport", "protocol_state"]
    detail: str

    def __bool__(self) -> bool:
        return False


CustomerLookup = Found | NotFound | LookupFailed


# =========================
# Policy
# =========================
@dataclass(frozen=True)
class AuthPolicy:
    """Fixed answers the host's account layer asks of an external auth source."""

    allow_password_change: bool = False
    auto_create_accounts: bool = True
    can_create_external_accounts: bool = False
    strict: bool = True


# =========================
# Per-request view
# =========================
@dataclass(frozen=True)
class RequestContext:
    """Everything the SSO bridge reads from one inbound request.

    ``page`` is the destination the host resolved for the request (its
    path or page title); ``query`` and ``cookies`` are the raw inbound
    values. The session store is owned by this request only; ``state`` is
    scratch space that lives exactly as long as the request.
    """

    session: "SessionStorePort"
    current_url: str
    base_url: str
    page: str
    query: Mapping[str, str] = field(default_factory=dict)
    cookies: Mapping[str, str] = field(default_factory=dict)
    was_posted: bool = False
    is_logged_in: bool = False
    state: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


# =========================
# Reconciler output
# =========================
@dataclass(frozen=True)
class ReconcileDecision:
    action: Literal["none", "login", "logout"]
    redirect_url: str | None = None
    reason: str = ""

    @classmethod
    def no_action(cls, reason: str = "") -> "ReconcileDecision":
        return cls("none", None, reason)

    @property
    def is_redirect(self) -> bool:
        return self.redirect_url is not None
