from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env if present
load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SSOConfig:
    """Vendor credentials and endpoints of the remote SSO service.

    Pure value object. Empty fields are accepted here; they only show up
    later as failed lookups against the remote service.
    """

    vendor_id: str = ""
    vendor_username: str = ""
    vendor_password: str = ""
    vendor_block: str = ""
    login_url: str = ""
    register_url: str = ""
    service_url: str = ""
    # Legacy contract joins POST values unescaped; see DESIGN.md
    escape_form_values: bool = False


@dataclass(frozen=True)
class AmsConfig:
    custom_service_url: str = ""


@dataclass(frozen=True)
class Settings:
    sso_vendor_id: str = os.getenv("SSO_VENDOR_ID", "")
    sso_vendor_username: str = os.getenv("SSO_VENDOR_USERNAME", "")
    sso_vendor_password: str = os.getenv("SSO_VENDOR_PASSWORD", "")
    sso_vendor_block: str = os.getenv("SSO_VENDOR_BLOCK", "")
    sso_login_url: str = os.getenv("SSO_LOGIN_URL", "")
    sso_register_url: str = os.getenv("SSO_REGISTER_URL", "")
    sso_service_url: str = os.getenv("SSO_SERVICE_URL", "")
    sso_cookie_name: str = os.getenv("SSO_COOKIE_NAME", "SSO")
    sso_escape_form_values: bool = _flag("SSO_ESCAPE_FORM_VALUES")
    ams_custom_service_url: str = os.getenv("AMS_CUSTOM_SERVICE_URL", "")
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "45"))
    http_backend: str = os.getenv("HTTP_BACKEND", "httpx")
    session_db_path: str = os.getenv("SESSION_DB_PATH", ".segsso_sessions.sqlite")
    log_level: str = os.getenv("LOG_LEVEL", "info")
    log_json: bool = _flag("LOG_JSON")

    def sso_config(self) -> SSOConfig:
        return SSOConfig(
            vendor_id=self.sso_vendor_id,
            vendor_username=self.sso_vendor_username,
            vendor_password=self.sso_vendor_password,
            vendor_block=self.sso_vendor_block,
            login_url=self.sso_login_url,
            register_url=self.sso_register_url,
            service_url=self.sso_service_url,
            escape_form_values=self.sso_escape_form_values,
        )

    def ams_config(self) -> AmsConfig:
        return AmsConfig(custom_service_url=self.ams_custom_service_url)


settings = Settings()
