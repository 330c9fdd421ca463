from __future__ import annotations

from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version as pkg_version
from typing import Literal, Optional

import httpx
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from oidc_flow.errors import ConfigurationError


def _package_version(default: str = "0.1.0") -> str:
    try:
        return pkg_version("oidc-flow")
    except PackageNotFoundError:
        return default


class OAuthSettings(BaseModel):
    # Provider endpoints, parsed lazily by ApplicationConfig
    authorization_uri: str = "https://login.example.com/oauth/v2/oauth-authorize"
    token_uri: str = "https://login.example.com/oauth/v2/oauth-token"
    logout_uri: str = "https://login.example.com/oauth/v2/oauth-session/logout"

    # Loopback redirects (RFC 8252)
    redirect_uri: str = "http://127.0.0.1:8765/callback"
    post_logout_redirect_uri: str = "http://127.0.0.1:8765/logoutcallback"

    # OAuth client
    client_id: str = "native-client"
    client_secret: Optional[str] = None
    scope: str = "openid profile"

    # Forces an authentication method, e.g. "urn:se:curity:authentication:html-form:Username-Password"
    acr_values: Optional[str] = None

    # Seconds before an unanswered browser window counts as abandoned
    browser_timeout: Optional[float] = 300.0


class LoggingSettings(BaseModel):
    as_json: bool = False
    level: Literal["critical", "error", "warning", "info", "debug"] = "info"


class Settings(BaseSettings):
    """Application settings loaded from environment (and .env)."""

    app_name: str = "OIDC Flow"
    app_version: str = Field(default_factory=_package_version)

    oauth: OAuthSettings = OAuthSettings()
    logging: LoggingSettings = LoggingSettings()

    model_config = SettingsConfigDict(
        env_prefix="OIDC_FLOW_",
        env_nested_delimiter="__",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def parse_url(value: str) -> httpx.URL:
    """Parse an absolute URL, raising ``httpx.InvalidURL`` when it is malformed."""
    if not value or any(ch.isspace() for ch in value):
        raise httpx.InvalidURL(f"Invalid URL: {value!r}")
    url = httpx.URL(value)
    if not url.scheme:
        raise httpx.InvalidURL(f"URL has no scheme: {value!r}")
    if url.scheme in ("http", "https") and not url.host:
        raise httpx.InvalidURL(f"URL has no host: {value!r}")
    return url


class ApplicationConfig:
    """Configuration provider for the authorization flow.

    URL getters return ``(url, None)`` or ``(None, error)`` so that callers
    decide how a malformed value is reported.
    """

    def __init__(self, settings: Optional[OAuthSettings] = None) -> None:
        self._settings = settings or get_settings().oauth

    @property
    def client_id(self) -> str:
        return self._settings.client_id

    @property
    def client_secret(self) -> Optional[str]:
        return self._settings.client_secret

    @property
    def scope(self) -> str:
        return self._settings.scope

    @property
    def acr_values(self) -> Optional[str]:
        return self._settings.acr_values

    def get_url(self, field: str, value: str) -> tuple[httpx.URL | None, ConfigurationError | None]:
        try:
            return parse_url(value), None
        except httpx.InvalidURL:
            return None, ConfigurationError(field, value)

    def get_authorization_uri(self) -> tuple[httpx.URL | None, ConfigurationError | None]:
        return self.get_url("authorization_uri", self._settings.authorization_uri)

    def get_token_uri(self) -> tuple[httpx.URL | None, ConfigurationError | None]:
        return self.get_url("token_uri", self._settings.token_uri)

    def get_logout_uri(self) -> tuple[httpx.URL | None, ConfigurationError | None]:
        return self.get_url("logout_uri", self._settings.logout_uri)

    def get_redirect_uri(self) -> tuple[httpx.URL | None, ConfigurationError | None]:
        return self.get_url("redirect_uri", self._settings.redirect_uri)

    def get_post_logout_redirect_uri(self) -> tuple[httpx.URL | None, ConfigurationError | None]:
        return self.get_url("post_logout_redirect_uri", self._settings.post_logout_redirect_uri)
