from __future__ import annotations

from enum import IntEnum
from typing import Any, Mapping


APPAUTH_NAMESPACE = "org.openid.appauth"

GENERAL_ERROR_DOMAIN = "org.openid.appauth.general"
OAUTH_AUTHORIZATION_ERROR_DOMAIN = "org.openid.appauth.oauth_authorization"
OAUTH_TOKEN_ERROR_DOMAIN = "org.openid.appauth.oauth_token"
HTTP_ERROR_DOMAIN = "org.openid.appauth.remote-http"


class ErrorCode(IntEnum):
    """Codes used in the general error domain."""

    INVALID_DISCOVERY_DOCUMENT = -2
    USER_CANCELED_AUTHORIZATION_FLOW = -3
    PROGRAM_CANCELED_AUTHORIZATION_FLOW = -4
    NETWORK_ERROR = -5
    SERVER_ERROR = -6
    JSON_DESERIALIZATION_ERROR = -7
    TOKEN_RESPONSE_CONSTRUCTION_ERROR = -8
    BROWSER_OPEN_ERROR = -10
    TOKEN_REFRESH_ERROR = -11


class OAuthErrorCode(IntEnum):
    """Codes for RFC 6749 error responses, in the OAuth authorization and token domains."""

    INVALID_REQUEST = -2
    UNAUTHORIZED_CLIENT = -3
    ACCESS_DENIED = -4
    UNSUPPORTED_RESPONSE_TYPE = -5
    INVALID_SCOPE = -6
    SERVER_ERROR = -7
    TEMPORARILY_UNAVAILABLE = -8
    INVALID_CLIENT = -9
    INVALID_GRANT = -10
    UNSUPPORTED_GRANT_TYPE = -11
    INVALID_REDIRECT_URI = -12
    INVALID_CLIENT_METADATA = -13
    CLIENT_ERROR = -0xEFFF
    OTHER = -0xF000


_OAUTH_ERROR_CODES = {
    "invalid_request": OAuthErrorCode.INVALID_REQUEST,
    "unauthorized_client": OAuthErrorCode.UNAUTHORIZED_CLIENT,
    "access_denied": OAuthErrorCode.ACCESS_DENIED,
    "unsupported_response_type": OAuthErrorCode.UNSUPPORTED_RESPONSE_TYPE,
    "invalid_scope": OAuthErrorCode.INVALID_SCOPE,
    "server_error": OAuthErrorCode.SERVER_ERROR,
    "temporarily_unavailable": OAuthErrorCode.TEMPORARILY_UNAVAILABLE,
    "invalid_client": OAuthErrorCode.INVALID_CLIENT,
    "invalid_grant": OAuthErrorCode.INVALID_GRANT,
    "unsupported_grant_type": OAuthErrorCode.UNSUPPORTED_GRANT_TYPE,
    "invalid_redirect_uri": OAuthErrorCode.INVALID_REDIRECT_URI,
    "invalid_client_metadata": OAuthErrorCode.INVALID_CLIENT_METADATA,
}


def oauth_error_code(error: str | None) -> OAuthErrorCode:
    """Map an RFC 6749 ``error`` string to its numeric code."""
    if not error:
        return OAuthErrorCode.OTHER
    return _OAUTH_ERROR_CODES.get(error, OAuthErrorCode.OTHER)


class ProviderError(Exception):
    """Raw error reported by the protocol engine or the external user agent."""

    def __init__(
        self,
        domain: str,
        code: int,
        description: str = "",
        *,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(description)
        self.domain = domain
        self.code = int(code)
        self.description = description
        self.details = dict(details or {})

    def __repr__(self) -> str:
        return f"ProviderError(domain={self.domain!r}, code={self.code}, description={self.description!r})"

    @classmethod
    def from_oauth_response(cls, domain: str, payload: Mapping[str, Any]) -> "ProviderError":
        error = payload.get("error")
        error_code = error if isinstance(error, str) else None
        description = payload.get("error_description")
        if error_code and isinstance(description, str) and description.strip():
            message = f"{error_code}: {description}"
        else:
            message = error_code or "OAuth error response"
        return cls(domain, oauth_error_code(error_code), message, details=payload)


class ApplicationError(Exception):
    """Error surfaced to the application, with a human facing title and description."""

    default_title = "Application Error"

    def __init__(self, title: str | None = None, description: str = "") -> None:
        self.title = title or self.default_title
        self.description = description
        super().__init__(f"{self.title} : {self.description}")


class ConfigurationError(ApplicationError):
    """Raised when a configured endpoint is not a well formed URL."""

    default_title = "Invalid Configuration Error"

    def __init__(self, field: str, value: str) -> None:
        super().__init__(description=f"The {field} URL '{value}' could not be parsed")
        self.field = field
        self.value = value


class SessionInProgressError(ApplicationError):
    """Raised when a browser session is presented while another one is still active."""

    default_title = "Authorization In Progress"
