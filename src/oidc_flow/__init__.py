from oidc_flow.errors import ApplicationError, ConfigurationError, ProviderError, SessionInProgressError
from oidc_flow.handler import AuthFlowHandler
from oidc_flow.metadata import resolve_metadata
from oidc_flow.models import (
    AuthorizationRequest,
    AuthorizationResponse,
    EndSessionRequest,
    ProviderMetadata,
    TokenRequest,
    TokenResponse,
)
from oidc_flow.settings import ApplicationConfig

__all__ = [
    "ApplicationConfig",
    "ApplicationError",
    "AuthFlowHandler",
    "AuthorizationRequest",
    "AuthorizationResponse",
    "ConfigurationError",
    "EndSessionRequest",
    "ProviderError",
    "ProviderMetadata",
    "SessionInProgressError",
    "TokenRequest",
    "TokenResponse",
    "resolve_metadata",
]
