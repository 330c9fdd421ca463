from oidc_flow.settings.config import (
    ApplicationConfig,
    LoggingSettings,
    OAuthSettings,
    Settings,
    get_settings,
    parse_url,
)

__all__ = [
    "ApplicationConfig",
    "LoggingSettings",
    "OAuthSettings",
    "Settings",
    "get_settings",
    "parse_url",
]
