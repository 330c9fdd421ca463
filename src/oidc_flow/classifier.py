from __future__ import annotations

import logging
from typing import List, Optional

from oidc_flow.errors import (
    APPAUTH_NAMESPACE,
    GENERAL_ERROR_DOMAIN,
    OAUTH_TOKEN_ERROR_DOMAIN,
    ApplicationError,
    ErrorCode,
    OAuthErrorCode,
)

logger = logging.getLogger(__name__)


def is_user_cancellation(error: BaseException) -> bool:
    """True when the user closed the browser window before finishing the flow."""
    return (
        getattr(error, "domain", None) == GENERAL_ERROR_DOMAIN
        and getattr(error, "code", None) == ErrorCode.USER_CANCELED_AUTHORIZATION_FLOW
    )


def is_refresh_token_expired(error: BaseException) -> bool:
    """True when the refresh token was rejected and the user must sign in again."""
    return (
        getattr(error, "domain", None) == OAUTH_TOKEN_ERROR_DOMAIN
        and getattr(error, "code", None) == OAuthErrorCode.INVALID_GRANT
    )


def create_authorization_error(title: str, error: Optional[BaseException]) -> ApplicationError:
    """Build an ApplicationError from an OAuth error response or engine error identifiers."""
    parts: List[str] = []
    if error is None:
        parts.append("Unknown Error")
    else:
        domain = getattr(error, "domain", None)
        if isinstance(domain, str) and APPAUTH_NAMESPACE in domain:
            parts.append(f"({domain} / {int(getattr(error, 'code', 0))})")

        message = str(error)
        if message:
            parts.append(message)

    app_error = ApplicationError(title, " : ".join(parts))
    logger.error(f"{app_error.title} : {app_error.description}", extra={"title": app_error.title})
    return app_error
