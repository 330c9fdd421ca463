from __future__ import annotations

import logging
from typing import Optional

from oidc_flow.models import ProviderMetadata
from oidc_flow.settings import ApplicationConfig

logger = logging.getLogger(__name__)


def resolve_metadata(config: ApplicationConfig) -> Optional[ProviderMetadata]:
    """Build the provider endpoints from configuration.

    Stops at the first endpoint that does not parse, logging its error.
    """
    authorization_uri, error = config.get_authorization_uri()
    if authorization_uri is None:
        logger.error(f"Error: {error}")
        return None

    token_uri, error = config.get_token_uri()
    if token_uri is None:
        logger.error(f"Error: {error}")
        return None

    logout_uri, error = config.get_logout_uri()
    if logout_uri is None:
        logger.error(f"Error: {error}")
        return None

    return ProviderMetadata(
        authorization_endpoint=authorization_uri,
        token_endpoint=token_uri,
        issuer=None,
        registration_endpoint=None,
        end_session_endpoint=logout_uri,
    )
