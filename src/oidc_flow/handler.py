"""Authorization flow handler.

Drives the browser login, code redemption, token refresh and end session
redirects against one identity provider. Each operation is a coroutine that
returns its value, returns None for an expected alternative path (the user
closed the browser, the refresh token expired), or raises ApplicationError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

from oidc_flow.classifier import (
    create_authorization_error,
    is_refresh_token_expired,
    is_user_cancellation,
)
from oidc_flow.clients.loopback import LoopbackUserAgent
from oidc_flow.clients.oauth import AuthorizationService
from oidc_flow.clients.types import ExternalUserAgent, ExternalUserAgentSession
from oidc_flow.errors import (
    GENERAL_ERROR_DOMAIN,
    ErrorCode,
    ProviderError,
    SessionInProgressError,
)
from oidc_flow.metadata import resolve_metadata
from oidc_flow.models import (
    GRANT_TYPE_REFRESH_TOKEN,
    RESPONSE_TYPE_CODE,
    AuthorizationRequest,
    AuthorizationResponse,
    EndSessionRequest,
    ProviderMetadata,
    TokenRequest,
    TokenResponse,
)
from oidc_flow.settings import ApplicationConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

UserAgentFactory = Callable[[Any], ExternalUserAgent]


def default_user_agent(presentation_context: Any = None) -> ExternalUserAgent:
    """Loopback user agent; a callable context is used to open the browser."""
    return LoopbackUserAgent(opener=presentation_context)


class CompletionBridge(Generic[T]):
    """Single-resolution result for a collaborator's completion callback.

    The callback may run on any thread; the outcome is handed to the event loop
    that created the bridge and only the first delivery is kept.
    """

    def __init__(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._future: asyncio.Future[Tuple[Optional[T], Optional[ProviderError]]] = self._loop.create_future()

    def __call__(self, response: Optional[T], error: Optional[ProviderError]) -> None:
        self._loop.call_soon_threadsafe(self._resolve, response, error)

    def _resolve(self, response: Optional[T], error: Optional[ProviderError]) -> None:
        if self._future.done():
            logger.debug("Ignoring repeated completion")
            return
        self._future.set_result((response, error))

    async def wait(self) -> Tuple[Optional[T], Optional[ProviderError]]:
        return await self._future


class AuthFlowHandler:
    def __init__(
        self,
        config: ApplicationConfig,
        *,
        service: Optional[AuthorizationService] = None,
        user_agent_factory: Optional[UserAgentFactory] = None,
    ) -> None:
        self._config = config
        self._service = service or AuthorizationService()
        self._user_agent_factory = user_agent_factory or default_user_agent
        self._user_agent_session: Optional[ExternalUserAgentSession] = None

    @property
    def user_agent_session(self) -> Optional[ExternalUserAgentSession]:
        """The browser session currently presented, if any."""
        return self._user_agent_session

    def fetch_metadata(self) -> Optional[ProviderMetadata]:
        return resolve_metadata(self._config)

    async def authorize(
        self,
        metadata: ProviderMetadata,
        client_id: str,
        presentation_context: Any = None,
    ) -> Optional[AuthorizationResponse]:
        """Trigger a browser redirect with standard parameters.

        Returns None when the user closes the browser window.

        Raises:
            ConfigurationError: If the redirect URI is malformed
            SessionInProgressError: If another browser session is active
            ApplicationError: If the provider or the browser reported an error
        """
        redirect_uri, parse_error = self._config.get_redirect_uri()
        if redirect_uri is None:
            raise parse_error
        self._ensure_no_session()

        # acr_values selects a particular authentication method for the whole provider
        extra_params: Dict[str, str] = {}
        if self._config.acr_values:
            extra_params["acr_values"] = self._config.acr_values

        request = AuthorizationRequest.create(
            configuration=metadata,
            client_id=client_id,
            client_secret=self._config.client_secret,
            scopes=self._config.scope.split(" "),
            redirect_url=redirect_uri,
            response_type=RESPONSE_TYPE_CODE,
            additional_parameters=extra_params,
        )

        completion: CompletionBridge[AuthorizationResponse] = CompletionBridge()
        user_agent = self._create_user_agent(presentation_context, "Authorization Request Error")
        self._user_agent_session = self._service.present(request, user_agent, completion)
        try:
            response, error = await self._wait_for_browser(completion)

            if response is not None:
                logger.info("Authorization response received successfully")
                code = response.authorization_code or ""
                state = response.state or ""
                logger.debug(f"CODE: {code}, STATE: {state}")
                return response

            if error is not None and is_user_cancellation(error):
                logger.info("User cancelled the browser window")
                return None

            raise create_authorization_error("Authorization Request Error", error)
        finally:
            self._user_agent_session = None

    async def exchange_code(
        self,
        client_id: str,
        authorization_response: AuthorizationResponse,
    ) -> TokenResponse:
        """Redeem the authorization code for tokens.

        Raises:
            ApplicationError: If the token endpoint call fails
        """
        request = authorization_response.token_exchange_request({})
        if request is None:
            raise create_authorization_error(
                "Authorization Response Error",
                ProviderError(
                    GENERAL_ERROR_DOMAIN,
                    ErrorCode.TOKEN_RESPONSE_CONSTRUCTION_ERROR,
                    "Authorization response has no authorization code",
                ),
            )

        logger.debug(f"Redeeming authorization code for client {client_id}")
        completion: CompletionBridge[TokenResponse] = CompletionBridge()
        self._service.perform(request, completion)
        token_response, error = await completion.wait()

        if token_response is not None:
            logger.info("Authorization code grant response received successfully")
            self._log_tokens(token_response)
            return token_response

        raise create_authorization_error("Authorization Response Error", error)

    async def refresh_access_token(
        self,
        metadata: ProviderMetadata,
        client_id: str,
        refresh_token: str,
    ) -> Optional[TokenResponse]:
        """Try to refresh an access token, returning None when the refresh token has expired.

        Raises:
            ApplicationError: For any failure other than an expired refresh token
        """
        request = TokenRequest(
            configuration=metadata,
            grant_type=GRANT_TYPE_REFRESH_TOKEN,
            client_id=client_id,
            authorization_code=None,
            redirect_url=None,
            client_secret=None,
            scope=None,
            refresh_token=refresh_token,
            code_verifier=None,
            additional_parameters=None,
        )

        completion: CompletionBridge[TokenResponse] = CompletionBridge()
        self._service.perform(request, completion)
        token_response, error = await completion.wait()

        if token_response is not None:
            logger.info("Refresh token grant response received successfully")
            self._log_tokens(token_response)
            return token_response

        if error is not None and is_refresh_token_expired(error):
            logger.info("Refresh token expired and the user must re-authenticate")
            return None

        raise create_authorization_error("Refresh Token Error", error)

    async def end_session(
        self,
        metadata: ProviderMetadata,
        id_token: str,
        presentation_context: Any = None,
    ) -> None:
        """Do an OpenID Connect end session redirect to remove the provider's SSO cookie.

        A cancelled logout window still counts as a completed logout.

        Raises:
            ConfigurationError: If the post logout redirect URI is malformed
            SessionInProgressError: If another browser session is active
            ApplicationError: If the provider or the browser reported an error
        """
        post_logout_redirect_uri, parse_error = self._config.get_post_logout_redirect_uri()
        if post_logout_redirect_uri is None:
            raise parse_error
        self._ensure_no_session()

        request = EndSessionRequest.create(
            configuration=metadata,
            id_token_hint=id_token,
            post_logout_redirect_url=post_logout_redirect_uri,
            additional_parameters={},
        )

        completion: CompletionBridge[Any] = CompletionBridge()
        user_agent = self._create_user_agent(presentation_context, "End Session Error")
        self._user_agent_session = self._service.present(request, user_agent, completion)
        try:
            _, error = await self._wait_for_browser(completion)

            if error is None:
                return None

            if is_user_cancellation(error):
                logger.info("User cancelled the browser window")
                return None

            raise create_authorization_error("End Session Error", error)
        finally:
            self._user_agent_session = None

    def _ensure_no_session(self) -> None:
        if self._user_agent_session is not None:
            error = SessionInProgressError(description="Another browser session is already active")
            logger.error(f"{error.title} : {error.description}")
            raise error

    def _create_user_agent(self, presentation_context: Any, title: str) -> ExternalUserAgent:
        try:
            return self._user_agent_factory(presentation_context)
        except Exception as exc:
            logger.exception("Failed to create the external user agent")
            raise create_authorization_error(
                title,
                ProviderError(GENERAL_ERROR_DOMAIN, ErrorCode.BROWSER_OPEN_ERROR, f"Unable to open the browser: {exc}"),
            ) from exc

    async def _wait_for_browser(self, completion: CompletionBridge[T]) -> Tuple[Optional[T], Optional[ProviderError]]:
        try:
            return await completion.wait()
        except asyncio.CancelledError:
            session = self._user_agent_session
            if session is not None:
                session.cancel()
            raise

    @staticmethod
    def _log_tokens(token_response: TokenResponse) -> None:
        access_token = token_response.access_token or ""
        refresh_token = token_response.refresh_token or ""
        id_token = token_response.id_token or ""
        logger.debug(f"AT: {access_token}, RT: {refresh_token}, IDT: {id_token}")
