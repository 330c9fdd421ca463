from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Set

import httpx
from pydantic import ValidationError

from oidc_flow.clients.session import ExternalUserAgentFlowSession
from oidc_flow.clients.types import ExternalUserAgent, ExternalUserAgentRequest, FlowCallback
from oidc_flow.errors import (
    GENERAL_ERROR_DOMAIN,
    HTTP_ERROR_DOMAIN,
    OAUTH_TOKEN_ERROR_DOMAIN,
    ErrorCode,
    ProviderError,
)
from oidc_flow.models import TokenRequest, TokenResponse

logger = logging.getLogger(__name__)


class AuthorizationService:
    """Protocol engine that presents browser requests and calls the token endpoint with httpx."""

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._pending: Set[asyncio.Task] = set()

    def present(
        self,
        request: ExternalUserAgentRequest,
        user_agent: ExternalUserAgent,
        callback: FlowCallback,
    ) -> ExternalUserAgentFlowSession:
        """Present ``request`` through ``user_agent``.

        The callback receives the parsed response, or a ProviderError when the
        user agent could not be presented or the flow failed.
        """
        session = ExternalUserAgentFlowSession(request, user_agent, callback)
        try:
            presented = user_agent.present(request, session)
            reason = "Unable to open the browser."
        except Exception as exc:
            logger.exception("External user agent failed to present the request")
            presented = False
            reason = f"Unable to open the browser: {exc}"

        if not presented:
            session.fail_external_user_agent_flow(
                ProviderError(GENERAL_ERROR_DOMAIN, ErrorCode.BROWSER_OPEN_ERROR, reason)
            )
        return session

    def perform(self, request: TokenRequest, callback: FlowCallback) -> asyncio.Task:
        """Run a token request in the background and report it through ``callback``."""
        task = asyncio.get_running_loop().create_task(self._perform(request, callback))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _perform(self, request: TokenRequest, callback: FlowCallback) -> None:
        try:
            response = await self.request_token(request)
        except ProviderError as exc:
            callback(None, exc)
            return
        except Exception as exc:
            logger.exception("Token request failed unexpectedly")
            callback(
                None,
                ProviderError(
                    GENERAL_ERROR_DOMAIN,
                    ErrorCode.TOKEN_RESPONSE_CONSTRUCTION_ERROR,
                    f"Token request failed: {exc}",
                ),
            )
            return
        callback(response, None)

    async def request_token(self, request: TokenRequest) -> TokenResponse:
        """POST a token request to the token endpoint.

        Raises:
            ProviderError: On network failure, error responses, or an unusable body
        """
        data = request.to_form_data()
        auth: tuple[str, str] | None = None
        if request.client_secret:
            auth = (request.client_id, request.client_secret)

        logger.debug(
            f"Token request to {request.token_endpoint}: grant_type={data['grant_type']}, "
            f"client_id={data['client_id']}"
        )

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    str(request.token_endpoint),
                    data=data,
                    headers={"Accept": "application/json"},
                    auth=auth,
                )
        except httpx.HTTPError as exc:
            raise ProviderError(
                GENERAL_ERROR_DOMAIN,
                ErrorCode.NETWORK_ERROR,
                f"Network error during token request: {exc}",
            ) from exc

        if resp.status_code >= 400:
            payload = _safe_json(resp)
            if isinstance(payload.get("error"), str):
                raise ProviderError.from_oauth_response(OAUTH_TOKEN_ERROR_DOMAIN, payload)
            raise ProviderError(
                HTTP_ERROR_DOMAIN,
                resp.status_code,
                f"HTTP {resp.status_code} from token endpoint: {resp.text}",
                details=payload,
            )

        return _parse_token_response(resp)


def _safe_json(resp: httpx.Response) -> Dict[str, Any]:
    try:
        payload = resp.json()
    except ValueError:
        return {"raw": resp.text}
    return payload if isinstance(payload, dict) else {"raw": payload}


def _parse_token_response(resp: httpx.Response) -> TokenResponse:
    try:
        payload = resp.json()
    except ValueError as exc:
        raise ProviderError(
            GENERAL_ERROR_DOMAIN,
            ErrorCode.JSON_DESERIALIZATION_ERROR,
            f"Token response is not valid JSON: {exc}",
        ) from exc

    if not isinstance(payload, Mapping) or not payload.get("access_token"):
        raise ProviderError(
            GENERAL_ERROR_DOMAIN,
            ErrorCode.TOKEN_RESPONSE_CONSTRUCTION_ERROR,
            "Token response missing required access_token",
        )

    try:
        return TokenResponse.model_validate(payload)
    except ValidationError as exc:
        raise ProviderError(
            GENERAL_ERROR_DOMAIN,
            ErrorCode.TOKEN_RESPONSE_CONSTRUCTION_ERROR,
            f"Invalid token response format: {exc}",
        ) from exc
