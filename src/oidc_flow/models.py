"""Request and response values exchanged with the identity provider.

Requests render themselves into the browser URL or the token endpoint form
body; responses are parsed from the redirect URL that ends a browser flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence

import httpx
from pydantic import BaseModel, ConfigDict

from oidc_flow.errors import (
    OAUTH_AUTHORIZATION_ERROR_DOMAIN,
    OAuthErrorCode,
    ProviderError,
)
from oidc_flow.security import (
    CODE_CHALLENGE_METHOD_S256,
    code_challenge_s256,
    generate_code_verifier,
    generate_nonce,
    generate_state,
)


RESPONSE_TYPE_CODE = "code"
GRANT_TYPE_AUTHORIZATION_CODE = "authorization_code"
GRANT_TYPE_REFRESH_TOKEN = "refresh_token"


@dataclass(frozen=True)
class ProviderMetadata:
    authorization_endpoint: httpx.URL
    token_endpoint: httpx.URL
    end_session_endpoint: httpx.URL | None = None
    issuer: httpx.URL | None = None
    registration_endpoint: httpx.URL | None = None


def matches_redirect(url: httpx.URL, redirect_url: httpx.URL) -> bool:
    """Check whether ``url`` is a response delivered to ``redirect_url``."""
    return (
        url.scheme == redirect_url.scheme
        and url.host == redirect_url.host
        and url.port == redirect_url.port
        and url.path == redirect_url.path
    )


def _query_params(url: httpx.URL) -> Dict[str, str]:
    return {key: url.params.get(key) for key in url.params.keys()}


@dataclass(frozen=True)
class AuthorizationRequest:
    configuration: ProviderMetadata
    client_id: str
    redirect_url: httpx.URL
    scopes: tuple[str, ...] = ()
    client_secret: str | None = None
    response_type: str = RESPONSE_TYPE_CODE
    state: str | None = None
    nonce: str | None = None
    code_verifier: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None
    additional_parameters: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        *,
        configuration: ProviderMetadata,
        client_id: str,
        client_secret: str | None,
        scopes: Sequence[str],
        redirect_url: httpx.URL,
        response_type: str = RESPONSE_TYPE_CODE,
        additional_parameters: Mapping[str, str] | None = None,
    ) -> "AuthorizationRequest":
        """Build a request with fresh state, nonce and PKCE parameters."""
        code_verifier = generate_code_verifier()
        return cls(
            configuration=configuration,
            client_id=client_id,
            redirect_url=redirect_url,
            scopes=tuple(scopes),
            client_secret=client_secret,
            response_type=response_type,
            state=generate_state(),
            nonce=generate_nonce(),
            code_verifier=code_verifier,
            code_challenge=code_challenge_s256(code_verifier),
            code_challenge_method=CODE_CHALLENGE_METHOD_S256,
            additional_parameters=dict(additional_parameters or {}),
        )

    @property
    def scope(self) -> str | None:
        return " ".join(self.scopes) if self.scopes else None

    def external_user_agent_request_url(self) -> httpx.URL:
        params: Dict[str, Any] = {
            "response_type": self.response_type,
            "client_id": self.client_id,
            "redirect_uri": str(self.redirect_url),
            "scope": self.scope,
            "state": self.state,
            "nonce": self.nonce,
            "code_challenge": self.code_challenge,
            "code_challenge_method": self.code_challenge_method,
        }
        params.update(self.additional_parameters)
        return self.configuration.authorization_endpoint.copy_merge_params(
            {key: value for key, value in params.items() if value is not None}
        )

    def response_from_redirect(self, url: httpx.URL) -> "AuthorizationResponse":
        """Parse the redirect that ends the browser flow.

        Raises:
            ProviderError: If the provider returned an error or the state does not match
        """
        params = _query_params(url)
        if "error" in params:
            raise ProviderError.from_oauth_response(OAUTH_AUTHORIZATION_ERROR_DOMAIN, params)

        state = params.pop("state", None)
        if state != self.state:
            raise ProviderError(
                OAUTH_AUTHORIZATION_ERROR_DOMAIN,
                OAuthErrorCode.CLIENT_ERROR,
                f"State mismatch, expecting {self.state} but got {state} in authorization response {url}",
            )

        return AuthorizationResponse(
            request=self,
            authorization_code=params.pop("code", None),
            state=state,
            additional_parameters=params,
        )


@dataclass(frozen=True)
class AuthorizationResponse:
    request: AuthorizationRequest
    authorization_code: str | None = None
    state: str | None = None
    additional_parameters: Mapping[str, str] = field(default_factory=dict)

    def token_exchange_request(
        self, additional_parameters: Mapping[str, str] | None = None
    ) -> Optional["TokenRequest"]:
        """Build the code exchange request, or ``None`` when there is no code to redeem."""
        if not self.authorization_code:
            return None
        return TokenRequest(
            configuration=self.request.configuration,
            grant_type=GRANT_TYPE_AUTHORIZATION_CODE,
            client_id=self.request.client_id,
            authorization_code=self.authorization_code,
            redirect_url=self.request.redirect_url,
            client_secret=self.request.client_secret,
            code_verifier=self.request.code_verifier,
            additional_parameters=dict(additional_parameters or {}),
        )


@dataclass(frozen=True)
class TokenRequest:
    """Token endpoint request for the authorization code and refresh token grants."""

    configuration: ProviderMetadata
    grant_type: str
    client_id: str
    authorization_code: str | None = None
    redirect_url: httpx.URL | None = None
    client_secret: str | None = None
    scope: str | None = None
    refresh_token: str | None = None
    code_verifier: str | None = None
    additional_parameters: Mapping[str, str] | None = None

    @property
    def token_endpoint(self) -> httpx.URL:
        return self.configuration.token_endpoint

    def to_form_data(self) -> Dict[str, str]:
        data: Dict[str, Optional[str]] = {
            "grant_type": self.grant_type,
            "client_id": self.client_id,
            "code": self.authorization_code,
            "redirect_uri": str(self.redirect_url) if self.redirect_url is not None else None,
            "scope": self.scope,
            "refresh_token": self.refresh_token,
            "code_verifier": self.code_verifier,
        }
        if self.additional_parameters:
            data.update(self.additional_parameters)
        return {key: value for key, value in data.items() if value is not None}


class TokenResponse(BaseModel):
    """Token endpoint success response (RFC 6749 Section 5.1, plus the OIDC id_token)."""

    model_config = ConfigDict(extra="allow")

    access_token: str | None = None
    token_type: str | None = None
    expires_in: int | None = None
    refresh_token: str | None = None
    id_token: str | None = None
    scope: str | None = None


@dataclass(frozen=True)
class EndSessionRequest:
    configuration: ProviderMetadata
    id_token_hint: str
    post_logout_redirect_url: httpx.URL
    state: str | None = None
    additional_parameters: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        *,
        configuration: ProviderMetadata,
        id_token_hint: str,
        post_logout_redirect_url: httpx.URL,
        additional_parameters: Mapping[str, str] | None = None,
    ) -> "EndSessionRequest":
        return cls(
            configuration=configuration,
            id_token_hint=id_token_hint,
            post_logout_redirect_url=post_logout_redirect_url,
            state=generate_state(),
            additional_parameters=dict(additional_parameters or {}),
        )

    @property
    def redirect_url(self) -> httpx.URL:
        return self.post_logout_redirect_url

    def external_user_agent_request_url(self) -> httpx.URL:
        endpoint = self.configuration.end_session_endpoint
        if endpoint is None:
            raise ValueError("Provider metadata has no end session endpoint")
        params: Dict[str, Any] = {
            "id_token_hint": self.id_token_hint,
            "post_logout_redirect_uri": str(self.post_logout_redirect_url),
            "state": self.state,
        }
        params.update(self.additional_parameters)
        return endpoint.copy_merge_params(
            {key: value for key, value in params.items() if value is not None}
        )

    def response_from_redirect(self, url: httpx.URL) -> "EndSessionResponse":
        params = _query_params(url)
        state = params.pop("state", None)
        if state != self.state:
            raise ProviderError(
                OAUTH_AUTHORIZATION_ERROR_DOMAIN,
                OAuthErrorCode.CLIENT_ERROR,
                f"State mismatch, expecting {self.state} but got {state} in end session response {url}",
            )
        return EndSessionResponse(request=self, state=state, additional_parameters=params)


@dataclass(frozen=True)
class EndSessionResponse:
    request: EndSessionRequest
    state: str | None = None
    additional_parameters: Mapping[str, str] = field(default_factory=dict)
