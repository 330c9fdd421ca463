import asyncio

import httpx
import pytest

from oidc_flow.clients.oauth import AuthorizationService
from oidc_flow.handler import AuthFlowHandler
from oidc_flow.models import ProviderMetadata
from oidc_flow.settings import ApplicationConfig, OAuthSettings


TOKEN_ENDPOINT = "https://login.example.com/oauth/v2/oauth-token"


class FakeUserAgent:
    """Records presented requests and the session that will receive the redirect."""

    def __init__(self, presented: bool = True) -> None:
        self.presented = presented
        self.requests = []
        self.session = None
        self.dismissed = 0

    def present(self, request, session) -> bool:
        self.requests.append(request)
        self.session = session
        return self.presented

    def dismiss(self) -> None:
        self.dismissed += 1

    def redirect_with(self, **params) -> bool:
        request = self.requests[-1]
        url = request.redirect_url.copy_merge_params(params)
        return self.session.resume_external_user_agent_flow(str(url))


class FakeService:
    """Protocol engine double that keeps callbacks for the test to complete."""

    def __init__(self) -> None:
        self.presented = []
        self.performed = []

    def present(self, request, user_agent, callback):
        self.presented.append((request, user_agent, callback))
        return object()

    def perform(self, request, callback):
        self.performed.append((request, callback))


@pytest.fixture
def settings():
    return OAuthSettings(client_id="native-client", scope="openid profile")


@pytest.fixture
def config(settings):
    return ApplicationConfig(settings)


@pytest.fixture
def metadata():
    return ProviderMetadata(
        authorization_endpoint=httpx.URL("https://login.example.com/oauth/v2/oauth-authorize"),
        token_endpoint=httpx.URL(TOKEN_ENDPOINT),
        end_session_endpoint=httpx.URL("https://login.example.com/oauth/v2/oauth-session/logout"),
    )


@pytest.fixture
def user_agent():
    return FakeUserAgent()


@pytest.fixture
def handler(config, user_agent):
    return AuthFlowHandler(config, service=AuthorizationService(), user_agent_factory=lambda _: user_agent)


async def until_presented(user_agent, count: int = 1) -> None:
    for _ in range(10):
        if len(user_agent.requests) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError("user agent was never presented")
