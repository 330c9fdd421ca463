import asyncio

import pytest

from conftest import FakeService, FakeUserAgent, until_presented
from oidc_flow.errors import (
    GENERAL_ERROR_DOMAIN,
    ApplicationError,
    ConfigurationError,
    ErrorCode,
    ProviderError,
)
from oidc_flow.handler import AuthFlowHandler
from oidc_flow.models import EndSessionRequest
from oidc_flow.settings import ApplicationConfig, OAuthSettings


@pytest.mark.asyncio
async def test_end_session_success(handler, metadata, user_agent):
    task = asyncio.create_task(handler.end_session(metadata, "IDT-1"))
    await until_presented(user_agent)
    assert handler.user_agent_session is not None

    request = user_agent.requests[0]
    assert isinstance(request, EndSessionRequest)
    params = request.external_user_agent_request_url().params
    assert params["id_token_hint"] == "IDT-1"
    assert params["post_logout_redirect_uri"] == "http://127.0.0.1:8765/logoutcallback"
    assert request.additional_parameters == {}

    assert user_agent.redirect_with(state=request.state)
    assert await task is None
    assert handler.user_agent_session is None


@pytest.mark.asyncio
async def test_end_session_cancelled_counts_as_logout(handler, metadata, user_agent):
    task = asyncio.create_task(handler.end_session(metadata, "IDT-1"))
    await until_presented(user_agent)

    user_agent.session.fail_external_user_agent_flow(
        ProviderError(GENERAL_ERROR_DOMAIN, ErrorCode.USER_CANCELED_AUTHORIZATION_FLOW, "closed")
    )

    assert await task is None
    assert handler.user_agent_session is None


@pytest.mark.asyncio
async def test_end_session_other_error(handler, metadata, user_agent):
    task = asyncio.create_task(handler.end_session(metadata, "IDT-1"))
    await until_presented(user_agent)

    user_agent.redirect_with(state="unexpected")

    with pytest.raises(ApplicationError) as ei:
        await task
    assert ei.value.title == "End Session Error"
    assert ei.value.description.startswith("(org.openid.appauth.oauth_authorization / -61439)")
    assert handler.user_agent_session is None


@pytest.mark.asyncio
async def test_end_session_completion_without_error(metadata, config):
    service = FakeService()
    handler = AuthFlowHandler(config, service=service, user_agent_factory=lambda _: FakeUserAgent())

    task = asyncio.create_task(handler.end_session(metadata, "IDT-1"))
    await asyncio.sleep(0)
    _, _, callback = service.presented[0]
    callback(None, None)

    assert await task is None
    assert handler.user_agent_session is None


@pytest.mark.asyncio
async def test_end_session_malformed_post_logout_redirect(metadata):
    created = []
    config = ApplicationConfig(OAuthSettings(post_logout_redirect_uri="not a url"))
    handler = AuthFlowHandler(config, service=FakeService(), user_agent_factory=created.append)

    with pytest.raises(ConfigurationError) as ei:
        await handler.end_session(metadata, "IDT-1")
    assert ei.value.field == "post_logout_redirect_uri"
    assert created == []


@pytest.mark.asyncio
async def test_end_session_user_agent_factory_failure(metadata, config):
    def broken_factory(_):
        raise RuntimeError("no display")

    handler = AuthFlowHandler(config, service=FakeService(), user_agent_factory=broken_factory)

    with pytest.raises(ApplicationError) as ei:
        await handler.end_session(metadata, "IDT")
    assert ei.value.title == "End Session Error"
    assert ei.value.description.startswith("(org.openid.appauth.general / -10)")
    assert handler.user_agent_session is None
