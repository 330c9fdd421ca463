import logging
from urllib.parse import parse_qs

import pytest
import respx
from httpx import Response

from conftest import TOKEN_ENDPOINT
from oidc_flow.errors import ApplicationError


@pytest.mark.asyncio
@respx.mock
async def test_refresh_success_passes_tokens_through(handler, metadata):
    route = respx.post(TOKEN_ENDPOINT).mock(
        return_value=Response(200, json={"access_token": "AT-new", "token_type": "bearer"})
    )

    tokens = await handler.refresh_access_token(metadata, "native-client", "RT-old")

    assert tokens is not None
    assert tokens.access_token == "AT-new"
    assert tokens.refresh_token is None
    assert tokens.id_token is None

    form = {k: v[0] for k, v in parse_qs(route.calls.last.request.content.decode()).items()}
    assert form == {"grant_type": "refresh_token", "client_id": "native-client", "refresh_token": "RT-old"}
    assert "Authorization" not in route.calls.last.request.headers


@pytest.mark.asyncio
@respx.mock
async def test_expired_refresh_token_resolves_to_none(handler, metadata, caplog):
    caplog.set_level(logging.INFO, logger="oidc_flow")
    respx.post(TOKEN_ENDPOINT).mock(
        return_value=Response(400, json={"error": "invalid_grant", "error_description": "Expired"})
    )

    assert await handler.refresh_access_token(metadata, "native-client", "RT-old") is None
    assert "Refresh token expired and the user must re-authenticate" in caplog.text


@pytest.mark.asyncio
@respx.mock
async def test_other_oauth_error_is_refresh_token_error(handler, metadata):
    respx.post(TOKEN_ENDPOINT).mock(return_value=Response(401, json={"error": "invalid_client"}))

    with pytest.raises(ApplicationError) as ei:
        await handler.refresh_access_token(metadata, "native-client", "RT-old")
    assert ei.value.title == "Refresh Token Error"
    assert ei.value.description == "(org.openid.appauth.oauth_token / -9) : invalid_client"


@pytest.mark.asyncio
@respx.mock
async def test_server_failure_is_refresh_token_error(handler, metadata):
    respx.post(TOKEN_ENDPOINT).mock(return_value=Response(502, text="Bad Gateway"))

    with pytest.raises(ApplicationError) as ei:
        await handler.refresh_access_token(metadata, "native-client", "RT-old")
    assert ei.value.title == "Refresh Token Error"
    assert ei.value.description.startswith("(org.openid.appauth.remote-http / 502)")


@pytest.mark.asyncio
@respx.mock
async def test_success_without_access_token_is_an_error(handler, metadata):
    respx.post(TOKEN_ENDPOINT).mock(return_value=Response(200, json={"token_type": "bearer"}))

    with pytest.raises(ApplicationError) as ei:
        await handler.refresh_access_token(metadata, "native-client", "RT-old")
    assert ei.value.description.startswith("(org.openid.appauth.general / -8)")
