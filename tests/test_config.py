import httpx

from oidc_flow.errors import ConfigurationError
from oidc_flow.settings import ApplicationConfig, OAuthSettings, Settings, get_settings


def test_default_endpoints_parse():
    config = ApplicationConfig(OAuthSettings())
    for getter in (
        config.get_authorization_uri,
        config.get_token_uri,
        config.get_logout_uri,
        config.get_redirect_uri,
        config.get_post_logout_redirect_uri,
    ):
        url, error = getter()
        assert isinstance(url, httpx.URL)
        assert error is None


def test_malformed_url_returns_configuration_error():
    config = ApplicationConfig(OAuthSettings(authorization_uri="not a url"))
    url, error = config.get_authorization_uri()
    assert url is None
    assert isinstance(error, ConfigurationError)
    assert error.title == "Invalid Configuration Error"
    assert error.field == "authorization_uri"
    assert "not a url" in error.description


def test_empty_and_hostless_urls_are_rejected():
    config = ApplicationConfig(OAuthSettings(token_uri="", logout_uri="https://"))
    assert config.get_token_uri()[0] is None
    assert config.get_logout_uri()[0] is None


def test_private_use_scheme_redirect_is_accepted():
    config = ApplicationConfig(OAuthSettings(redirect_uri="io.example.client:/callback"))
    url, error = config.get_redirect_uri()
    assert error is None
    assert url.scheme == "io.example.client"
    assert url.path == "/callback"


def test_plain_fields_pass_through():
    config = ApplicationConfig(OAuthSettings(client_id="abc", client_secret="s3cret", scope="openid email"))
    assert config.client_id == "abc"
    assert config.client_secret == "s3cret"
    assert config.scope == "openid email"
    assert config.acr_values is None


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("OIDC_FLOW_OAUTH__CLIENT_ID", "env-client")
    monkeypatch.setenv("OIDC_FLOW_OAUTH__ACR_VALUES", "urn:example:acr")
    monkeypatch.setenv("OIDC_FLOW_LOGGING__AS_JSON", "true")
    get_settings.cache_clear()  # type: ignore[attr-defined]
    try:
        s = get_settings()
        assert s.oauth.client_id == "env-client"
        assert s.oauth.acr_values == "urn:example:acr"
        assert s.logging.as_json is True
        assert isinstance(s, Settings)
    finally:
        get_settings.cache_clear()  # type: ignore[attr-defined]
