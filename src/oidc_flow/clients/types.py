from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

import httpx

from oidc_flow.errors import ProviderError


# (response, error): exactly one of the two is set, except an end session
# completion which may report neither.
FlowCallback = Callable[[Optional[Any], Optional[ProviderError]], None]


class ExternalUserAgentRequest(Protocol):
    @property
    def redirect_url(self) -> httpx.URL:
        ...

    def external_user_agent_request_url(self) -> httpx.URL:
        ...

    def response_from_redirect(self, url: httpx.URL) -> Any:
        ...


class ExternalUserAgentSession(Protocol):
    def resume_external_user_agent_flow(self, url: str | httpx.URL) -> bool:
        ...

    def fail_external_user_agent_flow(self, error: ProviderError) -> None:
        ...

    def cancel(self) -> None:
        ...


class ExternalUserAgent(Protocol):
    def present(self, request: ExternalUserAgentRequest, session: ExternalUserAgentSession) -> bool:
        ...

    def dismiss(self) -> None:
        ...
