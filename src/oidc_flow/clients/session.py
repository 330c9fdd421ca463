"""Browser flow session.

Tracks one presented external user agent request until the redirect
arrives, the flow fails, or the program cancels it. The completion callback
runs at most once whichever of those happens first.
"""

from __future__ import annotations

import logging
import threading

import httpx

from oidc_flow.clients.types import ExternalUserAgent, ExternalUserAgentRequest, FlowCallback
from oidc_flow.errors import GENERAL_ERROR_DOMAIN, ErrorCode, ProviderError
from oidc_flow.models import matches_redirect

logger = logging.getLogger(__name__)


class ExternalUserAgentFlowSession:
    def __init__(
        self,
        request: ExternalUserAgentRequest,
        user_agent: ExternalUserAgent,
        callback: FlowCallback,
    ) -> None:
        self.request = request
        self._user_agent = user_agent
        self._callback = callback
        self._lock = threading.Lock()
        self._completed = False

    @property
    def completed(self) -> bool:
        return self._completed

    def resume_external_user_agent_flow(self, url: str | httpx.URL) -> bool:
        """Resume the flow with a redirect URL.

        Returns:
            False if ``url`` is not addressed to this flow's redirect URL, True otherwise
        """
        url = httpx.URL(str(url))
        if not matches_redirect(url, self.request.redirect_url):
            logger.debug(f"Ignoring redirect not addressed to this flow: {url}")
            return False

        try:
            response = self.request.response_from_redirect(url)
        except ProviderError as exc:
            self._complete(None, exc)
        else:
            self._complete(response, None)
        return True

    def fail_external_user_agent_flow(self, error: ProviderError) -> None:
        self._complete(None, error)

    def cancel(self) -> None:
        self._complete(
            None,
            ProviderError(
                GENERAL_ERROR_DOMAIN,
                ErrorCode.PROGRAM_CANCELED_AUTHORIZATION_FLOW,
                "Authorization flow was cancelled.",
            ),
        )

    def _complete(self, response, error: ProviderError | None) -> None:
        with self._lock:
            if self._completed:
                return
            self._completed = True

        try:
            self._user_agent.dismiss()
        except Exception:
            logger.exception("Failed to dismiss the external user agent")
        self._callback(response, error)
