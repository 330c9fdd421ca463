from oidc_flow.clients.loopback import LoopbackUserAgent
from oidc_flow.clients.oauth import AuthorizationService
from oidc_flow.clients.session import ExternalUserAgentFlowSession

__all__ = ["AuthorizationService", "ExternalUserAgentFlowSession", "LoopbackUserAgent"]
