"""
Main entry point: sign in, redeem the code, refresh and sign out against the configured provider.
"""
import asyncio
import logging

from dotenv import load_dotenv

from oidc_flow.app.logging_config import configure_logging
from oidc_flow.clients import LoopbackUserAgent
from oidc_flow.errors import ApplicationError
from oidc_flow.handler import AuthFlowHandler
from oidc_flow.settings import ApplicationConfig, get_settings

logger = logging.getLogger("oidc_flow")


async def run_flow(handler: AuthFlowHandler, client_id: str) -> None:
    metadata = handler.fetch_metadata()
    if metadata is None:
        print("[oidc-flow] Provider endpoints are misconfigured, see the log for details.")
        return

    try:
        authorization_response = await handler.authorize(metadata, client_id)
        if authorization_response is None:
            print("[oidc-flow] Sign-in cancelled.")
            return

        tokens = await handler.exchange_code(client_id, authorization_response)
        print("[oidc-flow] Signed in.")

        if tokens.refresh_token:
            refreshed = await handler.refresh_access_token(metadata, client_id, tokens.refresh_token)
            if refreshed is None:
                print("[oidc-flow] Refresh token expired, sign in again.")
                return
            print("[oidc-flow] Access token refreshed.")

        if tokens.id_token:
            await handler.end_session(metadata, tokens.id_token)
            print("[oidc-flow] Signed out.")

    except ApplicationError as error:
        print(f"[oidc-flow] {error.title}: {error.description or 'Unknown Error'}")


def main() -> None:
    """Main entry point for running the demo flow."""
    load_dotenv()
    s = get_settings()
    configure_logging(s.logging.as_json, s.logging.level)

    handler = AuthFlowHandler(
        ApplicationConfig(s.oauth),
        user_agent_factory=lambda context: LoopbackUserAgent(opener=context, timeout=s.oauth.browser_timeout),
    )
    logger.info(f"{s.app_name} {s.app_version} using client {s.oauth.client_id}")
    asyncio.run(run_flow(handler, s.oauth.client_id))


if __name__ == "__main__":
    main()
