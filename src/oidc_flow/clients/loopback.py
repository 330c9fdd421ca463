"""Loopback redirect user agent (RFC 8252 Section 7.3).

Opens the request in the system browser and runs a small FastAPI app on the
redirect URI's loopback address to receive the provider's redirect.
"""

from __future__ import annotations

import logging
import socket
import threading
import webbrowser
from typing import Callable, Dict, Optional, Tuple

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse

from oidc_flow.app.exceptions import register_exception_handlers
from oidc_flow.clients.types import ExternalUserAgentRequest, ExternalUserAgentSession
from oidc_flow.errors import GENERAL_ERROR_DOMAIN, ErrorCode, ProviderError

logger = logging.getLogger(__name__)

LOOPBACK_HOSTS = ("127.0.0.1", "localhost", "::1")

# Seconds to wait for a listener thread to release its port
SHUTDOWN_TIMEOUT = 5.0

COMPLETE_PAGE = "<html><body><p>You can close this window and return to the application.</p></body></html>"
UNEXPECTED_PAGE = "<html><body><p>This redirect does not belong to an active sign-in.</p></body></html>"

BrowserOpener = Callable[[str], bool]

# Listener threads by (host, port), so a new flow waits for the previous one to let go of the port
_listeners: Dict[Tuple[str, int], threading.Thread] = {}
_listeners_lock = threading.Lock()


def create_callback_app(redirect_path: str, session: ExternalUserAgentSession) -> FastAPI:
    """Build the app that hands redirects on ``redirect_path`` to ``session``."""
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    @app.get(redirect_path or "/", response_class=HTMLResponse)
    async def redirect_received(request: Request):
        if not session.resume_external_user_agent_flow(str(request.url)):
            return HTMLResponse(status_code=400, content=UNEXPECTED_PAGE)
        return HTMLResponse(content=COMPLETE_PAGE)

    register_exception_handlers(app)
    return app


def bind_loopback_socket(host: str, port: int) -> socket.socket:
    """Bind and listen on ``host:port``.

    Raises:
        OSError: If the address is unavailable
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen()
    except OSError:
        sock.close()
        raise
    return sock


def _wait_for_previous_listener(address: Tuple[str, int]) -> None:
    with _listeners_lock:
        previous = _listeners.get(address)
    if previous is not None and previous is not threading.current_thread():
        previous.join(SHUTDOWN_TIMEOUT)


class LoopbackUserAgent:
    """External user agent backed by the system browser and a loopback HTTP listener."""

    def __init__(self, opener: Optional[BrowserOpener] = None, *, timeout: Optional[float] = None) -> None:
        self._opener = opener or webbrowser.open
        self._timeout = timeout
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None
        self._timer: threading.Timer | None = None

    @property
    def listening(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def present(self, request: ExternalUserAgentRequest, session: ExternalUserAgentSession) -> bool:
        redirect = request.redirect_url
        if redirect.scheme != "http" or redirect.host not in LOOPBACK_HOSTS or redirect.port is None:
            logger.error(f"Redirect URI {redirect} is not a loopback address with an explicit port")
            return False

        url = str(request.external_user_agent_request_url())
        address = (redirect.host, redirect.port)
        _wait_for_previous_listener(address)
        try:
            sock = bind_loopback_socket(*address)
        except OSError as exc:
            logger.error(f"Unable to listen for the redirect on {redirect.host}:{redirect.port}: {exc}")
            return False

        config = uvicorn.Config(
            create_callback_app(redirect.path, session),
            log_level="warning",
            lifespan="off",
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=self._server.run,
            kwargs={"sockets": [sock]},
            name="oidc-loopback",
            daemon=True,
        )
        with _listeners_lock:
            _listeners[address] = self._thread
        self._thread.start()

        if self._timeout:
            self._timer = threading.Timer(self._timeout, self._abandon, args=(session,))
            self._timer.daemon = True
            self._timer.start()

        logger.info("Opening the system browser for the sign-in request")
        if not self._opener(url):
            self.dismiss()
            return False
        return True

    def dismiss(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        server, thread = self._server, self._thread
        self._server = None
        self._thread = None
        if server is not None:
            server.should_exit = True
        # The redirect itself is handled on the listener thread, which cannot join itself
        if thread is not None and thread is not threading.current_thread():
            thread.join(SHUTDOWN_TIMEOUT)

    def _abandon(self, session: ExternalUserAgentSession) -> None:
        logger.info(f"No redirect received within {self._timeout} seconds")
        session.fail_external_user_agent_flow(
            ProviderError(
                GENERAL_ERROR_DOMAIN,
                ErrorCode.USER_CANCELED_AUTHORIZATION_FLOW,
                "The user did not complete the browser flow.",
            )
        )
