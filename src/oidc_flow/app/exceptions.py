from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse

from oidc_flow.errors import ProviderError

logger = logging.getLogger(__name__)

ERROR_PAGE = "<html><body><h1>Sign-in error</h1><p>{message}</p></body></html>"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ProviderError)
    async def provider_error_handler(_: Request, exc: ProviderError):
        return HTMLResponse(status_code=400, content=ERROR_PAGE.format(message=exc.description))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(_: Request, exc: Exception):
        logger.error(f"Unhandled error in redirect receiver: {exc!r}")
        return HTMLResponse(status_code=500, content=ERROR_PAGE.format(message="Internal error"))
