"""
Exception handlers mapping service errors to JSON responses.

Every error body is ``{"error": <message>}``; upstream failures also carry the
upstream ``code`` when one was reported.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from psn_trophies.core.exceptions import (
    AccountIdUnresolvableError,
    IdentityServiceError,
    InvalidSecretError,
    SessionExpiredError,
    TrophyServiceError,
    UpstreamFetchError,
)
from psn_trophies.core.security import sanitize_error_message

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Session expired"


def error_response(status_code: int, message: str, code=None) -> JSONResponse:
    content = {"error": message}
    if code is not None:
        content["code"] = code
    return JSONResponse(status_code=status_code, content=content)


async def session_error_handler(request: Request, exc: TrophyServiceError) -> JSONResponse:
    """No secret, a malformed one, or a failed exchange: the caller must log in again"""
    logger.info(f"Rejected {request.method} {request.url.path}: {exc.code}")
    return error_response(401, SESSION_EXPIRED_MESSAGE, exc.code)


async def account_id_error_handler(request: Request, exc: AccountIdUnresolvableError) -> JSONResponse:
    return error_response(500, "Account id not found", exc.code)


async def upstream_error_handler(request: Request, exc: UpstreamFetchError) -> JSONResponse:
    logger.error(f"Upstream failure on {request.url.path}: {exc.message}")
    return error_response(
        500,
        f"PlayStation Network error: {sanitize_error_message(exc.message)}",
        exc.upstream_code if exc.upstream_code is not None else exc.code,
    )


async def service_error_handler(request: Request, exc: TrophyServiceError) -> JSONResponse:
    logger.error(f"Unhandled service error on {request.url.path}: {exc}")
    return error_response(500, sanitize_error_message(exc.message), exc.code)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers; Starlette picks the most specific class first"""
    app.add_exception_handler(InvalidSecretError, session_error_handler)
    app.add_exception_handler(IdentityServiceError, session_error_handler)
    app.add_exception_handler(SessionExpiredError, session_error_handler)
    app.add_exception_handler(AccountIdUnresolvableError, account_id_error_handler)
    app.add_exception_handler(UpstreamFetchError, upstream_error_handler)
    app.add_exception_handler(TrophyServiceError, service_error_handler)
