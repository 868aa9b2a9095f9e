"""
Session endpoints: status, login and logout.

Login is rate limited per client address to slow down secret guessing.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from psn_trophies.api.deps import get_session_secret, get_session_store
from psn_trophies.api.errors import error_response
from psn_trophies.core.config import settings
from psn_trophies.core.exceptions import IdentityServiceError, InvalidSecretError
from psn_trophies.core.limiter import limiter
from psn_trophies.core.security import mask_secret
from psn_trophies.core.utils.logging_config import log_security_event
from psn_trophies.schemas.auth import (
    AuthStatusResponse,
    ErrorResponse,
    LoginRequest,
    SuccessResponse,
)
from psn_trophies.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@router.get("/status", response_model=AuthStatusResponse)
async def auth_status(
    secret: Optional[str] = Depends(get_session_secret),
    store: SessionStore = Depends(get_session_store),
):
    """Whether the caller's secret currently yields an access credential.

    May perform an exchange when nothing is cached; failures answer
    ``authenticated: false`` instead of an error.
    """
    authenticated = False
    try:
        await store.get_valid_credential(secret)
        authenticated = True
    except (InvalidSecretError, IdentityServiceError) as e:
        logger.debug(f"Status check for {mask_secret(secret)} not authenticated: {e.code}")

    return AuthStatusResponse(authenticated=authenticated, has_npsso=bool(secret))


@router.post(
    "/login",
    response_model=SuccessResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_auth_endpoints)
async def login(
    request: Request,
    body: LoginRequest,
    store: SessionStore = Depends(get_session_store),
):
    """
    Exchange an NPSSO secret for an access credential and cache it.

    Rate limit: 10 requests per minute per IP address.

    Returns:
        ``{"success": true}``; 400 for a secret that is not 64 characters
        (checked before any network call), 401 when the exchange fails
    """
    ip_address = _client_ip(request)
    try:
        await store.get_valid_credential(body.npsso)
    except InvalidSecretError as e:
        log_security_event("login_rejected", e.message, ip_address=ip_address)
        return error_response(400, e.message, e.code)
    except IdentityServiceError as e:
        log_security_event(
            "auth_failure",
            f"Login failed for NPSSO {mask_secret(body.npsso)}",
            ip_address=ip_address,
            extra_data={"upstream_status": e.upstream_status},
        )
        return error_response(401, "Authentication failed", e.code)

    log_security_event(
        "login",
        f"Login succeeded for NPSSO {mask_secret(body.npsso)}",
        ip_address=ip_address,
    )
    return SuccessResponse()


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    request: Request,
    secret: Optional[str] = Depends(get_session_secret),
    store: SessionStore = Depends(get_session_store),
) -> SuccessResponse:
    """Forget the caller's cached credential; succeeds even when nothing is cached"""
    store.logout(secret)
    if secret:
        log_security_event(
            "logout",
            f"Logout for NPSSO {mask_secret(secret)}",
            ip_address=_client_ip(request),
        )
    return SuccessResponse()
