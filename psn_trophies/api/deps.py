"""FastAPI dependencies shared by the routers."""

from typing import Optional

from fastapi import Request

from psn_trophies.core.config import settings
from psn_trophies.services.dashboard import TrophyDashboard
from psn_trophies.services.session_store import SessionStore

BEARER_PREFIX = "Bearer "


def get_session_secret(request: Request) -> Optional[str]:
    """Session secret of the caller.

    Taken from ``Authorization: Bearer <npsso>``; without one, the configured
    default secret (if any) is used. The default never replaces a bearer value.
    """
    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.startswith(BEARER_PREFIX):
        return auth_header[len(BEARER_PREFIX):].strip()
    return settings.NPSSO


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_dashboard(request: Request) -> TrophyDashboard:
    return request.app.state.dashboard
