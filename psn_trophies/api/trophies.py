"""
Profile and trophy read endpoints.

Every route here needs a session secret. Rate limits are per client address.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request

from psn_trophies.api.deps import get_dashboard, get_session_secret
from psn_trophies.core.config import settings
from psn_trophies.core.limiter import limiter
from psn_trophies.schemas.auth import ErrorResponse
from psn_trophies.schemas.trophy import TitleDetail, TitleList
from psn_trophies.services.dashboard import TrophyDashboard

router = APIRouter(
    tags=["trophies"],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


@router.get("/profile/me")
@limiter.limit(settings.rate_limit_read_endpoints)
async def get_my_profile(
    request: Request,
    secret: Optional[str] = Depends(get_session_secret),
    dashboard: TrophyDashboard = Depends(get_dashboard),
) -> Dict[str, Any]:
    """Upstream profile with the account-wide trophy summary under ``trophySummary``"""
    return await dashboard.get_profile(secret)


@router.get("/trophies/me", response_model=TitleList)
@limiter.limit(settings.rate_limit_read_endpoints)
async def get_my_titles(
    request: Request,
    secret: Optional[str] = Depends(get_session_secret),
    dashboard: TrophyDashboard = Depends(get_dashboard),
):
    """Most recently played titles, one page"""
    return await dashboard.list_titles(secret)


@router.get("/titles/{title_id}/trophies", response_model=TitleDetail)
@limiter.limit(settings.rate_limit_read_endpoints)
async def get_title_trophies(
    request: Request,
    title_id: str,
    sort: Optional[str] = Query(None, description="'rarity' lists the rarest trophies first"),
    group: Optional[str] = Query(None, description="Only trophies of this group id"),
    secret: Optional[str] = Depends(get_session_secret),
    dashboard: TrophyDashboard = Depends(get_dashboard),
):
    """Trophy definitions merged with the caller's progress, translated where possible"""
    return await dashboard.get_title_trophies(secret, title_id, sort=sort, group=group)
