"""Reads from the PlayStation Network trophy and profile APIs.

Trophy data for a title is filed under one of two service variants: ``trophy2``
for PS5 titles and ``trophy`` for PS4 and older. The title summary usually
names the right one; when it does not, the alternate variant is tried once.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from psn_trophies.core.config import settings
from psn_trophies.core.exceptions import UpstreamFetchError
from psn_trophies.core.types.outcome import Outcome
from psn_trophies.schemas.trophy import (
    EarnedRecord,
    TitleList,
    TitleSummary,
    TrophyDefinition,
    TrophyGroup,
)
from psn_trophies.services.identity_client import AccessCredential

logger = logging.getLogger(__name__)

MODERN_VARIANT = "trophy2"
LEGACY_VARIANT = "trophy"
DEFAULT_TITLE_NAME = "Game"


@dataclass
class TitleTrophyData:
    """Raw per-title reads, before merging"""

    definitions: List[TrophyDefinition]
    earned_records: List[EarnedRecord]
    groups: Outcome[List[TrophyGroup]]
    title_name: str = DEFAULT_TITLE_NAME
    platform: str = ""
    service_variant: str = LEGACY_VARIANT


def variant_order(title: Optional[TitleSummary]) -> List[str]:
    """Service variants to try for a title, preferred first"""
    preferred: Optional[str] = None
    if title is not None:
        if title.np_service_name in (MODERN_VARIANT, LEGACY_VARIANT):
            preferred = title.np_service_name
        elif "PS5" in (title.trophy_title_platform or ""):
            preferred = MODERN_VARIANT
    if preferred is None:
        preferred = LEGACY_VARIANT
    alternate = LEGACY_VARIANT if preferred == MODERN_VARIANT else MODERN_VARIANT
    return [preferred, alternate]


class CatalogFetcher:
    """httpx client for the trophy and profile endpoints"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_base_url: str = settings.PSN_API_BASE_URL,
        earned_trophies_limit: int = settings.EARNED_TROPHIES_LIMIT,
    ):
        self._http = http_client
        self.api_base_url = api_base_url.rstrip("/")
        self.earned_trophies_limit = earned_trophies_limit

    async def _get_json(
        self,
        credential: AccessCredential,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.api_base_url}{path}"
        try:
            resp = await self._http.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {credential.access_token}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Request to {path} failed: {e}")
            raise UpstreamFetchError(f"Request to {path} failed: {e}", cause=e) from e

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        error = payload.get("error") if isinstance(payload, dict) else None
        if resp.status_code >= 400 or error:
            message = f"HTTP {resp.status_code}"
            upstream_code = None
            if isinstance(error, dict):
                message = error.get("message") or message
                upstream_code = error.get("code")
            logger.error(f"Upstream error from {path}: {message}")
            raise UpstreamFetchError(
                message,
                upstream_status=resp.status_code,
                upstream_code=upstream_code,
            )

        if not isinstance(payload, dict):
            raise UpstreamFetchError(
                f"Unexpected response body from {path}",
                upstream_status=resp.status_code,
            )
        return payload

    async def list_titles(
        self,
        credential: AccessCredential,
        account_id: str,
        limit: Optional[int] = None,
    ) -> TitleList:
        """Titles the account has trophy progress in, most recent first"""
        params = {"limit": limit} if limit else None
        payload = await self._get_json(
            credential, f"/trophy/v1/users/{account_id}/trophyTitles", params
        )
        try:
            return TitleList.model_validate(payload)
        except ValueError as e:
            raise UpstreamFetchError(f"Malformed title list: {e}", cause=e) from e

    async def get_profile(self, credential: AccessCredential, account_id: str) -> Dict[str, Any]:
        return await self._get_json(
            credential, f"/userProfile/v1/internal/users/{account_id}/profiles"
        )

    async def get_trophy_summary(self, credential: AccessCredential, account_id: str) -> Dict[str, Any]:
        """Trophy level and earned counts across all titles"""
        return await self._get_json(
            credential, f"/trophy/v1/users/{account_id}/trophySummary"
        )

    async def get_title_trophies(
        self, credential: AccessCredential, title_id: str, variant: str
    ) -> List[TrophyDefinition]:
        payload = await self._get_json(
            credential,
            f"/trophy/v1/npCommunicationIds/{title_id}/trophyGroups/all/trophies",
            {"npServiceName": variant},
        )
        return [TrophyDefinition.model_validate(t) for t in payload.get("trophies", [])]

    async def get_earned_trophies(
        self, credential: AccessCredential, account_id: str, title_id: str, variant: str
    ) -> List[EarnedRecord]:
        payload = await self._get_json(
            credential,
            f"/trophy/v1/users/{account_id}/npCommunicationIds/{title_id}/trophyGroups/all/trophies",
            {"npServiceName": variant, "limit": self.earned_trophies_limit},
        )
        return [EarnedRecord.model_validate(t) for t in payload.get("trophies", [])]

    async def get_trophy_groups(
        self, credential: AccessCredential, title_id: str, variant: str
    ) -> Outcome[List[TrophyGroup]]:
        """Best effort: a failure comes back as a failed Outcome, never raised"""
        try:
            payload = await self._get_json(
                credential,
                f"/trophy/v1/npCommunicationIds/{title_id}/trophyGroups",
                {"npServiceName": variant},
            )
            groups = [TrophyGroup.model_validate(g) for g in payload.get("trophyGroups", [])]
        except (UpstreamFetchError, ValueError) as e:
            logger.warning(f"Trophy groups unavailable for {title_id}: {e}")
            return Outcome.failure(e, label=variant)
        return Outcome.success(groups, label=variant)

    async def _fetch_variant(
        self, credential: AccessCredential, account_id: str, title_id: str, variant: str
    ) -> Outcome[Tuple[List[TrophyDefinition], List[EarnedRecord], Outcome[List[TrophyGroup]]]]:
        try:
            definitions, earned, groups = await asyncio.gather(
                self.get_title_trophies(credential, title_id, variant),
                self.get_earned_trophies(credential, account_id, title_id, variant),
                self.get_trophy_groups(credential, title_id, variant),
            )
        except UpstreamFetchError as e:
            return Outcome.failure(e, label=variant)
        except ValueError as e:
            return Outcome.failure(
                UpstreamFetchError(f"Malformed trophy data for {title_id}: {e}", cause=e),
                label=variant,
            )
        return Outcome.success((definitions, earned, groups), label=variant)

    async def get_title_detail(
        self,
        credential: AccessCredential,
        account_id: str,
        title_id: str,
        titles: Optional[TitleList] = None,
    ) -> TitleTrophyData:
        """Definitions, earned records and groups for one title.

        The detail endpoints do not return the title's name or platform, so
        they are looked up in the title list (fetched here unless given).

        Raises:
            UpstreamFetchError: every service variant failed; carries the last failure
        """
        if titles is None:
            titles = await self.list_titles(credential, account_id)
        title = titles.find(title_id)

        last_error = UpstreamFetchError(f"No service variant available for {title_id}")
        for variant in variant_order(title):
            outcome = await self._fetch_variant(credential, account_id, title_id, variant)
            if outcome.ok:
                definitions, earned, groups = outcome.value
                return TitleTrophyData(
                    definitions=definitions,
                    earned_records=earned,
                    groups=groups,
                    title_name=title.trophy_title_name if title else DEFAULT_TITLE_NAME,
                    platform=title.trophy_title_platform if title else "",
                    service_variant=variant,
                )
            logger.warning(f"Service variant {variant} failed for {title_id}: {outcome.error}")
            if isinstance(outcome.error, UpstreamFetchError):
                last_error = outcome.error

        raise last_error

    @staticmethod
    def group_names(groups: Sequence[TrophyGroup]) -> Dict[str, str]:
        return {g.trophy_group_id: g.trophy_group_name for g in groups}
