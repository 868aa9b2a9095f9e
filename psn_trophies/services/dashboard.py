"""Per-request composition of the trophy services.

Each public method takes the caller's session secret and returns what one
endpoint serves: authenticate, read upstream, merge, translate.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from psn_trophies.core.config import settings
from psn_trophies.core.exceptions import AccountIdUnresolvableError, SessionExpiredError
from psn_trophies.schemas.trophy import MergedTrophy, TitleDetail, TitleList
from psn_trophies.services import merge as merge_engine
from psn_trophies.services.catalog import DEFAULT_TITLE_NAME, CatalogFetcher, TitleTrophyData
from psn_trophies.services.identity_client import AccessCredential
from psn_trophies.services.principal import resolve_account_id
from psn_trophies.services.session_store import SessionStore
from psn_trophies.services.translation import (
    TranslationCache,
    TranslationItem,
    detail_key,
    group_key,
    name_key,
    title_key,
)

logger = logging.getLogger(__name__)

SORT_RARITY = "rarity"


class TrophyDashboard:
    """Serves profile, title list and per-title trophy views"""

    def __init__(
        self,
        session_store: SessionStore,
        catalog: CatalogFetcher,
        translations: TranslationCache,
        titles_page_size: int = settings.TITLES_PAGE_SIZE,
    ):
        self.session_store = session_store
        self.catalog = catalog
        self.translations = translations
        self.titles_page_size = titles_page_size

    async def authenticate(self, secret: Optional[str]) -> Tuple[AccessCredential, str]:
        """Resolve the secret to a live credential and the caller's account id.

        Raises:
            SessionExpiredError: no secret supplied or configured
            InvalidSecretError: malformed secret
            IdentityServiceError: the exchange failed
            AccountIdUnresolvableError: the credential carries no account id
        """
        if not secret:
            raise SessionExpiredError("No session secret supplied")
        credential = await self.session_store.get_valid_credential(secret)
        account_id = resolve_account_id(credential)
        if account_id is None:
            logger.error("Access credential carries no account_id claim")
            raise AccountIdUnresolvableError("Could not determine account id from access token")
        return credential, account_id

    async def get_profile(self, secret: Optional[str]) -> Dict[str, Any]:
        credential, account_id = await self.authenticate(secret)
        profile, summary = await asyncio.gather(
            self.catalog.get_profile(credential, account_id),
            self.catalog.get_trophy_summary(credential, account_id),
        )
        return {**profile, "trophySummary": summary}

    async def list_titles(self, secret: Optional[str]) -> TitleList:
        credential, account_id = await self.authenticate(secret)
        return await self.catalog.list_titles(credential, account_id, limit=self.titles_page_size)

    async def get_title_trophies(
        self,
        secret: Optional[str],
        title_id: str,
        sort: Optional[str] = None,
        group: Optional[str] = None,
    ) -> TitleDetail:
        """Merged, translated trophies of one title.

        Args:
            secret: Caller's session secret
            title_id: npCommunicationId of the title
            sort: ``rarity`` orders rarest first; anything else keeps upstream order
            group: When given, only trophies of that group are returned
        """
        credential, account_id = await self.authenticate(secret)
        data = await self.catalog.get_title_detail(credential, account_id, title_id)

        trophies = merge_engine.merge(data.definitions, data.earned_records)
        if group is not None:
            trophies = merge_engine.group_by(trophies).get(group, [])
        if sort == SORT_RARITY:
            trophies = merge_engine.sort_by_rarity(trophies)

        group_names = self.catalog.group_names(data.groups.unwrap_or([]))

        if self.translations.enabled:
            outcome = await self.translations.translate_batch(
                self._translation_items(title_id, data, group_names, trophies)
            )
            if not outcome.ok:
                logger.warning(f"Serving {title_id} without new translations")

        return TitleDetail(
            trophies=[self._with_translations(title_id, t) for t in trophies],
            title_name=self.translations.get(title_key(title_id)) or data.title_name,
            platform=data.platform,
            trophy_groups={
                gid: self.translations.get(group_key(title_id, gid)) or name
                for gid, name in group_names.items()
            },
        )

    @staticmethod
    def _translation_items(
        title_id: str,
        data: TitleTrophyData,
        group_names: Dict[str, str],
        trophies: List[MergedTrophy],
    ) -> List[TranslationItem]:
        items = []
        if data.title_name != DEFAULT_TITLE_NAME:
            items.append(TranslationItem(title_key(title_id), data.title_name))
        for gid, name in group_names.items():
            items.append(TranslationItem(group_key(title_id, gid), name))
        for trophy in trophies:
            items.append(TranslationItem(name_key(title_id, trophy.trophy_id), trophy.trophy_name))
            items.append(TranslationItem(detail_key(title_id, trophy.trophy_id), trophy.trophy_detail))
        return items

    def _with_translations(self, title_id: str, trophy: MergedTrophy) -> MergedTrophy:
        return trophy.model_copy(
            update={
                "trophy_name_translated": self.translations.get(name_key(title_id, trophy.trophy_id)),
                "trophy_detail_translated": self.translations.get(detail_key(title_id, trophy.trophy_id)),
            }
        )
