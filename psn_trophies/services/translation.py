"""Memoized machine translation of trophy text.

Trophy names, descriptions and group names never change upstream, so a
translation is fetched once per key and kept for the life of the process.
Translation is a nicety: every failure is absorbed and the affected keys stay
untranslated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

import httpx

from psn_trophies.core.config import settings
from psn_trophies.core.exceptions import TranslationUnavailableError
from psn_trophies.core.types.outcome import Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranslationItem:
    key: str
    text: Optional[str]


def title_key(title_id: str) -> str:
    return f"title_{title_id}"


def group_key(title_id: str, group_id: str) -> str:
    return f"group_{title_id}_{group_id}"


def name_key(title_id: str, trophy_id: Union[int, str]) -> str:
    return f"name_{title_id}_{trophy_id}"


def detail_key(title_id: str, trophy_id: Union[int, str]) -> str:
    return f"detail_{title_id}_{trophy_id}"


class TranslationProvider(Protocol):
    async def translate(self, texts: List[str]) -> Union[str, List[Any]]:
        """Translate ``texts``; the result follows input order"""
        ...


class GoogleTranslateProvider:
    """Batch client for Google's public ``translate_a/t`` endpoint"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        target_language: str = settings.TRANSLATION_TARGET_LANGUAGE,
        base_url: str = settings.TRANSLATE_BASE_URL,
        source_language: str = "auto",
    ):
        self._http = http_client
        self.target_language = target_language
        self.source_language = source_language
        self.base_url = base_url

    async def translate(self, texts: List[str]) -> Union[str, List[Any]]:
        params = {
            "client": "gtx",
            "sl": self.source_language,
            "tl": self.target_language,
        }
        # One q field per text; the endpoint answers in the same order
        form = [("q", text) for text in texts]
        try:
            resp = await self._http.post(self.base_url, params=params, data=form)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            raise TranslationUnavailableError(
                f"Translation request failed: HTTP {e.response.status_code}", cause=e
            ) from e
        except httpx.HTTPError as e:
            raise TranslationUnavailableError(f"Translation request failed: {e}", cause=e) from e
        except ValueError as e:
            raise TranslationUnavailableError("Translation response was not valid JSON", cause=e) from e


def _unwrap(entry: Any) -> Optional[str]:
    # With automatic source detection each entry is [text, detected_language]
    if isinstance(entry, list):
        entry = entry[0] if entry else None
    if isinstance(entry, str) and entry:
        return entry
    return None


def _normalize(result: Any, count: int) -> List[Any]:
    """Line the provider result up with the input texts.

    A one-text batch may come back as a bare string, or as a single
    ``[text, detected_language]`` pair rather than a list of one.
    """
    if not isinstance(result, list):
        return [result]
    if count == 1 and result:
        return [result[0]]
    return result


class TranslationCache:
    """Process-wide memo of translated text keyed by trophy/group/title id"""

    def __init__(self, provider: Optional[TranslationProvider], min_length: int = 2):
        """
        Args:
            provider: Translation backend; None disables translation
            min_length: Texts shorter than this (after stripping) are not sent
        """
        self.provider = provider
        self.min_length = min_length
        self._entries: Dict[str, str] = {}
        self._lock = Lock()

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._entries.get(key)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def pending(self, items: Sequence[TranslationItem]) -> List[TranslationItem]:
        """Items still worth sending: uncached, distinct and long enough"""
        seen = set()
        residual = []
        for item in items:
            if item.key in seen or item.key in self:
                continue
            seen.add(item.key)
            if not item.text or len(item.text.strip()) < self.min_length:
                continue
            residual.append(item)
        return residual

    async def translate_batch(self, items: Sequence[TranslationItem]) -> Outcome[int]:
        """Translate whatever in ``items`` is not cached yet.

        Returns an Outcome holding the number of new entries; a failed
        provider call is reported there and never raised.
        """
        if self.provider is None:
            return Outcome.success(0, label="disabled")

        residual = self.pending(items)
        if not residual:
            return Outcome.success(0)

        # identical texts under different keys share one slot in the request
        index: Dict[str, int] = {}
        for item in residual:
            index.setdefault(item.text, len(index))
        texts = list(index)
        logger.info(f"Translating {len(texts)} texts for {len(residual)} items")
        try:
            result = await self.provider.translate(texts)
        except Exception as e:
            logger.warning(f"Translation unavailable, serving untranslated text: {e}")
            return Outcome.failure(e)

        translations = _normalize(result, len(texts))
        if len(translations) != len(texts):
            error = TranslationUnavailableError(
                f"Provider returned {len(translations)} translations for {len(texts)} texts"
            )
            logger.warning(str(error))
            return Outcome.failure(error)

        stored = 0
        with self._lock:
            for item in residual:
                text = _unwrap(translations[index[item.text]])
                if text is not None:
                    self._entries[item.key] = text
                    stored += 1
        return Outcome.success(stored)
