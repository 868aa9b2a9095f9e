"""In-memory session store: NPSSO secret -> short-lived access credential.

Entries live only in process memory. A restart empties the cache and every
process keeps its own; the next request simply exchanges the secret again.
"""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional, TypedDict

from psn_trophies.core.exceptions import IdentityServiceError, InvalidSecretError
from psn_trophies.core.security import mask_secret
from psn_trophies.services.identity_client import AccessCredential, IdentityClient

logger = logging.getLogger(__name__)

NPSSO_LENGTH = 64
DEFAULT_TTL_SECONDS = 50 * 60
EXPIRING_SOON_SECONDS = 300


class CredentialStatus(TypedDict):
    valid: bool
    expiring_soon: bool
    time_remaining: Optional[int]


@dataclass
class SessionEntry:
    credential: AccessCredential
    expires_at: float
    stored_at: float


def validate_secret(secret: Optional[str]) -> str:
    """Reject anything that is not a 64 character secret."""
    if not secret or len(secret) != NPSSO_LENGTH:
        raise InvalidSecretError(
            f"NPSSO must be exactly {NPSSO_LENGTH} characters long"
        )
    return secret


class SessionStore:
    """Caches access credentials per session secret"""

    def __init__(
        self,
        identity_client: IdentityClient,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        refresh_margin_seconds: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the session store

        Args:
            identity_client: Client used to exchange a secret for a credential
            ttl_seconds: How long a credential is served from cache.
                Default: 3000 seconds (50 minutes), under the ~60 minute
                lifetime of the real access token
            refresh_margin_seconds: When positive, a live entry this close to
                expiry triggers an opportunistic refresh
            clock: Time source returning epoch seconds
        """
        self.identity_client = identity_client
        self.ttl_seconds = ttl_seconds
        self.refresh_margin_seconds = refresh_margin_seconds
        self._clock = clock
        self._entries: Dict[str, SessionEntry] = {}
        self._entries_lock = Lock()
        # entries vanish once no caller holds or awaits the lock
        self._refresh_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _live_entry(self, secret: str) -> Optional[SessionEntry]:
        """Return the entry if still valid, evicting it lazily if expired"""
        with self._entries_lock:
            entry = self._entries.get(secret)
            if entry is None:
                return None
            if self._clock() < entry.expires_at:
                return entry
            del self._entries[secret]
        logger.debug(f"Session {mask_secret(secret)} expired; evicted on read")
        return None

    def _needs_refresh(self, entry: SessionEntry) -> bool:
        if self.refresh_margin_seconds <= 0:
            return False
        return entry.expires_at - self._clock() <= self.refresh_margin_seconds

    def _refresh_lock(self, secret: str) -> asyncio.Lock:
        with self._entries_lock:
            lock = self._refresh_locks.get(secret)
            if lock is None:
                lock = asyncio.Lock()
                self._refresh_locks[secret] = lock
            return lock

    def store(self, secret: str, credential: AccessCredential) -> SessionEntry:
        """Store a credential for a secret, replacing any previous entry"""
        now = self._clock()
        entry = SessionEntry(
            credential=credential,
            expires_at=now + self.ttl_seconds,
            stored_at=now,
        )
        with self._entries_lock:
            self._entries[secret] = entry
        logger.debug(f"Stored credential for session {mask_secret(secret)}")
        return entry

    async def get_valid_credential(self, secret: Optional[str]) -> AccessCredential:
        """Return a live credential for ``secret``, exchanging it if needed.

        Raises:
            InvalidSecretError: secret is not 64 characters; no network call made
            IdentityServiceError: the exchange failed and no live entry exists
        """
        secret = validate_secret(secret)

        entry = self._live_entry(secret)
        if entry is not None and not self._needs_refresh(entry):
            logger.debug(f"Using cached credential for session {mask_secret(secret)}")
            return entry.credential

        async with self._refresh_lock(secret):
            # Another caller may have refreshed while we waited
            entry = self._live_entry(secret)
            if entry is not None and not self._needs_refresh(entry):
                return entry.credential

            logger.info(f"Exchanging NPSSO {mask_secret(secret)} for a fresh access credential")
            try:
                credential = await self.identity_client.exchange(secret)
            except IdentityServiceError as e:
                if entry is not None:
                    # Still valid: a failed opportunistic refresh keeps the entry
                    logger.warning(
                        f"Refresh failed for session {mask_secret(secret)}, "
                        f"keeping cached credential: {e.message}"
                    )
                    return entry.credential
                logger.error(f"Authentication failed for session {mask_secret(secret)}: {e.message}")
                raise

            self.store(secret, credential)
            return credential

    def logout(self, secret: Optional[str]) -> None:
        """Forget the credential for ``secret``; a no-op if there is none"""
        if not secret:
            return
        with self._entries_lock:
            removed = self._entries.pop(secret, None)
            self._refresh_locks.pop(secret, None)
        if removed is not None:
            logger.info(f"Cleared session {mask_secret(secret)}")

    def status(self, secret: Optional[str]) -> CredentialStatus:
        """Describe the cached credential for ``secret`` without network access"""
        result: CredentialStatus = {
            "valid": False,
            "expiring_soon": False,
            "time_remaining": None,
        }
        if not secret:
            return result

        entry = self._live_entry(secret)
        if entry is None:
            return result

        time_remaining = entry.expires_at - self._clock()
        result["valid"] = True
        result["time_remaining"] = max(0, int(time_remaining))
        result["expiring_soon"] = time_remaining <= EXPIRING_SOON_SECONDS
        return result

    def stats(self) -> Dict[str, int]:
        """Count cached sessions, live and stale"""
        now = self._clock()
        with self._entries_lock:
            live = sum(1 for entry in self._entries.values() if now < entry.expires_at)
            total = len(self._entries)
        return {"live_sessions": live, "stale_sessions": total - live}
