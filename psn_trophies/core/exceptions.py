"""Exception types for the trophy backend.

Every failure the services raise derives from ``TrophyServiceError`` and carries
a stable ``code`` so the HTTP layer can map it without string matching.
"""

from __future__ import annotations

from typing import Optional


class TrophyErrorCodes:
    """Error code constants for TrophyServiceError."""

    INVALID_SECRET: str = "INVALID_SECRET"
    IDENTITY_SERVICE_ERROR: str = "IDENTITY_SERVICE_ERROR"
    SESSION_EXPIRED: str = "SESSION_EXPIRED"
    ACCOUNT_ID_UNRESOLVABLE: str = "ACCOUNT_ID_UNRESOLVABLE"
    UPSTREAM_FETCH_ERROR: str = "UPSTREAM_FETCH_ERROR"
    TRANSLATION_UNAVAILABLE: str = "TRANSLATION_UNAVAILABLE"


class TrophyServiceError(Exception):
    """Base class for trophy backend errors."""

    default_code: str = "TROPHY_SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class InvalidSecretError(TrophyServiceError):
    """Session secret is malformed; raised before any network call."""

    default_code = TrophyErrorCodes.INVALID_SECRET


class IdentityServiceError(TrophyServiceError):
    """The identity service rejected the exchange or could not be reached."""

    default_code = TrophyErrorCodes.IDENTITY_SERVICE_ERROR

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.upstream_status = upstream_status


class SessionExpiredError(TrophyServiceError):
    """No session secret was supplied, or it no longer yields a credential."""

    default_code = TrophyErrorCodes.SESSION_EXPIRED


class AccountIdUnresolvableError(TrophyServiceError):
    """The access credential carries no usable account_id claim."""

    default_code = TrophyErrorCodes.ACCOUNT_ID_UNRESOLVABLE


class UpstreamFetchError(TrophyServiceError):
    """A profile, catalog or trophy read failed upstream."""

    default_code = TrophyErrorCodes.UPSTREAM_FETCH_ERROR

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        upstream_code: Optional[int] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.upstream_status = upstream_status
        self.upstream_code = upstream_code


class TranslationUnavailableError(TrophyServiceError):
    """The translation provider failed. Absorbed by the translation cache."""

    default_code = TrophyErrorCodes.TRANSLATION_UNAVAILABLE
