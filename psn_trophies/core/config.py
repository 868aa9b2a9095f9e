"""
Application configuration using Pydantic Settings.

Configuration values can be set via environment variables or .env file.
"""

import json
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    APP_NAME: str = "PSN Trophies"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    DEV_MODE: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    # JSON list or comma-separated origins
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Default session secret for single-user deployments.
    # Only used when a request carries no Authorization header.
    NPSSO: Optional[str] = None

    # Session cache: 50 minutes, under the ~60 minute access token lifetime
    SESSION_TTL_SECONDS: int = 3000
    # Refresh a live session this many seconds before it expires (0 disables)
    SESSION_REFRESH_MARGIN_SECONDS: int = 0

    # PlayStation Network identity service
    PSN_AUTH_BASE_URL: str = "https://ca.account.sony.com/api/authz/v3/oauth"
    PSN_CLIENT_ID: str = "09515159-7237-4370-9b40-3806e67c0891"
    PSN_CLIENT_AUTH: str = "MDk1MTUxNTktNzIzNy00MzcwLTliNDAtMzgwNmU2N2MwODkxOnVjUGprYTV0bnRCMktxc1A="
    PSN_REDIRECT_URI: str = "com.scee.psxandroid.scecompcall://redirect"
    PSN_SCOPE: str = "psn:mobile.v2.core psn:clientapp"

    # PlayStation Network trophy and profile APIs
    PSN_API_BASE_URL: str = "https://m.np.playstation.com/api"
    TITLES_PAGE_SIZE: int = 32
    EARNED_TROPHIES_LIMIT: int = 300

    HTTP_TIMEOUT_SECONDS: float = 15.0

    # Machine translation of trophy text
    TRANSLATION_ENABLED: bool = True
    TRANSLATION_TARGET_LANGUAGE: str = "es"
    TRANSLATION_MIN_LENGTH: int = 2
    TRANSLATE_BASE_URL: str = "https://translate.googleapis.com/translate_a/t"

    # Rate limiting configuration
    rate_limit_auth_endpoints: str = "10/minute"
    rate_limit_read_endpoints: str = "100/minute"

    # Optional Redis URL for distributed rate limiting
    # When set, rate limits will be shared across multiple instances
    redis_url: Optional[str] = None

    @property
    def cors_origin_list(self) -> List[str]:
        return self.parse_cors_origins(self.CORS_ORIGINS)

    @staticmethod
    def parse_cors_origins(v: str) -> List[str]:
        """Accept a JSON list or a comma-separated string"""
        try:
            parsed = json.loads(v)
        except (TypeError, ValueError):
            return [origin.strip() for origin in str(v).split(",") if origin.strip()]
        if isinstance(parsed, list):
            return [str(origin) for origin in parsed]
        return [str(parsed)]


# Global settings instance
settings = Settings()
