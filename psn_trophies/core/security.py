"""
Security utilities for the PSN Trophies backend.

Secret masking for logs, error-message sanitization for API responses and
the security headers middleware.
"""

import re
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

SECRET_PREFIX_LENGTH = 5


def mask_secret(secret: Optional[str]) -> str:
    """
    Mask a session secret for logging.

    Only the first few characters are kept so operators can tell sessions
    apart without the value ever reaching a log sink.

    Args:
        secret: The secret to mask

    Returns:
        Masked representation, e.g. ``abcde...``
    """
    if not secret:
        return "<none>"
    if len(secret) <= SECRET_PREFIX_LENGTH:
        return "****"
    return secret[:SECRET_PREFIX_LENGTH] + "..."


def sanitize_error_message(error_msg: str) -> str:
    """
    Sanitize error messages to prevent sensitive data leakage.

    Args:
        error_msg: The raw error message to sanitize

    Returns:
        A sanitized error message safe for API responses
    """
    if not error_msg:
        return "Unknown error occurred"

    error_msg = str(error_msg)

    sensitive_patterns = [
        # Bearer tokens and JWTs
        (r'bearer\s+[A-Za-z0-9._~+/=-]+', 'Bearer ****'),
        (r'\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*', '****'),
        # NPSSO values (64 alphanumeric characters)
        (r'\b[A-Za-z0-9]{64}\b', '****'),
        # Token patterns
        (r'(token|npsso)[\'"\s]*[:=][\'"\s]*[^\s\'"&]+', r'\1=****'),
    ]

    sanitized = error_msg
    for pattern, replacement in sensitive_patterns:
        sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE)

    if len(sanitized) > 200:
        sanitized = sanitized[:200] + "..."

    return sanitized


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to every API response.

    The backend only serves JSON, so the content security policy denies
    everything by default.
    """

    security_headers = {
        # Prevent content type sniffing
        "X-Content-Type-Options": "nosniff",
        # Prevent clickjacking
        "X-Frame-Options": "DENY",
        "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        # Trophy data is per user and must not land in shared caches
        "Cache-Control": "no-store",
    }

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        for header_name, header_value in self.security_headers.items():
            response.headers.setdefault(header_name, header_value)

        return response
