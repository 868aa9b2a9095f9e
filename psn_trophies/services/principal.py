"""Extract the caller's account id from an access credential."""

from typing import Any, Dict, Optional, Union

import jwt

from psn_trophies.services.identity_client import AccessCredential


def decode_claims(token: str) -> Optional[Dict[str, Any]]:
    """Decode the claims of a signed token without verifying it.

    The token came straight from the identity service over TLS and is only
    read for the account id.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None
    return claims if isinstance(claims, dict) else None


def resolve_account_id(credential: Union[AccessCredential, str, None]) -> Optional[str]:
    """Return the ``account_id`` claim, or None for any malformed input"""
    if isinstance(credential, AccessCredential):
        token = credential.access_token
    else:
        token = credential
    if not isinstance(token, str) or not token:
        return None

    claims = decode_claims(token)
    if not claims:
        return None

    account_id = claims.get("account_id")
    if account_id is None or isinstance(account_id, (dict, list, bool)):
        return None
    account_id = str(account_id)
    return account_id or None
