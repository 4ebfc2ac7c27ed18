"""
Read-only decode of bearer-token claims.

The credential is treated as dot-separated segments; the second segment is a
base64url-encoded JSON object. No signature verification happens here. The
decoded claims only drive UI gating and must never be trusted server-side.
"""
from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Optional

from utils.logger import get_logger

log = get_logger(__name__)


def _b64url_decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def decode_token_claims(token: Optional[str]) -> Optional[dict[str, Any]]:
    """
    Decode the claims segment of ``token``.

    Returns:
        The claims dict, or None for any malformed input (never raises).

    Example:
        decode_token_claims("h.eyJyb2xlIjoiYWRtaW4ifQ.s")  # {"role": "admin"}
    """
    if not token or not isinstance(token, str):
        return None

    parts = token.split(".")
    if len(parts) < 2:
        return None

    try:
        claims = json.loads(_b64url_decode(parts[1]).decode("utf-8"))
    except (ValueError, TypeError, binascii.Error, UnicodeError) as e:
        log.debug("token.claims_decode_failed", error=str(e))
        return None

    if not isinstance(claims, dict):
        return None
    return claims
