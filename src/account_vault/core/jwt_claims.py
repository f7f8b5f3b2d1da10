"""Read claims out of an ID token without verifying it.

The live codex auth file carries an OpenID ``id_token``; the account email and
ChatGPT plan are only available from its payload. Signatures are not checked:
the values are displayed, never trusted for access decisions.
"""

import base64
import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

OPENAI_AUTH_CLAIM = "https://api.openai.com/auth"


def decode_payload(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the JSON payload segment of a JWT, or None if it is unreadable."""
    if not token or not isinstance(token, str):
        return None
    parts = token.split(".")
    if len(parts) < 2:
        return None
    segment = parts[1]
    segment += "=" * (-len(segment) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(segment.encode("ascii")))
    except (ValueError, UnicodeError) as exc:
        logger.debug("Unreadable JWT payload: %s", exc)
        return None
    return payload if isinstance(payload, dict) else None


def email_from_token(token: Optional[str]) -> Optional[str]:
    payload = decode_payload(token)
    if not payload:
        return None
    return payload.get("email") or None


def plan_from_token(token: Optional[str]) -> Optional[str]:
    payload = decode_payload(token)
    if not payload:
        return None
    auth = payload.get(OPENAI_AUTH_CLAIM)
    if not isinstance(auth, dict):
        return None
    return auth.get("chatgpt_plan_type") or None
