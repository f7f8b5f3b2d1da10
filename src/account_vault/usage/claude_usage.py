# Usage - Claude Quota Estimation
#
# The usage endpoint reports utilization as a percentage per window
# (e.g. 7.0 means 7%). Absolute figures come from a fixed per-tier budget:
#
#   tier    five_hour   seven_day
#   pro       44000      308000
#   max5      88000      616000
#   max       88000      616000   (alias of max5)
#   max20    220000     1540000
#
# Endpoint:
#   GET https://api.anthropic.com/api/oauth/usage
#   Authorization: Bearer <claudeAiOauth.accessToken>
#   anthropic-beta: oauth-2025-04-20
#
# Single attempt, 5s timeout. Any failure means "usage unavailable".

import logging
import math
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import httpx

from ..core import Settings
from ..core.config import DEFAULT_USAGE_TIMEOUT_SEC, DEFAULT_USAGE_URL
from ..vault.errors import RemoteUnavailable, VaultError
from ..vault.store import parse_json, read_text
from .models import ClaudeUsage, WindowQuota

logger = logging.getLogger(__name__)

ANTHROPIC_BETA_HEADER = "oauth-2025-04-20"
DEFAULT_TIER = "pro"

TIER_LIMITS: Dict[str, Dict[str, int]] = {
    "pro": {"five_hour": 44000, "seven_day": 308000},
    "max5": {"five_hour": 88000, "seven_day": 616000},
    "max": {"five_hour": 88000, "seven_day": 616000},
    "max20": {"five_hour": 220000, "seven_day": 1540000},
}

WINDOWS = ("five_hour", "seven_day")


def resolve_tier(subscription_type: Optional[str]) -> str:
    """
    Map a subscription string onto a TIER_LIMITS key.

    Exact (case-insensitive) match first; otherwise anything mentioning
    "max" is a max tier, max20 when it also mentions "20"; otherwise pro.
    """
    tier = (subscription_type or DEFAULT_TIER).lower()
    if tier in TIER_LIMITS:
        return tier

    if "max" in tier:
        resolved = "max20" if "20" in tier else "max"
    else:
        resolved = DEFAULT_TIER
    logger.warning(
        "Unrecognized subscription type %r, using %s limits", subscription_type, resolved
    )
    return resolved


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def estimate_window(utilization: float, limit: int, resets_at: Optional[str]) -> WindowQuota:
    """Turn a utilization percentage into absolute used/remaining figures."""
    used = round_half_up(float(utilization) / 100 * limit)
    return WindowQuota(
        used=used,
        limit=limit,
        remaining=limit - used,
        percentage=utilization,
        resets_at=resets_at,
    )


def estimate_claude_usage(telemetry: Dict[str, Any], subscription_type: Optional[str]) -> ClaudeUsage:
    """
    Build ClaudeUsage from an endpoint response.

    Raises:
        RemoteUnavailable: a window or its utilization is missing.
    """
    tier = resolve_tier(subscription_type)
    limits = TIER_LIMITS[tier]

    windows = {}
    for window in WINDOWS:
        data = telemetry.get(window) if isinstance(telemetry, dict) else None
        if not isinstance(data, dict) or not isinstance(data.get("utilization"), (int, float)):
            raise RemoteUnavailable(f"Usage response has no {window} window")
        windows[window] = estimate_window(
            data["utilization"], limits[window], data.get("resets_at")
        )

    return ClaudeUsage(
        five_hour=windows["five_hour"],
        seven_day=windows["seven_day"],
        subscription_type=tier,
    )


def read_oauth_credentials(credentials_path: Path) -> Tuple[Optional[str], Optional[str]]:
    """(accessToken, subscriptionType) from the live credentials file, None where absent."""
    try:
        data = parse_json(read_text(credentials_path), credentials_path.name)
    except VaultError as exc:
        logger.debug("No readable claude credentials: %s", exc)
        return None, None
    oauth = data.get("claudeAiOauth") if isinstance(data, dict) else None
    if not isinstance(oauth, dict):
        return None, None
    return oauth.get("accessToken"), oauth.get("subscriptionType")


class ClaudeUsageFetcher:
    """Fetches live window utilization from the claude usage endpoint.

    Usage::

        fetcher = ClaudeUsageFetcher()
        telemetry = fetcher.fetch(access_token)
    """

    def __init__(self, url: str = DEFAULT_USAGE_URL, timeout: float = DEFAULT_USAGE_TIMEOUT_SEC):
        self.url = url
        self.timeout = timeout

    def _build_headers(self, access_token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "anthropic-beta": ANTHROPIC_BETA_HEADER,
            "Accept": "application/json",
        }

    def fetch(self, access_token: str) -> Dict[str, Any]:
        """
        One GET against the usage endpoint.

        Raises:
            RemoteUnavailable: timeout, transport error, non-200 status or
                a body that is not a JSON object.
        """
        try:
            resp = httpx.get(
                self.url,
                headers=self._build_headers(access_token),
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("Usage request failed: %s", exc)
            raise RemoteUnavailable(f"Usage request failed: {exc}") from exc

        if resp.status_code != 200:
            logger.warning("Usage endpoint returned status %d", resp.status_code)
            raise RemoteUnavailable(f"Usage endpoint returned status {resp.status_code}")

        try:
            body = resp.json()
        except ValueError:
            raise RemoteUnavailable("Usage endpoint returned an unparsable body") from None
        if not isinstance(body, dict):
            raise RemoteUnavailable("Usage endpoint returned an unexpected body")
        return body


def get_claude_usage(
    settings: Settings,
    fetcher: Optional[ClaudeUsageFetcher] = None,
) -> Optional[ClaudeUsage]:
    """Live claude usage for the active account, or None when unavailable."""
    access_token, subscription_type = read_oauth_credentials(settings.live.claude_credentials)
    if not access_token:
        logger.info("No claude access token; usage unavailable")
        return None

    fetcher = fetcher or ClaudeUsageFetcher(settings.usage_url, settings.usage_timeout)
    try:
        telemetry = fetcher.fetch(access_token)
        return estimate_claude_usage(telemetry, subscription_type)
    except RemoteUnavailable as exc:
        logger.info("Claude usage unavailable: %s", exc)
        return None
