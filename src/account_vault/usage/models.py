# Usage - Quota Data Models
#
#   WindowQuota  - absolute budget figures for one claude window
#   ClaudeUsage  - five-hour + seven-day windows, tier, source tag
#   CodexWindow  - percentage figures for one codex window
#   CodexUsage   - primary + secondary windows, or an "unavailable" notice
#
# to_dict() produces the key names the CLI and callers render.

from dataclasses import dataclass
from typing import Any, Dict, Optional

CODEX_DASHBOARD_URL = "https://chatgpt.com/settings"
CODEX_NO_DATA_MESSAGE = (
    "No recent Codex usage data found. Please use Codex CLI to generate usage data."
)


@dataclass
class WindowQuota:
    """One claude rate-limit window in absolute units."""

    used: int
    limit: int
    remaining: int
    percentage: float
    resets_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "percentage": self.percentage,
            "resets_at": self.resets_at,
        }


@dataclass
class ClaudeUsage:
    five_hour: WindowQuota
    seven_day: WindowQuota
    subscription_type: str
    source: str = "live_api"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "five_hour": self.five_hour.to_dict(),
            "seven_day": self.seven_day.to_dict(),
            "subscription_type": self.subscription_type,
            "source": self.source,
        }


@dataclass
class CodexWindow:
    """One codex rate-limit window; codex only reports percentages."""

    used_percent: float
    window_minutes: Optional[int] = None
    resets_at: Optional[str] = None

    @property
    def remaining_percent(self) -> float:
        return 100 - self.used_percent

    def to_dict(self) -> Dict[str, Any]:
        return {
            "used_percent": self.used_percent,
            "remaining_percent": self.remaining_percent,
            "percentage": self.used_percent,
            "window_minutes": self.window_minutes,
            "resets_at": self.resets_at,
        }


@dataclass
class CodexUsage:
    """
    Codex usage read from session logs.

    When ``available`` is False the windows are None and the dict form
    carries a message pointing at the web dashboard instead.
    """

    available: bool
    plan_type: str = "unknown"
    primary: Optional[CodexWindow] = None
    secondary: Optional[CodexWindow] = None
    source: str = "codex_session_files"

    @classmethod
    def unavailable(cls, plan_type: str) -> "CodexUsage":
        return cls(available=False, plan_type=plan_type)

    def to_dict(self) -> Dict[str, Any]:
        if not self.available:
            return {
                "available": False,
                "message": CODEX_NO_DATA_MESSAGE,
                "planType": self.plan_type,
                "dashboardUrl": CODEX_DASHBOARD_URL,
            }
        return {
            "available": True,
            "primary": self.primary.to_dict(),
            "secondary": self.secondary.to_dict(),
            "planType": self.plan_type,
            "source": self.source,
        }
