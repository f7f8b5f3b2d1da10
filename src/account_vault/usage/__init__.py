# Usage module - quota estimation for the active accounts
#
# - claude: live usage endpoint + per-tier budget table
# - codex: rate-limit events in local session logs

from .claude_usage import (
    TIER_LIMITS,
    ClaudeUsageFetcher,
    estimate_claude_usage,
    get_claude_usage,
    resolve_tier,
)
from .codex_usage import estimate_codex_usage, get_codex_usage
from .models import ClaudeUsage, CodexUsage, CodexWindow, WindowQuota

__all__ = [
    "TIER_LIMITS",
    "ClaudeUsageFetcher",
    "estimate_claude_usage",
    "get_claude_usage",
    "resolve_tier",
    "estimate_codex_usage",
    "get_codex_usage",
    "ClaudeUsage",
    "CodexUsage",
    "CodexWindow",
    "WindowQuota",
]
