# Usage - Codex Quota from Session Logs
#
# Codex CLI writes line-delimited JSON event logs under ~/.codex/sessions/.
# Events carrying rate-limit data look like:
#
#   {"timestamp": "2025-01-01T10:00:00.000Z",
#    "payload": {"rate_limits": {
#        "primary":   {"used_percent": 12.0, "window_minutes": 300,   "resets_in_seconds": 3600},
#        "secondary": {"used_percent": 40.0, "window_minutes": 10080, "resets_in_seconds": 86400}}}}
#
# Only the newest log file (by mtime) is consulted, scanned from its last
# line backwards. Reset offsets are relative to the event's own timestamp.

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..core import Settings
from ..core.jwt_claims import plan_from_token
from ..vault.errors import VaultError
from ..vault.store import parse_json, read_text
from .models import CodexUsage, CodexWindow

logger = logging.getLogger(__name__)

SESSION_FILE_SUFFIX = ".jsonl"


def find_session_files(sessions_dir: Path) -> List[Path]:
    """Every session log below ``sessions_dir``, newest first."""
    sessions_dir = Path(sessions_dir)
    if not sessions_dir.is_dir():
        return []
    files = [p for p in sessions_dir.rglob(f"*{SESSION_FILE_SUFFIX}") if p.is_file()]
    files.sort(key=lambda p: p.stat().st_mtime, reverse=True)
    return files


def latest_rate_limits(session_file: Path) -> Optional[Tuple[Dict[str, Any], Optional[str]]]:
    """
    Last ``payload.rate_limits`` in ``session_file`` and its event timestamp.

    Lines that are not valid JSON are skipped.
    """
    try:
        lines = read_text(session_file).strip().split("\n")
    except VaultError as exc:
        logger.warning("Could not read codex session %s: %s", session_file, exc)
        return None

    for raw in reversed(lines):
        if not raw.strip():
            continue
        try:
            event = json.loads(raw)
        except ValueError:
            continue
        payload = event.get("payload") if isinstance(event, dict) else None
        if isinstance(payload, dict) and payload.get("rate_limits"):
            return payload["rate_limits"], event.get("timestamp")
    return None


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparsable event timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(moment: datetime) -> str:
    """UTC ISO 8601 with millisecond precision and a ``Z`` suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def absolute_reset(event_time: datetime, resets_in_seconds: Any) -> Optional[str]:
    """Reset moment as event time + offset; a missing, zero or non-numeric offset has none."""
    if not _is_number(resets_in_seconds) or not resets_in_seconds:
        return None
    try:
        return format_timestamp(event_time + timedelta(seconds=resets_in_seconds))
    except (OverflowError, ValueError):
        logger.debug("Reset offset %r out of range", resets_in_seconds)
        return None


def build_window(window: Dict[str, Any], event_time: datetime) -> Optional[CodexWindow]:
    """CodexWindow from one raw window, or None when ``used_percent`` is not a number."""
    used_percent = window.get("used_percent", 0)
    if not _is_number(used_percent):
        return None
    return CodexWindow(
        used_percent=used_percent,
        window_minutes=window.get("window_minutes"),
        resets_at=absolute_reset(event_time, window.get("resets_in_seconds")),
    )


def estimate_codex_usage(
    rate_limits: Dict[str, Any],
    timestamp: Optional[str],
    plan_type: str = "unknown",
    now: Optional[datetime] = None,
) -> CodexUsage:
    """CodexUsage from one rate_limits record; unavailable without both windows."""
    primary = rate_limits.get("primary") if isinstance(rate_limits, dict) else None
    secondary = rate_limits.get("secondary") if isinstance(rate_limits, dict) else None
    if not isinstance(primary, dict) or not isinstance(secondary, dict):
        return CodexUsage.unavailable(plan_type)

    event_time = _parse_timestamp(timestamp) or now or datetime.now(timezone.utc)
    primary_window = build_window(primary, event_time)
    secondary_window = build_window(secondary, event_time)
    if primary_window is None or secondary_window is None:
        logger.warning("Ignoring codex rate limits with a non-numeric used_percent")
        return CodexUsage.unavailable(plan_type)
    return CodexUsage(
        available=True,
        plan_type=plan_type,
        primary=primary_window,
        secondary=secondary_window,
    )


def read_plan_type(auth_path: Path) -> str:
    """ChatGPT plan from the live auth file's id_token, ``unknown`` if unreadable."""
    try:
        data = parse_json(read_text(auth_path), auth_path.name)
    except VaultError:
        return "unknown"
    tokens = data.get("tokens") if isinstance(data, dict) else None
    id_token = tokens.get("id_token") if isinstance(tokens, dict) else None
    return plan_from_token(id_token) or "unknown"


def get_codex_usage(settings: Settings) -> Optional[CodexUsage]:
    """
    Codex usage for the active account.

    None when codex has no live auth file at all; an unavailable
    CodexUsage when no session log carries rate-limit data.
    """
    live = settings.live
    if not live.codex_auth.is_file():
        return None

    plan_type = read_plan_type(live.codex_auth)
    session_files = find_session_files(live.codex_sessions_dir)
    if not session_files:
        return CodexUsage.unavailable(plan_type)

    found = latest_rate_limits(session_files[0])
    if found is None:
        return CodexUsage.unavailable(plan_type)

    rate_limits, timestamp = found
    return estimate_codex_usage(rate_limits, timestamp, plan_type)
