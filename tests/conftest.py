"""
Shared pytest fixtures for the Account Vault test suite.

Every test runs against temp directories:
  - Audit logger  -> tmp_path/audit_logs  (no events in the real data dir)
  - Vault data    -> tmp_path/data
  - Live home     -> tmp_path/home        (never the user's real ~/.claude)
"""

import base64
import json

import pytest

from account_vault.core import Settings


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path):
    """Point the global AuditLogger at a temp directory for every test."""
    import account_vault.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    test_logger = audit_mod.AuditLogger(tmp_path / "audit_logs")
    audit_mod.set_audit_logger(test_logger)

    yield

    test_logger.close()
    audit_mod.set_audit_logger(old_logger)


@pytest.fixture
def settings(tmp_path):
    home = tmp_path / "home"
    home.mkdir()
    return Settings(data_dir=tmp_path / "data", home_dir=home)


# ── Live file helpers ────────────────────────────────────────────────


def make_id_token(claims):
    """Unsigned JWT carrying ``claims`` (signature segment is a dummy)."""
    def seg(obj):
        raw = json.dumps(obj).encode("utf-8")
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    return f"{seg({'alg': 'none'})}.{seg(claims)}.sig"


def claude_credentials(token="tok-1", tier="pro"):
    return {"claudeAiOauth": {"accessToken": token, "subscriptionType": tier}}


def claude_config(email="a@example.com"):
    return {"oauthAccount": {"emailAddress": email}, "numStartups": 3}


def codex_auth(email="b@example.com", plan="plus"):
    token = make_id_token({
        "email": email,
        "https://api.openai.com/auth": {"chatgpt_plan_type": plan},
    })
    return {"OPENAI_API_KEY": None, "tokens": {"id_token": token, "access_token": "x"}}


def write_json(path, data, indent=2):
    """Write ``data`` and return the exact text written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(data, indent=indent)
    path.write_text(text, encoding="utf-8")
    return text


@pytest.fixture
def live_claude(settings):
    """Active claude login in the primary config location; returns the texts."""
    live = settings.live
    creds = write_json(live.claude_credentials, claude_credentials())
    config = write_json(live.claude_config_primary, claude_config())
    return {"credentials": creds, "config": config}


@pytest.fixture
def live_codex(settings):
    return {"auth": write_json(settings.live.codex_auth, codex_auth(), indent=None)}
