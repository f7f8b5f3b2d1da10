"""
Tests for AccountSwitcher.

Covers: save/switch byte fidelity, backups, claude config path selection,
missing live/vault files, encrypted profiles, delete, current account summary.
"""

import json

import pytest

from account_vault.vault.encryption import is_envelope
from account_vault.vault.errors import AuthenticationRequired, NotFound, ValidationError, VaultIOError
from account_vault.vault.session import VaultSession
from account_vault.vault.store import VaultStore
from account_vault.vault.switcher import AccountSwitcher, backup_path

from conftest import claude_config, claude_credentials, codex_auth, write_json


@pytest.fixture
def session():
    return VaultSession()


@pytest.fixture
def switcher(settings, session):
    store = VaultStore(settings.paths.accounts_dir, session)
    return AccountSwitcher(store, settings.live)


# ===================================================================
# Claude config location
# ===================================================================


class TestClaudeConfigPath:
    def test_primary_with_oauth_account(self, switcher, settings):
        write_json(settings.live.claude_config_primary, claude_config())
        assert switcher.claude_config_path() == settings.live.claude_config_primary

    def test_primary_without_oauth_account_uses_fallback(self, switcher, settings):
        write_json(settings.live.claude_config_primary, {"numStartups": 1})
        assert switcher.claude_config_path() == settings.live.claude_config_fallback

    def test_unparsable_primary_uses_fallback(self, switcher, settings):
        settings.live.claude_config_primary.parent.mkdir(parents=True)
        settings.live.claude_config_primary.write_text("{oops")
        assert switcher.claude_config_path() == settings.live.claude_config_fallback

    def test_missing_primary_uses_fallback(self, switcher, settings):
        assert switcher.claude_config_path() == settings.live.claude_config_fallback


# ===================================================================
# Save
# ===================================================================


class TestSave:
    def test_save_claude_stores_exact_text(self, switcher, live_claude):
        name = switcher.save("claude", "work")
        store = switcher.store
        assert name == "work"
        assert store.read_profile_text("claude", "work", "credentials") == live_claude["credentials"]
        assert store.read_profile_text("claude", "work", "config") == live_claude["config"]

    def test_save_sanitizes_name(self, switcher, live_codex):
        assert switcher.save("codex", "  my/acct! ") == "myacct"
        assert switcher.store.list_profiles("codex") == ["myacct"]

    def test_missing_credentials(self, switcher, settings):
        write_json(settings.live.claude_config_primary, claude_config())
        with pytest.raises(NotFound, match="No active credentials found"):
            switcher.save("claude", "work")
        assert switcher.store.list_profiles("claude") == []

    def test_missing_config_writes_nothing(self, switcher, settings):
        write_json(settings.live.claude_credentials, claude_credentials())
        with pytest.raises(NotFound, match="No active config found"):
            switcher.save("claude", "work")
        assert not switcher.store.exists("claude", "work", "credentials")

    def test_missing_codex_auth(self, switcher):
        with pytest.raises(NotFound, match="No active account found"):
            switcher.save("codex", "work")

    def test_live_file_not_json(self, switcher, settings):
        settings.live.codex_auth.parent.mkdir(parents=True)
        settings.live.codex_auth.write_text("not json")
        with pytest.raises(ValidationError):
            switcher.save("codex", "work")

    def test_live_file_not_utf8(self, switcher, settings):
        settings.live.codex_auth.parent.mkdir(parents=True)
        settings.live.codex_auth.write_bytes(b'{"tokens": "\xff\xfe"}')
        with pytest.raises(VaultIOError):
            switcher.save("codex", "work")
        assert switcher.store.list_profiles("codex") == []

    def test_invalid_service(self, switcher):
        with pytest.raises(ValidationError):
            switcher.save("gemini", "work")

    def test_unlocked_session_stores_envelopes(self, switcher, session, live_codex):
        session.unlock("pw12")
        switcher.save("codex", "work")
        assert is_envelope(switcher.store.read_stored("codex", "work", "auth"))
        # live file itself is never encrypted
        assert switcher.live.codex_auth.read_text() == live_codex["auth"]


# ===================================================================
# Switch
# ===================================================================


class TestSwitch:
    def test_save_then_switch_is_byte_identical(self, switcher, settings, live_claude):
        switcher.save("claude", "work")
        write_json(settings.live.claude_credentials, claude_credentials(token="other"))
        write_json(settings.live.claude_config_primary, claude_config(email="z@example.com"))

        switcher.switch("claude", "work")

        assert settings.live.claude_credentials.read_text() == live_claude["credentials"]
        assert settings.live.claude_config_primary.read_text() == live_claude["config"]

    def test_backups_hold_previous_live_files(self, switcher, settings, live_codex):
        switcher.save("codex", "first")
        replaced = write_json(settings.live.codex_auth, codex_auth(email="c@example.com"))

        switcher.switch("codex", "first")

        assert backup_path(settings.live.codex_auth).read_text() == replaced
        assert settings.live.codex_auth.read_text() == live_codex["auth"]

    def test_switch_creates_missing_live_files(self, switcher, settings, live_codex):
        switcher.save("codex", "first")
        settings.live.codex_auth.unlink()

        switcher.switch("codex", "first")

        assert settings.live.codex_auth.read_text() == live_codex["auth"]
        assert not backup_path(settings.live.codex_auth).exists()

    def test_config_written_to_fallback_when_primary_has_no_account(
        self, switcher, settings, live_claude
    ):
        switcher.save("claude", "work")
        write_json(settings.live.claude_config_primary, {"numStartups": 9})

        switcher.switch("claude", "work")

        assert settings.live.claude_config_fallback.read_text() == live_claude["config"]

    def test_missing_profile(self, switcher):
        with pytest.raises(NotFound, match="Saved account not found"):
            switcher.switch("codex", "ghost")

    def test_half_saved_claude_profile(self, switcher, live_claude):
        switcher.save("claude", "work")
        switcher.store.remove("claude", "work", "config")
        with pytest.raises(NotFound):
            switcher.switch("claude", "work")

    def test_encrypted_profile_round_trip(self, switcher, session, settings, live_codex):
        session.unlock("pw12")
        switcher.save("codex", "enc")
        write_json(settings.live.codex_auth, codex_auth(email="c@example.com"))

        switcher.switch("codex", "enc")

        assert settings.live.codex_auth.read_text() == live_codex["auth"]

    def test_locked_session_leaves_live_untouched_after_backup(
        self, switcher, session, settings, live_codex
    ):
        session.unlock("pw12")
        switcher.save("codex", "enc")
        session.lock()
        current = write_json(settings.live.codex_auth, codex_auth(email="c@example.com"))

        with pytest.raises(AuthenticationRequired):
            switcher.switch("codex", "enc")

        assert settings.live.codex_auth.read_text() == current
        assert backup_path(settings.live.codex_auth).read_text() == current


# ===================================================================
# Delete
# ===================================================================


class TestDelete:
    def test_delete_claude_profile(self, switcher, live_claude):
        switcher.save("claude", "work")
        switcher.delete("claude", "work")
        assert switcher.store.list_profiles("claude") == []
        assert not switcher.store.exists("claude", "work", "credentials")

    def test_delete_missing(self, switcher):
        with pytest.raises(NotFound, match="Account not found"):
            switcher.delete("codex", "ghost")

    def test_delete_partial_profile(self, switcher, live_claude):
        switcher.save("claude", "work")
        switcher.store.remove("claude", "work", "config")
        assert switcher.delete("claude", "work") == "work"


# ===================================================================
# Current accounts
# ===================================================================


class TestCurrentAccounts:
    def test_nothing_live(self, switcher):
        assert switcher.current_accounts() == {
            "claude": {"exists": False},
            "codex": {"exists": False},
        }

    def test_both_live(self, switcher, live_claude, live_codex):
        current = switcher.current_accounts()
        assert current["claude"] == {
            "exists": True,
            "email": "a@example.com",
            "subscriptionType": "pro",
        }
        assert current["codex"] == {
            "exists": True,
            "email": "b@example.com",
            "planType": "plus",
        }

    def test_codex_without_id_token(self, switcher, settings):
        write_json(settings.live.codex_auth, {"OPENAI_API_KEY": "sk-x"})
        assert switcher.current_accounts()["codex"] == {
            "exists": True,
            "email": "Unknown",
            "planType": "Unknown",
        }

    def test_claude_fallback_config(self, switcher, settings):
        write_json(settings.live.claude_config_fallback, claude_config(email="f@example.com"))
        current = switcher.current_accounts()["claude"]
        assert current["email"] == "f@example.com"
        assert current["subscriptionType"] == "Unknown"
