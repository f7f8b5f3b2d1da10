"""
Tests for VaultStore.

Covers: name sanitizing, service validation, path containment, listing,
atomic writes, transparent encryption under an unlocked session.
"""

import json
import os
import sys

import pytest

from account_vault.vault.encryption import is_envelope
from account_vault.vault.errors import (
    AuthenticationRequired,
    NotFound,
    PathTraversal,
    ValidationError,
)
from account_vault.vault.session import VaultSession
from account_vault.vault.store import (
    MAX_NAME_LENGTH,
    VaultStore,
    atomic_write_text,
    ensure_path_within,
    sanitize_name,
    validate_service,
)


@pytest.fixture
def session():
    return VaultSession()


@pytest.fixture
def store(tmp_path, session):
    return VaultStore(tmp_path / "accounts", session)


# ===================================================================
# Names and services
# ===================================================================


class TestSanitizeName:
    def test_keeps_allowed_characters(self):
        assert sanitize_name("Work Account_2-b") == "Work Account_2-b"

    def test_strips_disallowed_and_trims(self):
        assert sanitize_name("  ../evil!name  ") == "evilname"

    def test_path_separators_removed(self):
        assert sanitize_name("a/b\\c") == "abc"

    @pytest.mark.parametrize("raw", ["", None, 42, "!!!", "   ", "../"])
    def test_rejects_empty_results(self, raw):
        with pytest.raises(ValidationError):
            sanitize_name(raw)

    def test_length_limit(self):
        assert sanitize_name("a" * MAX_NAME_LENGTH) == "a" * MAX_NAME_LENGTH
        with pytest.raises(ValidationError):
            sanitize_name("a" * (MAX_NAME_LENGTH + 1))


class TestValidateService:
    def test_known_services(self):
        assert validate_service("claude") == "claude"
        assert validate_service("codex") == "codex"

    @pytest.mark.parametrize("service", ["Claude", "gemini", "", "claude/.."])
    def test_unknown_services(self, service):
        with pytest.raises(ValidationError):
            validate_service(service)


# ===================================================================
# Paths
# ===================================================================


class TestPaths:
    def test_claude_paths(self, store, tmp_path):
        paths = store.profile_paths("claude", "work")
        base = os.path.realpath(tmp_path / "accounts" / "claude")
        assert str(paths["credentials"]) == os.path.join(base, "work-credentials.json")
        assert str(paths["config"]) == os.path.join(base, "work-config.json")

    def test_codex_path(self, store):
        assert store.resolve_path("codex", "work", "auth").name == "work.json"

    def test_unknown_kind(self, store):
        with pytest.raises(ValidationError):
            store.resolve_path("codex", "work", "credentials")

    def test_traversal_detected(self, tmp_path):
        base = tmp_path / "base"
        base.mkdir()
        with pytest.raises(PathTraversal):
            ensure_path_within(base / ".." / "outside.json", base)

    def test_base_itself_rejected(self, tmp_path):
        with pytest.raises(PathTraversal):
            ensure_path_within(tmp_path, tmp_path)

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
    def test_symlink_escape_detected(self, store, tmp_path):
        service_dir = tmp_path / "accounts" / "codex"
        service_dir.mkdir(parents=True)
        outside = tmp_path / "outside.json"
        outside.write_text("{}")
        (service_dir / "link.json").symlink_to(outside)
        with pytest.raises(PathTraversal):
            store.resolve_path("codex", "link", "auth")


# ===================================================================
# Listing
# ===================================================================


class TestListing:
    def test_missing_directory_is_empty(self, store):
        assert store.list_profiles("claude") == []

    def test_claude_lists_config_files(self, store):
        store.write_profile("claude", "a", "config", {})
        store.write_profile("claude", "a", "credentials", {})
        store.write_profile("claude", "b", "credentials", {})
        assert store.list_profiles("claude") == ["a"]

    def test_codex_lists_json_files(self, store):
        store.write_profile("codex", "x", "auth", {})
        store.write_profile("codex", "y", "auth", {})
        assert store.list_profiles("codex") == ["x", "y"]

    def test_iter_files_covers_both_services(self, store):
        store.write_profile("claude", "a", "config", {})
        store.write_profile("codex", "x", "auth", {})
        names = sorted(p.name for p in store.iter_files())
        assert names == ["a-config.json", "x.json"]


# ===================================================================
# Reads and writes
# ===================================================================


class TestProfileIO:
    def test_plaintext_stored_byte_for_byte(self, store):
        text = '{\n    "odd":   "spacing"\n}\n'
        path = store.write_profile_text("codex", "w", "auth", text)
        assert path.read_text(encoding="utf-8") == text
        assert store.read_profile_text("codex", "w", "auth") == text

    def test_invalid_json_rejected(self, store):
        with pytest.raises(ValidationError):
            store.write_profile_text("codex", "w", "auth", "{not json")
        assert not store.exists("codex", "w", "auth")

    def test_unlocked_session_encrypts(self, store, session):
        session.unlock("pw12")
        text = json.dumps({"k": "v"})
        path = store.write_profile_text("codex", "w", "auth", text)
        assert is_envelope(json.loads(path.read_text()))
        assert store.read_profile_text("codex", "w", "auth") == text

    def test_envelope_needs_password(self, store, session):
        session.unlock("pw12")
        store.write_profile("codex", "w", "auth", {"k": "v"})
        session.lock()
        with pytest.raises(AuthenticationRequired):
            store.read_profile("codex", "w", "auth")

    def test_missing_profile(self, store):
        with pytest.raises(NotFound):
            store.read_profile("codex", "nobody", "auth")

    def test_remove(self, store):
        store.write_profile("codex", "w", "auth", {})
        assert store.remove("codex", "w", "auth") is True
        assert store.remove("codex", "w", "auth") is False

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_written_files_are_owner_only(self, store):
        path = store.write_profile("codex", "w", "auth", {})
        assert (path.stat().st_mode & 0o777) == 0o600


class TestAtomicWrite:
    def test_creates_parents_and_leaves_no_temp(self, tmp_path):
        target = tmp_path / "deep" / "dir" / "file.json"
        atomic_write_text(target, "{}")
        assert target.read_text() == "{}"
        assert list(target.parent.iterdir()) == [target]

    def test_replaces_existing(self, tmp_path):
        target = tmp_path / "file.json"
        target.write_text("old")
        atomic_write_text(target, "new")
        assert target.read_text() == "new"
