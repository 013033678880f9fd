"""Tests for configuration and key management."""

import os
import stat

import pytest

from db2snow.config import (
    ConfigPaths,
    init_config,
    is_initialized,
    read_encryption_key,
    resolve_config_paths,
    settings,
)
from db2snow.encryption import derive_key
from db2snow.errors import ConfigNotFoundError, EncryptionError


@pytest.fixture
def no_override(monkeypatch):
    monkeypatch.setattr(settings, "config_dir", None)


class TestResolveConfigPaths:
    """Test configuration directory resolution."""

    def test_explicit_override(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "config_dir", str(tmp_path / "custom"))
        paths = resolve_config_paths()
        assert paths.root == tmp_path / "custom"
        assert paths.mappings_dir == tmp_path / "custom" / "mappings"
        assert paths.key_file == tmp_path / "custom" / "key"

    def test_home_directory_by_default(self, tmp_path, monkeypatch, no_override):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        assert resolve_config_paths().root == tmp_path / "home" / ".db2snow"

    def test_local_directory_when_present(self, tmp_path, monkeypatch, no_override):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".db2snow").mkdir()
        assert resolve_config_paths().root == tmp_path / ".db2snow"

    def test_local_forced(self, tmp_path, monkeypatch, no_override):
        monkeypatch.chdir(tmp_path)
        assert resolve_config_paths(local=True).root == tmp_path / ".db2snow"


class TestInitConfig:
    """Test initialization and key reading."""

    def test_random_key(self, config_paths):
        assert is_initialized(config_paths) is False

        paths = init_config()

        assert paths.root == config_paths.root
        assert is_initialized(paths) is True
        assert len(read_encryption_key(paths)) == 32
        assert paths.logs_dir.is_dir()
        assert paths.connections_dir.is_dir()

    def test_key_file_permissions(self, config_paths):
        paths = init_config()
        mode = stat.S_IMODE(os.stat(paths.key_file).st_mode)
        assert mode == 0o600

    def test_passphrase_key(self, config_paths):
        paths = init_config(passphrase="open sesame")
        assert read_encryption_key(paths) == derive_key("open sesame")

    def test_existing_key_is_kept(self, config_paths):
        first = read_encryption_key(init_config())
        second = read_encryption_key(init_config())
        assert first == second

    def test_force_replaces_key(self, config_paths):
        first = read_encryption_key(init_config())
        second = read_encryption_key(init_config(force=True))
        assert first != second

    def test_missing_key(self, tmp_path):
        with pytest.raises(ConfigNotFoundError, match="Run \"init\" first"):
            read_encryption_key(ConfigPaths.from_root(tmp_path / "empty"))

    @pytest.mark.parametrize("content", ["not-hex", "abcd"])
    def test_invalid_key(self, config_paths, content):
        config_paths.key_file.write_text(content, encoding="utf-8")
        with pytest.raises(EncryptionError, match="Invalid encryption key"):
            read_encryption_key(config_paths)
