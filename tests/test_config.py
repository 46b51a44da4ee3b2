"""Tests for configuration loading."""

import json

import pytest

from buildsync.config import DEFAULT_API_URL, Config
from buildsync.exceptions import ConfigError


@pytest.fixture
def cfg(tmp_path, monkeypatch):
    """Provide a config rooted in a temporary directory without env overrides."""
    monkeypatch.delenv("BUILDSYNC_API_KEY", raising=False)
    monkeypatch.delenv("BUILDSYNC_API_URL", raising=False)
    return Config(config_dir=tmp_path / "buildsync")


class TestConfig:
    """Tests for Config."""

    def test_defaults(self, cfg):
        """Test values when nothing is configured."""
        assert cfg.api_key is None
        assert cfg.api_url == DEFAULT_API_URL
        assert not cfg.is_configured()

    def test_save_and_load(self, cfg):
        """Test that saved settings are read back."""
        path = cfg.save(api_key="secret", api_url="https://x.test/api/")

        assert path == cfg.get_config_path()
        assert cfg.api_key == "secret"
        assert cfg.api_url == "https://x.test/api"
        assert cfg.is_configured()
        assert path.stat().st_mode & 0o777 == 0o600

    def test_save_keeps_other_settings(self, cfg):
        """Test that a partial save does not drop existing values."""
        cfg.save(api_key="secret", api_url="https://x.test/api")
        cfg.save(api_key="rotated")

        data = json.loads(cfg.get_config_path().read_text())
        assert data == {"api_key": "rotated", "api_url": "https://x.test/api"}

    def test_environment_overrides_file(self, cfg, monkeypatch):
        """Test that environment variables take precedence."""
        cfg.save(api_key="from-file", api_url="https://file.test")
        monkeypatch.setenv("BUILDSYNC_API_KEY", "from-env")
        monkeypatch.setenv("BUILDSYNC_API_URL", "https://env.test/")

        assert cfg.api_key == "from-env"
        assert cfg.api_url == "https://env.test"

    def test_corrupt_file_is_ignored(self, cfg):
        """Test that an unreadable config file falls back to defaults."""
        path = cfg.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("{not json")

        assert cfg.api_key is None
        assert cfg.api_url == DEFAULT_API_URL

    def test_invalid_api_url(self, cfg, monkeypatch):
        """Test that a URL without an http(s) scheme is rejected."""
        monkeypatch.setenv("BUILDSYNC_API_URL", "builds.example.com")
        with pytest.raises(ConfigError, match="Invalid API URL"):
            cfg.api_url

    def test_save_rejects_invalid_api_url(self, cfg):
        """Test that an invalid URL is not written to the config file."""
        with pytest.raises(ConfigError):
            cfg.save(api_url="ftp://example.com")
        assert not cfg.get_config_path().exists()
