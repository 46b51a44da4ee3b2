"""Configuration management for buildsync.

Settings are resolved from environment variables first, then from the
JSON config file in the user's config directory.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://sourcegraph.com/.api"
CONFIG_FILENAME = "config.json"

API_KEY_ENV = "BUILDSYNC_API_KEY"
API_URL_ENV = "BUILDSYNC_API_URL"
REPO_URI_ENV = "BUILDSYNC_REPO_URI"


class Config:
    """Resolved buildsync settings."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ~/.config/buildsync/
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "buildsync"
        self.config_dir = config_dir

    def get_config_path(self) -> Path:
        """Return the path of the JSON config file."""
        return self.config_dir / CONFIG_FILENAME

    def _load_file(self) -> dict[str, Any]:
        path = self.get_config_path()
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable config file {path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    @property
    def api_key(self) -> Optional[str]:
        return os.environ.get(API_KEY_ENV) or self._load_file().get("api_key")

    @property
    def api_url(self) -> str:
        url = os.environ.get(API_URL_ENV) or self._load_file().get("api_url")
        return validate_api_url(url or DEFAULT_API_URL)

    @property
    def repo_uri(self) -> Optional[str]:
        return os.environ.get(REPO_URI_ENV) or None

    def is_configured(self) -> bool:
        """Return True if an API key is available."""
        return bool(self.api_key)

    def save(self, api_key: Optional[str] = None, api_url: Optional[str] = None) -> Path:
        """Persist settings to the config file.

        Only the given values are updated; others are kept.

        Returns:
            Path of the written config file
        """
        data = self._load_file()
        if api_key is not None:
            data["api_key"] = api_key
        if api_url is not None:
            data["api_url"] = validate_api_url(api_url)

        path = self.get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        path.chmod(0o600)
        logger.debug(f"Saved configuration to {path}")
        return path


def validate_api_url(url: str) -> str:
    """Return ``url`` without a trailing slash.

    Raises:
        ConfigError: If the URL is not an absolute http(s) URL
    """
    if not url.startswith(("http://", "https://")):
        raise ConfigError(f"Invalid API URL {url!r}: must start with http:// or https://")
    return url.rstrip("/")


config = Config()
