"""Configuration management for claudecount."""
import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .fileio import write_json_atomic

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.claudecount.com"
LEADERBOARD_URL = "https://claudecount.com"
CONFIG_MODE = 0o600  # holds OAuth tokens

DEFAULT_CONFIG = {
    "device_id": None,
    "twitter_user_id": None,
    "twitter_handle": None,
    "oauth_token": None,
    "oauth_token_secret": None,
    "api_url": None,
}


def default_config_dir() -> Path:
    """Directory holding claudecount's own config (CLAUDE_COUNT_HOME overrides)."""
    override = os.environ.get("CLAUDE_COUNT_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".claudecount"


def default_claude_dir() -> Path:
    """Host application directory where the hook and settings live."""
    override = os.environ.get("CLAUDE_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".claude"


def _read_config_file(path: Path) -> dict:
    config = DEFAULT_CONFIG.copy()
    if path.exists():
        try:
            stored = json.loads(path.read_text())
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable config {path}: {e}")
            return config
        if isinstance(stored, dict):
            config.update(stored)
    return config


class ConfigStore:
    """The local config file, loaded once per command invocation.

    Components receive the store explicitly instead of reading the file on
    their own. ``edit()`` is the only read-modify-write path and always starts
    from what is on disk, which keeps the window between read and write short
    when two invocations run at once.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = path or default_config_dir() / "config.json"
        self._data: Optional[dict] = None

    def load(self) -> dict:
        if self._data is None:
            self._data = _read_config_file(self.path)
        return self._data

    def get(self, key: str, default=None):
        value = self.load().get(key)
        return default if value is None else value

    def set(self, key: str, value) -> None:
        with self.edit() as config:
            config[key] = value

    @contextmanager
    def edit(self) -> Iterator[dict]:
        """Scoped read-modify-write; writes only when the dict changed."""
        fresh = _read_config_file(self.path)
        before = dict(fresh)
        yield fresh
        if fresh != before:
            write_json_atomic(self.path, fresh, mode=CONFIG_MODE)
        self._data = fresh

    def api_url(self) -> str:
        """API base URL: env var, then config, then the public service."""
        url = os.environ.get("CLAUDE_COUNT_API_URL") or self.get("api_url") or DEFAULT_API_URL
        return url.rstrip("/")
