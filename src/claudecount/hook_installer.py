"""Install the token-counting Stop hook into Claude Code.

Every step here is idempotent and reports whether it changed anything, so
``ensure_hook_installed`` is cheap enough to run on each CLI invocation. A
second run with nothing changed on disk reports no changes and writes nothing.
"""
import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from .config import DEFAULT_API_URL, default_claude_dir
from .fileio import write_bytes_atomic, write_json_atomic

logger = logging.getLogger(__name__)

HOOK_SCRIPT_NAME = "count_tokens.py"
BUNDLED_HOOK_PATH = Path(__file__).parent / "data" / "hooks" / HOOK_SCRIPT_NAME
HOOK_MATCHER = ".*"
HOOK_MODE = 0o755


class SettingsDocument:
    """Claude Code's settings.json, shared with other tools.

    Only ``hooks.Stop`` is ever touched. Everything else, including unknown
    keys inside Stop entries, round-trips unchanged and in its original order.
    """

    def __init__(self, data: Optional[dict] = None):
        self.data = data if data is not None else {}

    @classmethod
    def load(cls, path: Path) -> "SettingsDocument":
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Could not parse existing {path.name}, creating new one: {e}")
            return cls()
        if not isinstance(data, dict):
            logger.warning(f"{path.name} is not a JSON object, creating new one")
            return cls()
        return cls(data)

    def stop_hooks(self) -> list:
        hooks = self.data.get("hooks")
        if not isinstance(hooks, dict):
            hooks = self.data["hooks"] = {}
        stop = hooks.get("Stop")
        if not isinstance(stop, list):
            stop = hooks["Stop"] = []
        return stop

    def has_command(self, command: str) -> bool:
        for entry in self.stop_hooks():
            if not isinstance(entry, dict):
                continue
            inner = entry.get("hooks")
            if not isinstance(inner, list):
                continue
            for hook in inner:
                if isinstance(hook, dict) and hook.get("type") == "command" and hook.get("command") == command:
                    return True
        return False

    def add_command(self, command: str) -> bool:
        """Register command on Stop unless already there. Returns True if added."""
        if self.has_command(command):
            return False
        self.stop_hooks().append({
            "matcher": HOOK_MATCHER,
            "hooks": [{"type": "command", "command": command}]
        })
        return True

    def save(self, path: Path) -> None:
        write_json_atomic(path, self.data)


@dataclass
class InstallReport:
    hook_script: bool = False
    settings_json: bool = False
    leaderboard_config: bool = False

    @property
    def changed(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name)]


class HookInstaller:
    def __init__(self, claude_dir: Optional[Path] = None, api_url: str = DEFAULT_API_URL,
                 bundled_hook: Path = BUNDLED_HOOK_PATH):
        self.claude_dir = claude_dir or default_claude_dir()
        self.api_url = api_url
        self.bundled_hook = bundled_hook

    @property
    def hook_script_path(self) -> Path:
        return self.claude_dir / HOOK_SCRIPT_NAME

    @property
    def settings_path(self) -> Path:
        return self.claude_dir / "settings.json"

    @property
    def leaderboard_config_path(self) -> Path:
        return self.claude_dir / "leaderboard.json"

    def ensure_claude_dir(self) -> bool:
        if self.claude_dir.is_dir():
            return False
        self.claude_dir.mkdir(parents=True, exist_ok=True)
        return True

    def install_hook_script(self) -> bool:
        """Copy the bundled hook into place when the installed copy differs."""
        content = self.bundled_hook.read_bytes()
        try:
            if self.hook_script_path.read_bytes() == content:
                return False
        except OSError:
            pass  # missing or unreadable: rewrite it
        write_bytes_atomic(self.hook_script_path, content, mode=HOOK_MODE)
        return True

    def update_settings(self) -> bool:
        settings = SettingsDocument.load(self.settings_path)
        if not settings.add_command(str(self.hook_script_path)):
            return False
        settings.save(self.settings_path)
        return True

    def create_leaderboard_config(self) -> bool:
        """Write the default leaderboard.json. Never touches an existing one."""
        if self.leaderboard_config_path.exists():
            return False
        write_json_atomic(self.leaderboard_config_path, {
            "twitterUrl": "@your_handle",
            "endpoint": self.api_url
        })
        return True

    def ensure_hook_installed(self) -> Optional[InstallReport]:
        """Bring hook, settings and leaderboard config up to date.

        Returns what changed, or None if installation failed. Never raises:
        token tracking is optional and must not stop the CLI from working.
        """
        try:
            self.ensure_claude_dir()
            report = InstallReport(
                hook_script=self.install_hook_script(),
                settings_json=self.update_settings(),
                leaderboard_config=self.create_leaderboard_config(),
            )
        except Exception as e:
            logger.warning(f"Could not install token tracking hook: {e}")
            return None

        if report.changed:
            logger.info("Token tracking enabled")
            logger.debug(f"Updated: {', '.join(report.changed)}")
        return report

    def is_hook_installed(self) -> bool:
        """All three files present and the hook script executable."""
        try:
            return (
                self.hook_script_path.is_file()
                and self.settings_path.is_file()
                and self.leaderboard_config_path.is_file()
                and os.access(self.hook_script_path, os.X_OK)
            )
        except OSError:
            return False
