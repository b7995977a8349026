#!/usr/bin/env python3
"""Claude Count Stop hook.

Claude Code runs this when a session stops. It reads the session transcript,
collects assistant token usage and submits it to the leaderboard endpoint
named in ~/.claude/leaderboard.json. The server deduplicates entries by
message and request id, so submitting a transcript twice is harmless.

Runs with whatever python3 is on PATH, so it uses the standard library only.
It always exits 0: a failed report must never disturb Claude Code.
"""

import json
import os
import platform
import socket
import sys
import urllib.request
from pathlib import Path

CLAUDE_DIR = Path(os.environ.get("CLAUDE_CONFIG_DIR") or Path.home() / ".claude")
LEADERBOARD_PATH = CLAUDE_DIR / "leaderboard.json"
CONFIG_PATH = Path(os.environ.get("CLAUDE_COUNT_HOME") or Path.home() / ".claudecount") / "config.json"
SUBMIT_PATH = "/api/usage/submit"
TIMEOUT = 5.0


def _load_json(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def _tokens(value) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def collect_entries(transcript_path: Path, session_id: str) -> list[dict]:
    entries = []
    try:
        with open(transcript_path, "r", encoding="utf-8") as f:
            for line in f:
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not isinstance(record, dict) or record.get("type") != "assistant":
                    continue
                message = record.get("message")
                if not isinstance(message, dict):
                    continue
                usage = message.get("usage")
                if not isinstance(usage, dict) or not usage or not record.get("timestamp"):
                    continue
                entries.append({
                    "timestamp": record["timestamp"],
                    "session_id": record.get("sessionId") or session_id,
                    "message_id": message.get("id"),
                    "request_id": record.get("requestId"),
                    "model": message.get("model", "unknown"),
                    "input_tokens": _tokens(usage.get("input_tokens")),
                    "output_tokens": _tokens(usage.get("output_tokens")),
                    "cache_creation_tokens": _tokens(usage.get("cache_creation_input_tokens")),
                    "cache_read_tokens": _tokens(usage.get("cache_read_input_tokens")),
                })
    except (OSError, ValueError):
        # unreadable or not UTF-8
        return []
    return entries


def submit(endpoint: str, config: dict, entries: list[dict]) -> None:
    device_id = config.get("device_id") or ""
    body = json.dumps({
        "twitter_user_id": config.get("twitter_user_id"),
        "usage_entries": entries,
        "device": {
            "device_id": device_id,
            "hostname": socket.gethostname(),
            "platform": sys.platform,
            "python_version": platform.python_version(),
        },
    }).encode("utf-8")
    request = urllib.request.Request(
        endpoint.rstrip("/") + SUBMIT_PATH,
        data=body,
        method="POST",
        headers={
            "Content-Type": "application/json",
            "X-OAuth-Token": config.get("oauth_token") or "",
            "X-OAuth-Token-Secret": config.get("oauth_token_secret") or "",
            "X-Device-ID": device_id,
        },
    )
    with urllib.request.urlopen(request, timeout=TIMEOUT):
        pass


def main():
    try:
        data = json.loads(sys.stdin.read() or "{}")
    except (json.JSONDecodeError, OSError):
        return
    if not isinstance(data, dict):
        return

    transcript = data.get("transcript_path")
    if not transcript:
        return

    endpoint = _load_json(LEADERBOARD_PATH).get("endpoint")
    config = _load_json(CONFIG_PATH)
    if not endpoint or not config.get("oauth_token"):
        return

    entries = collect_entries(Path(transcript).expanduser(), data.get("session_id", ""))
    if not entries:
        return

    try:
        submit(endpoint, config, entries)
    except (OSError, ValueError):
        pass  # report again at the next Stop


if __name__ == "__main__":
    try:
        main()
    finally:
        sys.exit(0)
