"""Scan Claude Code session transcripts for historical token usage."""
import json
import logging
from pathlib import Path
from typing import Optional

from .config import default_claude_dir
from .models import UsageTotals

logger = logging.getLogger(__name__)


def _tokens(value) -> int:
    """Token count as a non-negative int; anything unusable counts as 0."""
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def _usage_entry(record: dict, session_id: str) -> Optional[dict]:
    """Turn one transcript line into a usage entry, or None if it has no usage."""
    if record.get("type") != "assistant":
        return None

    message = record.get("message")
    if not isinstance(message, dict):
        return None
    usage = message.get("usage")
    if not isinstance(usage, dict) or not usage:
        return None

    timestamp = record.get("timestamp")
    if not timestamp:
        return None

    return {
        "timestamp": timestamp,
        "session_id": record.get("sessionId") or session_id,
        "message_id": message.get("id"),
        "request_id": record.get("requestId"),
        "model": message.get("model", "unknown"),
        "input_tokens": _tokens(usage.get("input_tokens")),
        "output_tokens": _tokens(usage.get("output_tokens")),
        "cache_creation_tokens": _tokens(usage.get("cache_creation_input_tokens")),
        "cache_read_tokens": _tokens(usage.get("cache_read_input_tokens")),
    }


def scan_all_historical_usage(projects_path: Optional[Path] = None) -> tuple[list[dict], UsageTotals]:
    """
    Collect every assistant usage record under ~/.claude/projects.

    Resumed sessions copy earlier messages into new transcript files, so an
    entry seen twice (same message id and request id) is only kept once.

    Returns:
        (entries sorted by timestamp, totals over those entries)
    """
    projects_path = projects_path or default_claude_dir() / "projects"
    totals = UsageTotals()
    if not projects_path.exists():
        return [], totals

    entries = []
    seen = set()

    for jsonl_file in sorted(projects_path.glob("*/*.jsonl")):
        try:
            with open(jsonl_file, 'r', encoding="utf-8") as f:
                for line in f:
                    try:
                        record = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if not isinstance(record, dict):
                        continue

                    entry = _usage_entry(record, jsonl_file.stem)
                    if entry is None:
                        continue

                    if entry["message_id"] and entry["request_id"]:
                        key = (entry["message_id"], entry["request_id"])
                        if key in seen:
                            continue
                        seen.add(key)

                    entries.append(entry)
                    totals.input += entry["input_tokens"]
                    totals.output += entry["output_tokens"]
                    totals.cache_creation += entry["cache_creation_tokens"]
                    totals.cache_read += entry["cache_read_tokens"]
        except (IOError, OSError, UnicodeDecodeError) as e:
            logger.debug(f"Skipping {jsonl_file}: {e}")
            continue

    entries.sort(key=lambda e: e["timestamp"])
    logger.debug(f"Scanned {len(entries)} usage entries from {projects_path}")
    return entries, totals
