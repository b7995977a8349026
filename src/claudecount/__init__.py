"""Claude Count - report Claude Code token usage to the leaderboard."""

__version__ = "0.1.0"
