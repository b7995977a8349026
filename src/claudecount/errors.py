"""Exceptions raised by claudecount."""


class ClaudeCountError(Exception):
    """Base class for claudecount errors."""


class AuthMissingError(ClaudeCountError):
    """No usable credentials in the local config."""

    remediation = 'Store your credentials with "claudecount config set" and try again'


class NetworkError(ClaudeCountError):
    """Transport failure talking to the leaderboard service (timeout, DNS, reset)."""
