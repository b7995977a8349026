"""Credentials for the leaderboard API.

Token acquisition happens elsewhere; this module only reads what has already
been stored in the local config.
"""
from dataclasses import dataclass
from typing import Protocol

from .config import ConfigStore
from .errors import AuthMissingError


@dataclass(frozen=True)
class Credentials:
    twitter_user_id: str
    oauth_token: str
    oauth_token_secret: str
    twitter_handle: str = ""


class CredentialProvider(Protocol):
    def get_credentials(self) -> Credentials: ...


class ConfigCredentialProvider:
    """Reads OAuth tokens and the user id from the config store."""

    def __init__(self, store: ConfigStore):
        self.store = store

    def get_credentials(self) -> Credentials:
        user_id = self.store.get("twitter_user_id")
        token = self.store.get("oauth_token")
        secret = self.store.get("oauth_token_secret")
        if not (user_id and token and secret):
            raise AuthMissingError("Not authenticated")
        return Credentials(
            twitter_user_id=str(user_id),
            oauth_token=token,
            oauth_token_secret=secret,
            twitter_handle=self.store.get("twitter_handle", ""),
        )
