"""HTTP client for the leaderboard service."""
import logging
from typing import Optional

import httpx

from .auth import Credentials
from .errors import NetworkError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0  # seconds


class LeaderboardClient:
    """Authenticated calls to the leaderboard API.

    Methods return the raw response so callers can decide what a non-2xx
    status means for them; only transport failures are raised, as NetworkError.
    """

    def __init__(self, base_url: str, credentials: Credentials, device_id: str,
                 timeout: float = REQUEST_TIMEOUT,
                 transport: Optional[httpx.BaseTransport] = None):
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "X-OAuth-Token": credentials.oauth_token,
                "X-OAuth-Token-Secret": credentials.oauth_token_secret,
                "X-Device-ID": device_id,
            },
        )

    def __enter__(self) -> "LeaderboardClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise NetworkError(str(e) or type(e).__name__) from e
        logger.debug(f"{method} {path} -> {response.status_code}")
        return response

    def get_user_stats(self, twitter_user_id: str) -> httpx.Response:
        return self._request("GET", "/api/user/stats", params={"twitter_user_id": twitter_user_id})

    def sync_history(self, payload: dict) -> httpx.Response:
        return self._request("POST", "/api/usage/sync-history", json=payload)

    def get_sync_status(self, twitter_user_id: str) -> httpx.Response:
        return self._request("GET", "/api/user/sync-status", params={"twitter_user_id": twitter_user_id})
