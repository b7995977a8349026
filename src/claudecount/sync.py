"""Reconcile local usage history with the leaderboard server.

One ``stats`` run goes: fetch server stats; if they are present and no resync
was asked for, just show them. Otherwise scan local history and upload it,
then classify what the server said.
"""
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from pydantic import ValidationError

from .api import LeaderboardClient
from .auth import CredentialProvider, Credentials
from .config import ConfigStore
from .device import get_device_id, get_device_metadata
from .errors import AuthMissingError, NetworkError
from .models import (
    ServerStats,
    SyncHistoryRequest,
    SyncHistoryResponse,
    SyncStatus,
    UsageTotals,
    UserStatsResponse,
)
from .scanner import scan_all_historical_usage

logger = logging.getLogger(__name__)

Scanner = Callable[[], tuple[list[dict], UsageTotals]]
ClientFactory = Callable[[Credentials, str], LeaderboardClient]


class SyncOutcome(str, Enum):
    AUTH_MISSING = "auth_missing"
    DISPLAY_ONLY = "display_only"
    NOTHING_TO_SYNC = "nothing_to_sync"
    SUCCESS = "success"
    ALREADY_SYNCED = "already_synced"
    RATE_LIMITED = "rate_limited"
    GENERIC_FAILURE = "generic_failure"
    NETWORK_ERROR = "network_error"


SUCCESSFUL_OUTCOMES = {
    SyncOutcome.DISPLAY_ONLY,
    SyncOutcome.NOTHING_TO_SYNC,
    SyncOutcome.SUCCESS,
    SyncOutcome.ALREADY_SYNCED,
}


@dataclass
class StatsResult:
    outcome: SyncOutcome
    message: str = ""
    handle: str = ""
    server_stats: Optional[ServerStats] = None
    rank: Optional[int] = None
    fetch_error: str = ""
    entries_found: int = 0
    totals: Optional[UsageTotals] = None
    synced_count: int = 0
    updated_stats: Optional[ServerStats] = None

    @property
    def ok(self) -> bool:
        return self.outcome in SUCCESSFUL_OUTCOMES


def classify_upload_failure(body: str, resync: bool) -> SyncOutcome:
    """Map a rejected upload to an outcome.

    The server reports these cases as free text. A structured ``code`` in a
    JSON body wins when the server sends one.
    """
    code = None
    try:
        parsed = json.loads(body)
        if isinstance(parsed, dict):
            code = parsed.get("code")
    except ValueError:
        pass

    text = body.lower()
    if (code == "already_synced" or "already synced" in text) and not resync:
        return SyncOutcome.ALREADY_SYNCED
    if code == "rate_limited" or "rate limit" in text:
        return SyncOutcome.RATE_LIMITED
    return SyncOutcome.GENERIC_FAILURE


def _client_factory(store: ConfigStore) -> ClientFactory:
    def make(credentials: Credentials, device_id: str) -> LeaderboardClient:
        return LeaderboardClient(store.api_url(), credentials, device_id)
    return make


class SyncReconciler:
    def __init__(self, store: ConfigStore, credentials: CredentialProvider,
                 scanner: Scanner = scan_all_historical_usage,
                 client_factory: Optional[ClientFactory] = None):
        self.store = store
        self.credentials = credentials
        self.scanner = scanner
        self.client_factory = client_factory or _client_factory(store)

    def run(self, resync: bool = False) -> StatsResult:
        try:
            creds = self.credentials.get_credentials()
        except AuthMissingError as e:
            return StatsResult(outcome=SyncOutcome.AUTH_MISSING, message=str(e))

        try:
            device_id = get_device_id(self.store)
        except OSError as e:
            logger.warning(f"Could not read or store device id: {e}")
            return StatsResult(outcome=SyncOutcome.GENERIC_FAILURE, handle=creds.twitter_handle,
                               message=f"Could not read or store device id: {e}")

        with self.client_factory(creds, device_id) as client:
            result = StatsResult(outcome=SyncOutcome.DISPLAY_ONLY, handle=creds.twitter_handle)
            has_data = self._fetch_server_stats(client, creds, result)

            if has_data and not resync:
                return result
            if has_data:
                logger.info("Force resync requested")

            try:
                entries, totals = self.scanner()
            except Exception as e:
                logger.warning(f"Local usage scan failed: {e}")
                result.outcome = SyncOutcome.GENERIC_FAILURE
                result.message = f"Could not scan local usage: {e}"
                return result
            result.entries_found = len(entries)
            result.totals = totals
            if not entries:
                result.outcome = SyncOutcome.NOTHING_TO_SYNC
                result.message = "No historical usage data found"
                return result

            self._upload(client, creds, entries, resync, result)
            return result

    def _fetch_server_stats(self, client: LeaderboardClient, creds: Credentials,
                            result: StatsResult) -> bool:
        """Fill in server stats. True only when the server holds a non-zero total."""
        try:
            response = client.get_user_stats(creds.twitter_user_id)
        except NetworkError as e:
            result.fetch_error = f"Error fetching stats: {e}"
            return False

        if not response.is_success:
            result.fetch_error = f"Failed to fetch server stats ({response.status_code})"
            return False

        try:
            data = UserStatsResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            result.fetch_error = f"Unexpected stats response: {e}"
            return False

        result.server_stats = data.stats
        result.rank = data.rank
        # A zero total looks the same as never having synced.
        return data.stats is not None and data.stats.total_tokens > 0

    def _upload(self, client: LeaderboardClient, creds: Credentials, entries: list[dict],
                resync: bool, result: StatsResult) -> None:
        payload = SyncHistoryRequest(
            twitter_user_id=creds.twitter_user_id,
            usage_entries=entries,
            force_resync=resync,
            device=get_device_metadata(self.store),
        )
        try:
            response = client.sync_history(payload.model_dump())
        except NetworkError as e:
            result.outcome = SyncOutcome.NETWORK_ERROR
            result.message = f"Sync error: {e}"
            return

        if not response.is_success:
            body = response.text
            result.outcome = classify_upload_failure(body, resync)
            result.message = body
            logger.debug(f"Upload rejected ({response.status_code}): {body}")
            return

        try:
            data = SyncHistoryResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"Unexpected sync response: {e}")
            data = SyncHistoryResponse()

        result.outcome = SyncOutcome.SUCCESS
        result.synced_count = data.synced_count or len(entries)
        result.rank = data.rank if data.rank is not None else result.rank
        result.updated_stats = data.stats


@dataclass
class SyncStatusResult:
    status: Optional[SyncStatus] = None
    handle: str = ""
    error: str = ""
    auth_missing: bool = False


class SyncStatusReporter:
    """Read-only query of the server's sync state. Never uploads."""

    def __init__(self, store: ConfigStore, credentials: CredentialProvider,
                 client_factory: Optional[ClientFactory] = None):
        self.store = store
        self.credentials = credentials
        self.client_factory = client_factory or _client_factory(store)

    def check(self) -> SyncStatusResult:
        try:
            creds = self.credentials.get_credentials()
        except AuthMissingError as e:
            return SyncStatusResult(error=str(e), auth_missing=True)

        result = SyncStatusResult(handle=creds.twitter_handle)
        try:
            device_id = get_device_id(self.store)
        except OSError as e:
            result.error = f"Could not read or store device id: {e}"
            return result

        with self.client_factory(creds, device_id) as client:
            try:
                response = client.get_sync_status(creds.twitter_user_id)
            except NetworkError as e:
                result.error = str(e)
                return result

        if not response.is_success:
            result.error = f"Failed to check sync status ({response.status_code})"
            return result
        try:
            result.status = SyncStatus.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            result.error = f"Unexpected sync status response: {e}"
        return result
