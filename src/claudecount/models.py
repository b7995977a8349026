"""Pydantic schemas for leaderboard request/response bodies."""
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class DeviceRecord(BaseModel):
    """One installation of claudecount, as reported to the server."""
    device_id: str
    hostname: str
    platform: str
    python_version: str


class ServerStats(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_tokens: int = Field(ge=0, default=0)
    input_tokens: int = Field(ge=0, default=0)
    output_tokens: int = Field(ge=0, default=0)
    cache_creation_tokens: int = Field(ge=0, default=0)
    cache_read_tokens: int = Field(ge=0, default=0)


class UserStatsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    stats: Optional[ServerStats] = None
    rank: Optional[int] = None


class SyncHistoryRequest(BaseModel):
    twitter_user_id: str
    usage_entries: list[dict]
    force_resync: bool = False
    device: DeviceRecord


class SyncHistoryResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    synced_count: Optional[int] = None
    rank: Optional[int] = None
    stats: Optional[ServerStats] = None


class SyncStatus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    history_sync_completed: bool = False
    last_sync_date: Optional[Union[str, int, float]] = None
    device_count: Optional[int] = None
    total_entries: Optional[int] = None


class UsageTotals(BaseModel):
    """Token totals over a set of scanned usage entries."""
    input: int = 0
    output: int = 0
    cache_creation: int = 0
    cache_read: int = 0

    @property
    def total(self) -> int:
        return self.input + self.output + self.cache_creation + self.cache_read
