"""Test fixtures for claudecount tests."""
import json

import httpx
import pytest


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Keep every test away from the real ~/.claude and ~/.claudecount."""
    claude_dir = tmp_path / "claude"
    config_dir = tmp_path / "claudecount"
    monkeypatch.setenv("CLAUDE_CONFIG_DIR", str(claude_dir))
    monkeypatch.setenv("CLAUDE_COUNT_HOME", str(config_dir))
    monkeypatch.delenv("CLAUDE_COUNT_API_URL", raising=False)
    monkeypatch.delenv("CLAUDE_COUNT_DEBUG", raising=False)
    return tmp_path


@pytest.fixture
def claude_dir(isolated_dirs):
    return isolated_dirs / "claude"


@pytest.fixture
def store(isolated_dirs):
    from claudecount.config import ConfigStore
    return ConfigStore(isolated_dirs / "claudecount" / "config.json")


@pytest.fixture
def authed_store(store):
    """Config store holding a complete set of credentials."""
    with store.edit() as config:
        config.update({
            "twitter_user_id": "12345",
            "twitter_handle": "@tester",
            "oauth_token": "token-abc",
            "oauth_token_secret": "secret-xyz",
            "device_id": "testhost-0a1b2c3d",
        })
    return store


class FakeLeaderboard:
    """Scripted leaderboard server recording every request it receives."""

    def __init__(self, stats=None, stats_status=200, sync=None, sync_status=200,
                 status=None, status_status=200, fail_on=()):
        self.stats = stats if stats is not None else {"stats": None}
        self.stats_status = stats_status
        self.sync = sync if sync is not None else {"synced_count": 0}
        self.sync_status = sync_status
        self.status = status if status is not None else {"history_sync_completed": False}
        self.status_status = status_status
        self.fail_on = set(fail_on)
        self.requests: list[httpx.Request] = []

    def _respond(self, status_code, body):
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.fail_on:
            raise httpx.ConnectError("connection refused", request=request)
        if path == "/api/user/stats":
            return self._respond(self.stats_status, self.stats)
        if path == "/api/usage/sync-history":
            return self._respond(self.sync_status, self.sync)
        if path == "/api/user/sync-status":
            return self._respond(self.status_status, self.status)
        return httpx.Response(404, text="not found")

    def uploads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path == "/api/usage/sync-history"]

    def client_factory(self):
        from claudecount.api import LeaderboardClient

        def make(credentials, device_id):
            return LeaderboardClient("https://api.test", credentials, device_id,
                                     transport=httpx.MockTransport(self.handler))
        return make


@pytest.fixture
def fake_server():
    return FakeLeaderboard


def write_transcript(path, records):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(json.dumps(r) for r in records) + "\n")


def assistant_record(message_id, request_id, input_tokens=10, output_tokens=20,
                     cache_creation=0, cache_read=0, timestamp="2026-01-07T10:00:00Z"):
    return {
        "type": "assistant",
        "timestamp": timestamp,
        "requestId": request_id,
        "sessionId": "session-1",
        "message": {
            "id": message_id,
            "model": "claude-opus",
            "usage": {
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "cache_creation_input_tokens": cache_creation,
                "cache_read_input_tokens": cache_read,
            },
        },
    }
