"""Tests for the stats sync workflow."""
import pytest

from claudecount.models import UsageTotals

ENTRIES = [
    {"timestamp": "2026-01-07T10:00:00Z", "message_id": "m1", "request_id": "r1",
     "input_tokens": 100, "output_tokens": 200},
    {"timestamp": "2026-01-07T11:00:00Z", "message_id": "m2", "request_id": "r2",
     "input_tokens": 50, "output_tokens": 25},
]


def stats_body(total):
    return {"stats": {"total_tokens": total, "input_tokens": total // 2,
                      "output_tokens": total // 2, "cache_creation_tokens": 0,
                      "cache_read_tokens": 0}, "rank": 7}


class ScannerSpy:
    def __init__(self, entries=ENTRIES):
        self.entries = entries
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return list(self.entries), UsageTotals(input=150, output=225)


def run(store, server, resync=False, scanner=None):
    from claudecount.auth import ConfigCredentialProvider
    from claudecount.sync import SyncReconciler

    scanner = scanner or ScannerSpy()
    reconciler = SyncReconciler(store, ConfigCredentialProvider(store), scanner=scanner,
                                client_factory=server.client_factory())
    return reconciler.run(resync=resync)


def test_server_data_is_displayed_without_upload(authed_store, fake_server):
    from claudecount.sync import SyncOutcome

    server = fake_server(stats=stats_body(5000))
    scanner = ScannerSpy()
    result = run(authed_store, server, scanner=scanner)

    assert result.outcome == SyncOutcome.DISPLAY_ONLY
    assert result.ok
    assert result.server_stats.total_tokens == 5000
    assert result.rank == 7
    assert server.uploads() == []
    assert scanner.calls == 0


def test_zero_total_triggers_sync(authed_store, fake_server):
    from claudecount.sync import SyncOutcome

    server = fake_server(stats=stats_body(0), sync={"synced_count": 2})
    result = run(authed_store, server)

    assert result.outcome == SyncOutcome.SUCCESS
    assert len(server.uploads()) == 1
    assert server.uploads()[0]["force_resync"] is False


def test_missing_stats_trigger_sync(authed_store, fake_server):
    from claudecount.sync import SyncOutcome

    server = fake_server(stats={"stats": None}, sync={"synced_count": 2})
    assert run(authed_store, server).outcome == SyncOutcome.SUCCESS
    assert len(server.uploads()) == 1


@pytest.mark.parametrize("resync", [False, True])
def test_fetch_network_error_triggers_sync(authed_store, fake_server, resync):
    from claudecount.sync import SyncOutcome

    server = fake_server(fail_on={"/api/user/stats"}, sync={"synced_count": 2})
    result = run(authed_store, server, resync=resync)

    assert result.fetch_error.startswith("Error fetching stats")
    assert result.outcome == SyncOutcome.SUCCESS
    assert len(server.uploads()) == 1


def test_fetch_http_error_triggers_sync(authed_store, fake_server):
    server = fake_server(stats="boom", stats_status=500, sync={"synced_count": 2})
    result = run(authed_store, server)

    assert "500" in result.fetch_error
    assert len(server.uploads()) == 1


def test_resync_forces_upload_with_flag(authed_store, fake_server):
    from claudecount.sync import SyncOutcome

    server = fake_server(stats=stats_body(5000), sync={"synced_count": 2})
    result = run(authed_store, server, resync=True)

    assert result.outcome == SyncOutcome.SUCCESS
    assert server.uploads()[0]["force_resync"] is True


def test_upload_payload_and_headers(authed_store, fake_server):
    server = fake_server(sync={"synced_count": 2})
    run(authed_store, server)

    upload = server.requests[-1]
    assert upload.headers["X-OAuth-Token"] == "token-abc"
    assert upload.headers["X-OAuth-Token-Secret"] == "secret-xyz"
    assert upload.headers["X-Device-ID"] == "testhost-0a1b2c3d"

    payload = server.uploads()[0]
    assert payload["twitter_user_id"] == "12345"
    assert payload["usage_entries"] == ENTRIES
    assert payload["device"]["device_id"] == "testhost-0a1b2c3d"
    assert set(payload["device"]) == {"device_id", "hostname", "platform", "python_version"}

    stats_request = server.requests[0]
    assert stats_request.url.params["twitter_user_id"] == "12345"


def test_empty_scan_skips_upload(authed_store, fake_server):
    from claudecount.sync import SyncOutcome

    server = fake_server()
    result = run(authed_store, server, scanner=ScannerSpy(entries=[]))

    assert result.outcome == SyncOutcome.NOTHING_TO_SYNC
    assert result.ok
    assert server.uploads() == []


def test_already_synced_is_success(authed_store, fake_server):
    from claudecount.sync import SyncOutcome

    server = fake_server(sync="History already synced for this device", sync_status=409)
    result = run(authed_store, server)

    assert result.outcome == SyncOutcome.ALREADY_SYNCED
    assert result.ok


def test_rate_limited_is_not_retried(authed_store, fake_server):
    from claudecount.sync import SyncOutcome

    server = fake_server(sync="rate limit exceeded", sync_status=429)
    result = run(authed_store, server)

    assert result.outcome == SyncOutcome.RATE_LIMITED
    assert not result.ok
    assert len(server.uploads()) == 1


def test_generic_failure_keeps_server_text(authed_store, fake_server):
    from claudecount.sync import SyncOutcome

    server = fake_server(sync="invalid payload", sync_status=400)
    result = run(authed_store, server)

    assert result.outcome == SyncOutcome.GENERIC_FAILURE
    assert result.message == "invalid payload"


def test_upload_network_error(authed_store, fake_server):
    from claudecount.sync import SyncOutcome

    server = fake_server(fail_on={"/api/usage/sync-history"})
    result = run(authed_store, server)

    assert result.outcome == SyncOutcome.NETWORK_ERROR
    assert result.message.startswith("Sync error")
    assert len(server.uploads()) == 1


def test_success_result_fields(authed_store, fake_server):
    server = fake_server(sync={"synced_count": 2, "rank": 3, "stats": {"total_tokens": 375}})
    result = run(authed_store, server)

    assert result.synced_count == 2
    assert result.rank == 3
    assert result.updated_stats.total_tokens == 375
    assert result.entries_found == 2
    assert result.totals.total == 375


def test_missing_synced_count_falls_back_to_entries(authed_store, fake_server):
    server = fake_server(sync={})
    assert run(authed_store, server).synced_count == len(ENTRIES)


def test_missing_credentials_short_circuit(store, fake_server):
    from claudecount.sync import SyncOutcome

    server = fake_server()
    result = run(store, server)

    assert result.outcome == SyncOutcome.AUTH_MISSING
    assert server.requests == []


@pytest.mark.parametrize("body,resync,expected", [
    ("already synced", False, "already_synced"),
    ("Already Synced", False, "already_synced"),
    ("already synced", True, "generic_failure"),
    ("rate limit exceeded", False, "rate_limited"),
    ("rate limit exceeded", True, "rate_limited"),
    ('{"code": "rate_limited", "error": "slow down"}', False, "rate_limited"),
    ('{"code": "already_synced"}', False, "already_synced"),
    ("internal error", False, "generic_failure"),
    ("", False, "generic_failure"),
])
def test_classify_upload_failure(body, resync, expected):
    from claudecount.sync import classify_upload_failure

    assert classify_upload_failure(body, resync).value == expected


def test_scan_failure_is_reported_without_upload(authed_store, fake_server):
    from claudecount.sync import SyncOutcome

    def broken_scanner():
        raise AttributeError("'str' object has no attribute 'get'")

    server = fake_server()
    result = run(authed_store, server, scanner=broken_scanner)

    assert result.outcome == SyncOutcome.GENERIC_FAILURE
    assert not result.ok
    assert "Could not scan local usage" in result.message
    assert server.uploads() == []


def test_device_id_failure_is_reported(authed_store, fake_server, monkeypatch):
    from claudecount.sync import SyncOutcome

    def unwritable(store):
        raise PermissionError("read-only file system")

    monkeypatch.setattr("claudecount.sync.get_device_id", unwritable)
    server = fake_server()
    scanner = ScannerSpy()
    result = run(authed_store, server, scanner=scanner)

    assert result.outcome == SyncOutcome.GENERIC_FAILURE
    assert "read-only file system" in result.message
    assert result.handle == "@tester"
    assert server.requests == []
    assert scanner.calls == 0
