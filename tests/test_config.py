"""Tests for config module."""
import json


def test_load_default_config(store):
    """Test loading config with no file."""
    config = store.load()
    assert config["device_id"] is None
    assert config["oauth_token"] is None
    assert not store.path.exists()


def test_set_and_get(store):
    """Test setting individual config values."""
    from claudecount.config import ConfigStore

    store.set("twitter_handle", "@someone")
    assert store.get("twitter_handle") == "@someone"

    # A fresh store sees what was written.
    assert ConfigStore(store.path).get("twitter_handle") == "@someone"


def test_edit_writes_only_on_change(store):
    with store.edit() as config:
        config["twitter_user_id"] = "42"
    mtime = store.path.stat().st_mtime_ns
    content = store.path.read_text()

    with store.edit() as config:
        assert config["twitter_user_id"] == "42"

    assert store.path.stat().st_mtime_ns == mtime
    assert store.path.read_text() == content


def test_edit_preserves_unknown_keys(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(json.dumps({"custom": {"nested": True}}))

    with store.edit() as config:
        config["twitter_handle"] = "@x"

    stored = json.loads(store.path.read_text())
    assert stored["custom"] == {"nested": True}
    assert stored["twitter_handle"] == "@x"


def test_corrupt_config_falls_back_to_defaults(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json")
    assert store.load()["device_id"] is None


def test_api_url_resolution(store, monkeypatch):
    from claudecount.config import DEFAULT_API_URL

    assert store.api_url() == DEFAULT_API_URL

    store.set("api_url", "https://self-hosted.example/")
    assert store.api_url() == "https://self-hosted.example"

    monkeypatch.setenv("CLAUDE_COUNT_API_URL", "http://localhost:3000")
    assert store.api_url() == "http://localhost:3000"


def test_home_override(isolated_dirs):
    from claudecount.config import ConfigStore

    assert ConfigStore().path == isolated_dirs / "claudecount" / "config.json"


def test_config_file_is_private(store):
    import stat

    store.set("oauth_token", "secret")
    assert stat.S_IMODE(store.path.stat().st_mode) == 0o600
