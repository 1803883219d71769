"""Tests for configuration loading and saving."""

import json

from rewind.config import Config, get_config, get_config_dir, get_cookie_file, reset_config, save_config


def test_defaults_without_file():
    config = get_config()

    assert config == Config()
    assert config.available_poll_seconds == 15.0
    assert config.pending_poll_seconds == 0.5


def test_save_and_reload(isolated_config):
    config = get_config()
    config.server_url = "https://rewind.example"
    config.mpv_args = ["--fs"]
    save_config(config)
    reset_config()

    reloaded = get_config()

    assert reloaded.server_url == "https://rewind.example"
    assert reloaded.mpv_args == ["--fs"]
    assert get_config_dir() == isolated_config / "config" / "rewind"
    assert get_cookie_file() == isolated_config / "data" / "rewind" / "cookies.json"


def test_unknown_keys_are_ignored():
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True)
    (config_dir / "config.json").write_text(json.dumps({"username": "bob", "legacy_option": 1}))

    assert get_config().username == "bob"


def test_broken_file_falls_back_to_defaults():
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True)
    (config_dir / "config.json").write_text("{broken")

    assert get_config() == Config()
