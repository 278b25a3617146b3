import argparse
import json

import settings as settings_module
from settings import (
    DEFAULT_REFRESH_INTERVAL,
    Settings,
    add_settings_arguments,
    apply_settings_arguments,
    clamp_interval,
    load_settings,
    save_settings,
    settings_path,
)


def _args(*argv):
    parser = argparse.ArgumentParser()
    add_settings_arguments(parser)
    return parser.parse_args(list(argv))


def test_missing_file_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv(settings_module.TOKEN_ENV, raising=False)
    loaded = load_settings(tmp_path / "settings.json")
    assert loaded == Settings()
    assert loaded.refresh_interval == DEFAULT_REFRESH_INTERVAL


def test_broken_file_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv(settings_module.TOKEN_ENV, raising=False)
    path = tmp_path / "settings.json"
    path.write_text("{oops")
    assert load_settings(path) == Settings()

    path.write_text("[1, 2]")
    assert load_settings(path) == Settings()

    path.write_bytes(b"\xff\xfe{\"refresh_interval\": 60}")
    assert load_settings(path) == Settings()

    path.write_bytes(b'{"refresh_interval": 1e999}')
    assert load_settings(path).refresh_interval == DEFAULT_REFRESH_INTERVAL


def test_save_and_load_round_trip(tmp_path, monkeypatch):
    monkeypatch.delenv(settings_module.TOKEN_ENV, raising=False)
    path = tmp_path / "nested" / "settings.json"
    save_settings(Settings(github_token="  ghp_saved  ", refresh_interval=120), path)

    assert json.loads(path.read_text()) == {"github_token": "ghp_saved", "refresh_interval": 120}
    assert load_settings(path) == Settings(github_token="ghp_saved", refresh_interval=120)
    assert (path.stat().st_mode & 0o777) == 0o600


def test_interval_is_clamped(tmp_path, monkeypatch):
    monkeypatch.delenv(settings_module.TOKEN_ENV, raising=False)
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"refresh_interval": 99999}))
    assert load_settings(path).refresh_interval == 3600

    assert clamp_interval(-10) == 0
    assert clamp_interval("90") == 90
    assert clamp_interval("soon") == DEFAULT_REFRESH_INTERVAL


def test_env_token_overrides_stored_token(tmp_path, monkeypatch):
    path = tmp_path / "settings.json"
    save_settings(Settings(github_token="stored"), path)
    monkeypatch.setenv(settings_module.TOKEN_ENV, "from-env")

    assert load_settings(path).github_token == "from-env"
    assert load_settings(path, apply_env=False).github_token == "stored"


def test_settings_path_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv(settings_module.CONFIG_PATH_ENV, str(tmp_path / "custom.json"))
    assert settings_path() == tmp_path / "custom.json"


def test_apply_settings_arguments(tmp_path, monkeypatch):
    monkeypatch.setenv(settings_module.TOKEN_ENV, "from-env")
    path = tmp_path / "settings.json"

    assert apply_settings_arguments(_args(), path) is None
    assert not path.exists()

    saved = apply_settings_arguments(_args("--set-token", " ghp_cli ", "--interval", "60"), path)
    assert saved == Settings(github_token="ghp_cli", refresh_interval=60)

    saved = apply_settings_arguments(_args("--clear-token"), path)
    # environment token never leaks into the file
    assert saved == Settings(github_token="", refresh_interval=60)
    assert json.loads(path.read_text())["github_token"] == ""
