"""Tests for settings loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from server_monitor_service.config import (
    DEFAULT_FOOTER,
    ConfigError,
    UnknownProvider,
    load_provider,
    load_settings,
)


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def providers_dir(tmp_path: Path) -> Path:
    d = tmp_path / "providers"
    d.mkdir()
    _write(
        d / "kimsufi.json",
        {
            "api": "https://provider.test/availability",
            "serverMap": {"KS-1": "150sk10"},
            "zoneMap": {"gra": "Gravelines"},
        },
    )
    return d


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    return _write(
        tmp_path / "config.json",
        {
            "kimsufi": {"servers": ["KS-1", "KS-2"], "zones": ["gra", "rbx"]},
            "email": {
                "enabled": True,
                "from": "alerts@example.com",
                "to": "me@example.com, you@example.com",
                "subject": "Available!",
            },
            "sms": {"enabled": True, "from": "+1500", "to": "+1555"},
            "env": {
                "smtp": {"host": "smtp.test", "port": "465", "user": "SMTP_USER", "pass": "SMTP_PASS"},
                "sms": {"sid": "TWILIO_SID", "auth": "TWILIO_AUTH"},
            },
        },
    )


def test_load_settings_resolves_everything(providers_dir, config_file, tmp_path) -> None:
    environ = {"SMTP_USER": "bob", "SMTP_PASS": "pw", "TWILIO_SID": "AC1", "TWILIO_AUTH": "tok"}

    settings = load_settings(
        "kimsufi",
        str(config_file),
        providers_dir=str(providers_dir),
        snapshot_path=str(tmp_path / "snap.json"),
        environ=environ,
        order_sensitive=False,
    )

    assert settings.provider.api == "https://provider.test/availability"
    assert settings.provider.server_map == {"KS-1": "150sk10"}
    assert settings.provider.footer == DEFAULT_FOOTER
    assert settings.servers == ("KS-1", "KS-2")
    assert settings.zones == ("gra", "rbx")
    assert settings.email.enabled is True
    assert settings.email.host == "smtp.test"
    assert settings.email.port == 465
    assert settings.email.username == "bob"
    assert settings.email.password == "pw"
    assert settings.email.recipients == ("me@example.com", "you@example.com")
    assert settings.email.subject == "Available!"
    assert settings.sms.account_sid == "AC1"
    assert settings.sms.auth_token == "tok"
    assert settings.sms.sender == "+1500"
    assert settings.snapshot_path == str(tmp_path / "snap.json")
    assert settings.order_sensitive is False


def test_missing_credentials_resolve_to_none(providers_dir, config_file) -> None:
    settings = load_settings("kimsufi", str(config_file), providers_dir=str(providers_dir), environ={})

    assert settings.email.username is None
    assert settings.sms.account_sid is None
    # The channels are still enabled; they report themselves misconfigured at send time.
    assert settings.email.enabled is True
    assert settings.sms.enabled is True


def test_missing_sections_fall_back_to_disabled(providers_dir, tmp_path) -> None:
    config_file = _write(tmp_path / "config.json", {"kimsufi": {"servers": ["KS-1"], "zones": ["gra"]}})

    settings = load_settings("kimsufi", str(config_file), providers_dir=str(providers_dir), environ={})

    assert settings.email.enabled is False
    assert settings.sms.enabled is False
    assert settings.email.port is None


def test_string_flags_are_parsed_not_truthy(providers_dir, tmp_path) -> None:
    config_file = _write(
        tmp_path / "config.json",
        {
            "kimsufi": {"servers": ["KS-1"], "zones": ["gra"]},
            "email": {"enabled": "false"},
            "sms": {"enabled": "yes"},
            "env": {"smtp": {"host": "smtp.test", "tls": "false"}},
        },
    )

    settings = load_settings("kimsufi", str(config_file), providers_dir=str(providers_dir), environ={})

    assert settings.email.enabled is False
    assert settings.email.use_tls is False
    assert settings.sms.enabled is True


def test_tls_falls_back_to_process_default(providers_dir, config_file, monkeypatch) -> None:
    monkeypatch.setattr("server_monitor_service.config.SMTP_USE_TLS", True)

    settings = load_settings("kimsufi", str(config_file), providers_dir=str(providers_dir), environ={})

    assert settings.email.use_tls is True


def test_settings_are_immutable(providers_dir, config_file) -> None:
    settings = load_settings("kimsufi", str(config_file), providers_dir=str(providers_dir), environ={})

    with pytest.raises(AttributeError):
        settings.servers = ("other",)


def test_unknown_provider(providers_dir, config_file) -> None:
    with pytest.raises(UnknownProvider):
        load_settings("ovh", str(config_file), providers_dir=str(providers_dir), environ={})


def test_missing_config_file(providers_dir, tmp_path) -> None:
    with pytest.raises(ConfigError):
        load_settings("kimsufi", str(tmp_path / "nope.json"), providers_dir=str(providers_dir), environ={})


def test_invalid_config_file(providers_dir, tmp_path) -> None:
    bad = tmp_path / "config.json"
    bad.write_text("{", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings("kimsufi", str(bad), providers_dir=str(providers_dir), environ={})


def test_provider_without_api_is_rejected(tmp_path) -> None:
    _write(tmp_path / "broken.json", {"serverMap": {}})

    with pytest.raises(ConfigError):
        load_provider("broken", str(tmp_path))


def test_bundled_kimsufi_definition() -> None:
    definition = load_provider("kimsufi", str(Path(__file__).resolve().parents[1] / "server_monitor_service" / "providers"))

    assert definition.api.startswith("https://")
    assert definition.server_map["KS-1"] == "150sk10"
    assert definition.zone_map["gra"].startswith("Gravelines")
