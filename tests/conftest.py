from __future__ import annotations

import pytest

from server_monitor_service.config import EmailSettings, ProviderDefinition, Settings, SmsSettings


@pytest.fixture
def provider() -> ProviderDefinition:
    return ProviderDefinition(
        name="kimsufi",
        api="https://provider.test/availability",
        server_map={"KS-1": "150sk10", "KS-2": "150sk20", "serverA": "160sk1"},
        zone_map={"gra": "Gravelines", "rbx": "Roubaix", "sbg": "Strasbourg"},
        footer="Visit kimsufi at http://kimsufi.com",
    )


@pytest.fixture
def settings(provider: ProviderDefinition, tmp_path) -> Settings:
    return Settings(
        provider=provider,
        servers=("KS-1", "KS-2"),
        zones=("gra", "rbx"),
        email=EmailSettings(
            enabled=True,
            host="smtp.test",
            port=587,
            username="user",
            password="secret",
            sender="alerts@example.com",
            recipients=("me@example.com",),
            subject="Server available",
        ),
        sms=SmsSettings(
            enabled=True,
            account_sid="AC123",
            auth_token="token",
            sender="+15005550006",
            recipient="+15551234567",
        ),
        snapshot_path=str(tmp_path / "tmp" / "last-run.json"),
        http_timeout=7,
    )
