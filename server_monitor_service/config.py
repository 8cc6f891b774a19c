"""Configuration loader.

Reads environment variables and `.env` for process-level defaults, and
builds an immutable :class:`Settings` value from the JSON config file and
the provider definition.  Credentials are resolved from the environment
once, here, and handed to the channels through the settings value.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

# Load variables from a .env file if present (project root).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


# ---- Process defaults --------------------------------------------------------

# Logging level: DEBUG, INFO, WARNING, ERROR.
LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO")

# Tracked servers/zones, channel toggles and credential variable names.
CONFIG_PATH: str = _get_env("CONFIG_PATH", "config.json")

# The single rolling snapshot of the last notified run.
SNAPSHOT_PATH: str = _get_env("SNAPSHOT_PATH", "tmp/last-run.json")

# Directory holding <provider>.json definitions.
PROVIDERS_DIR: str = _get_env(
    "PROVIDERS_DIR", str(Path(__file__).resolve().parent / "providers")
)

DEFAULT_PROVIDER: str = _get_env("PROVIDER", "kimsufi")

HTTP_TIMEOUT_SECONDS: int = _parse_int(_get_env("HTTP_TIMEOUT_SECONDS", "20"), 20)

# Transport-level attempts for the availability fetch (1 disables retries).
FETCH_MAX_ATTEMPTS: int = max(1, _parse_int(_get_env("FETCH_MAX_ATTEMPTS", "3"), 3))

# false = compare runs as unordered collections of records.
ORDER_SENSITIVE_COMPARE: bool = _parse_bool(_get_env("ORDER_SENSITIVE_COMPARE", "true"), True)

# if False, or port=465, SSL will be used
SMTP_USE_TLS: bool = _parse_bool(_get_env("SMTP_USE_TLS", "true"), True)

TWILIO_API_BASE: str = _get_env("TWILIO_API_BASE", "https://api.twilio.com/2010-04-01")

DEFAULT_FOOTER = "Visit kimsufi at http://kimsufi.com"


class ConfigError(Exception):
    """Raised when the config file or a provider definition cannot be used."""


class UnknownProvider(ConfigError):
    """Raised when no extractor or definition exists for a provider name."""


# ---- Settings value ----------------------------------------------------------

@dataclass(frozen=True)
class ProviderDefinition:
    name: str
    api: str
    server_map: Dict[str, str] = field(default_factory=dict)
    zone_map: Dict[str, str] = field(default_factory=dict)
    footer: str = DEFAULT_FOOTER


@dataclass(frozen=True)
class EmailSettings:
    enabled: bool = False
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    sender: Optional[str] = None
    recipients: Tuple[str, ...] = ()
    subject: str = "Server availability"
    use_tls: bool = True
    timeout: int = 20


@dataclass(frozen=True)
class SmsSettings:
    enabled: bool = False
    account_sid: Optional[str] = None
    auth_token: Optional[str] = None
    sender: Optional[str] = None
    recipient: Optional[str] = None
    api_base: str = "https://api.twilio.com/2010-04-01"
    timeout: int = 20


@dataclass(frozen=True)
class Settings:
    provider: ProviderDefinition
    servers: Tuple[str, ...]
    zones: Tuple[str, ...]
    email: EmailSettings = field(default_factory=EmailSettings)
    sms: SmsSettings = field(default_factory=SmsSettings)
    snapshot_path: str = "tmp/last-run.json"
    order_sensitive: bool = True
    http_timeout: int = 20


def _read_json(path: Path, what: str) -> Any:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError as e:
        raise ConfigError(f"{what} not found: {path}") from e
    except (OSError, ValueError) as e:
        raise ConfigError(f"Could not read {what} {path}: {e}") from e


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    return [str(v).strip() for v in value if str(v).strip()]


def _as_bool(value: Any, default: bool = False) -> bool:
    # JSON booleans pass through; strings follow the same rules as env flags.
    if isinstance(value, str):
        return _parse_bool(value.strip(), default)
    if value is None:
        return default
    return bool(value)


def load_provider(name: str, providers_dir: Optional[str] = None) -> ProviderDefinition:
    """Load ``<providers_dir>/<name>.json``."""
    path = Path(providers_dir or PROVIDERS_DIR) / f"{name}.json"
    if not path.is_file():
        raise UnknownProvider(f"No provider definition for {name!r} at {path}")
    raw = _read_json(path, "provider definition")
    if not isinstance(raw, dict) or not raw.get("api"):
        raise ConfigError(f"Provider definition {path} must be an object with an 'api' URL")
    return ProviderDefinition(
        name=name,
        api=str(raw["api"]),
        server_map={str(k): str(v) for k, v in (raw.get("serverMap") or {}).items()},
        zone_map={str(k): str(v) for k, v in (raw.get("zoneMap") or {}).items()},
        footer=str(raw.get("footer") or DEFAULT_FOOTER),
    )


def _secret(environ: Mapping[str, str], var_name: Optional[str]) -> Optional[str]:
    if not var_name:
        return None
    return environ.get(str(var_name)) or None


def load_settings(
    provider: str = DEFAULT_PROVIDER,
    config_path: Optional[str] = None,
    *,
    snapshot_path: Optional[str] = None,
    providers_dir: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    order_sensitive: Optional[bool] = None,
) -> Settings:
    """Build the run's immutable settings.

    ``environ`` defaults to ``os.environ``; only the variables named in the
    config file's ``env`` section are read from it.
    """
    if environ is None:
        environ = os.environ

    definition = load_provider(provider, providers_dir)
    raw = _read_json(Path(config_path or CONFIG_PATH), "config file")
    if not isinstance(raw, dict):
        raise ConfigError("Config file must contain a JSON object")

    tracked = raw.get(provider) or {}
    env = raw.get("env") or {}
    smtp_env = env.get("smtp") or {}
    sms_env = env.get("sms") or {}
    email_cfg = raw.get("email") or {}
    sms_cfg = raw.get("sms") or {}

    port = _parse_int(str(smtp_env["port"]), 0) if smtp_env.get("port") is not None else 0
    email = EmailSettings(
        enabled=_as_bool(email_cfg.get("enabled")),
        host=smtp_env.get("host") or None,
        port=port or None,
        username=_secret(environ, smtp_env.get("user")),
        password=_secret(environ, smtp_env.get("pass")),
        sender=email_cfg.get("from") or None,
        recipients=tuple(_as_list(email_cfg.get("to"))),
        subject=str(email_cfg.get("subject") or EmailSettings.subject),
        use_tls=_as_bool(smtp_env.get("tls"), SMTP_USE_TLS),
        timeout=HTTP_TIMEOUT_SECONDS,
    )
    sms = SmsSettings(
        enabled=_as_bool(sms_cfg.get("enabled")),
        account_sid=_secret(environ, sms_env.get("sid")),
        auth_token=_secret(environ, sms_env.get("auth")),
        sender=sms_cfg.get("from") or None,
        recipient=sms_cfg.get("to") or None,
        api_base=TWILIO_API_BASE,
        timeout=HTTP_TIMEOUT_SECONDS,
    )

    return Settings(
        provider=definition,
        servers=tuple(_as_list(tracked.get("servers"))),
        zones=tuple(_as_list(tracked.get("zones"))),
        email=email,
        sms=sms,
        snapshot_path=snapshot_path or SNAPSHOT_PATH,
        order_sensitive=ORDER_SENSITIVE_COMPARE if order_sensitive is None else order_sensitive,
        http_timeout=HTTP_TIMEOUT_SECONDS,
    )


__all__ = [
    # Process defaults
    "LOG_LEVEL",
    "CONFIG_PATH",
    "SNAPSHOT_PATH",
    "PROVIDERS_DIR",
    "DEFAULT_PROVIDER",
    "HTTP_TIMEOUT_SECONDS",
    "FETCH_MAX_ATTEMPTS",
    "ORDER_SENSITIVE_COMPARE",
    "SMTP_USE_TLS",
    "TWILIO_API_BASE",
    "DEFAULT_FOOTER",
    # Errors
    "ConfigError",
    "UnknownProvider",
    # Settings
    "ProviderDefinition",
    "EmailSettings",
    "SmsSettings",
    "Settings",
    "load_provider",
    "load_settings",
]
