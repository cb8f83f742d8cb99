"""Configuration loader.

Reads the YAML monitor configuration, with environment variables and
`.env` filling in credentials and process-level settings.
"""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import urlparse

import yaml
from dotenv import load_dotenv

from .utils import MonitorError

# Load variables from a .env file if present (project root).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


DEFAULT_POLL_INTERVAL_SECONDS = 60
DEFAULT_HTTP_TIMEOUT_SECONDS = 20.0


class ConfigError(MonitorError):
    """Raised when the configuration cannot be loaded or is invalid."""


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _parse_float(value: Optional[str], default: float) -> float:
    try:
        parsed = float(value) if value is not None else default
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def default_config_path() -> str:
    return _get_env("GPU_MONITOR_CONFIG", "config.yaml") or "config.yaml"


def log_level() -> str:
    return (_get_env("LOG_LEVEL", "INFO") or "INFO").upper()


def http_timeout() -> float:
    return _parse_float(_get_env("HTTP_TIMEOUT_SECONDS"), DEFAULT_HTTP_TIMEOUT_SECONDS)


# ---- Model -------------------------------------------------------------------

class Channel(str, enum.Enum):
    DISCORD = "discord"
    SMS = "sms"


@dataclass(frozen=True)
class NotificationSettings:
    channel: Channel
    discord_webhook_url: str = ""
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = ""
    twilio_to_number: str = ""


@dataclass(frozen=True)
class TargetConfig:
    name: str
    url: str
    stock_selector: str = ""  # empty = substring fallback


@dataclass(frozen=True)
class MonitorConfig:
    notification: NotificationSettings
    targets: Tuple[TargetConfig, ...]
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS


# ---- Parsing -----------------------------------------------------------------

# YAML key -> environment variable used when the YAML value is blank.
_ENV_FALLBACKS = {
    "discord_webhook_url": "DISCORD_WEBHOOK_URL",
    "twilio_account_sid": "TWILIO_ACCOUNT_SID",
    "twilio_auth_token": "TWILIO_AUTH_TOKEN",
    "twilio_from_number": "TWILIO_FROM_NUMBER",
    "twilio_to_number": "TWILIO_TO_NUMBER",
}

_TWILIO_KEYS = (
    "twilio_account_sid",
    "twilio_auth_token",
    "twilio_from_number",
    "twilio_to_number",
)

_PHONE_KEYS = ("twilio_from_number", "twilio_to_number")


def _optional_str(data: Mapping[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ConfigError(f"{where}.{key} must be a string")
    return str(value).strip()


def _required_str(data: Mapping[str, Any], key: str, where: str) -> str:
    value = _optional_str(data, key, where)
    if not value:
        raise ConfigError(f"{where}.{key} is required")
    return value


def _parse_notification(raw: Any) -> NotificationSettings:
    if not isinstance(raw, Mapping):
        raise ConfigError("notification must be a mapping")

    method = _required_str(raw, "method", "notification").lower()
    try:
        channel = Channel(method)
    except ValueError:
        supported = ", ".join(c.value for c in Channel)
        raise ConfigError(
            f"Unsupported notification method {method!r} (expected one of: {supported})"
        ) from None

    for key in _PHONE_KEYS:
        if isinstance(raw.get(key), int):
            # YAML reads an unquoted +1555... as an int and drops the "+".
            raise ConfigError(f"notification.{key} must be a quoted string, e.g. \"+15550001111\"")

    fields = {}
    for key, env_name in _ENV_FALLBACKS.items():
        fields[key] = _optional_str(raw, key, "notification") or (_get_env(env_name, "") or "").strip()

    if channel is Channel.DISCORD and not fields["discord_webhook_url"]:
        raise ConfigError(
            "notification.discord_webhook_url (or DISCORD_WEBHOOK_URL) must be set for method 'discord'"
        )
    if channel is Channel.SMS:
        missing = [k for k in _TWILIO_KEYS if not fields[k]]
        if missing:
            raise ConfigError(
                "Missing Twilio settings for method 'sms': " + ", ".join(missing)
            )

    return NotificationSettings(channel=channel, **fields)


def _parse_target(raw: Any, index: int) -> TargetConfig:
    where = f"gpus[{index}]"
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{where} must be a mapping")
    name = _required_str(raw, "name", where)
    url = _required_str(raw, "url", where)
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise ConfigError(f"{where}.url is not a valid URL: {url!r}") from e
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"{where}.url is not an http(s) URL: {url!r}")
    selector = _optional_str(raw, "in_stock_selector", where)
    return TargetConfig(name=name, url=url, stock_selector=selector)


def _parse_interval(raw: Mapping[str, Any]) -> int:
    value = raw.get("monitor_interval_sec", DEFAULT_POLL_INTERVAL_SECONDS)
    if value is None:
        return DEFAULT_POLL_INTERVAL_SECONDS
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError("monitor_interval_sec must be an integer")
    if value <= 0:
        raise ConfigError("monitor_interval_sec must be greater than 0")
    return value


def parse_config(raw: Any) -> MonitorConfig:
    """Build a :class:`MonitorConfig` from already-decoded YAML data."""
    if not isinstance(raw, Mapping):
        raise ConfigError("Configuration root must be a mapping")
    if "notification" not in raw:
        raise ConfigError("notification section is required")
    gpus = raw.get("gpus")
    if not isinstance(gpus, list) or not gpus:
        raise ConfigError("gpus must be a non-empty list")

    return MonitorConfig(
        notification=_parse_notification(raw["notification"]),
        targets=tuple(_parse_target(item, i) for i, item in enumerate(gpus)),
        poll_interval_seconds=_parse_interval(raw),
    )


def load_config(path: str | os.PathLike[str]) -> MonitorConfig:
    """Load and validate the YAML config at ``path``.

    Either returns a fully populated config or raises :class:`ConfigError`.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {p}") from None
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config file {p} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read config file {p}: {e}") from e

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed YAML in {p}: {e}") from e

    return parse_config(raw)


__all__ = [
    "Channel",
    "ConfigError",
    "MonitorConfig",
    "NotificationSettings",
    "TargetConfig",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "default_config_path",
    "http_timeout",
    "load_config",
    "log_level",
    "parse_config",
]
