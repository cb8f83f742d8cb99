"""Shared pytest fixtures for the gpu_stock_monitor test suite.

Credentials can be filled in from the environment (and a local `.env`),
so every test starts with those variables removed to keep config loading
deterministic.
"""

import textwrap
from unittest.mock import Mock

import pytest

ENV_VARS = (
    "DISCORD_WEBHOOK_URL",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_FROM_NUMBER",
    "TWILIO_TO_NUMBER",
    "GPU_MONITOR_CONFIG",
    "LOG_LEVEL",
    "HTTP_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_config(tmp_path):
    """Write a YAML config to a temp file and return its path."""

    def _write(text: str):
        path = tmp_path / "config.yaml"
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return path

    return _write


def make_response(status_code=200, text="", reason="OK"):
    resp = Mock()
    resp.status_code = status_code
    resp.text = text
    resp.reason = reason
    return resp
