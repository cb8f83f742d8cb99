"""Helper utilities.

This module centralises the shared HTTP session factory and the
recoverable error types raised while checking a target.  None of these
errors is allowed to escape the monitor loop; see ``monitor.py``.
"""

from __future__ import annotations

import logging

import requests
from requests import Response


logger = logging.getLogger(__name__)


def get_http_session() -> requests.Session:
    """Return a new HTTP session with sensible defaults.

    The session sets a realistic User-Agent header so that product pages
    serve their regular HTML.  Caller is responsible for closing the
    session.  One session is reused for every request of the process.
    """
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": "Mozilla/5.0 (compatible; GpuStockMonitor/1.0; +https://github.com/)",
            "Accept": "text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8",
        }
    )
    # Respect environment proxies if configured (requests does this by default)
    return session


class MonitorError(Exception):
    """Base class for errors raised by the monitor."""


class FetchError(MonitorError):
    """Raised when a target page could not be retrieved."""


class SelectorError(MonitorError):
    """Raised when a configured stock selector is not valid CSS."""


class NotifyError(MonitorError):
    """Raised when a notification could not be delivered."""


def raise_for_status(resp: Response, error_cls: type[MonitorError]) -> None:
    """Convert a non-2xx response into ``error_cls``.

    ``requests`` only raises for 4xx/5xx, so 1xx/3xx leftovers (e.g. an
    unfollowed redirect) are treated as failures here as well.
    """
    if 200 <= resp.status_code < 300:
        return
    reason = getattr(resp, "reason", "") or ""
    raise error_cls(f"HTTP {resp.status_code} {reason}".strip())


__all__ = [
    "get_http_session",
    "raise_for_status",
    "MonitorError",
    "FetchError",
    "SelectorError",
    "NotifyError",
]
