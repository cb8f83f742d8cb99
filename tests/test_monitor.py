# tests/test_monitor.py
import logging
import threading
from unittest.mock import Mock

import requests

from conftest import make_response
from gpu_stock_monitor.config import Channel, MonitorConfig, NotificationSettings, TargetConfig
from gpu_stock_monitor.monitor import Monitor
from gpu_stock_monitor.utils import NotifyError

SETTINGS = NotificationSettings(Channel.DISCORD, discord_webhook_url="https://discord.test/hook")


def _config(*targets, interval=60):
    return MonitorConfig(notification=SETTINGS, targets=tuple(targets), poll_interval_seconds=interval)


def _session(pages):
    """Mock session whose GET serves ``pages`` (url -> html or exception)."""

    def _get(url, **kwargs):
        page = pages[url]
        if isinstance(page, Exception):
            raise page
        return make_response(200, page)

    session = Mock()
    session.get.side_effect = _get
    return session


A = TargetConfig("Card A", "https://a.test/")
B = TargetConfig("Card B", "https://b.test/", ".buy")
C = TargetConfig("Card C", "https://c.test/")


def test_in_stock_target_is_notified():
    session = _session({A.url: "<div class='stock'>In Stock</div>"})
    notifier = Mock()

    results = Monitor(_config(A), notifier, session).run_cycle()

    notifier.notify.assert_called_once_with("Card A", "https://a.test/")
    assert results[0].in_stock is True
    assert results[0].notified is True


def test_out_of_stock_target_not_notified():
    session = _session({A.url: "<div>Unavailable</div>"})
    notifier = Mock()

    results = Monitor(_config(A), notifier, session).run_cycle()

    notifier.notify.assert_not_called()
    assert results[0].in_stock is False
    assert results[0].error is None


def test_fetch_failure_isolated(caplog):
    """One DNS failure must not stop the other targets from being checked"""
    session = _session({
        A.url: "<p>Add to Cart</p>",
        B.url: requests.ConnectionError("Name or service not known"),
        C.url: "<p>Sold out</p>",
    })
    notifier = Mock()

    with caplog.at_level(logging.INFO, logger="gpu_stock_monitor"):
        results = Monitor(_config(A, B, C), notifier, session).run_cycle()

    assert [r.target.name for r in results] == ["Card A", "Card B", "Card C"]
    assert [r.in_stock for r in results] == [True, None, False]

    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert "Card B" in errors[0].getMessage()

    messages = [r.getMessage() for r in caplog.records]
    assert "[IN STOCK] Card A" in messages
    assert "[OUT OF STOCK] Card C" in messages


def test_invalid_selector_reported_not_out_of_stock(caplog):
    bad = TargetConfig("Bad", "https://bad.test/", "div[")
    session = _session({bad.url: "<div>In Stock</div>", C.url: "<p>In Stock</p>"})
    notifier = Mock()

    with caplog.at_level(logging.INFO, logger="gpu_stock_monitor"):
        results = Monitor(_config(bad, C), notifier, session).run_cycle()

    assert results[0].in_stock is None
    assert "Invalid CSS selector" in results[0].error
    assert results[1].in_stock is True
    assert not any(r.getMessage() == "[OUT OF STOCK] Bad" for r in caplog.records)


def test_notify_failure_does_not_stop_cycle():
    session = _session({A.url: "In Stock", C.url: "In Stock"})
    notifier = Mock()
    notifier.notify.side_effect = [NotifyError("HTTP 500"), None]

    results = Monitor(_config(A, C), notifier, session).run_cycle()

    assert notifier.notify.call_count == 2
    assert results[0].notified is False and results[0].error == "HTTP 500"
    assert results[1].notified is True


def test_stop_before_target_abandons_cycle():
    stop = threading.Event()
    notifier = Mock()
    session = _session({A.url: "In Stock", C.url: "In Stock"})
    monitor = Monitor(_config(A, C), notifier, session, stop_event=stop)

    notifier.notify.side_effect = lambda *a: stop.set()
    results = monitor.run_cycle()

    assert len(results) == 1
    session.get.assert_called_once()


def test_wait_returns_immediately_when_stopped(caplog):
    stop = threading.Event()
    stop.set()
    monitor = Monitor(_config(A, interval=3600), Mock(), Mock(), stop_event=stop)

    with caplog.at_level(logging.INFO, logger="gpu_stock_monitor"):
        assert monitor.wait() is True
    assert "Waiting 3600 seconds before next check..." in caplog.text


def test_stop_from_other_thread_interrupts_sleep():
    session = _session({A.url: "Sold out"})
    monitor = Monitor(_config(A, interval=3600), Mock(), session)

    timer = threading.Timer(0.05, monitor.stop)
    timer.start()
    try:
        cycles = monitor.run_forever()
    finally:
        timer.cancel()

    assert cycles == 1


def test_run_forever_max_cycles():
    session = _session({A.url: "Sold out"})
    monitor = Monitor(_config(A, interval=3600), Mock(), session)

    assert monitor.run_forever(max_cycles=1) == 1
    assert session.get.call_count == 1


def test_run_forever_not_started_when_already_stopped():
    stop = threading.Event()
    stop.set()
    session = _session({A.url: "In Stock"})

    assert Monitor(_config(A), Mock(), session, stop_event=stop).run_forever() == 0
    session.get.assert_not_called()


def test_unexpected_error_isolated(caplog):
    """A bug in a collaborator is logged for that target and the cycle goes on"""
    session = _session({A.url: "In Stock", C.url: "In Stock"})
    notifier = Mock()
    notifier.notify.side_effect = [RuntimeError("boom"), None]

    with caplog.at_level(logging.INFO, logger="gpu_stock_monitor"):
        results = Monitor(_config(A, C), notifier, session).run_cycle()

    assert results[0].error == "Unexpected error: boom"
    assert results[0].notified is False
    assert results[1].notified is True
    assert "Unexpected error checking Card A." in caplog.text


def test_no_wait_logged_when_stopped_mid_cycle(caplog):
    stop = threading.Event()
    notifier = Mock()
    notifier.notify.side_effect = lambda *a: stop.set()
    session = _session({A.url: "In Stock"})
    monitor = Monitor(_config(A, interval=3600), notifier, session, stop_event=stop)

    with caplog.at_level(logging.INFO, logger="gpu_stock_monitor"):
        assert monitor.run_forever() == 1
    assert "Waiting" not in caplog.text
