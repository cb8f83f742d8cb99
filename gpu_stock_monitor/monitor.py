"""Polling loop that checks every target and alerts on stock."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

import requests

from . import detector
from .config import MonitorConfig, TargetConfig
from .notifier import Notifier
from .utils import FetchError, NotifyError, SelectorError

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    target: TargetConfig
    in_stock: Optional[bool] = None  # None when the check itself failed
    error: Optional[str] = None
    notified: bool = False


class Monitor:
    """Check targets in order, notify on stock, sleep, repeat.

    Errors for one target (fetch, selector, notification) are logged and
    recorded on its :class:`CheckResult`; they never stop the loop.  The
    loop ends only when ``stop_event`` is set.
    """

    def __init__(
        self,
        config: MonitorConfig,
        notifier: Notifier,
        session: requests.Session,
        stop_event: Optional[threading.Event] = None,
        timeout: float = 20,
    ):
        self.config = config
        self.notifier = notifier
        self.session = session
        self.stop_event = stop_event or threading.Event()
        self.timeout = timeout

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def stop(self) -> None:
        self.stop_event.set()

    def check_target(self, target: TargetConfig) -> CheckResult:
        try:
            return self._check_target(target)
        except Exception as e:
            logger.exception("Unexpected error checking %s.", target.name)
            return CheckResult(target=target, error=f"Unexpected error: {e}")

    def _check_target(self, target: TargetConfig) -> CheckResult:
        result = CheckResult(target=target)
        try:
            result.in_stock = detector.check_stock(self.session, target, timeout=self.timeout)
        except FetchError as e:
            result.error = str(e)
            logger.error("Error checking stock for %s: %s", target.name, e)
            return result
        except SelectorError as e:
            result.error = str(e)
            logger.error("Selector error for %s (fix in_stock_selector): %s", target.name, e)
            return result

        if not result.in_stock:
            logger.info("[OUT OF STOCK] %s", target.name)
            return result

        logger.info("[IN STOCK] %s", target.name)
        try:
            self.notifier.notify(target.name, target.url)
            result.notified = True
        except NotifyError as e:
            result.error = str(e)
            logger.error("Notification for %s failed: %s", target.name, e)
        return result

    def run_cycle(self) -> List[CheckResult]:
        """Check each target once, in configuration order."""
        results: List[CheckResult] = []
        for target in self.config.targets:
            if self.stopped:
                logger.info("Stop requested; abandoning cycle after %d targets.", len(results))
                break
            results.append(self.check_target(target))

        in_stock = sum(1 for r in results if r.in_stock)
        failed = sum(1 for r in results if r.in_stock is None)
        logger.info(
            "Cycle finished: %d checked, %d in stock, %d failed.",
            len(results), in_stock, failed,
        )
        return results

    def wait(self) -> bool:
        """Sleep between cycles; return True if woken by a stop request."""
        interval = self.config.poll_interval_seconds
        logger.info("Waiting %d seconds before next check...", interval)
        return self.stop_event.wait(interval)

    def run_forever(self, max_cycles: Optional[int] = None) -> int:
        """Run cycles until stopped (or ``max_cycles`` is reached).

        Returns the number of cycles run.
        """
        logger.info(
            "Monitoring %d targets every %d seconds.",
            len(self.config.targets), self.config.poll_interval_seconds,
        )
        cycles = 0
        while not self.stopped:
            self.run_cycle()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            if self.stopped or self.wait():
                break
        logger.info("Monitor stopped after %d cycles.", cycles)
        return cycles


__all__ = ["CheckResult", "Monitor"]
