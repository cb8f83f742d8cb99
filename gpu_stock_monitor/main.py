from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from . import config
from .monitor import Monitor
from .notifier import build_notifier
from .utils import get_http_session


def setup_logging(level_name: Optional[str] = None) -> None:
    level = getattr(logging, (level_name or config.log_level()).upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stdout,
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="GPU stock monitor")
    parser.add_argument(
        "-c", "--config",
        default=config.default_config_path(),
        help="Path to the YAML config (default: $GPU_MONITOR_CONFIG or config.yaml)",
    )
    parser.add_argument("--once", action="store_true", help="Run a single check cycle and exit")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    return parser.parse_args(argv)


def install_signal_handlers(stop_event: threading.Event) -> None:
    """Set ``stop_event`` on SIGINT/SIGTERM so the loop exits promptly."""
    logger = logging.getLogger(__name__)

    def _handler(signum, frame):
        logger.info("Received signal %s. Stopping…", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def main(argv: Optional[List[str]] = None) -> int:
    """Load the config and run the monitor. Returns the process exit code."""
    args = parse_args(argv)
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        cfg = config.load_config(args.config)
    except config.ConfigError as e:
        logger.error("Could not load configuration: %s", e)
        return 1

    logger.info(
        "Loaded %d targets from %s (notification: %s).",
        len(cfg.targets), args.config, cfg.notification.channel.value,
    )

    stop_event = threading.Event()
    if threading.current_thread() is threading.main_thread():
        install_signal_handlers(stop_event)

    timeout = config.http_timeout()
    session = get_http_session()
    try:
        notifier = build_notifier(cfg.notification, session, timeout=timeout)
        monitor = Monitor(cfg, notifier, session, stop_event=stop_event, timeout=timeout)
        monitor.run_forever(max_cycles=1 if args.once else None)
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
