"""
GPU stock monitor package.

This package contains modules for loading the monitor configuration,
detecting stock on product pages, notifying Discord or SMS and running
the polling loop.  See README.md for details.
"""

__all__ = [
    "config",
    "detector",
    "notifier",
    "monitor",
    "main",
    "utils",
]
