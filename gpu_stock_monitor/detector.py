"""Stock detection for product pages.

Pages are fetched with plain HTTP GETs (no browser rendering), then
inspected one of two ways:

* with a CSS selector, the page is parsed and the target counts as in
  stock when at least one element matches;
* without one, the raw HTML is searched for the phrases "In Stock" or
  "Add to Cart".  Cheap, but sites that word things differently (or
  mention the phrases in marketing copy) will be misreported.
"""
from __future__ import annotations

import logging
from typing import Optional

import requests
from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

from .config import TargetConfig
from .utils import FetchError, SelectorError, raise_for_status

logger = logging.getLogger(__name__)

IN_STOCK_PHRASES = ("In Stock", "Add to Cart")


def fetch_page(session: requests.Session, url: str, timeout: float = 20) -> str:
    """GET ``url`` and return the body text, raising FetchError on failure."""
    try:
        resp = session.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise FetchError(f"Request to {url} failed: {e}") from e
    raise_for_status(resp, FetchError)
    logger.debug("Fetched %s (%d chars)", url, len(resp.text or ""))
    return resp.text or ""


def detect(page_content: str, selector: Optional[str] = None) -> bool:
    """Return True when ``page_content`` shows the product as in stock."""
    selector = (selector or "").strip()
    if not selector:
        return any(phrase in page_content for phrase in IN_STOCK_PHRASES)

    soup = BeautifulSoup(page_content, "html.parser")
    try:
        return soup.select_one(selector) is not None
    except SelectorSyntaxError as e:
        raise SelectorError(f"Invalid CSS selector {selector!r}: {e}") from e


def check_stock(session: requests.Session, target: TargetConfig, timeout: float = 20) -> bool:
    html = fetch_page(session, target.url, timeout=timeout)
    return detect(html, target.stock_selector)


__all__ = ["IN_STOCK_PHRASES", "check_stock", "detect", "fetch_page"]
