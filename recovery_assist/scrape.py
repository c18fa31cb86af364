"""Page fetching for server-side context extraction."""
from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

import requests

from .snapshot import HtmlSnapshot, SectionBox, Viewport

logger = logging.getLogger(__name__)

USER_AGENT = os.getenv("SCRAPE_USER_AGENT", "RecoveryAssistBot/1.0")
REQUEST_TIMEOUT = float(os.getenv("SCRAPE_TIMEOUT", "5") or 0) or 5.0


class PageFetchError(RuntimeError):
    """Raised when a page cannot be retrieved for extraction."""


def fetch_page(url: str) -> Optional[tuple[str, str]]:
    """Fetch a page and return ``(final_url, html)`` or ``None`` on failure."""

    try:
        response = requests.get(
            url,
            headers={"User-Agent": USER_AGENT},
            timeout=REQUEST_TIMEOUT,
            allow_redirects=True,
        )
    except requests.RequestException as exc:
        logger.warning("Failed to fetch %s: %s", url, exc)
        return None

    if response.status_code != 200:
        logger.info("Skipping %s due to status %s", url, response.status_code)
        return None

    final_url = str(response.url)
    logger.info("Fetched %s (%d bytes)", final_url, len(response.text))
    return final_url, response.text


def snapshot_from_url(
    url: str,
    viewport: Viewport | None = None,
    layout: Mapping[str, SectionBox] | None = None,
) -> HtmlSnapshot:
    fetched = fetch_page(url)
    if fetched is None:
        raise PageFetchError(f"Could not fetch {url}")
    final_url, html = fetched
    return HtmlSnapshot(final_url, html, viewport=viewport, layout=layout)
