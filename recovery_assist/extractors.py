"""Text extractors that read plain data out of a parsed page.

Every function here is read-only and total: a missing element produces an
empty value, never an exception.
"""
from __future__ import annotations

import logging
from typing import Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from .schemas import Headings
from .snapshot import PageSnapshot

logger = logging.getLogger(__name__)

CONTENT_SELECTORS: tuple[str, ...] = ("main", "article", ".content", "#content", '[role="main"]')
MIN_BLOCK_LENGTH = 50
MAX_BLOCK_LENGTH = 500
MAX_CONTENT_BLOCKS = 5

FORM_FIELD_SELECTOR = "input[name], select[name], textarea[name]"
LAST_UPDATED_SELECTOR = ".last-updated, .modified-date, time[datetime]"
SECTION_SELECTOR = "section[id], div[id]"


def _text(tag: Tag) -> str:
    return tag.get_text().strip()


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def extract_description(doc: BeautifulSoup) -> str:
    meta_tag = doc.find("meta", attrs={"name": "description"})
    if meta_tag is None:
        return ""
    return _attr(meta_tag, "content")


def extract_headings(doc: BeautifulSoup) -> Headings:
    levels = {}
    for level in ("h1", "h2", "h3"):
        texts = (_text(tag) for tag in doc.find_all(level))
        levels[level] = tuple(text for text in texts if text)
    return Headings(**levels)


def extract_content_blocks(doc: BeautifulSoup) -> tuple[str, ...]:
    """Collect up to five meaningful paragraphs from the main content area.

    Containers are tried in ``CONTENT_SELECTORS`` order using the first
    element each selector matches. The search stops at the first container
    that yields a paragraph longer than ``MIN_BLOCK_LENGTH``; a container with
    only short paragraphs falls through to the next selector.
    """

    blocks: list[str] = []
    for selector in CONTENT_SELECTORS:
        container = doc.select_one(selector)
        if container is None:
            continue
        for paragraph in container.find_all("p"):
            text = _text(paragraph)
            if len(text) > MIN_BLOCK_LENGTH:
                blocks.append(text[:MAX_BLOCK_LENGTH])
        if blocks:
            logger.debug("Content blocks taken from '%s' container", selector)
            break

    return tuple(blocks[:MAX_CONTENT_BLOCKS])


def extract_form_elements(doc: BeautifulSoup) -> tuple[str, ...]:
    """Return distinct form field names and labels in first-seen order."""

    seen: dict[str, None] = {}
    for form in doc.find_all("form"):
        for field in form.select(FORM_FIELD_SELECTOR):
            name = _attr(field, "name")
            label = _attr(field, "aria-label") or _attr(field, "placeholder")
            if name:
                seen.setdefault(name, None)
            if label:
                seen.setdefault(label, None)
    return tuple(seen)


def extract_last_updated(doc: BeautifulSoup) -> Optional[str]:
    for prop in ("article:modified_time", "article:published_time"):
        meta_tag = doc.find("meta", attrs={"property": prop})
        if meta_tag is not None:
            return _attr(meta_tag, "content") or None

    date_tag = doc.select_one(LAST_UPDATED_SELECTOR)
    if date_tag is None:
        return None
    if date_tag.name == "time" and _attr(date_tag, "datetime"):
        return _attr(date_tag, "datetime")
    return _text(date_tag) or None


def detect_active_section(snapshot: PageSnapshot) -> Optional[str]:
    """Return the id of the section containing the viewport's vertical midpoint."""

    midpoint = snapshot.get_viewport().midpoint
    for section in snapshot.get_document().select(SECTION_SELECTOR):
        box = snapshot.get_section_box(section)
        if box is not None and box.contains(midpoint):
            return _attr(section, "id")
    return None
