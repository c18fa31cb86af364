"""Compose the extraction pipeline into a single ``PageContext``."""
from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from .classifier import classify_topics, extract_keywords, primary_topic
from .extractors import (
    detect_active_section,
    extract_content_blocks,
    extract_description,
    extract_form_elements,
    extract_headings,
    extract_last_updated,
)
from .location import detect_location
from .schemas import PageContext, SimplifiedContext
from .snapshot import PageSnapshot
from .tables import Gazetteer, get_gazetteer

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown"
GENERAL_TOPIC = "general"


class PageUnavailableError(RuntimeError):
    """Raised when extraction is attempted without a live page."""


def extract_page_context(snapshot: Optional[PageSnapshot]) -> PageContext:
    """Build a fresh ``PageContext`` from the given snapshot.

    Any document shape is accepted; absent elements leave the matching
    fields empty. Calling this without a snapshot is a programming error.
    """

    if snapshot is None:
        raise PageUnavailableError("Page context extraction requires a page snapshot.")

    doc = snapshot.get_document()
    url = snapshot.get_url()
    title = snapshot.get_title()

    description = extract_description(doc)
    headings = extract_headings(doc)
    location = detect_location(url, title, headings)
    content_blocks = extract_content_blocks(doc)
    keywords = extract_keywords(title, description, content_blocks)
    topics = classify_topics(keywords, content_blocks)

    context = PageContext(
        url=url,
        title=title,
        description=description,
        headings=headings,
        location=location,
        topics=topics,
        primary_topic=primary_topic(topics),
        content_blocks=content_blocks,
        keywords=keywords,
        form_elements=extract_form_elements(doc),
        active_section=detect_active_section(snapshot),
        last_updated=extract_last_updated(doc),
        timestamp=dt.datetime.now(dt.timezone.utc),
    )
    logger.debug(
        "Extracted context for %s: topics=%s location=%s",
        url,
        ",".join(topics) or "-",
        context.location.jurisdiction or context.location.city or "-",
    )
    return context


def simplify_context(context: PageContext) -> SimplifiedContext:
    """Reduce a context to the url/title/location/topic summary used by chat."""

    if context.location.detected:
        location = f"{context.location.city or ''} {context.location.county or ''}".strip()
    else:
        location = UNKNOWN_LOCATION
    return SimplifiedContext(
        url=context.url,
        title=context.title,
        location=location,
        topic=context.primary_topic or GENERAL_TOPIC,
    )


def mentions_fire_recovery(context: PageContext, gazetteer: Gazetteer | None = None) -> bool:
    text = " ".join([context.title, context.description, *context.keywords]).lower()
    return any(keyword in text for keyword in (gazetteer or get_gazetteer()).fire_keywords)


def describe_context(context: PageContext, gazetteer: Gazetteer | None = None) -> Optional[str]:
    """Short phrase for chat greetings, e.g. ``"debris removal in Altadena"``."""

    place = context.location.city or context.location.county
    if context.primary_topic:
        subject = context.primary_topic.replace("-", " ")
    elif mentions_fire_recovery(context, gazetteer):
        subject = "fire recovery"
    else:
        subject = None

    if subject and place:
        return f"{subject} in {place}"
    return subject or place
