"""Shared data structures used across modules."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Headings:
    h1: tuple[str, ...] = ()
    h2: tuple[str, ...] = ()
    h3: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, list[str]]:
        return {"h1": list(self.h1), "h2": list(self.h2), "h3": list(self.h3)}


@dataclass(frozen=True, slots=True)
class LocationContext:
    """Coarse location derived from the page.

    ``detected`` is true iff a city or county matched; ``state`` is only set
    when something was detected.
    """

    detected: bool = False
    city: str | None = None
    county: str | None = None
    state: str | None = None
    jurisdiction: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "detected": self.detected,
            "city": self.city,
            "county": self.county,
            "state": self.state,
            "jurisdiction": self.jurisdiction,
        }


@dataclass(frozen=True, slots=True)
class PageContext:
    """Immutable snapshot of what the current page is about."""

    url: str
    title: str
    description: str
    headings: Headings
    location: LocationContext
    topics: tuple[str, ...]
    content_blocks: tuple[str, ...]
    keywords: tuple[str, ...]
    form_elements: tuple[str, ...]
    primary_topic: str | None = None
    active_section: str | None = None
    last_updated: str | None = None
    timestamp: dt.datetime = field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "headings": self.headings.as_dict(),
            "location": self.location.as_dict(),
            "topics": list(self.topics),
            "primary_topic": self.primary_topic,
            "content_blocks": list(self.content_blocks),
            "keywords": list(self.keywords),
            "form_elements": list(self.form_elements),
            "active_section": self.active_section,
            "last_updated": self.last_updated,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class SimplifiedContext:
    """Reduced context sent alongside chat messages."""

    url: str
    title: str
    location: str
    topic: str

    def as_dict(self) -> dict[str, str]:
        return {"url": self.url, "title": self.title, "location": self.location, "topic": self.topic}
