"""Gazetteer-based location detection."""
from __future__ import annotations

from typing import Iterable, Optional

from .schemas import Headings, LocationContext
from .tables import Gazetteer, get_gazetteer


def _capitalise_words(name: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in name.split(" "))


def _first_match(names: Iterable[str], haystacks: tuple[str, ...]) -> Optional[str]:
    # List order decides; there is no longest-match ranking.
    for name in names:
        needle = name.lower()
        if any(needle in haystack for haystack in haystacks):
            return _capitalise_words(name)
    return None


def detect_location(
    url: str,
    title: str,
    headings: Headings,
    gazetteer: Gazetteer | None = None,
) -> LocationContext:
    """Match the URL, title and h1/h2 text against the gazetteer.

    Cities and counties are matched independently. A city listed in the
    jurisdiction overrides takes its override label even when a county also
    matched.
    """

    gazetteer = gazetteer or get_gazetteer()
    url_lower = url.lower()
    corpus = " ".join([title.lower(), *(h.lower() for h in headings.h1), *(h.lower() for h in headings.h2)])
    haystacks = (url_lower, corpus)

    city = _first_match(gazetteer.cities, haystacks)
    county = _first_match(gazetteer.counties, haystacks)

    jurisdiction: Optional[str] = None
    if city and city.lower() in gazetteer.jurisdiction_overrides:
        jurisdiction = gazetteer.jurisdiction_overrides[city.lower()]
    elif county:
        jurisdiction = county

    detected = bool(city or county)
    return LocationContext(
        detected=detected,
        city=city,
        county=county,
        state=gazetteer.state if detected else None,
        jurisdiction=jurisdiction,
    )
