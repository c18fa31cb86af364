"""Page snapshot providers.

The extraction pipeline never touches a browser directly. It reads from a
``PageSnapshot`` (URL, title, parsed document and viewport geometry) and the
change monitor watches a ``PageHost``, the thing that can navigate and scroll.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Protocol

from bs4 import BeautifulSoup
from bs4.element import Tag

logger = logging.getLogger(__name__)

ScrollListener = Callable[[], None]

# lxml closes implied end tags (e.g. an unclosed <p> before the next <p>) as browsers do.
HTML_PARSER = "lxml"


@dataclass(frozen=True, slots=True)
class Viewport:
    scroll_y: float = 0.0
    height: float = 0.0

    @property
    def midpoint(self) -> float:
        return self.scroll_y + self.height / 2


@dataclass(frozen=True, slots=True)
class SectionBox:
    """Vertical extent of an element in document coordinates."""

    top: float
    height: float

    def contains(self, y: float) -> bool:
        return self.top <= y <= self.top + self.height


class PageSnapshot(Protocol):
    def get_url(self) -> str: ...

    def get_title(self) -> str: ...

    def get_document(self) -> BeautifulSoup: ...

    def get_viewport(self) -> Viewport: ...

    def get_section_box(self, element: Tag) -> Optional[SectionBox]: ...


class PageHost(Protocol):
    def current_url(self) -> str: ...

    def snapshot(self) -> PageSnapshot: ...

    def add_scroll_listener(self, listener: ScrollListener) -> None: ...

    def remove_scroll_listener(self, listener: ScrollListener) -> None: ...


class HtmlSnapshot:
    """Snapshot backed by raw HTML parsed with BeautifulSoup.

    ``layout`` maps element ids to their rendered boxes. Plain HTML carries no
    geometry, so callers that know it (a headless browser, the front-end
    posting its scroll state) pass it in; elements without an entry are
    treated as not rendered.
    """

    def __init__(
        self,
        url: str,
        html: str,
        viewport: Viewport | None = None,
        layout: Mapping[str, SectionBox] | None = None,
    ) -> None:
        self._url = url
        self._document = BeautifulSoup(html or "", HTML_PARSER)
        self._viewport = viewport or Viewport()
        self._layout = dict(layout or {})

    def get_url(self) -> str:
        return self._url

    def get_title(self) -> str:
        title_tag = self._document.find("title")
        return title_tag.get_text(strip=True) if title_tag else ""

    def get_document(self) -> BeautifulSoup:
        return self._document

    def get_viewport(self) -> Viewport:
        return self._viewport

    def get_section_box(self, element: Tag) -> Optional[SectionBox]:
        element_id = element.get("id")
        if not element_id:
            return None
        return self._layout.get(element_id)


class InMemoryPageHost:
    """A navigable page held in memory.

    Stands in for a live browser tab in headless harnesses: ``navigate``
    swaps the page and ``scroll_to`` moves the viewport and notifies scroll
    listeners synchronously.
    """

    def __init__(
        self,
        url: str,
        html: str = "",
        viewport_height: float = 0.0,
        layout: Mapping[str, SectionBox] | None = None,
    ) -> None:
        self._url = url
        self._html = html
        self._viewport = Viewport(scroll_y=0.0, height=viewport_height)
        self._layout = dict(layout or {})
        self._listeners: list[ScrollListener] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def current_url(self) -> str:
        return self._url

    def snapshot(self) -> HtmlSnapshot:
        return HtmlSnapshot(self._url, self._html, viewport=self._viewport, layout=self._layout)

    def navigate(self, url: str, html: str | None = None, layout: Mapping[str, SectionBox] | None = None) -> None:
        logger.debug("Navigating in-memory page to %s", url)
        self._url = url
        if html is not None:
            self._html = html
        if layout is not None:
            self._layout = dict(layout)
        self._viewport = Viewport(scroll_y=0.0, height=self._viewport.height)

    def scroll_to(self, y: float) -> None:
        self._viewport = Viewport(scroll_y=y, height=self._viewport.height)
        for listener in list(self._listeners):
            listener()

    def add_scroll_listener(self, listener: ScrollListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_scroll_listener(self, listener: ScrollListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
