"""Keyword extraction and rule-based topic classification."""
from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Sequence

from .tables import TopicTable, get_topic_table

MAX_KEYWORDS = 20
MIN_KEYWORD_LENGTH = 4
MIN_TOPIC_MATCHES = 2

_NON_KEYWORD_CHARS = re.compile(r"[^a-z0-9-]")


def extract_keywords(title: str, description: str, content_blocks: Iterable[str]) -> tuple[str, ...]:
    """Return the most frequent tokens, most frequent first.

    Ties keep first-seen order: ``Counter`` preserves insertion order and
    ``sorted`` is stable.
    """

    text = " ".join([title, description, *content_blocks]).lower()
    counts: Counter[str] = Counter()
    for token in text.split():
        word = _NON_KEYWORD_CHARS.sub("", token)
        if len(word) >= MIN_KEYWORD_LENGTH:
            counts[word] += 1

    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return tuple(word for word, _ in ranked[:MAX_KEYWORDS])


def classify_topics(
    keywords: Sequence[str],
    content_blocks: Sequence[str],
    table: TopicTable | None = None,
) -> tuple[str, ...]:
    """Return every topic with at least two keyword hits, in table order."""

    table = table or get_topic_table()
    search_text = " ".join([*keywords, *(block.lower() for block in content_blocks)])

    topics: list[str] = []
    for topic, topic_keywords in table.entries:
        matches = sum(1 for keyword in topic_keywords if keyword in search_text)
        if matches >= MIN_TOPIC_MATCHES:
            topics.append(topic)
    return tuple(topics)


def primary_topic(topics: Sequence[str]) -> str | None:
    return topics[0] if topics else None
