"""Reference tables for location detection and topic classification.

The gazetteer and the topic table live in JSON files under ``data/`` so they
can be localised without touching the pipeline. They are loaded once per
process and handed out as frozen dataclasses.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

logger = logging.getLogger(__name__)

DEFAULT_TABLES_DIR = Path(__file__).resolve().parent / "data"
LOCATIONS_FILENAME = "locations.json"
TOPICS_FILENAME = "topics.json"


class TableConfigError(RuntimeError):
    """Raised when a reference table is missing or malformed."""


@dataclass(frozen=True, slots=True)
class Gazetteer:
    cities: tuple[str, ...]
    counties: tuple[str, ...]
    fire_keywords: tuple[str, ...]
    state: str
    jurisdiction_overrides: Mapping[str, str]


@dataclass(frozen=True, slots=True)
class TopicTable:
    """Ordered mapping of topic identifier to its trigger keywords."""

    entries: tuple[tuple[str, tuple[str, ...]], ...]

    @property
    def topics(self) -> tuple[str, ...]:
        return tuple(topic for topic, _ in self.entries)


def _tables_dir() -> Path:
    override = os.getenv("RECOVERY_TABLES_DIR")
    return Path(override) if override else DEFAULT_TABLES_DIR


def _read_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise TableConfigError(f"Reference table not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise TableConfigError(f"Reference table {path} is not valid JSON: {exc}") from exc


def _string_tuple(payload: Mapping[str, Any], key: str, source: Path) -> tuple[str, ...]:
    values = payload.get(key)
    if not isinstance(values, list) or not all(isinstance(v, str) and v for v in values):
        raise TableConfigError(f"{source}: '{key}' must be a list of non-empty strings")
    return tuple(v.lower() for v in values)


def parse_gazetteer(payload: Any, source: Path | str = "<memory>") -> Gazetteer:
    source = Path(source)
    if not isinstance(payload, dict):
        raise TableConfigError(f"{source}: expected a JSON object")

    overrides = payload.get("jurisdiction_overrides", {})
    if not isinstance(overrides, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in overrides.items()
    ):
        raise TableConfigError(f"{source}: 'jurisdiction_overrides' must map city to label")

    state = payload.get("state")
    if not isinstance(state, str) or not state:
        raise TableConfigError(f"{source}: 'state' must be a non-empty string")

    return Gazetteer(
        cities=_string_tuple(payload, "cities", source),
        counties=_string_tuple(payload, "counties", source),
        fire_keywords=_string_tuple(payload, "fire_keywords", source),
        state=state,
        jurisdiction_overrides=MappingProxyType({k.lower(): v for k, v in overrides.items()}),
    )


def parse_topic_table(payload: Any, source: Path | str = "<memory>") -> TopicTable:
    source = Path(source)
    if not isinstance(payload, list):
        raise TableConfigError(f"{source}: expected a JSON list of topics")

    entries: list[tuple[str, tuple[str, ...]]] = []
    seen: set[str] = set()
    for item in payload:
        if not isinstance(item, dict) or not isinstance(item.get("topic"), str):
            raise TableConfigError(f"{source}: every entry needs a 'topic' string")
        topic = item["topic"]
        if topic in seen:
            raise TableConfigError(f"{source}: duplicate topic '{topic}'")
        seen.add(topic)
        entries.append((topic, _string_tuple(item, "keywords", source)))
    return TopicTable(entries=tuple(entries))


@lru_cache(maxsize=1)
def get_gazetteer() -> Gazetteer:
    path = _tables_dir() / LOCATIONS_FILENAME
    gazetteer = parse_gazetteer(_read_json(path), path)
    logger.debug(
        "Loaded gazetteer from %s (%d cities, %d counties)",
        path,
        len(gazetteer.cities),
        len(gazetteer.counties),
    )
    return gazetteer


@lru_cache(maxsize=1)
def get_topic_table() -> TopicTable:
    path = _tables_dir() / TOPICS_FILENAME
    table = parse_topic_table(_read_json(path), path)
    logger.debug("Loaded %d topics from %s", len(table.entries), path)
    return table
