"""Load bundled topic indexes and pick level-appropriate topics."""

from __future__ import annotations

import json
import random
from dataclasses import dataclass
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Any

CONTENT_PACKAGE = "rustmentor.content.indexes"
LIBRARY_MIN_LEVEL = 3
MIN_LEVEL = 1
MAX_LEVEL = 10


class TopicError(ValueError):
    """Raised when no topic can be supplied."""


class IndexKind(Enum):
    """Topic source offered on the index selection screen."""

    LIBRARY = "library"
    RUST_BY_EXAMPLE = "rust_by_example"
    RUST_BOOK = "rust_book"
    RANDOM = "random"

    @property
    def label(self) -> str:
        return INDEX_LABELS[self]


INDEX_LABELS = {
    IndexKind.LIBRARY: "Rust Library Index (libraries like tokio, serde, etc.)",
    IndexKind.RUST_BY_EXAMPLE: "Rust By Example Index (examples from Rust By Example)",
    IndexKind.RUST_BOOK: "Rust Programming Language Index (topics from The Book)",
    IndexKind.RANDOM: "Random (select randomly from available indexes)",
}


@dataclass(frozen=True)
class Topic:
    """One learnable topic."""

    topic: str
    source: str
    min_level: int


@dataclass(frozen=True)
class Section:
    number: str
    title: str
    min_level: int


@dataclass(frozen=True)
class Chapter:
    number: str
    title: str
    sections: list[Section]


@dataclass(frozen=True)
class TopicBook:
    """Parsed index file."""

    id: str
    title: str
    url: str
    source_prefix: str
    chapters: list[Chapter]

    def topics(self) -> list[Topic]:
        return [
            Topic(
                topic=f"{chapter.title}: {section.title}",
                source=f"{self.source_prefix} {section.number}",
                min_level=section.min_level,
            )
            for chapter in self.chapters
            for section in chapter.sections
        ]


def _section_from_dict(raw: dict[str, Any]) -> Section:
    title = str(raw.get("title", "")).strip()
    if not title:
        raise ValueError(f"Section '{raw.get('number', '<unknown>')}' has no title.")
    min_level = int(raw.get("min_level", MIN_LEVEL))
    if not MIN_LEVEL <= min_level <= MAX_LEVEL:
        raise ValueError(f"Section '{title}' has min_level {min_level} outside {MIN_LEVEL}..{MAX_LEVEL}.")
    return Section(number=str(raw.get("number", "")), title=title, min_level=min_level)


def _chapter_from_dict(raw: dict[str, Any]) -> Chapter:
    title = str(raw.get("title", "")).strip()
    if not title:
        raise ValueError(f"Chapter '{raw.get('number', '<unknown>')}' has no title.")
    sections = [_section_from_dict(item) for item in raw.get("sections", [])]
    if not sections:
        raise ValueError(f"Chapter '{title}' has no sections.")
    return Chapter(number=str(raw.get("number", "")), title=title, sections=sections)


def _book_from_dict(raw: dict[str, Any]) -> TopicBook:
    book_id = str(raw["id"])
    return TopicBook(
        id=book_id,
        title=str(raw["title"]),
        url=str(raw.get("url", "")),
        source_prefix=str(raw.get("source_prefix", raw["title"])),
        chapters=[_chapter_from_dict(item) for item in raw.get("chapters", [])],
    )


def load_topic_books() -> dict[str, TopicBook]:
    """Load bundled topic indexes."""
    books: dict[str, TopicBook] = {}
    for entry in resources.files(CONTENT_PACKAGE).iterdir():
        if entry.name.endswith(".json"):
            book = _book_from_dict(json.loads(entry.read_text(encoding="utf-8-sig")))
            if book.id in books:
                raise ValueError(f"Duplicate topic index id: {book.id}")
            books[book.id] = book
    return books


def load_topic_books_from_dir(path: Path) -> dict[str, TopicBook]:
    """Load topic indexes from a directory for tests/tools."""
    books: dict[str, TopicBook] = {}
    for file_path in sorted(path.glob("*.json")):
        book = _book_from_dict(json.loads(file_path.read_text(encoding="utf-8-sig")))
        if book.id in books:
            raise ValueError(f"Duplicate topic index id: {book.id}")
        books[book.id] = book
    return books


class TopicIndex:
    """Topic supplier backed by the loaded index books."""

    def __init__(self, books: dict[str, TopicBook] | None = None, rng: random.Random | None = None) -> None:
        self.books = books if books is not None else load_topic_books()
        self._rng = rng or random.Random()

    def topics_for(self, level: int, index_kind: IndexKind) -> list[Topic]:
        """Return topics of one index (all indexes for RANDOM) unlocked at ``level``."""
        if index_kind is IndexKind.RANDOM:
            book_ids = sorted(self.books)
        else:
            book_ids = [index_kind.value] if index_kind.value in self.books else []
        return [topic for book_id in book_ids for topic in self.books[book_id].topics() if topic.min_level <= level]

    def next_topic(self, level: int, index_kind: IndexKind) -> Topic:
        """Pick a random suitable topic; raises TopicError when there is none."""
        suitable = self.topics_for(level, index_kind)
        if not suitable:
            raise TopicError(f"No suitable topics found for level {level} in {index_kind.label}")
        return self._rng.choice(suitable)


def requires_higher_level(level: int, index_kind: IndexKind) -> bool:
    """Library topics assume the learner already knows the core language."""
    return index_kind is IndexKind.LIBRARY and level < LIBRARY_MIN_LEVEL
