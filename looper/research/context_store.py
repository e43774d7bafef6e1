"""Ephemeral, append-only context accumulated during one research session."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from ..errors import ProvenanceError
from ..providers import Reference, ReadContent

logger = logging.getLogger(__name__)


class ItemKind(str, Enum):
    """Type tag of an ingested item."""

    REFERENCE = "reference"
    CONTENT = "content"


@dataclass(frozen=True)
class ContextItem:
    """One ingested item, tagged by kind."""

    kind: ItemKind
    payload: Reference | ReadContent

    @property
    def url(self) -> str:
        if isinstance(self.payload, ReadContent):
            return self.payload.source_url
        return self.payload.url

    @property
    def divergent(self) -> bool:
        return self.payload.divergent

    @classmethod
    def wrap(cls, item: Reference | ReadContent | ContextItem) -> ContextItem:
        """Tag a provider result with its kind."""
        if isinstance(item, ContextItem):
            return item
        if isinstance(item, Reference):
            return cls(ItemKind.REFERENCE, item)
        if isinstance(item, ReadContent):
            return cls(ItemKind.CONTENT, item)
        raise TypeError(f"Cannot ingest {type(item).__name__}")


class ContextStore:
    """
    Accumulates references and read content for one session.

    Memory only; nothing is ever written to disk. Items are only ever
    appended, so ``total_word_count`` never decreases. Each source URL
    contributes its words once, however often it is read. Every ReadContent
    must be preceded by the Reference it was read from.
    """

    def __init__(self):
        self._items: list[ContextItem] = []
        self._reference_urls: set[str] = set()
        self._source_urls: set[str] = set()
        self._counted_urls: set[str] = set()
        self._total_word_count = 0
        self._discarded = False

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ContextItem]:
        return iter(tuple(self._items))

    @property
    def items(self) -> tuple[ContextItem, ...]:
        """Snapshot of all ingested items in ingestion order."""
        return tuple(self._items)

    @property
    def total_word_count(self) -> int:
        """Sum of word counts over the first ReadContent ingested per source URL."""
        return self._total_word_count

    @property
    def source_count(self) -> int:
        """Number of distinct URLs across references and read content."""
        return len(self._source_urls)

    @property
    def is_discarded(self) -> bool:
        return self._discarded

    def ingest(self, items: Iterable[Reference | ReadContent | ContextItem]) -> int:
        """
        Append a batch of provider results.

        The batch is validated as a whole before anything is appended, so a
        rejected batch leaves the store unchanged.

        Args:
            items: References and ReadContent in production order

        Returns:
            Number of items appended

        Raises:
            ProvenanceError: If a ReadContent has no matching Reference
            RuntimeError: If the store was already discarded
        """
        if self._discarded:
            raise RuntimeError("Context store was discarded at the end of its session")

        batch = [ContextItem.wrap(item) for item in items]

        known = set(self._reference_urls)
        for item in batch:
            if item.kind == ItemKind.REFERENCE:
                known.add(item.url)
            elif item.url not in known:
                raise ProvenanceError(
                    f"ReadContent for {item.url} has no Reference in this session"
                )

        added_words = 0
        for item in batch:
            self._items.append(item)
            self._source_urls.add(item.url)
            if item.kind == ItemKind.REFERENCE:
                self._reference_urls.add(item.url)
            elif item.url not in self._counted_urls:
                self._counted_urls.add(item.url)
                added_words += item.payload.word_count

        self._total_word_count += added_words
        logger.debug(
            f"Ingested {len(batch)} items (+{added_words} words, "
            f"total {self._total_word_count} words, {self.source_count} sources)"
        )
        return len(batch)

    def references(self) -> list[Reference]:
        """All ingested references in ingestion order (duplicates included)."""
        return [i.payload for i in self._items if i.kind == ItemKind.REFERENCE]

    def contents(self) -> list[ReadContent]:
        """All ingested read content in ingestion order."""
        return [i.payload for i in self._items if i.kind == ItemKind.CONTENT]

    def reference_for(self, url: str) -> Reference | None:
        """Most recently ingested reference for a URL."""
        for item in reversed(self._items):
            if item.kind == ItemKind.REFERENCE and item.url == url:
                return item.payload
        return None

    def divergent_items(self) -> list[ContextItem]:
        """Items a provider labelled divergent, in ingestion order."""
        return [i for i in self._items if i.divergent]

    def discard(self) -> None:
        """Drop everything at the end of the session."""
        self._items.clear()
        self._reference_urls.clear()
        self._source_urls.clear()
        self._counted_urls.clear()
        self._discarded = True
        logger.debug("Context store discarded")

    def get_stats(self) -> dict:
        """Get aggregate statistics."""
        return {
            "items": len(self._items),
            "references": sum(1 for i in self._items if i.kind == ItemKind.REFERENCE),
            "contents": sum(1 for i in self._items if i.kind == ItemKind.CONTENT),
            "total_word_count": self._total_word_count,
            "source_count": self.source_count,
        }
