"""Deterministic offline providers for development and tests."""

import asyncio
import logging
from collections.abc import Iterable
from urllib.parse import quote

from ..errors import ContentUnreadableError, ProviderUnavailableError
from .labels import is_divergent
from .models import Reference, ReadContent

logger = logging.getLogger(__name__)

# (title, url, snippet) templates; "{q}" is the raw query, "{slug}" the URL-quoted one
MOCK_CORPUS = (
    (
        "Results for {q}",
        "https://example.com/search?q={slug}",
        "Broad overview of {q} collected from general web indices.",
    ),
    (
        "Community Discussion: {q}",
        "https://forum.example.net/t/{slug}",
        "User discussions and first-hand reports regarding {q}.",
    ),
    (
        "Video Archives: {q}",
        "https://video.example.org/v/{slug}",
        "Recorded talks and footage about {q}.",
    ),
    (
        "Contradicting View: Why {q} is misunderstood",
        "https://contrarian-blog.com/posts/{slug}",
        "Everyone thinks X, but actually Y. Here is the alternative perspective.",
    ),
    (
        "Technical Deep Dive: The physics of {q}",
        "https://science.org/abstract/{slug}",
        "Mathematical argument suggesting the standard model of {q} is incomplete.",
    ),
    (
        "Legacy/Historical Data for {q}",
        "https://archive.org/wayback/{slug}",
        "In 1999, the consensus on {q} was vastly different.",
    ),
)

FILLER_SENTENCE = (
    "This passage contains detailed paragraphs, statistics and claims about {topic} "
    "that the context store will ingest."
)


class MockSearchProvider:
    """
    Search provider returning a fixed corpus for any query.

    Args:
        references: Explicit references to return instead of the corpus
        fail: Raise ProviderUnavailableError on every call
        fail_queries: Queries that raise ProviderUnavailableError; others succeed
        empty: Always return an empty list
        delay: Simulated network latency in seconds
    """

    def __init__(
        self,
        references: Iterable[Reference] | None = None,
        fail: bool = False,
        fail_queries: Iterable[str] = (),
        empty: bool = False,
        delay: float = 0.0,
    ):
        self._references = list(references) if references is not None else None
        self.fail = fail
        self.fail_queries = set(fail_queries)
        self.empty = empty
        self.delay = delay
        self.calls: list[dict] = []

    async def __aenter__(self) -> "MockSearchProvider":
        return self

    async def __aexit__(self, *args) -> None:
        pass

    async def search(
        self,
        query: str,
        limit: int = 10,
        page: int = 1,
        safe_search: str = "moderate",
    ) -> list[Reference]:
        """Return corpus references for the query."""
        self.calls.append(
            {"query": query, "limit": limit, "page": page, "safe_search": safe_search}
        )
        logger.info(f"[mock] Searching for: '{query}' (page {page}, safe_search={safe_search})")

        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail or query in self.fail_queries:
            raise ProviderUnavailableError("Mock search provider is down", "mock")
        if self.empty:
            return []

        if self._references is not None:
            references = sorted(self._references, key=lambda r: r.relevance, reverse=True)
            return references[:limit]

        return self._corpus(query, page)[:limit]

    def _corpus(self, query: str, page: int) -> list[Reference]:
        slug = quote(query, safe="")
        suffix = "" if page <= 1 else f"#page-{page}"
        references = []
        for rank, (title, url, snippet) in enumerate(MOCK_CORPUS):
            title = title.format(q=query)
            snippet = snippet.format(q=query)
            references.append(
                Reference(
                    url=url.format(slug=slug) + suffix,
                    title=title,
                    snippet=snippet,
                    relevance=round(1.0 - rank * 0.1, 2),
                    divergent=is_divergent(title, snippet),
                )
            )
        return references


class MockContentReader:
    """
    Content reader that synthesizes page text of a fixed length.

    Args:
        words_per_page: Approximate word count of every page
        unreadable: URLs that raise ContentUnreadableError
        unavailable: URLs that raise ProviderUnavailableError
        texts: Explicit page text by URL
        delay: Simulated network latency in seconds
    """

    def __init__(
        self,
        words_per_page: int = 320,
        unreadable: Iterable[str] = (),
        unavailable: Iterable[str] = (),
        texts: dict[str, str] | None = None,
        delay: float = 0.0,
    ):
        self.words_per_page = words_per_page
        self.unreadable = set(unreadable)
        self.unavailable = set(unavailable)
        self.texts = dict(texts or {})
        self.delay = delay
        self.calls: list[str] = []

    async def __aenter__(self) -> "MockContentReader":
        return self

    async def __aexit__(self, *args) -> None:
        pass

    async def read(self, reference: Reference) -> ReadContent:
        """Return synthetic content for the reference."""
        self.calls.append(reference.url)
        logger.info(f"[mock] Reading: {reference.url}")

        if self.delay:
            await asyncio.sleep(self.delay)
        if reference.url in self.unavailable:
            raise ProviderUnavailableError(f"Could not reach {reference.url}", "mock")
        if reference.url in self.unreadable:
            raise ContentUnreadableError(f"{reference.url} is paywalled", "mock")

        text = self.texts.get(reference.url)
        if text is None:
            text = self._page_text(reference)

        return ReadContent(
            source_url=reference.url,
            text=text,
            title=reference.title or None,
            divergent=reference.divergent,
        )

    def _page_text(self, reference: Reference) -> str:
        sentence = FILLER_SENTENCE.format(topic=reference.title or reference.url)
        words_per_sentence = len(sentence.split())
        repeats = max(1, round(self.words_per_page / words_per_sentence))
        return " ".join([sentence] * repeats)
