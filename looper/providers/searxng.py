"""SearXNG search provider."""

import logging

from ..errors import ProviderUnavailableError
from ..settings import SEARXNG_LANGUAGE, SEARXNG_URL
from .http import HttpClient
from .labels import is_divergent
from .models import Reference
from .protocols import SearchProvider

logger = logging.getLogger(__name__)

SAFE_SEARCH_LEVELS = {"off": 0, "moderate": 1, "strict": 2}


class SearxngSearchProvider(SearchProvider):
    """
    Search provider backed by a SearXNG metasearch instance (JSON API).

    Usage:
        async with SearxngSearchProvider("http://localhost:8080") as search:
            references = await search.search("transformer attention", limit=5)
    """

    def __init__(
        self,
        base_url: str | None = None,
        language: str | None = None,
        timeout: float = 15.0,
        client: HttpClient | None = None,
    ):
        """
        Initialize the SearXNG provider.

        Args:
            base_url: Instance URL. Defaults to SEARXNG_URL.
            language: Result language. Defaults to SEARXNG_LANGUAGE.
            timeout: Request timeout in seconds
            client: Optional preconfigured HttpClient (tests inject a mock transport)
        """
        self.base_url = (base_url or SEARXNG_URL).rstrip("/")
        self.language = language or SEARXNG_LANGUAGE
        self._client = client or HttpClient(
            base_url=self.base_url, timeout=timeout, name="searxng"
        )
        self._entered = False

    async def __aenter__(self) -> "SearxngSearchProvider":
        await self._client.__aenter__()
        self._entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._client.__aexit__(exc_type, exc_val, exc_tb)
        self._entered = False

    def _ensure_entered(self) -> None:
        if not self._entered:
            raise RuntimeError(
                "Provider not initialized. Use 'async with' context manager."
            )

    async def search(
        self,
        query: str,
        limit: int = 10,
        page: int = 1,
        safe_search: str = "moderate",
    ) -> list[Reference]:
        """Search via the SearXNG /search endpoint."""
        self._ensure_entered()

        params: dict[str, str | int] = {
            "q": query,
            "format": "json",
            "language": self.language,
            "pageno": max(1, page),
            "safesearch": SAFE_SEARCH_LEVELS.get(safe_search, 1),
        }

        logger.info(f"Searching: query='{query}', limit={limit}, page={page}")
        response = await self._client.get("/search", params=params)

        if response.status_code != 200:
            raise ProviderUnavailableError(
                f"SearXNG returned status {response.status_code}", "searxng"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderUnavailableError(f"SearXNG returned invalid JSON: {e}", "searxng") from e

        references = self._parse_results(data.get("results", []))
        references.sort(key=lambda r: r.relevance, reverse=True)
        logger.info(f"Search returned {len(references)} references")
        return references[:limit]

    def _parse_results(self, results: list[dict]) -> list[Reference]:
        references: list[Reference] = []
        seen: set[str] = set()
        total = len(results)

        for rank, item in enumerate(results):
            url = item.get("url")
            if not url or url in seen:
                continue
            seen.add(url)

            title = item.get("title") or ""
            snippet = item.get("content") or ""
            score = item.get("score")
            # Fall back to rank order when the engine gives no score
            relevance = float(score) if score is not None else float(total - rank) / total

            references.append(
                Reference(
                    url=url,
                    title=title,
                    snippet=snippet,
                    relevance=relevance,
                    divergent=is_divergent(title, snippet),
                )
            )

        return references
