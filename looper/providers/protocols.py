"""Protocol definitions for search and content-reader providers."""

from typing import Protocol, runtime_checkable

from .models import Reference, ReadContent


@runtime_checkable
class SearchProvider(Protocol):
    """Protocol for search providers.

    Implement this protocol to plug a new search backend into the loop.
    """

    async def search(
        self,
        query: str,
        limit: int = 10,
        page: int = 1,
        safe_search: str = "moderate",
    ) -> list[Reference]:
        """
        Search for candidate references.

        Args:
            query: Search query string
            limit: Maximum number of references to return
            page: Result page (1-based), used when re-planning asks for more
            safe_search: "off", "moderate" or "strict"

        Returns:
            References ordered by relevance, highest first. An empty list
            is a valid outcome.

        Raises:
            ProviderUnavailableError: On transport failure
        """
        ...


@runtime_checkable
class ContentReader(Protocol):
    """Protocol for content readers."""

    async def read(self, reference: Reference) -> ReadContent:
        """
        Extract the body text for a reference.

        Args:
            reference: Reference to read

        Returns:
            ReadContent whose source_url is reference.url

        Raises:
            ProviderUnavailableError: On transport failure
            ContentUnreadableError: Paywalled, binary or empty content
        """
        ...
