"""HTTP page reader: downloads a reference and extracts its main text."""

import logging
import re

from bs4 import BeautifulSoup

from ..errors import ContentUnreadableError
from ..settings import READER_MAX_CHARS
from .http import HttpClient
from .labels import is_divergent
from .models import Reference, ReadContent
from .protocols import ContentReader

logger = logging.getLogger(__name__)

# Paywall / access-denied statuses are a property of the content, not the transport
UNREADABLE_STATUS_CODES = (401, 402, 403, 451)
READABLE_CONTENT_TYPES = ("text/html", "application/xhtml+xml", "text/plain")
NOISE_TAGS = ("script", "style", "noscript", "nav", "header", "footer", "aside", "form", "svg")


def extract_text(html: str) -> tuple[str | None, str]:
    """Extract (title, body text) from an HTML document.

    Prefers <main>, then <article>, then <body>.
    """
    soup = BeautifulSoup(html, "html.parser")

    title = soup.title.get_text(strip=True) if soup.title else None

    for tag in soup.find_all(list(NOISE_TAGS)):
        tag.decompose()

    root = soup.find("main") or soup.find("article") or soup.body or soup
    text = root.get_text(separator=" ", strip=True)
    text = re.sub(r"\s+", " ", text).strip()
    return title, text


class HttpContentReader(ContentReader):
    """
    Reads web pages over HTTP.

    Usage:
        async with HttpContentReader() as reader:
            content = await reader.read(reference)
    """

    def __init__(
        self,
        timeout: float = 15.0,
        max_chars: int = READER_MAX_CHARS,
        client: HttpClient | None = None,
    ):
        """
        Initialize the reader.

        Args:
            timeout: Request timeout in seconds
            max_chars: Extracted text is truncated to this many characters
            client: Optional preconfigured HttpClient
        """
        self.max_chars = max_chars
        self._client = client or HttpClient(timeout=timeout, name="reader")
        self._entered = False

    async def __aenter__(self) -> "HttpContentReader":
        await self._client.__aenter__()
        self._entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._client.__aexit__(exc_type, exc_val, exc_tb)
        self._entered = False

    def _ensure_entered(self) -> None:
        if not self._entered:
            raise RuntimeError(
                "Reader not initialized. Use 'async with' context manager."
            )

    async def read(self, reference: Reference) -> ReadContent:
        """Download the page and extract its main text."""
        self._ensure_entered()
        logger.info(f"Reading: {reference.url}")

        response = await self._client.get(reference.url)

        if response.status_code in UNREADABLE_STATUS_CODES:
            raise ContentUnreadableError(
                f"{reference.url} is not accessible (status {response.status_code})",
                "reader",
            )
        if response.status_code >= 400:
            raise ContentUnreadableError(
                f"{reference.url} returned status {response.status_code}", "reader"
            )

        content_type = response.headers.get("content-type", "text/html").split(";")[0].strip()
        if content_type not in READABLE_CONTENT_TYPES:
            raise ContentUnreadableError(
                f"{reference.url} has unsupported content type {content_type}", "reader"
            )

        if content_type == "text/plain":
            title, text = reference.title or None, re.sub(r"\s+", " ", response.text).strip()
        else:
            title, text = extract_text(response.text)

        if not text:
            raise ContentUnreadableError(f"No text extracted from {reference.url}", "reader")

        if len(text) > self.max_chars:
            text = text[: self.max_chars]

        title = title or reference.title or None
        return ReadContent(
            source_url=reference.url,
            text=text,
            title=title,
            divergent=reference.divergent or is_divergent(title),
        )
