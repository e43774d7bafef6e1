"""Pydantic models for capability provider results."""

from pydantic import BaseModel, Field


class Reference(BaseModel):
    """A candidate source returned by a search provider."""

    url: str
    title: str = ""
    snippet: str = ""
    relevance: float = 0.0
    divergent: bool = False  # provider label: contradicts or departs from consensus

    model_config = {"frozen": True}


class ReadContent(BaseModel):
    """Extracted text for one Reference."""

    source_url: str = Field(..., alias="sourceUrl")
    text: str
    title: str | None = None
    divergent: bool = False

    model_config = {"frozen": True, "populate_by_name": True}

    @property
    def word_count(self) -> int:
        """Number of whitespace-separated tokens in the text."""
        return len(self.text.split())
