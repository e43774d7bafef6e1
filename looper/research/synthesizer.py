"""Final answer synthesis from the session's context store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .context_store import ItemKind
from .models import Alternative, SynthesisResult

if TYPE_CHECKING:
    from ..config.loader import SynthesizerConfig
    from ..providers import Reference
    from .context_store import ContextStore

logger = logging.getLogger(__name__)

NO_RESULTS_CONFIDENCE = 0.0
UNJUDGED_CONFIDENCE = 0.5


class Synthesizer:
    """
    Builds a SynthesisResult from the accumulated context.

    Deterministic for the same store contents. Alternatives are the items
    providers labelled divergent; no clustering is attempted.
    """

    def __init__(self, config: SynthesizerConfig | None = None):
        if config is None:
            from ..config.loader import SynthesizerConfig
            config = SynthesizerConfig()

        self.max_sources = config.max_sources
        self.description_chars = config.description_chars

    def synthesize(
        self,
        query: str,
        store: ContextStore,
        satisfaction: float | None = None,
    ) -> SynthesisResult:
        """
        Synthesize the final answer.

        Args:
            query: The original query
            store: Final context store snapshot
            satisfaction: Last evaluator score; becomes the confidence

        Returns:
            SynthesisResult (never raises for an empty store)
        """
        source_count = store.source_count

        if source_count == 0:
            logger.info(f"No sources gathered for '{query}'")
            return SynthesisResult(
                answer=f"No information was found for '{query}'.",
                sources=[],
                alternatives=[],
                confidence=NO_RESULTS_CONFIDENCE,
            )

        sources = self.top_sources(store)
        alternatives = self.collect_alternatives(store)

        answer = (
            f"Based on recursive analysis of {source_count} sources, "
            f"the primary findings on '{query}' come from "
            + "; ".join(s.title or s.url for s in sources)
            + "."
        )
        if alternatives:
            answer += (
                f" {len(alternatives)} divergent or alternative "
                f"viewpoint{'s were' if len(alternatives) != 1 else ' was'} also found."
            )

        confidence = UNJUDGED_CONFIDENCE if satisfaction is None else satisfaction

        return SynthesisResult(
            answer=answer,
            sources=sources,
            alternatives=alternatives,
            confidence=confidence,
        )

    def top_sources(self, store: ContextStore) -> list[Reference]:
        """Distinct references ranked by relevance, ties by ingestion order."""
        best: dict[str, tuple[int, Reference]] = {}
        for position, reference in enumerate(store.references()):
            current = best.get(reference.url)
            if current is None:
                best[reference.url] = (position, reference)
            elif reference.relevance > current[1].relevance:
                best[reference.url] = (current[0], reference)

        ranked = sorted(best.values(), key=lambda pair: (-pair[1].relevance, pair[0]))
        return [reference for _, reference in ranked[: self.max_sources]]

    def collect_alternatives(self, store: ContextStore) -> list[Alternative]:
        """Pass through every provider-labelled divergent item, once per URL."""
        alternatives: list[Alternative] = []
        seen: set[str] = set()

        for item in store.divergent_items():
            if item.url in seen:
                continue
            seen.add(item.url)

            if item.kind == ItemKind.REFERENCE:
                label = item.payload.title or item.url
                description = item.payload.snippet
            else:
                reference = store.reference_for(item.url)
                label = item.payload.title or (reference.title if reference else "") or item.url
                description = item.payload.text

            alternatives.append(
                Alternative(
                    label=label,
                    description=self._truncate(description),
                    source_url=item.url,
                )
            )

        return alternatives

    def _truncate(self, text: str) -> str:
        text = (text or "").strip()
        if len(text) <= self.description_chars:
            return text
        return text[: self.description_chars].rstrip() + "..."
