"""Protocol definitions for the pluggable parts of the research loop."""

from __future__ import annotations

from typing import Protocol, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from .context_store import ContextStore
    from .models import Audit, Intent, SynthesisResult


@runtime_checkable
class Classifier(Protocol):
    """
    Maps query text to an Intent.

    The default is a keyword matcher; a model-backed router can replace it
    without touching the loop.
    """

    def classify(self, text: str) -> Intent:
        """
        Classify a query.

        Args:
            text: Natural-language query

        Returns:
            The classified Intent. Must be deterministic for a given text.
        """
        ...


@runtime_checkable
class Evaluator(Protocol):
    """
    Judges whether the accumulated context is enough to answer.

    Implementations must not mutate the store or perform I/O.
    """

    def evaluate(self, store: ContextStore) -> Audit:
        """
        Evaluate the cumulative context.

        Args:
            store: Fully ingested context store snapshot

        Returns:
            Audit with satisfaction in [0, 1] and, when unsatisfied, a
            description of what is missing
        """
        ...


@runtime_checkable
class SynthesizerProtocol(Protocol):
    """Turns the final context into an answer."""

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
            satisfaction: Last evaluator score, if any

        Returns:
            SynthesisResult
        """
        ...
