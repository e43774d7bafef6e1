"""Factory functions to create providers and engine components from configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..providers import ContentReader, SearchProvider
    from ..research import Planner, ResearchLoop, Synthesizer, WordCountEvaluator
    from .loader import (
        EvaluatorConfig,
        PlannerConfig,
        ProfileConfig,
        ReaderConfig,
        SearchConfig,
        SynthesizerConfig,
    )

logger = logging.getLogger(__name__)


def create_search_provider(config: SearchConfig) -> SearchProvider:
    """Create a search provider from configuration.

    Args:
        config: Search configuration

    Returns:
        SearchProvider instance (SearXNG or mock)

    Raises:
        ValueError: If backend type is not supported
    """
    if config.backend == "searxng":
        from ..providers import SearxngSearchProvider

        return SearxngSearchProvider(
            base_url=config.url or None,
            language=config.language,
            timeout=config.timeout,
        )

    elif config.backend == "mock":
        from ..providers import MockSearchProvider

        return MockSearchProvider()

    else:
        raise ValueError(f"Unsupported search backend: {config.backend}")


def create_content_reader(config: ReaderConfig) -> ContentReader:
    """Create a content reader from configuration.

    Args:
        config: Reader configuration

    Returns:
        ContentReader instance (HTTP or mock)

    Raises:
        ValueError: If backend type is not supported
    """
    if config.backend == "http":
        from ..providers import HttpContentReader

        return HttpContentReader(timeout=config.timeout, max_chars=config.max_chars)

    elif config.backend == "mock":
        from ..providers import MockContentReader

        return MockContentReader(words_per_page=config.words_per_page)

    else:
        raise ValueError(f"Unsupported reader backend: {config.backend}")


def create_planner(config: PlannerConfig, classifier=None) -> Planner:
    """Create a Planner, optionally with a custom classifier."""
    from ..research.planner import Planner

    return Planner(classifier=classifier, config=config)


def create_evaluator(config: EvaluatorConfig) -> WordCountEvaluator:
    """Create the word-count evaluator."""
    from ..research.evaluator import WordCountEvaluator

    return WordCountEvaluator(config=config)


def create_synthesizer(config: SynthesizerConfig) -> Synthesizer:
    """Create the synthesizer."""
    from ..research.synthesizer import Synthesizer

    return Synthesizer(config=config)


def create_research_loop(
    profile: ProfileConfig,
    search_provider: SearchProvider | None = None,
    content_reader: ContentReader | None = None,
) -> ResearchLoop:
    """Create a complete ResearchLoop from a profile configuration.

    This is the main factory function. Providers built here are not yet
    entered; use the loop as an async context manager.

    Args:
        profile: Profile configuration containing all component configs
        search_provider: Override for the configured search provider
        content_reader: Override for the configured content reader

    Returns:
        ResearchLoop instance

    Raises:
        ValueError: If any backend configuration is invalid
    """
    from ..research.loop import ResearchLoop

    if search_provider is None:
        search_provider = create_search_provider(profile.search)
    if content_reader is None:
        content_reader = create_content_reader(profile.reader)

    logger.debug(
        f"Research loop: search={type(search_provider).__name__}, "
        f"reader={type(content_reader).__name__}"
    )

    return ResearchLoop(
        search_provider=search_provider,
        content_reader=content_reader,
        planner=create_planner(profile.planner),
        evaluator=create_evaluator(profile.evaluator),
        synthesizer=create_synthesizer(profile.synthesizer),
        config=profile.loop,
    )
