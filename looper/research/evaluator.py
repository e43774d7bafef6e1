"""Satisfaction judge for the research loop.

Placeholder heuristic: satisfaction is a step function of how many words
of page text have been gathered. Anything implementing the Evaluator
protocol (e.g. an LLM judge) can take its place.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models import Audit

if TYPE_CHECKING:
    from ..config.loader import EvaluatorConfig
    from .context_store import ContextStore

logger = logging.getLogger(__name__)

LOW_WORD_THRESHOLD = 500
HIGH_WORD_THRESHOLD = 1000

LOW_SATISFACTION = 0.3
MEDIUM_SATISFACTION = 0.7
HIGH_SATISFACTION = 0.9

INSUFFICIENT_CONTENT_MESSAGE = "Search failed to yield sufficient content"
NEED_MORE_DETAIL_MESSAGE = "Need more detail"


class WordCountEvaluator:
    """
    Scores the cumulative word count against two thresholds.

    - below ``low_word_threshold``: low satisfaction, insufficient content
    - below ``high_word_threshold``: medium satisfaction, need more detail
    - otherwise: high satisfaction, nothing missing
    """

    def __init__(self, config: EvaluatorConfig | None = None):
        if config is None:
            from ..config.loader import EvaluatorConfig
            config = EvaluatorConfig()

        if config.low_word_threshold > config.high_word_threshold:
            raise ValueError("low_word_threshold must not exceed high_word_threshold")

        self.config = config

    def evaluate(self, store: ContextStore) -> Audit:
        """Evaluate the store. Pure: reads word count only."""
        words = store.total_word_count
        config = self.config

        if words >= config.high_word_threshold:
            audit = Audit(satisfaction=config.high_satisfaction)
        elif words >= config.low_word_threshold:
            audit = Audit(
                satisfaction=config.medium_satisfaction,
                missing_info=config.need_more_detail_message,
            )
        else:
            audit = Audit(
                satisfaction=config.low_satisfaction,
                missing_info=config.insufficient_content_message,
            )

        logger.debug(f"Evaluated {words} words -> satisfaction {audit.satisfaction}")
        return audit
