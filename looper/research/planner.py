"""Intent classification and step planning for research queries.

Turns a query into a Plan: an intent plus an ordered list of tool steps
the research loop can dispatch.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..errors import InvalidInputError
from .models import Intent, IntentCategory, Plan, PlanStep, ToolType

if TYPE_CHECKING:
    from ..config.loader import PlannerConfig
    from .protocols import Classifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntentRule:
    """A keyword rule mapping matching queries to an intent category."""

    category: IntentCategory
    specialist: str
    confidence: float
    keywords: tuple[str, ...]
    breadth: str = "standard"
    safe_search: str = "moderate"

    @property
    def pattern(self) -> re.Pattern:
        alternatives = "|".join(
            r"\s+".join(re.escape(word) for word in keyword.split())
            for keyword in self.keywords
        )
        return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


# Checked in order; the first matching rule wins
INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        category=IntentCategory.BROAD_RESEARCH,
        specialist="RecursiveAgent",
        confidence=0.85,
        keywords=(
            "compare", "comparison", "research", "find", "why", "versus", "vs",
            "pros and cons", "impact of", "analysis", "analyze", "investigate",
        ),
        breadth="massive",
    ),
    IntentRule(
        category=IntentCategory.TARGETED_LOOKUP,
        specialist="LookupAgent",
        confidence=0.9,
        keywords=(
            "what is", "who is", "who was", "define", "definition", "meaning of",
            "when did", "when was", "where is", "how many", "price of", "lookup",
        ),
        breadth="narrow",
    ),
    IntentRule(
        category=IntentCategory.UNRESTRICTED,
        specialist="RecursiveAgent",
        confidence=0.99,
        keywords=("porn", "xxx", "adult", "nsfw", "sex", "explicit", "uncensored"),
        breadth="massive",
        safe_search="off",
    ),
)

FALLBACK_SPECIALIST = "QuickSearch"
FALLBACK_CONFIDENCE = 0.5

DEFAULT_BREADTH_LIMITS = {"narrow": 4, "standard": 6, "massive": 12}

# Feedback keyword -> search refinement; checked in order
FEEDBACK_REFINEMENTS = (
    ("detail", "in-depth analysis"),
    ("insufficient", "overview"),
    ("failed", "overview"),
)


class KeywordClassifier:
    """
    Rule-based classifier over whole-word keyword sets.

    Rules are evaluated in priority order; queries matching no rule fall
    back to GENERAL_QUERY with minimum confidence.
    """

    def __init__(
        self,
        rules: tuple[IntentRule, ...] = INTENT_RULES,
        breadth_limits: dict[str, int] | None = None,
    ):
        self.rules = rules
        self.breadth_limits = dict(DEFAULT_BREADTH_LIMITS)
        if breadth_limits:
            self.breadth_limits.update(breadth_limits)
        self._patterns = [(rule, rule.pattern) for rule in rules]

    def classify(self, text: str) -> Intent:
        """Classify a query; deterministic for a given text."""
        for rule, pattern in self._patterns:
            if pattern.search(text or ""):
                return Intent(
                    category=rule.category,
                    specialist=rule.specialist,
                    confidence=rule.confidence,
                    breadth=self.breadth_limits.get(rule.breadth),
                    safe_search=rule.safe_search,
                )

        return Intent(
            category=IntentCategory.GENERAL_QUERY,
            specialist=FALLBACK_SPECIALIST,
            confidence=FALLBACK_CONFIDENCE,
            breadth=self.breadth_limits.get("standard"),
        )


class Planner:
    """
    Builds plans for the research loop.

    ``plan`` is used for the first iteration, ``replan`` for every later
    one. Both always produce at least one step.
    """

    def __init__(
        self,
        classifier: Classifier | None = None,
        config: PlannerConfig | None = None,
    ):
        """
        Initialize the planner.

        Args:
            classifier: Intent classifier. Defaults to KeywordClassifier.
            config: Planner configuration
        """
        if config is None:
            from ..config.loader import PlannerConfig
            config = PlannerConfig()

        self.config = config
        self.classifier = classifier or KeywordClassifier(
            breadth_limits=config.breadth_limits
        )

    def classify(self, query: str) -> Intent:
        """Classify a query into an intent."""
        return self.classifier.classify(query)

    def plan(self, query: str) -> Plan:
        """
        Create the initial plan for a query.

        Raises:
            InvalidInputError: If the query is empty or whitespace-only
        """
        query = self._validate(query)
        intent = self.classify(query)

        logger.info(f"Intent detected: {intent.category.value}")
        logger.info(f"Specialist assigned: {intent.specialist}")

        steps = [self._search_step(intent, query, page=1)]
        return self._make_plan(intent, steps)

    def replan(self, query: str, missing_info: str | None, iteration: int = 1) -> Plan:
        """
        Create a follow-up plan using evaluator feedback.

        The intent is re-derived from the query, so it is stable across
        iterations. The primary search moves to the next result page so it
        never repeats an earlier step, and a refinement search biased by the
        feedback is appended.

        Args:
            query: The original query
            missing_info: Evaluator description of what is missing
            iteration: Number of completed iterations (>= 1)

        Raises:
            InvalidInputError: If the query is empty or whitespace-only
        """
        query = self._validate(query)
        iteration = max(1, iteration)
        intent = self.classify(query)

        steps = [
            self._search_step(intent, query, page=iteration + 1, feedback=missing_info)
        ]

        refined_query = f"{query} {self._refinement(missing_info)}"
        steps.append(
            self._search_step(intent, refined_query, page=iteration, feedback=missing_info)
        )

        logger.info(f"Replanning (round {iteration + 1}): {missing_info or 'no feedback'}")
        return self._make_plan(intent, steps)

    def _validate(self, query: str) -> str:
        if query is None or not str(query).strip():
            raise InvalidInputError("Query must be a non-empty string")
        return str(query).strip()

    def _refinement(self, missing_info: str | None) -> str:
        feedback = (missing_info or "").lower()
        for keyword, refinement in FEEDBACK_REFINEMENTS:
            if keyword in feedback:
                return refinement
        return self.config.refinement_suffix

    def _search_step(
        self,
        intent: Intent,
        query: str,
        page: int,
        feedback: str | None = None,
    ) -> PlanStep:
        params = {
            "query": query,
            "limit": intent.breadth or self.config.default_breadth,
            "page": page,
            "safe_search": intent.safe_search,
        }
        if feedback:
            params["feedback"] = feedback
        return PlanStep(tool=ToolType.WEB_SEARCH.value, params=params)

    def _make_plan(self, intent: Intent, steps: list[PlanStep]) -> Plan:
        return Plan(
            id=f"plan-{uuid.uuid4().hex[:8]}",
            intent=intent,
            steps=tuple(steps),
        )
