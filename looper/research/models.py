"""Data models for the recursive research loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..providers import Reference


class ResearchDepth(str, Enum):
    """Caller-selected depth; maps to an iteration budget."""

    FAST = "fast"
    DEEP = "deep"


class IntentCategory(str, Enum):
    """Closed set of query intents."""

    BROAD_RESEARCH = "broad_research"
    TARGETED_LOOKUP = "targeted_lookup"
    UNRESTRICTED = "unrestricted"  # explicit content, search filters off
    GENERAL_QUERY = "general_query"


class ToolType(str, Enum):
    """Tools the research loop knows how to dispatch."""

    WEB_SEARCH = "web_search"


class LoopPhase(str, Enum):
    """States of one research session."""

    PLANNING = "planning"
    EXECUTING = "executing"
    INGESTING = "ingesting"
    EVALUATING = "evaluating"
    REPLANNING = "replanning"
    SYNTHESIZING = "synthesizing"
    DONE = "done"


@dataclass(frozen=True)
class Intent:
    """Classified intent of a query."""

    category: IntentCategory
    specialist: str  # observability only
    confidence: float
    breadth: int | None = None  # references the search step should request
    safe_search: str = "moderate"

    def __post_init__(self):
        if not 0 <= self.confidence <= 1:
            raise ValueError("Confidence must be between 0 and 1")
        if self.breadth is not None and self.breadth < 1:
            raise ValueError("Breadth must be positive")


@dataclass(frozen=True)
class PlanStep:
    """One tool invocation in a plan."""

    tool: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Plan:
    """The planner's output for one loop iteration."""

    id: str
    intent: Intent
    steps: tuple[PlanStep, ...]
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if not self.steps:
            raise ValueError("Plan must contain at least one step")

    def to_dict(self) -> dict:
        """Convert plan to dictionary for logging/serialization."""
        return {
            "id": self.id,
            "intent": {
                "category": self.intent.category.value,
                "specialist": self.intent.specialist,
                "confidence": self.intent.confidence,
                "breadth": self.intent.breadth,
            },
            "steps": [{"tool": s.tool, "params": dict(s.params)} for s in self.steps],
        }


@dataclass(frozen=True)
class Audit:
    """The evaluator's verdict on the cumulative context."""

    satisfaction: float
    missing_info: str | None = None

    def __post_init__(self):
        if not 0 <= self.satisfaction <= 1:
            raise ValueError("Satisfaction must be between 0 and 1")


@dataclass(frozen=True)
class Alternative:
    """A divergent or contradictory finding surfaced next to the main answer."""

    label: str
    description: str
    source_url: str


@dataclass
class SynthesisResult:
    """Final output of a research session."""

    answer: str
    sources: list[Reference]
    alternatives: list[Alternative]
    confidence: float
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert result to a JSON-serializable dictionary."""
        return {
            "answer": self.answer,
            "sources": [s.model_dump() for s in self.sources],
            "alternatives": [
                {"label": a.label, "description": a.description, "source_url": a.source_url}
                for a in self.alternatives
            ],
            "confidence": self.confidence,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class LoopEvent:
    """An item of the progress stream.

    ``type`` is "progress" (``step`` holds a human-readable milestone),
    "complete" (``result`` holds the synthesis) or "error" (``message``).
    """

    type: str
    step: str | None = None
    phase: LoopPhase | None = None
    result: SynthesisResult | None = None
    message: str | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"type": self.type}
        if self.step is not None:
            data["step"] = self.step
        if self.result is not None:
            data["data"] = self.result.to_dict()
        if self.message is not None:
            data["message"] = self.message
        return data
