"""Recursive research loop.

- Planner: classifies the query and builds tool steps
- ResearchLoop: plan -> execute -> ingest -> evaluate -> replan
- ContextStore: ephemeral per-session accumulation of references and text
- WordCountEvaluator: satisfaction judge
- Synthesizer: final answer, sources and divergent alternatives
"""

from .models import (
    ResearchDepth,
    IntentCategory,
    ToolType,
    LoopPhase,
    Intent,
    PlanStep,
    Plan,
    Audit,
    Alternative,
    SynthesisResult,
    LoopEvent,
)
from .context_store import ContextStore, ContextItem, ItemKind
from .protocols import Classifier, Evaluator, SynthesizerProtocol
from .planner import Planner, KeywordClassifier, IntentRule, INTENT_RULES
from .evaluator import (
    WordCountEvaluator,
    LOW_WORD_THRESHOLD,
    HIGH_WORD_THRESHOLD,
    LOW_SATISFACTION,
    MEDIUM_SATISFACTION,
    HIGH_SATISFACTION,
)
from .synthesizer import Synthesizer
from .loop import ResearchLoop, Session, PHASE_MILESTONES, research
from .navigator import Navigator, Bubble, Suggestions

__all__ = [
    # Models
    "ResearchDepth",
    "IntentCategory",
    "ToolType",
    "LoopPhase",
    "Intent",
    "PlanStep",
    "Plan",
    "Audit",
    "Alternative",
    "SynthesisResult",
    "LoopEvent",
    # Context
    "ContextStore",
    "ContextItem",
    "ItemKind",
    # Protocols
    "Classifier",
    "Evaluator",
    "SynthesizerProtocol",
    # Planning
    "Planner",
    "KeywordClassifier",
    "IntentRule",
    "INTENT_RULES",
    # Evaluation
    "WordCountEvaluator",
    "LOW_WORD_THRESHOLD",
    "HIGH_WORD_THRESHOLD",
    "LOW_SATISFACTION",
    "MEDIUM_SATISFACTION",
    "HIGH_SATISFACTION",
    # Synthesis
    "Synthesizer",
    # Loop
    "ResearchLoop",
    "Session",
    "PHASE_MILESTONES",
    "research",
    # Suggestions
    "Navigator",
    "Bubble",
    "Suggestions",
]
