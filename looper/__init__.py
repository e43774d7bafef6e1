"""Looper: a recursive web research engine."""

from .errors import (
    LooperError,
    InvalidInputError,
    ProviderError,
    ProviderUnavailableError,
    ContentUnreadableError,
    ProvenanceError,
    EngineFailureError,
)
from .research import ResearchDepth, ResearchLoop, Session, SynthesisResult, research

__all__ = [
    "research",
    "ResearchLoop",
    "Session",
    "ResearchDepth",
    "SynthesisResult",
    # Errors
    "LooperError",
    "InvalidInputError",
    "ProviderError",
    "ProviderUnavailableError",
    "ContentUnreadableError",
    "ProvenanceError",
    "EngineFailureError",
]
